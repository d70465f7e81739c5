"""Cold staking setup form controller."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import TYPE_CHECKING, Any, Callable

from coldstake.features.cold_staking.balance import BalancePoller
from coldstake.features.cold_staking.fee_estimator import FeeEstimator
from coldstake.features.cold_staking.models import (
    MAIN_ACCOUNT,
    BalanceSnapshot,
    DelegationRequest,
    FeeQuote,
    FeeTier,
    FormField,
    FormState,
    PipelineResult,
    PipelineStage,
)
from coldstake.features.cold_staking.pipeline import TransactionPipeline
from coldstake.features.cold_staking.validators import (
    FieldValidation,
    ValidationGate,
    format_coin_amount,
)
from coldstake.shared.network import NetworkError

if TYPE_CHECKING:
    from coldstake.gateway import ApiGateway

logger = logging.getLogger(__name__)

FormListener = Callable[[FormState], None]


class ColdStakingSetupService:
    """Owns the setup form and drives its three background components.

    Form changes go through :meth:`update`, which notifies every listener:
    the service itself (validation messages) and the fee estimator. The
    ``is_sending`` flag allows at most one delegation pipeline at a time.
    """

    def __init__(
        self,
        gateway: ApiGateway,
        wallet_name: str,
        coin_unit: str = "x42",
        poll_interval: float = BalancePoller.DEFAULT_INTERVAL,
        debounce_delay: float = FeeEstimator.DEFAULT_DELAY,
        on_sent: Callable[[str], None] | None = None,
        on_balance_error: Callable[[NetworkError], None] | None = None,
        on_stage_change: Callable[[PipelineStage], None] | None = None,
    ):
        self.gateway = gateway
        self.wallet_name = wallet_name
        self.coin_unit = coin_unit
        self.on_sent = on_sent
        self.gate = ValidationGate()
        self.poller = BalancePoller(
            gateway,
            wallet_name,
            interval=poll_interval,
            on_error=on_balance_error,
        )
        self.fee_estimator = FeeEstimator(
            gateway,
            wallet_name,
            balance=lambda: self.poller.snapshot,
            gate=self.gate,
            delay=debounce_delay,
            on_error=self._set_api_error,
        )
        self.pipeline = TransactionPipeline(gateway, on_stage_change=on_stage_change)

        self._state = FormState()
        self._dirty: set[FormField] = set()
        self._listeners: list[FormListener] = [
            self._on_form_changed,
            self.fee_estimator.notify,
        ]
        self._field_errors: dict[FormField, str] = {}
        self.api_error = ""
        self.is_sending = False
        self._send_task: asyncio.Task | None = None

    @property
    def state(self) -> FormState:
        return self._state

    @property
    def balance(self) -> BalanceSnapshot:
        return self.poller.snapshot

    @property
    def balance_loaded(self) -> bool:
        return self.poller.balance_loaded

    @property
    def fee_quote(self) -> FeeQuote | None:
        return self.fee_estimator.quote

    @property
    def estimated_fee(self) -> int:
        return self.fee_estimator.estimated_fee

    @property
    def stage(self) -> PipelineStage:
        return self.pipeline.stage

    @property
    def field_errors(self) -> dict[FormField, str]:
        return dict(self._field_errors)

    @property
    def validation(self) -> dict[FormField, FieldValidation]:
        return self.gate.evaluate(self._state, self.balance, self.fee_quote)

    @property
    def is_valid(self) -> bool:
        return all(result.is_valid for result in self.validation.values())

    def start(self) -> None:
        self.poller.start()

    def stop(self) -> None:
        self.poller.stop()
        self.fee_estimator.cancel()

    def subscribe(self, listener: FormListener) -> None:
        self._listeners.append(listener)

    def update(self, **changes: Any) -> FormState:
        """Apply user edits, e.g. ``update(amount="1.5")``."""
        if "fee_tier" in changes and not isinstance(changes["fee_tier"], FeeTier):
            changes["fee_tier"] = FeeTier(changes["fee_tier"])
        self._state = dataclasses.replace(self._state, **changes)
        for name in changes:
            try:
                self._dirty.add(FormField(name))
            except ValueError:
                continue
        for listener in list(self._listeners):
            listener(self._state)
        return self._state

    def _on_form_changed(self, state: FormState) -> None:
        self.api_error = ""
        self._refresh_field_errors()

    def _refresh_field_errors(self) -> None:
        self._field_errors = {
            field: self.gate.messages_for(result, self.coin_unit)
            for field, result in self.validation.items()
            if field in self._dirty and not result.is_valid
        }

    def _set_api_error(self, message: str) -> None:
        self.api_error = message

    async def use_maximum_balance(self) -> bool:
        """Fill in the largest spendable amount and the fee it requires."""
        try:
            maximum = await self.gateway.get_maximum_spendable(
                self.wallet_name, self._state.fee_tier
            )
        except NetworkError as e:
            self.api_error = e.message
            return False

        self.update(amount=format_coin_amount(maximum.max_amount))
        self.fee_estimator.adopt(maximum.fee)
        self._refresh_field_errors()
        return True

    def send(self) -> asyncio.Task | None:
        """Start the delegation pipeline.

        Returns the pipeline task, or ``None`` when a run is already in flight
        or the form is invalid.
        """
        if self.is_sending:
            logger.debug("Cold staking setup already in progress")
            return None

        if not self.is_valid:
            self._dirty.update(FormField)
            self._refresh_field_errors()
            return None

        self.is_sending = True
        state = self._state
        request = DelegationRequest(
            hot_wallet_address=state.delegation_address.strip(),
            amount=state.amount,
            wallet_name=self.wallet_name,
            password=state.password,
            account_name=MAIN_ACCOUNT,
            fee=self.estimated_fee,
        )
        self._send_task = asyncio.get_running_loop().create_task(
            self._run_pipeline(request)
        )
        return self._send_task

    async def _run_pipeline(self, request: DelegationRequest) -> PipelineResult:
        result = await self.pipeline.run(request)
        if result.succeeded:
            if self.on_sent and result.transaction_id:
                self.on_sent(result.transaction_id)
        else:
            self.is_sending = False
            self.api_error = result.message or ""
        return result
