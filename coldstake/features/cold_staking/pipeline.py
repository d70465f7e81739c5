"""Five-stage cold staking delegation workflow."""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING, Callable

from coldstake.features.cold_staking.models import (
    DelegationRequest,
    PipelineResult,
    PipelineStage,
)
from coldstake.shared.logging import format_error_for_user, log_with_context
from coldstake.shared.network import NetworkError

if TYPE_CHECKING:
    from coldstake.gateway import ApiGateway

logger = logging.getLogger(__name__)


class TransactionPipeline:
    """Turns a delegation request into a broadcast transaction id.

    Stages run strictly in order and each one starts only after the previous
    one succeeded::

        validate address -> ensure cold account -> resolve cold address
            -> build setup transaction -> broadcast

    The first error ends the run; later stages are never called and nothing
    is retried. Unexpected exceptions are logged and reported with a generic
    message. Partial effects (an already created cold staking account) are
    left in place; a new run starts again from the first stage.
    """

    def __init__(
        self,
        gateway: ApiGateway,
        on_stage_change: Callable[[PipelineStage], None] | None = None,
    ):
        self.gateway = gateway
        self.on_stage_change = on_stage_change
        self._stage = PipelineStage.IDLE

    @property
    def stage(self) -> PipelineStage:
        return self._stage

    def _enter(self, stage: PipelineStage, request: DelegationRequest) -> None:
        self._stage = stage
        log_with_context(
            logger,
            logging.DEBUG,
            f"Cold staking setup: {stage.value}",
            wallet=request.wallet_name,
            hot_address=request.hot_wallet_address,
        )
        if self.on_stage_change:
            self.on_stage_change(stage)

    async def run(self, request: DelegationRequest) -> PipelineResult:
        try:
            self._enter(PipelineStage.VALIDATING_ADDRESS, request)
            descriptor = await self.gateway.validate_address(request.hot_wallet_address)

            self._enter(PipelineStage.CREATING_COLD_ACCOUNT, request)
            await self.gateway.ensure_cold_staking_account(
                request.wallet_name, request.password, True
            )

            self._enter(PipelineStage.RESOLVING_COLD_ADDRESS, request)
            cold_address = await self.gateway.resolve_staking_address(
                request.wallet_name, True, str(descriptor.is_witness).lower()
            )
            request = dataclasses.replace(request, cold_wallet_address=cold_address)

            self._enter(PipelineStage.BUILDING_DELEGATION_TX, request)
            payload = await self.gateway.build_cold_staking_setup(
                request.hot_wallet_address,
                cold_address,
                request.amount,
                request.wallet_name,
                request.password,
                request.account_name,
                request.fee,
            )

            self._enter(PipelineStage.BROADCASTING, request)
            transaction_id = await self.gateway.broadcast_transaction(payload)
        except NetworkError as e:
            failed_stage = self._stage
            self._enter(PipelineStage.FAILED, request)
            logger.warning(
                "Cold staking setup failed at %s: %s", failed_stage.value, e.message
            )
            return PipelineResult.failure(failed_stage, e.message)
        except Exception as e:
            failed_stage = self._stage
            self._enter(PipelineStage.FAILED, request)
            logger.exception(
                "Unexpected error during cold staking setup at %s", failed_stage.value
            )
            return PipelineResult.failure(failed_stage, format_error_for_user(e))

        self._enter(PipelineStage.COMPLETED, request)
        logger.info(
            "Cold staking setup broadcast for wallet '%s': %s",
            request.wallet_name,
            transaction_id,
        )
        return PipelineResult.success(transaction_id)
