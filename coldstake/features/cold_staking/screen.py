"""Cold staking setup modal screens."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, cast

from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.screen import ModalScreen
from textual.timer import Timer
from textual.widgets import Button, Input, Label, Select, Static

from coldstake.features.cold_staking.models import FeeTier, FormField, PipelineStage
from coldstake.features.cold_staking.service import ColdStakingSetupService
from coldstake.features.cold_staking.validators import format_coin_amount
from coldstake.shared.logging import format_error_for_user
from coldstake.shared.network import NetworkError

if TYPE_CHECKING:
    from coldstake.gateway import ApiGateway

logger = logging.getLogger(__name__)

INPUT_FIELDS = {
    "hot-address-input": "delegation_address",
    "amount-input": "amount",
    "password-input": "password",
}

STAGE_LABELS = {
    PipelineStage.VALIDATING_ADDRESS: "Validating address...",
    PipelineStage.CREATING_COLD_ACCOUNT: "Preparing cold staking account...",
    PipelineStage.RESOLVING_COLD_ADDRESS: "Getting cold staking address...",
    PipelineStage.BUILDING_DELEGATION_TX: "Building transaction...",
    PipelineStage.BROADCASTING: "Broadcasting transaction...",
}


class BaseModalScreen(ModalScreen):
    """Base modal screen with common key bindings."""

    BINDINGS = [
        ("escape", "app.pop_screen", "Close"),
        ("tab", "app.focus_next", "Next"),
        ("shift+tab", "app.focus_previous", "Previous"),
    ]


class ColdStakingCreateScreen(BaseModalScreen):
    """Form delegating staking rights of the active wallet to a hot address."""

    REFRESH_INTERVAL = 0.25

    def __init__(
        self,
        gateway: ApiGateway,
        wallet_name: str,
        coin_unit: str = "x42",
        poll_interval: float = 5.0,
        debounce_delay: float = 0.3,
    ):
        super().__init__()
        self.coin_unit = coin_unit
        self.service = ColdStakingSetupService(
            gateway,
            wallet_name,
            coin_unit=coin_unit,
            poll_interval=poll_interval,
            debounce_delay=debounce_delay,
            on_sent=self._on_sent,
            on_balance_error=self._on_balance_error,
        )
        self._refresh_timer: Timer | None = None

    def compose(self) -> ComposeResult:
        yield Label("Create cold staking setup", id="cold-staking-title")
        yield Static("Balance: loading...", id="balance-display")
        yield Label("Delegated staking address:")
        yield Input(placeholder="Hot wallet address", id="hot-address-input")
        yield Static("", id="hot-address-error")
        yield Label(f"Amount ({self.coin_unit}):")
        yield Horizontal(
            Input(placeholder="0.00000000", id="amount-input"),
            Button("Max", id="max-button"),
        )
        yield Static("", id="amount-error")
        yield Label("Fee:")
        yield Select(
            [(tier.value.capitalize(), tier.value) for tier in FeeTier],
            value=FeeTier.MEDIUM.value,
            allow_blank=False,
            id="fee-select",
        )
        yield Static("", id="fee-display")
        yield Label("Wallet password:")
        yield Input(placeholder="Password", password=True, id="password-input")
        yield Static("", id="password-error")
        yield Static("", id="api-error")
        yield Horizontal(
            Button("Send", id="send-button", variant="primary"),
            Button("Cancel", id="cancel-button"),
        )

    def on_mount(self) -> None:
        self.service.start()
        self._refresh_timer = self.set_interval(self.REFRESH_INTERVAL, self.refresh_view)
        self.refresh_view()

    def on_unmount(self) -> None:
        self.service.stop()
        if self._refresh_timer:
            self._refresh_timer.stop()
            self._refresh_timer = None

    def on_input_changed(self, event: Input.Changed) -> None:
        field = INPUT_FIELDS.get(event.input.id or "")
        if field is None:
            return
        self.service.update(**{field: event.value})
        self.refresh_view()

    def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.id == "fee-select" and event.value is not Select.BLANK:
            self.service.update(fee_tier=FeeTier(str(event.value)))

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "send-button":
            self.service.send()
        elif event.button.id == "max-button":
            if await self.service.use_maximum_balance():
                amount_input = cast(Input, self.query_one("#amount-input"))
                with amount_input.prevent(Input.Changed):
                    amount_input.value = self.service.state.amount
        elif event.button.id == "cancel-button":
            self.dismiss(None)
            return
        self.refresh_view()

    def refresh_view(self) -> None:
        service = self.service
        balance = cast(Static, self.query_one("#balance-display"))
        if service.balance_loaded:
            balance.update(
                f"Balance: {format_coin_amount(service.balance.total_balance)} "
                f"{self.coin_unit} (spendable "
                f"{format_coin_amount(service.balance.spendable_balance)})"
            )

        fee = cast(Static, self.query_one("#fee-display"))
        fee.update(f"{format_coin_amount(service.estimated_fee)} {self.coin_unit}")

        errors = service.field_errors
        for field, widget_id in (
            (FormField.DELEGATION_ADDRESS, "#hot-address-error"),
            (FormField.AMOUNT, "#amount-error"),
            (FormField.PASSWORD, "#password-error"),
        ):
            message = errors.get(field, "")
            cast(Static, self.query_one(widget_id)).update(
                f"[red]{message}[/red]" if message else ""
            )

        api_error = cast(Static, self.query_one("#api-error"))
        if service.api_error:
            api_error.update(f"[red]{service.api_error}[/red]")
        elif service.is_sending:
            api_error.update(
                f"[yellow]{STAGE_LABELS.get(service.stage, 'Sending...')}[/yellow]"
            )
        else:
            api_error.update("")

        send_button = cast(Button, self.query_one("#send-button"))
        send_button.disabled = service.is_sending or not service.is_valid

    def _on_balance_error(self, error: NetworkError) -> None:
        logger.error("Balance refresh failed: %s", error.message)
        self.notify(format_error_for_user(error), severity="error")

    def _on_sent(self, transaction_id: str) -> None:
        self.dismiss(transaction_id)
        self.app.push_screen(ColdStakingSuccessScreen(transaction_id))


class ColdStakingSuccessScreen(BaseModalScreen):
    def __init__(self, transaction_id: str):
        super().__init__()
        self.transaction_id = transaction_id

    def compose(self) -> ComposeResult:
        yield Label("Cold staking setup sent", id="success-title")
        yield Static(
            "Your coins will be delegated once the transaction is confirmed."
        )
        yield Label("Transaction ID:")
        yield Static(self.transaction_id, id="transaction-id-display")
        yield Button("Close", id="close-button", variant="primary")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "close-button":
            self.app.pop_screen()
