"""Main application entry point for the cold staking wallet."""

from __future__ import annotations

import logging

from textual.app import App, ComposeResult
from textual.widgets import Footer, Header, Static

from coldstake.config import ColdStakingConfig
from coldstake.features.cold_staking.screen import ColdStakingCreateScreen
from coldstake.gateway import NodeApiGateway
from coldstake.shared.logging import setup_logging

logger = logging.getLogger(__name__)


class ColdStakingApp(App):
    TITLE = "Cold Staking"
    BINDINGS = [
        ("n", "new_setup", "New cold staking setup"),
        ("q", "quit", "Quit"),
    ]

    def __init__(self, config: ColdStakingConfig | None = None):
        super().__init__()
        self.config = config or ColdStakingConfig.load()
        self.gateway = NodeApiGateway(
            self.config.node_url,
            timeout_config=self.config.timeout_config,
            retry_config=self.config.retry_config,
        )

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static(
            f"Node: {self.config.node_url}\n"
            f"Wallet: {self.config.wallet_name or '(not configured)'}",
            id="node-info",
        )
        yield Footer()

    def on_mount(self) -> None:
        logger.info(
            "Cold staking app started (node=%s, wallet=%s)",
            self.config.node_url,
            self.config.wallet_name,
        )
        self.action_new_setup()

    def action_new_setup(self) -> None:
        if not self.config.wallet_name:
            self.notify(
                "No wallet configured. Set COLDSTAKE_WALLET_NAME or wallet_name "
                "in the configuration file.",
                severity="error",
            )
            return
        self.push_screen(
            ColdStakingCreateScreen(
                self.gateway,
                self.config.wallet_name,
                coin_unit=self.config.coin_unit,
                poll_interval=self.config.balance_poll_interval,
                debounce_delay=self.config.fee_debounce_delay,
            ),
            self._on_setup_closed,
        )

    def _on_setup_closed(self, transaction_id: str | None) -> None:
        if transaction_id:
            logger.info("Cold staking setup sent: %s", transaction_id)


def main():
    """Entry point for the application."""
    setup_logging()
    app = ColdStakingApp()
    app.run()


if __name__ == "__main__":
    main()
