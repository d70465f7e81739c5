"""Periodic wallet balance refresher for the cold staking setup."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, Callable

from coldstake.features.cold_staking.models import BalanceSnapshot
from coldstake.shared.logging import format_error_for_user
from coldstake.shared.network import NetworkError

if TYPE_CHECKING:
    from coldstake.gateway import ApiGateway

logger = logging.getLogger(__name__)


class PollerState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"


def log_balance_error(error: NetworkError) -> None:
    logger.error("Balance refresh failed: %s", format_error_for_user(error))


class BalancePoller:
    """Fetches the active wallet's balance on a fixed interval.

    The poller pauses itself while a fetch is outstanding, so two fetches are
    never in flight together no matter how slow the node is. The interval is
    counted from the moment the previous fetch finished. ``stop()`` does not
    wait for or cancel an in-flight fetch. The fetch runs in its own task and
    keeps the poller marked busy until the node answers, so a restart can not
    overlap it; when it finishes after ``stop()`` it leaves the poller stopped.
    """

    DEFAULT_INTERVAL = 5.0

    def __init__(
        self,
        gateway: ApiGateway,
        wallet_name: str,
        interval: float = DEFAULT_INTERVAL,
        on_error: Callable[[NetworkError], None] | None = None,
        on_update: Callable[[BalanceSnapshot], None] | None = None,
    ):
        self.gateway = gateway
        self.wallet_name = wallet_name
        self.interval = interval
        self.on_error = on_error or log_balance_error
        self.on_update = on_update
        self._snapshot = BalanceSnapshot()
        self._balance_loaded = False
        self._state = PollerState.STOPPED
        self._fetch_in_flight = False
        self._task: asyncio.Task | None = None
        self._fetch_task: asyncio.Task | None = None

    @property
    def snapshot(self) -> BalanceSnapshot:
        return self._snapshot

    @property
    def balance_loaded(self) -> bool:
        return self._balance_loaded

    @property
    def state(self) -> PollerState:
        return self._state

    @property
    def fetch_in_flight(self) -> bool:
        return self._fetch_in_flight

    @property
    def is_running(self) -> bool:
        return self._state is not PollerState.STOPPED

    def start(self) -> None:
        if self.is_running:
            return
        self._state = PollerState.RUNNING
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(
            "Balance poller started for wallet '%s' (every %.1fs)",
            self.wallet_name,
            self.interval,
        )

    def stop(self) -> None:
        if self._state is PollerState.STOPPED and self._task is None:
            return
        self._state = PollerState.STOPPED
        if self._task is not None:
            self._task.cancel()
            self._task = None
        logger.info("Balance poller stopped for wallet '%s'", self.wallet_name)

    async def _run(self) -> None:
        while self.is_running:
            try:
                await self.tick()
            except Exception:
                logger.exception("Balance poller tick failed, continuing")
            if not self.is_running:
                break
            await asyncio.sleep(self.interval)

    def _pause(self) -> None:
        if self._state is PollerState.RUNNING:
            self._state = PollerState.PAUSED

    def _resume(self) -> None:
        if self._state is PollerState.PAUSED:
            self._state = PollerState.RUNNING

    async def tick(self) -> bool:
        """Run one refresh; returns False when a fetch was already outstanding."""
        if self._fetch_in_flight:
            logger.debug("Balance fetch still in flight, skipping tick")
            return False

        self._fetch_in_flight = True
        self._pause()
        self._fetch_task = asyncio.get_running_loop().create_task(self._fetch())
        # Cancelling the caller must not release the in-flight flag early.
        await asyncio.shield(self._fetch_task)
        return True

    async def _fetch(self) -> None:
        try:
            snapshot = await self.gateway.get_balance(self.wallet_name)
        except NetworkError as e:
            self.on_error(e)
        except Exception:
            logger.exception("Unexpected error while refreshing balance")
        else:
            self._snapshot = snapshot
            self._balance_loaded = True
            logger.debug(
                "Balance updated: total=%d spendable=%d",
                snapshot.total_balance,
                snapshot.spendable_balance,
            )
            if self.on_update:
                self.on_update(snapshot)
        finally:
            self._fetch_in_flight = False
            self._resume()
