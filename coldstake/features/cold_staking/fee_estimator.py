"""Debounced fee estimation for the cold staking setup form."""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import TYPE_CHECKING, Callable

from coldstake.features.cold_staking.models import (
    MAIN_ACCOUNT,
    BalanceSnapshot,
    FeeQuote,
    FormState,
)
from coldstake.features.cold_staking.validators import ValidationGate
from coldstake.shared.network import NetworkError

if TYPE_CHECKING:
    from coldstake.gateway import ApiGateway

logger = logging.getLogger(__name__)


class FeeEstimator:
    """Requests a fee quote once the form has been quiet for ``delay`` seconds.

    Every form change restarts the quiet period. When it elapses the address
    and amount are validated again and, if both are valid, exactly one
    estimation request is issued. Requests in flight are never cancelled;
    each one carries a sequence number and a completion is applied only when
    it is newer than the last applied one, so a slow, older response can not
    overwrite a newer quote.
    """

    DEFAULT_DELAY = 0.3

    def __init__(
        self,
        gateway: ApiGateway,
        wallet_name: str,
        balance: Callable[[], BalanceSnapshot],
        gate: ValidationGate | None = None,
        delay: float = DEFAULT_DELAY,
        account: str = MAIN_ACCOUNT,
        on_quote: Callable[[FeeQuote], None] | None = None,
        on_error: Callable[[str], None] | None = None,
    ):
        self.gateway = gateway
        self.wallet_name = wallet_name
        self.balance = balance
        self.gate = gate or ValidationGate()
        self.delay = delay
        self.account = account
        self.on_quote = on_quote
        self.on_error = on_error
        self._quote: FeeQuote | None = None
        self._latest: FormState | None = None
        self._pending: asyncio.Task | None = None
        self._in_flight: set[asyncio.Task] = set()
        self._sequence = itertools.count(1)
        self._applied_sequence = 0

    @property
    def quote(self) -> FeeQuote | None:
        return self._quote

    @property
    def estimated_fee(self) -> int:
        return self._quote.amount if self._quote else 0

    @property
    def is_pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def notify(self, state: FormState) -> None:
        """Form change listener; restarts the quiet period."""
        self._latest = state
        self.cancel()
        self._pending = asyncio.get_running_loop().create_task(self._wait_quiet())

    def cancel(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def _wait_quiet(self) -> None:
        await asyncio.sleep(self.delay)
        # Past this point a newer change must not cancel the request.
        task = asyncio.current_task()
        if self._pending is task:
            self._pending = None
        if task is not None:
            self._in_flight.add(task)
        try:
            if self._latest is not None:
                await self.estimate(self._latest)
        finally:
            self._in_flight.discard(task)

    async def estimate(self, state: FormState) -> FeeQuote | None:
        """Validate the relevant fields and request a quote if they pass."""
        if not self.gate.is_estimable(state, self.balance(), self._quote):
            logger.debug("Skipping fee estimate: address or amount is invalid")
            return None

        sequence = next(self._sequence)
        try:
            fee = await self.gateway.estimate_fee(
                self.wallet_name,
                self.account,
                state.delegation_address.strip(),
                state.amount,
                state.fee_tier,
                True,
            )
        except NetworkError as e:
            if self._is_stale(sequence):
                logger.debug("Discarding stale fee estimate error #%d", sequence)
                return None
            self._applied_sequence = sequence
            logger.warning("Fee estimation failed: %s", e.message)
            if self.on_error:
                self.on_error(e.message)
            return None

        if self._is_stale(sequence):
            logger.debug("Discarding stale fee estimate #%d (%d)", sequence, fee)
            return None
        return self._apply(FeeQuote(amount=int(fee), sequence=sequence))

    def adopt(self, fee: int) -> FeeQuote:
        """Install a fee obtained elsewhere, superseding older requests."""
        return self._apply(FeeQuote(amount=int(fee), sequence=next(self._sequence)))

    def _is_stale(self, sequence: int) -> bool:
        return sequence < self._applied_sequence

    def _apply(self, quote: FeeQuote) -> FeeQuote:
        self._applied_sequence = quote.sequence
        self._quote = quote
        logger.info("Estimated fee updated: %d (#%d)", quote.amount, quote.sequence)
        if self.on_quote:
            self.on_quote(quote)
        return quote

    async def drain(self) -> None:
        """Wait for the pending quiet period and every request in flight."""
        tasks = set(self._in_flight)
        if self._pending is not None:
            tasks.add(self._pending)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
