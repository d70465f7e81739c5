"""Tests for debounced fee estimation."""

import asyncio

import pytest

from coldstake.features.cold_staking.fee_estimator import FeeEstimator
from coldstake.features.cold_staking.models import (
    MAIN_ACCOUNT,
    FeeTier,
    FormState,
)
from tests.fakes import HOT_ADDRESS, FakeGateway, remote_error

VALID = FormState(delegation_address=HOT_ADDRESS, amount="1.5")


class HeldGateway(FakeGateway):
    """Gateway whose fee estimates complete only when released by amount."""

    def __init__(self):
        super().__init__()
        self.gates: dict[str, asyncio.Event] = {}
        self.results: dict[str, int] = {}

    def hold(self, amount, fee):
        self.gates[amount] = asyncio.Event()
        self.results[amount] = fee

    def release(self, amount):
        self.gates[amount].set()

    async def estimate_fee(self, wallet_name, account, address, amount, fee_tier, isolate):
        self.calls.append(("estimate_fee", (address, amount)))
        if amount in self.gates:
            await self.gates[amount].wait()
        if amount in self.failures:
            raise remote_error(self.failures[amount])
        return self.results.get(amount, self.fee)


def make_estimator(gateway, **kwargs):
    errors = []
    estimator = FeeEstimator(
        gateway,
        "cold-wallet",
        balance=lambda: gateway.balance,
        delay=kwargs.pop("delay", 0.02),
        on_error=errors.append,
        **kwargs,
    )
    return estimator, errors


class TestDebounce:
    @pytest.mark.asyncio
    async def test_burst_of_changes_issues_one_request(self, gateway):
        estimator, _ = make_estimator(gateway)

        for amount in ["1", "1.", "1.5"]:
            estimator.notify(FormState(delegation_address=HOT_ADDRESS, amount=amount))
            await asyncio.sleep(0.005)
        await estimator.drain()

        assert gateway.names() == ["estimate_fee"]
        _, args = gateway.calls[0]
        assert args == ("cold-wallet", MAIN_ACCOUNT, HOT_ADDRESS, "1.5", FeeTier.MEDIUM, True)
        assert estimator.estimated_fee == 10_000

    @pytest.mark.asyncio
    async def test_no_request_before_quiet_period(self, gateway):
        estimator, _ = make_estimator(gateway, delay=0.05)

        estimator.notify(VALID)
        await asyncio.sleep(0.01)

        assert estimator.is_pending is True
        assert gateway.calls == []
        await estimator.drain()
        assert gateway.names() == ["estimate_fee"]

    @pytest.mark.asyncio
    async def test_address_is_trimmed(self, gateway):
        estimator, _ = make_estimator(gateway)

        estimator.notify(FormState(delegation_address=f"  {HOT_ADDRESS} ", amount="1"))
        await estimator.drain()

        assert gateway.calls[0][1][2] == HOT_ADDRESS

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "state",
        [
            FormState(delegation_address="", amount="1.5"),
            FormState(delegation_address="X" * 25, amount="1.5"),
            FormState(delegation_address=HOT_ADDRESS, amount=""),
            FormState(delegation_address=HOT_ADDRESS, amount="abc"),
            FormState(delegation_address=HOT_ADDRESS, amount="5"),
        ],
    )
    async def test_invalid_fields_issue_no_request(self, gateway, state):
        estimator, _ = make_estimator(gateway)

        estimator.notify(state)
        await estimator.drain()

        assert gateway.calls == []
        assert estimator.quote is None

    @pytest.mark.asyncio
    async def test_change_during_request_does_not_cancel_it(self, gateway):
        gateway.delays["estimate_fee"] = 0.05
        gateway.fees = [11_000, 12_000]
        estimator, _ = make_estimator(gateway)

        estimator.notify(VALID)
        await asyncio.sleep(0.03)
        estimator.notify(FormState(delegation_address=HOT_ADDRESS, amount="1.6"))
        await estimator.drain()

        assert gateway.names() == ["estimate_fee", "estimate_fee"]
        assert estimator.estimated_fee == 12_000

    @pytest.mark.asyncio
    async def test_cancel_drops_pending_request(self, gateway):
        estimator, _ = make_estimator(gateway)

        estimator.notify(VALID)
        estimator.cancel()
        await asyncio.sleep(0.04)

        assert gateway.calls == []
        assert estimator.is_pending is False


class TestErrors:
    @pytest.mark.asyncio
    async def test_error_keeps_previous_quote(self, gateway):
        estimator, errors = make_estimator(gateway)
        await estimator.estimate(VALID)

        gateway.failures["estimate_fee"] = "Insufficient funds."
        await estimator.estimate(VALID)

        assert estimator.estimated_fee == 10_000
        assert errors == ["Insufficient funds."]

    @pytest.mark.asyncio
    async def test_error_without_previous_quote(self, gateway):
        gateway.failures["estimate_fee"] = "Wallet not found."
        estimator, errors = make_estimator(gateway)

        assert await estimator.estimate(VALID) is None
        assert estimator.quote is None
        assert estimator.estimated_fee == 0
        assert errors == ["Wallet not found."]


class TestOrdering:
    @pytest.mark.asyncio
    async def test_older_response_arriving_late_is_discarded(self):
        gateway = HeldGateway()
        gateway.hold("1.5", 111)
        estimator, _ = make_estimator(gateway)

        older = asyncio.create_task(estimator.estimate(VALID))
        await asyncio.sleep(0)
        gateway.results["1.6"] = 222
        newer = await estimator.estimate(
            FormState(delegation_address=HOT_ADDRESS, amount="1.6")
        )
        gateway.release("1.5")

        assert await older is None
        assert newer.amount == 222
        assert estimator.estimated_fee == 222

    @pytest.mark.asyncio
    async def test_responses_in_order_are_all_applied(self):
        gateway = HeldGateway()
        gateway.hold("1.5", 111)
        gateway.hold("1.6", 222)
        quotes = []
        estimator, _ = make_estimator(gateway, on_quote=quotes.append)

        first = asyncio.create_task(estimator.estimate(VALID))
        second = asyncio.create_task(
            estimator.estimate(FormState(delegation_address=HOT_ADDRESS, amount="1.6"))
        )
        await asyncio.sleep(0)
        gateway.release("1.5")
        await first
        gateway.release("1.6")
        await second

        assert [quote.amount for quote in quotes] == [111, 222]
        assert quotes[0].sequence < quotes[1].sequence

    @pytest.mark.asyncio
    async def test_stale_error_is_discarded(self):
        gateway = HeldGateway()
        gateway.hold("1.5", 0)
        gateway.failures["1.5"] = "Timeout"
        estimator, errors = make_estimator(gateway)

        older = asyncio.create_task(estimator.estimate(VALID))
        await asyncio.sleep(0)
        await estimator.estimate(FormState(delegation_address=HOT_ADDRESS, amount="1.6"))
        gateway.release("1.5")
        await older

        assert errors == []
        assert estimator.estimated_fee == 10_000

    @pytest.mark.asyncio
    async def test_adopted_fee_supersedes_request_in_flight(self):
        gateway = HeldGateway()
        gateway.hold("1.5", 111)
        estimator, _ = make_estimator(gateway)

        pending = asyncio.create_task(estimator.estimate(VALID))
        await asyncio.sleep(0)
        adopted = estimator.adopt(5_000)
        gateway.release("1.5")
        await pending

        assert estimator.quote == adopted
        assert estimator.estimated_fee == 5_000
