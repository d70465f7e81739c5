"""Tests for the setup form controller."""

import asyncio

import pytest

from coldstake.features.cold_staking.models import (
    FeeTier,
    FormField,
    PipelineStage,
)
from coldstake.features.cold_staking.service import ColdStakingSetupService
from tests.fakes import HOT_ADDRESS


class Recorder:
    def __init__(self):
        self.sent = []
        self.stages = []


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def service(gateway, recorder):
    return ColdStakingSetupService(
        gateway,
        "cold-wallet",
        poll_interval=1.0,
        debounce_delay=0.01,
        on_sent=recorder.sent.append,
        on_stage_change=recorder.stages.append,
    )


async def fill_valid_form(service):
    await service.poller.tick()
    service.update(delegation_address=HOT_ADDRESS, amount="1.5", password="secret")
    await service.fee_estimator.drain()


class TestFormEditing:
    @pytest.mark.asyncio
    async def test_errors_only_for_edited_fields(self, service):
        service.update(amount="abc")

        assert list(service.field_errors) == [FormField.AMOUNT]
        assert "valid transaction amount" in service.field_errors[FormField.AMOUNT]
        assert service.is_valid is False

    @pytest.mark.asyncio
    async def test_errors_clear_when_field_becomes_valid(self, service):
        await service.poller.tick()
        service.update(amount="abc")
        service.update(amount="1.5")

        assert service.field_errors == {}

    @pytest.mark.asyncio
    async def test_fee_tier_accepts_plain_value(self, service):
        state = service.update(fee_tier="high")
        assert state.fee_tier is FeeTier.HIGH

    @pytest.mark.asyncio
    async def test_edit_clears_api_error(self, service):
        service.api_error = "Invalid password."
        service.update(password="another")
        assert service.api_error == ""

    @pytest.mark.asyncio
    async def test_subscribers_see_every_change(self, service):
        seen = []
        service.subscribe(seen.append)

        service.update(delegation_address=HOT_ADDRESS)
        service.update(amount="1")

        assert [state.amount for state in seen] == ["", "1"]

    @pytest.mark.asyncio
    async def test_form_edit_schedules_fee_estimate(self, service, gateway):
        await fill_valid_form(service)

        assert gateway.names().count("estimate_fee") == 1
        assert service.estimated_fee == 10_000
        assert service.is_valid is True

    @pytest.mark.asyncio
    async def test_fee_estimate_error_sets_api_error(self, service, gateway):
        gateway.failures["estimate_fee"] = "No spendable transactions found."
        await fill_valid_form(service)

        assert service.api_error == "No spendable transactions found."


class TestMaximumBalance:
    @pytest.mark.asyncio
    async def test_fills_amount_and_fee(self, service, gateway):
        await service.poller.tick()

        assert await service.use_maximum_balance() is True

        assert service.state.amount == "1.9999"
        assert service.estimated_fee == 10_000
        assert dict(gateway.calls)["get_maximum_spendable"] == (
            "cold-wallet",
            FeeTier.MEDIUM,
        )
        assert FormField.AMOUNT not in service.field_errors
        await service.fee_estimator.drain()

    @pytest.mark.asyncio
    async def test_failure_sets_api_error(self, service, gateway):
        gateway.failures["get_maximum_spendable"] = "Wallet not found."

        assert await service.use_maximum_balance() is False

        assert service.api_error == "Wallet not found."
        assert service.state.amount == ""


class TestSend:
    @pytest.mark.asyncio
    async def test_invalid_form_is_not_sent(self, service, gateway):
        assert service.send() is None

        assert service.is_sending is False
        assert set(service.field_errors) == set(FormField)
        assert gateway.calls == []

    @pytest.mark.asyncio
    async def test_successful_send(self, service, gateway, recorder):
        await fill_valid_form(service)

        result = await service.send()

        assert result.succeeded is True
        assert recorder.sent == ["f" * 64]
        assert service.is_sending is True
        assert service.stage is PipelineStage.COMPLETED
        assert recorder.stages[-1] is PipelineStage.COMPLETED
        assert dict(gateway.calls)["build_cold_staking_setup"][-1] == 10_000

    @pytest.mark.asyncio
    async def test_send_is_guarded_while_in_flight(self, service, gateway):
        await fill_valid_form(service)
        gateway.delays["validate_address"] = 0.03

        task = service.send()
        assert service.is_sending is True
        assert service.send() is None
        await task

        assert gateway.names().count("validate_address") == 1

    @pytest.mark.asyncio
    async def test_failure_resets_sending_and_reports_message(
        self, service, gateway, recorder
    ):
        await fill_valid_form(service)
        gateway.failures["resolve_staking_address"] = "insufficient permissions"
        changes = []

        task = service.send()
        while not task.done():
            changes.append(service.is_sending)
            await asyncio.sleep(0)
        result = task.result()

        assert result.failed_stage is PipelineStage.RESOLVING_COLD_ADDRESS
        assert set(changes) == {True}
        assert service.is_sending is False
        assert service.api_error == "insufficient permissions"
        assert recorder.sent == []
        assert "build_cold_staking_setup" not in gateway.names()

    @pytest.mark.asyncio
    async def test_can_retry_after_failure(self, service, gateway, recorder):
        await fill_valid_form(service)
        gateway.failures["broadcast_transaction"] = "Transaction rejected."
        await service.send()

        del gateway.failures["broadcast_transaction"]
        result = await service.send()

        assert result.succeeded is True
        assert gateway.names().count("validate_address") == 2
        assert recorder.sent == ["f" * 64]

    @pytest.mark.asyncio
    async def test_hot_address_is_trimmed(self, service, gateway):
        await service.poller.tick()
        service.update(
            delegation_address=f" {HOT_ADDRESS} ", amount="1", password="secret"
        )
        await service.fee_estimator.drain()

        await service.send()

        assert dict(gateway.calls)["validate_address"] == (HOT_ADDRESS,)

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_reported(self, service, gateway, recorder):
        await fill_valid_form(service)
        gateway.crashes["broadcast_transaction"] = RuntimeError("socket closed")

        task = service.send()
        result = await task

        assert task.exception() is None
        assert result.failed_stage is PipelineStage.BROADCASTING
        assert service.stage is PipelineStage.FAILED
        assert service.is_sending is False
        assert service.api_error == "An unexpected error occurred."
        assert recorder.sent == []


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_and_stop(self, service, gateway):
        service.start()
        await asyncio.sleep(0.01)
        service.stop()

        assert service.balance_loaded is True
        assert service.balance == gateway.balance
        assert service.poller.is_running is False
