"""Tests for log sanitization and user facing error messages."""

import json
import logging

from coldstake.shared.logging import (
    HumanReadableFormatter,
    LoggingConfig,
    StructuredFormatter,
    format_error_for_user,
    get_user_friendly_error,
    sanitize_dict,
    sanitize_message,
)
from coldstake.shared.network import NetworkError, NetworkErrorType


def make_record(msg, args=(), context=None):
    record = logging.LogRecord(
        name="coldstake.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=args,
        exc_info=None,
    )
    if context is not None:
        record.context = context
    return record


class TestSanitizeMessage:
    def test_wallet_password_is_redacted(self):
        text = sanitize_message('{"walletName": "w", "walletPassword": "hunter2"}')
        assert "hunter2" not in text
        assert "[REDACTED]" in text

    def test_password_assignment_is_redacted(self):
        assert sanitize_message("password=hunter2") == "password=[REDACTED]"

    def test_transaction_hex_is_redacted(self):
        payload = "0100" * 40
        assert sanitize_message(f"hex {payload}") == "hex [HEX_REDACTED]"

    def test_transaction_id_is_kept(self):
        transaction_id = "ab" * 32
        assert sanitize_message(transaction_id) == transaction_id

    def test_address_is_kept(self):
        assert sanitize_message("XNa3bJvVW6ZhbLWtm4PYPdvJHNhVeo5QXz").endswith("QXz")


class TestSanitizeDict:
    def test_nested_sensitive_keys(self):
        result = sanitize_dict(
            {
                "walletName": "w",
                "walletPassword": "hunter2",
                "recipients": [{"destinationAddress": "X1", "amount": "1"}],
                "nested": {"private_key": "00"},
            }
        )
        assert result["walletName"] == "w"
        assert result["walletPassword"] == "[REDACTED]"
        assert result["recipients"][0]["amount"] == "1"
        assert result["nested"]["private_key"] == "[REDACTED]"


class TestUserFriendlyErrors:
    def test_timeout(self):
        message, suggestion = get_user_friendly_error("Read timed out")
        assert message.startswith("Connection timed out")
        assert suggestion

    def test_wrong_password(self):
        message, _ = get_user_friendly_error("Invalid password.")
        assert message == "The wallet password is not correct."

    def test_network_error_instance(self):
        error = NetworkError(
            error_type=NetworkErrorType.CONNECTION_ERROR,
            message="Get wallet balance: Connection refused by http://localhost:42220",
        )
        assert format_error_for_user(error).startswith("Unable to connect to the node.")

    def test_unknown_error(self):
        assert get_user_friendly_error("something odd") == (
            "An unexpected error occurred.",
            None,
        )


class TestFormatters:
    def test_structured_formatter_sanitizes_context(self):
        record = make_record(
            "Cold staking setup: %s",
            ("validating_address",),
            context={"wallet": "w", "password": "hunter2"},
        )
        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "Cold staking setup: validating_address"
        assert data["context"] == {"wallet": "w", "password": "[REDACTED]"}

    def test_human_formatter_appends_context(self):
        record = make_record("Balance updated", context={"wallet": "w"})
        text = HumanReadableFormatter().format(record)
        assert text.endswith("Balance updated [wallet=w]")

    def test_human_formatter_sanitizes_arguments(self):
        record = make_record("Request: %s", ("walletPassword=hunter2",))
        assert "hunter2" not in HumanReadableFormatter().format(record)


class TestLoggingConfig:
    def test_defaults_from_empty_environment(self, monkeypatch):
        for name in ("COLDSTAKE_LOG_LEVEL", "COLDSTAKE_LOG_STDOUT", "COLDSTAKE_LOG_FORMAT"):
            monkeypatch.delenv(name, raising=False)

        config = LoggingConfig.from_environment()

        assert config.level == logging.INFO
        assert config.log_to_stdout is False
        assert config.json_format is False

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("COLDSTAKE_LOG_LEVEL", "debug")
        monkeypatch.setenv("COLDSTAKE_LOG_STDOUT", "yes")
        monkeypatch.setenv("COLDSTAKE_LOG_FORMAT", "json")

        config = LoggingConfig.from_environment()

        assert config.level == logging.DEBUG
        assert config.log_to_stdout is True
        assert config.json_format is True

    def test_unknown_level_falls_back_to_info(self, monkeypatch):
        monkeypatch.setenv("COLDSTAKE_LOG_LEVEL", "chatty")
        assert LoggingConfig.from_environment().level == logging.INFO
