"""Central logging setup for the cold staking wallet.

The TUI owns the terminal, so records go to ``~/.coldstake/coldstake.log``
(and optionally stdout). Wallet passwords, private keys and raw transaction
hex are redacted from every rendered record.
"""

from __future__ import annotations

import json
import logging
import os
import re
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

_TRUE_VALUES = ("1", "true", "yes")


@dataclass
class LoggingConfig:
    level: int = logging.INFO
    log_to_stdout: bool = False
    json_format: bool = False
    log_dir: Path = field(default_factory=lambda: Path.home() / ".coldstake")
    log_filename: str = "coldstake.log"

    @classmethod
    def from_environment(cls) -> "LoggingConfig":
        level = logging.getLevelName(os.getenv("COLDSTAKE_LOG_LEVEL", "INFO").upper())
        return cls(
            level=level if isinstance(level, int) else logging.INFO,
            log_to_stdout=os.getenv("COLDSTAKE_LOG_STDOUT", "").lower() in _TRUE_VALUES,
            json_format=os.getenv("COLDSTAKE_LOG_FORMAT", "").lower() == "json",
        )


REDACTIONS: list[tuple[re.Pattern[str], str]] = [
    # walletPassword / password in JSON bodies and key=value pairs
    (
        re.compile(
            r"((?:wallet[_-]?)?password['\"]?\s*[:=]\s*['\"]?)[^\s'\",}]+",
            re.IGNORECASE,
        ),
        r"\1[REDACTED]",
    ),
    (
        re.compile(r"(private[_-]?key['\"]?\s*[:=]\s*['\"]?)[A-Fa-f0-9]{64}", re.IGNORECASE),
        r"\1[REDACTED]",
    ),
    # signed transaction hex; transaction ids (64 chars) stay readable
    (re.compile(r"\b[A-Fa-f0-9]{128,}\b"), "[HEX_REDACTED]"),
]

SENSITIVE_KEYS = ("password", "private_key", "privatekey", "secret", "mnemonic")


def sanitize_message(message: str) -> str:
    for pattern, replacement in REDACTIONS:
        message = pattern.sub(replacement, message)
    return message


def _sanitize_value(value: Any) -> Any:
    if isinstance(value, str):
        return sanitize_message(value)
    if isinstance(value, dict):
        return sanitize_dict(value)
    if isinstance(value, list):
        return [_sanitize_value(item) for item in value]
    return value


def sanitize_dict(data: dict[str, Any]) -> dict[str, Any]:
    return {
        key: "[REDACTED]"
        if any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS)
        else _sanitize_value(value)
        for key, value in data.items()
    }


# (pattern, message, suggestion); first match wins
ERROR_MAPPINGS: list[tuple[str, str, str]] = [
    (
        "timeout|timed out",
        "Connection timed out. The node may be slow or unavailable.",
        "Try again later or check that your node is running.",
    ),
    (
        "connection refused|cannot connect|connection error",
        "Unable to connect to the node.",
        "Check that the node is running and its API is reachable.",
    ),
    (
        "insufficient funds|not enough funds|insufficient balance",
        "Insufficient balance for this transaction.",
        "Lower the amount so that it covers the fee.",
    ),
    (
        "invalid.*password|password.*invalid|wrong password",
        "The wallet password is not correct.",
        "Re-enter the password of the active wallet.",
    ),
    (
        "invalid.*address|address.*invalid",
        "The address provided is not valid.",
        "Please check the delegated staking address.",
    ),
    (
        "wallet.*not found|no wallet",
        "The active wallet could not be found on the node.",
        "Load the wallet on the node and try again.",
    ),
    (
        "unauthorized|forbidden|permission|401|403",
        "Access denied by the node.",
        "Check the node API permissions.",
    ),
    (
        "rate limit|too many requests|429",
        "Too many requests. Please slow down.",
        "Wait a moment and try again.",
    ),
    (
        "fee.*too low|insufficient fee",
        "Transaction fee is too low.",
        "Choose a higher fee tier and try again.",
    ),
]


def get_user_friendly_error(error: Exception | str) -> tuple[str, str | None]:
    text = str(error).lower()
    for pattern, message, suggestion in ERROR_MAPPINGS:
        if re.search(pattern, text):
            return message, suggestion
    return "An unexpected error occurred.", None


def format_error_for_user(error: Exception | str) -> str:
    message, suggestion = get_user_friendly_error(error)
    return f"{message} {suggestion}" if suggestion else message


def _record_context(record: logging.LogRecord) -> dict[str, Any] | None:
    context = getattr(record, "context", None)
    if isinstance(context, dict) and context:
        return sanitize_dict(context)
    return None


class StructuredFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": sanitize_message(record.getMessage()),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        context = _record_context(record)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = sanitize_message(self.formatException(record.exc_info))
        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    def __init__(self):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        context = _record_context(record)
        if context:
            pairs = " ".join(f"{key}={value}" for key, value in context.items())
            text = f"{text} [{pairs}]"
        return sanitize_message(text)


_logging_initialized = False


def setup_logging(config: LoggingConfig | None = None) -> None:
    global _logging_initialized

    if _logging_initialized:
        return

    config = config or LoggingConfig.from_environment()
    config.log_dir.mkdir(parents=True, exist_ok=True)

    handlers: list[logging.Handler] = [
        logging.FileHandler(
            config.log_dir / config.log_filename, mode="a", encoding="utf-8"
        )
    ]
    if config.log_to_stdout:
        handlers.append(logging.StreamHandler(sys.stdout))

    root_logger = logging.getLogger()
    root_logger.setLevel(config.level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(
            StructuredFormatter() if config.json_format else HumanReadableFormatter()
        )
        root_logger.addHandler(handler)

    _logging_initialized = True


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    **context: Any,
) -> None:
    logger.log(level, message, extra={"context": context})


__all__ = [
    "LoggingConfig",
    "StructuredFormatter",
    "HumanReadableFormatter",
    "sanitize_message",
    "sanitize_dict",
    "get_user_friendly_error",
    "format_error_for_user",
    "setup_logging",
    "log_with_context",
]
