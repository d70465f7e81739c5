"""Shared utilities for the cold staking wallet."""

from coldstake.shared.logging import (
    LoggingConfig,
    format_error_for_user,
    get_user_friendly_error,
    log_with_context,
    sanitize_dict,
    sanitize_message,
    setup_logging,
)
from coldstake.shared.network import (
    NetworkClient,
    NetworkError,
    NetworkErrorType,
    RetryConfig,
    TimeoutConfig,
)

__all__ = [
    "NetworkClient",
    "NetworkError",
    "NetworkErrorType",
    "RetryConfig",
    "TimeoutConfig",
    "LoggingConfig",
    "format_error_for_user",
    "get_user_friendly_error",
    "log_with_context",
    "sanitize_dict",
    "sanitize_message",
    "setup_logging",
]
