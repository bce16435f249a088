"""Utility helpers for logging and log sanitization."""

from courier.utils.logging import (
    clear_correlation_id,
    configure_logging,
    get_correlation_id,
    get_logger,
    log_with_context,
    set_correlation_id,
)
from courier.utils.sanitization import mask_address, sanitize_exception

__all__ = [
    "clear_correlation_id",
    "configure_logging",
    "get_correlation_id",
    "get_logger",
    "log_with_context",
    "mask_address",
    "sanitize_exception",
    "set_correlation_id",
]
