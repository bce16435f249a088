"""Courier - resilient message dispatch.

This package selects a delivery provider for each message, retries failed
attempts with exponential backoff and falls back to an alternate provider
once retries are exhausted.
"""

from courier.core import ConfigurationError, DeliveryOrchestrator, ProviderRegistry, RetryPolicy
from courier.types import DeliveryOutcome, DeliveryStatus, SendRequest

__all__ = [
    "ConfigurationError",
    "DeliveryOrchestrator",
    "DeliveryOutcome",
    "DeliveryStatus",
    "ProviderRegistry",
    "RetryPolicy",
    "SendRequest",
]
