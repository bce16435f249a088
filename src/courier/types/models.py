"""Data models for the courier delivery engine.

This module defines the value objects passed between the orchestrator,
the provider registry and providers. All of them are created per request
and never shared across concurrent sends.
"""

from dataclasses import dataclass
from enum import Enum


@dataclass(slots=True, frozen=True)
class SendRequest:
    """Logical send request handed to the orchestrator by the transport shell.

    The sender is not part of the request: it is derived from the provider
    chosen for each attempt.
    """

    recipient: str
    subject: str
    body: str
    correlation_id: str | None = None


@dataclass(slots=True, frozen=True)
class Message:
    """Concrete message handed to a provider for a single attempt."""

    sender: str
    recipient: str
    subject: str
    body: str


@dataclass(slots=True, frozen=True)
class AttemptResult:
    """Result of one provider attempt.

    ``delivered`` is the only outcome; the remaining fields are diagnostics
    used for logging.
    """

    delivered: bool
    provider_name: str
    error_message: str | None = None
    delivery_time_ms: float = 0.0


class DeliveryStatus(Enum):
    """Terminal status of a send request."""

    DELIVERED = "delivered"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(slots=True, frozen=True)
class DeliveryOutcome:
    """Caller-visible result of one send request.

    ``attempts_made`` counts primary and fallback attempts together.
    ``backoff_delays_ms`` and ``reason`` are diagnostic metadata only.
    """

    status: DeliveryStatus
    attempts_made: int
    provider_used: str
    used_fallback: bool
    correlation_id: str
    backoff_delays_ms: tuple[float, ...] = ()
    reason: str | None = None

    @property
    def succeeded(self) -> bool:
        """Return True when the message was delivered."""
        return self.status is DeliveryStatus.DELIVERED

    @property
    def cancelled(self) -> bool:
        """Return True when the request was abandoned before completion."""
        return self.status is DeliveryStatus.CANCELLED
