"""Type definitions and protocols for the courier package.

This package provides:
- Data models (immutable dataclasses)
- Protocol definitions (structural subtyping interfaces)
- Type aliases (PEP 695 syntax)
"""

from courier.types.aliases import CorrelationIDFactory, SleepFunc
from courier.types.models import (
    AttemptResult,
    DeliveryOutcome,
    DeliveryStatus,
    Message,
    SendRequest,
)
from courier.types.protocols import DeliveryProvider

__all__ = [
    # Type aliases
    "CorrelationIDFactory",
    "SleepFunc",
    # Data models
    "AttemptResult",
    "DeliveryOutcome",
    "DeliveryStatus",
    "Message",
    "SendRequest",
    # Protocols
    "DeliveryProvider",
]
