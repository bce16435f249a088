"""Simulated delivery provider.

Stands in for a real mail transport: each attempt succeeds with a configured
probability after an optional simulated latency. The random source is
injectable so runs can be reproduced with a seed.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field

from courier.core.config import ProviderSettings
from courier.types import AttemptResult, Message

__all__ = ["SimulatedProvider", "create_provider"]


@dataclass(slots=True)
class SimulatedProvider:
    """Provider whose attempts succeed at random.

    Attributes:
        name: Registry identifier
        sender_address: Address used as the message sender
        success_probability: Chance in [0, 1] that an attempt is delivered
        latency_ms: Simulated time spent per attempt
        rng: Random source deciding each attempt
    """

    name: str
    sender_address: str
    success_probability: float = 0.5
    latency_ms: float = 0.0
    rng: random.Random = field(default_factory=random.Random, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if not 0.0 <= self.success_probability <= 1.0:
            msg = f"success_probability must be between 0 and 1, got {self.success_probability}"
            raise ValueError(msg)
        if self.latency_ms < 0:
            msg = f"latency_ms must be >= 0, got {self.latency_ms}"
            raise ValueError(msg)
        self._logger = logging.getLogger(__name__)

    async def attempt_send(self, message: Message) -> AttemptResult:
        """Simulate a single delivery attempt."""
        start_time = time.perf_counter()
        if self.latency_ms:
            await asyncio.sleep(self.latency_ms / 1000.0)

        delivered = self.rng.random() < self.success_probability
        delivery_time_ms = (time.perf_counter() - start_time) * 1000.0

        if delivered:
            self._logger.debug(
                "%s accepted message from %s (delivery_time=%.2fms)",
                self.name,
                message.sender,
                delivery_time_ms,
            )
            return AttemptResult(
                delivered=True,
                provider_name=self.name,
                delivery_time_ms=delivery_time_ms,
            )

        self._logger.debug("%s rejected message from %s", self.name, message.sender)
        return AttemptResult(
            delivered=False,
            provider_name=self.name,
            error_message=f"{self.name} rejected the message",
            delivery_time_ms=delivery_time_ms,
        )


def create_provider(settings: ProviderSettings, *, rng: random.Random | None = None) -> SimulatedProvider:
    """Build a simulated provider from its configuration."""
    return SimulatedProvider(
        name=settings.name,
        sender_address=settings.sender,
        success_probability=settings.success_probability,
        latency_ms=settings.latency_ms,
        rng=rng or random.Random(),
    )
