"""Protocol definitions for component interfaces.

Providers are consumed structurally: anything exposing a name, a sender
address and an async ``attempt_send`` can be registered, which keeps test
doubles free of inheritance.
"""

from typing import Protocol, runtime_checkable

from courier.types.models import AttemptResult, Message


@runtime_checkable
class DeliveryProvider(Protocol):
    """Protocol for interchangeable delivery transports.

    A provider performs at most one delivery per call and reports the result
    without retrying on its own; retry and fallback belong to the orchestrator.
    """

    @property
    def name(self) -> str:
        """Registry identity of the provider (lowercase slug)."""
        ...

    @property
    def sender_address(self) -> str:
        """Sender identity used for messages sent through this provider."""
        ...

    async def attempt_send(self, message: Message) -> AttemptResult:
        """Attempt to deliver a message once.

        Args:
            message: Fully-formed message for this attempt

        Returns:
            Delivered or rejected result with timing diagnostics
        """
        ...
