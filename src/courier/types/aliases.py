"""Type aliases using modern PEP 695 syntax."""

from collections.abc import Awaitable, Callable

# Async sleep used between retries; injectable so tests can record delays
type SleepFunc = Callable[[float], Awaitable[None]]

# Factory producing correlation IDs for requests that arrive without one
type CorrelationIDFactory = Callable[[], str]
