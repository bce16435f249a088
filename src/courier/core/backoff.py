"""Exponential backoff delay computation."""

from __future__ import annotations

__all__ = ["backoff_schedule", "compute_backoff_delay"]


def compute_backoff_delay(attempt: int, base_delay_ms: float) -> float:
    """Return the delay in milliseconds to wait after a failed attempt.

    Args:
        attempt: Number of attempts made so far (1-indexed)
        base_delay_ms: Base delay in milliseconds

    Returns:
        ``base_delay_ms * 2 ** attempt``

    Raises:
        ValueError: If attempt is lower than 1 or the base delay is negative
    """
    if attempt < 1:
        msg = f"attempt must be >= 1, got {attempt}"
        raise ValueError(msg)
    if base_delay_ms < 0:
        msg = f"base_delay_ms must be >= 0, got {base_delay_ms}"
        raise ValueError(msg)
    return base_delay_ms * 2**attempt


def backoff_schedule(max_retries: int, base_delay_ms: float) -> tuple[float, ...]:
    """Return every delay a single request may wait on its primary provider.

    The primary provider gets ``max_retries`` attempts, so there are
    ``max_retries - 1`` waits between them.
    """
    return tuple(compute_backoff_delay(attempt, base_delay_ms) for attempt in range(1, max_retries))
