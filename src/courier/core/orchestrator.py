"""Delivery orchestrator executing the retry and fallback policy.

This module implements the DeliveryOrchestrator class responsible for taking
one send request through primary attempts with exponential backoff, a single
fallback attempt, and optional cancellation, producing a DeliveryOutcome.
Each call to ``send`` keeps its counters in request-scoped state, so one
orchestrator can serve any number of concurrent requests.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable
from dataclasses import dataclass, field
from uuid import uuid4

from courier.core.backoff import backoff_schedule
from courier.core.config import ConfigurationError, RetryPolicy
from courier.core.registry import ProviderRegistry
from courier.types import (
    AttemptResult,
    CorrelationIDFactory,
    DeliveryOutcome,
    DeliveryProvider,
    DeliveryStatus,
    Message,
    SendRequest,
    SleepFunc,
)
from courier.utils.logging import (
    clear_correlation_id,
    get_logger,
    log_with_context,
    set_correlation_id,
)
from courier.utils.sanitization import mask_address, sanitize_exception

__all__ = ["DeliveryCancelledError", "DeliveryOrchestrator"]


class DeliveryCancelledError(Exception):
    """Raised inside the orchestrator when a request is abandoned.

    Never escapes ``send``; it is turned into a CANCELLED outcome.
    """

    reason: str

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


@dataclass(slots=True)
class _RequestState:
    """Mutable state of a single send request."""

    primary: str
    provider_used: str
    attempts: int = 0
    used_fallback: bool = False
    backoff_delays_ms: list[float] = field(default_factory=list)


class DeliveryOrchestrator:
    """Deliver messages through a primary provider with retry and fallback.

    Args:
        registry: Registry holding at least two providers
        policy: Retry policy; defaults to two primary attempts and 1s base delay
        sleep: Async sleep used for backoff waits (seconds)
        correlation_id_factory: Factory for correlation IDs of requests without one
        logger_obj: Logger override
    """

    def __init__(
        self,
        registry: ProviderRegistry[DeliveryProvider],
        *,
        policy: RetryPolicy | None = None,
        sleep: SleepFunc | None = None,
        correlation_id_factory: CorrelationIDFactory | None = None,
        logger_obj: logging.Logger | None = None,
    ) -> None:
        self._registry: ProviderRegistry[DeliveryProvider] = registry
        self._policy: RetryPolicy = policy or RetryPolicy()
        self._sleep: SleepFunc = sleep or asyncio.sleep
        self._correlation_id_factory: CorrelationIDFactory = (
            correlation_id_factory or (lambda: uuid4().hex)
        )
        self._logger: logging.Logger = logger_obj or get_logger(__name__)

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    @property
    def registry(self) -> ProviderRegistry[DeliveryProvider]:
        return self._registry

    async def send(
        self,
        request: SendRequest,
        *,
        cancel_event: asyncio.Event | None = None,
        timeout_seconds: float | None = None,
    ) -> DeliveryOutcome:
        """Deliver one request and report how it went.

        Args:
            request: Recipient, subject and body to deliver
            cancel_event: When set, pending waits and in-flight attempts are
                abandoned and a CANCELLED outcome is returned
            timeout_seconds: Overall deadline; overrides the policy's
                ``request_timeout_seconds``

        Returns:
            Outcome with status, attempts made and the provider used last

        Raises:
            ConfigurationError: If the registry cannot support fallback. No
                attempt is made in that case.
        """
        correlation_id = request.correlation_id or self._correlation_id_factory()
        set_correlation_id(correlation_id)
        try:
            try:
                primary = self._registry.select_primary()
            except ConfigurationError as exc:
                log_with_context(
                    self._logger,
                    logging.ERROR,
                    "Provider registry cannot serve send request",
                    extra={
                        "provider_count": len(self._registry),
                        "error_message": str(exc),
                    },
                )
                raise

            state = _RequestState(primary=primary.name, provider_used=primary.name)
            deadline = timeout_seconds if timeout_seconds is not None else self._policy.request_timeout_seconds

            log_with_context(
                self._logger,
                logging.INFO,
                "Starting delivery",
                extra={
                    "primary_provider": primary.name,
                    "recipient": mask_address(request.recipient),
                    "max_retries": self._policy.max_retries,
                },
            )

            request_deadline = asyncio.timeout(deadline)
            try:
                async with request_deadline:
                    outcome = await self._deliver(request, state, correlation_id, cancel_event)
            except DeliveryCancelledError as exc:
                outcome = self._build_outcome(
                    state,
                    DeliveryStatus.CANCELLED,
                    correlation_id,
                    reason=exc.reason,
                )
            except TimeoutError:
                if not request_deadline.expired():
                    raise
                log_with_context(
                    self._logger,
                    logging.WARNING,
                    "Send request deadline exceeded",
                    extra={"deadline_seconds": deadline, "attempts_made": state.attempts},
                )
                outcome = self._build_outcome(
                    state,
                    DeliveryStatus.CANCELLED,
                    correlation_id,
                    reason="Send request exceeded its deadline",
                )

            self._log_outcome(outcome)
            return outcome
        finally:
            clear_correlation_id()

    async def _deliver(
        self,
        request: SendRequest,
        state: _RequestState,
        correlation_id: str,
        cancel_event: asyncio.Event | None,
    ) -> DeliveryOutcome:
        schedule = backoff_schedule(self._policy.max_retries, self._policy.base_delay_ms)
        while True:
            # Re-resolve each attempt; the registry is the source of truth
            provider = self._registry.require(state.primary)
            result = await self._attempt(provider, request, state, cancel_event)
            if result.delivered:
                return self._build_outcome(state, DeliveryStatus.DELIVERED, correlation_id)

            if state.attempts >= self._policy.max_retries:
                break

            delay_ms = schedule[state.attempts - 1]
            state.backoff_delays_ms.append(delay_ms)
            log_with_context(
                self._logger,
                logging.INFO,
                "Retrying delivery after backoff",
                extra={
                    "provider_name": provider.name,
                    "attempt": state.attempts,
                    "max_retries": self._policy.max_retries,
                    "delay_ms": delay_ms,
                },
            )
            self._raise_if_cancelled(cancel_event)
            await self._wait_or_cancel(self._sleep(delay_ms / 1000.0), cancel_event)

        fallback = self._registry.select_fallback(state.primary)
        state.used_fallback = True
        log_with_context(
            self._logger,
            logging.WARNING,
            "Primary provider exhausted, switching to fallback provider",
            extra={
                "primary_provider": state.primary,
                "fallback_provider": fallback.name,
                "attempts_made": state.attempts,
            },
        )

        result = await self._attempt(fallback, request, state, cancel_event)
        if result.delivered:
            return self._build_outcome(state, DeliveryStatus.DELIVERED, correlation_id)
        return self._build_outcome(
            state,
            DeliveryStatus.FAILED,
            correlation_id,
            reason=result.error_message or "Delivery failed after retries and fallback",
        )

    async def _attempt(
        self,
        provider: DeliveryProvider,
        request: SendRequest,
        state: _RequestState,
        cancel_event: asyncio.Event | None,
    ) -> AttemptResult:
        self._raise_if_cancelled(cancel_event)

        message = Message(
            sender=provider.sender_address,
            recipient=request.recipient,
            subject=request.subject,
            body=request.body,
        )
        state.provider_used = provider.name
        state.attempts += 1

        log_with_context(
            self._logger,
            logging.DEBUG,
            "Attempting delivery",
            extra={
                "provider_name": provider.name,
                "attempt": state.attempts,
                "fallback": state.used_fallback,
            },
        )

        result = await self._wait_or_cancel(self._invoke(provider, message), cancel_event)

        if result.delivered:
            log_with_context(
                self._logger,
                logging.INFO,
                "Delivery attempt succeeded",
                extra={
                    "provider_name": provider.name,
                    "attempt": state.attempts,
                    "delivery_time_ms": result.delivery_time_ms,
                },
            )
        else:
            log_with_context(
                self._logger,
                logging.WARNING,
                "Delivery attempt rejected",
                extra={
                    "provider_name": provider.name,
                    "attempt": state.attempts,
                    "delivery_time_ms": result.delivery_time_ms,
                    "error_message": result.error_message or "rejected",
                },
            )
        return result

    async def _invoke(self, provider: DeliveryProvider, message: Message) -> AttemptResult:
        """Call the provider, converting timeouts and crashes into rejections."""
        start = time.perf_counter()
        timeout_seconds = self._policy.attempt_timeout_seconds
        attempt_deadline = asyncio.timeout(timeout_seconds)
        try:
            async with attempt_deadline:
                return await provider.attempt_send(message)
        except TimeoutError as exc:
            if not attempt_deadline.expired():
                return self._rejected(provider, exc, start)
            log_with_context(
                self._logger,
                logging.WARNING,
                "Delivery attempt timed out",
                extra={"provider_name": provider.name, "timeout_seconds": timeout_seconds},
            )
            return AttemptResult(
                delivered=False,
                provider_name=provider.name,
                error_message="Delivery attempt timed out",
                delivery_time_ms=(time.perf_counter() - start) * 1000.0,
            )
        except Exception as exc:
            return self._rejected(provider, exc, start)

    @staticmethod
    def _rejected(provider: DeliveryProvider, exc: Exception, start: float) -> AttemptResult:
        return AttemptResult(
            delivered=False,
            provider_name=provider.name,
            error_message=f"Provider raised an exception: {sanitize_exception(exc)}",
            delivery_time_ms=(time.perf_counter() - start) * 1000.0,
        )

    async def _wait_or_cancel[R](
        self,
        awaitable: Awaitable[R],
        cancel_event: asyncio.Event | None,
    ) -> R:
        """Await ``awaitable`` unless ``cancel_event`` fires first."""
        if cancel_event is None:
            return await awaitable

        work: asyncio.Future[R] = asyncio.ensure_future(awaitable)
        watcher = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait((work, watcher), return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (work, watcher):
                if not task.done():
                    _ = task.cancel()
            _ = await asyncio.gather(work, watcher, return_exceptions=True)

        if work in done:
            return work.result()
        raise DeliveryCancelledError("Send request cancelled")

    @staticmethod
    def _raise_if_cancelled(cancel_event: asyncio.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise DeliveryCancelledError("Send request cancelled")

    @staticmethod
    def _build_outcome(
        state: _RequestState,
        status: DeliveryStatus,
        correlation_id: str,
        *,
        reason: str | None = None,
    ) -> DeliveryOutcome:
        return DeliveryOutcome(
            status=status,
            attempts_made=state.attempts,
            provider_used=state.provider_used,
            used_fallback=state.used_fallback,
            correlation_id=correlation_id,
            backoff_delays_ms=tuple(state.backoff_delays_ms),
            reason=reason,
        )

    def _log_outcome(self, outcome: DeliveryOutcome) -> None:
        level = logging.INFO if outcome.succeeded else logging.ERROR
        if outcome.cancelled:
            level = logging.WARNING
        log_with_context(
            self._logger,
            level,
            f"Delivery {outcome.status.value}",
            extra={
                "status": outcome.status.value,
                "provider_name": outcome.provider_used,
                "attempts_made": outcome.attempts_made,
                "used_fallback": outcome.used_fallback,
                "reason": outcome.reason or "",
            },
        )
