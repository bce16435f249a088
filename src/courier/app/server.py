"""HTTP transport shell for the delivery orchestrator.

Exposes ``POST /send-email`` and ``GET /health`` with aiohttp. The handler
validates the JSON payload, hands a SendRequest to the orchestrator and maps
the outcome onto a status code:

- delivered → 200
- failed after retries and fallback → 500
- cancelled (deadline exceeded) → 504
- configuration error or unexpected fault → 500
- malformed payload → 400
"""

from __future__ import annotations

import logging
from typing import Final

from aiohttp import web
from pydantic import BaseModel, Field, ValidationError, field_validator

from courier.core.config import ConfigurationError, MainConfig
from courier.core.orchestrator import DeliveryOrchestrator
from courier.providers import build_registry
from courier.types import DeliveryOutcome, DeliveryStatus, SendRequest
from courier.utils.logging import get_logger, log_with_context
from courier.utils.sanitization import sanitize_exception

__all__ = ["ORCHESTRATOR_KEY", "SendEmailPayload", "create_app", "run_server"]

ORCHESTRATOR_KEY: Final = web.AppKey("orchestrator", DeliveryOrchestrator)

CORRELATION_HEADER: Final[str] = "X-Correlation-ID"

_STATUS_CODES: Final[dict[DeliveryStatus, int]] = {
    DeliveryStatus.DELIVERED: 200,
    DeliveryStatus.FAILED: 500,
    DeliveryStatus.CANCELLED: 504,
}

_STATUS_MESSAGES: Final[dict[DeliveryStatus, str]] = {
    DeliveryStatus.DELIVERED: "Email sent successfully!",
    DeliveryStatus.FAILED: "Failed to send email after retries.",
    DeliveryStatus.CANCELLED: "Sending email was cancelled before completion.",
}

logger = get_logger(__name__)


class SendEmailPayload(BaseModel):
    """JSON body accepted by ``POST /send-email``."""

    recipient: str = Field(
        ...,
        description="Recipient address",
        min_length=3,
        max_length=320,
    )

    subject: str = Field(
        ...,
        description="Subject line of the message",
        min_length=1,
        max_length=200,
    )

    body: str = Field(
        ...,
        description="Plain-text body of the message",
        min_length=1,
        max_length=10000,
    )

    @field_validator("recipient", mode="after")
    @classmethod
    def validate_recipient(cls, v: str) -> str:
        local, _, domain = v.strip().partition("@")
        if not local or not domain:
            msg = "recipient must be an address like name@example.com"
            raise ValueError(msg)
        return v.strip()

    def to_request(self, correlation_id: str | None = None) -> SendRequest:
        return SendRequest(
            recipient=self.recipient,
            subject=self.subject,
            body=self.body,
            correlation_id=correlation_id,
        )


def render_outcome(outcome: DeliveryOutcome) -> web.Response:
    """Translate an outcome into a JSON response.

    Attempt counts and timing only appear under ``diagnostics``, never in the
    human-readable message.
    """
    body: dict[str, object] = {
        "message": _STATUS_MESSAGES[outcome.status],
        "status": outcome.status.value,
        "correlation_id": outcome.correlation_id,
        "diagnostics": {
            "attempts_made": outcome.attempts_made,
            "provider_used": outcome.provider_used,
            "used_fallback": outcome.used_fallback,
            "backoff_delays_ms": list(outcome.backoff_delays_ms),
        },
    }
    if outcome.reason:
        body["reason"] = outcome.reason
    return web.json_response(body, status=_STATUS_CODES[outcome.status])


async def handle_send_email(request: web.Request) -> web.Response:
    """Handle ``POST /send-email``."""
    orchestrator = request.app[ORCHESTRATOR_KEY]

    try:
        raw: object = await request.json()  # pyright: ignore[reportAny]  # JSON boundary
    except ValueError:
        return web.json_response({"message": "Request body must be valid JSON."}, status=400)

    try:
        payload = SendEmailPayload.model_validate(raw)
    except ValidationError as exc:
        errors = [
            {"field": ".".join(str(loc) for loc in err["loc"]), "error": err["msg"]}
            for err in exc.errors()
        ]
        return web.json_response({"message": "Invalid send request.", "errors": errors}, status=400)

    try:
        outcome = await orchestrator.send(payload.to_request(request.headers.get(CORRELATION_HEADER)))
    except ConfigurationError as exc:
        return web.json_response({"message": f"Error sending email: {exc}"}, status=500)
    except Exception as exc:
        log_with_context(
            logger,
            logging.ERROR,
            "Unexpected error while sending email",
            extra={"error_message": sanitize_exception(exc)},
        )
        return web.json_response({"message": f"Error sending email: {exc}"}, status=500)

    return render_outcome(outcome)


async def handle_health(request: web.Request) -> web.Response:
    """Handle ``GET /health``."""
    orchestrator = request.app[ORCHESTRATOR_KEY]
    return web.json_response(
        {
            "status": "ok",
            "providers": list(orchestrator.registry.get_identifiers()),
        }
    )


def create_app(orchestrator: DeliveryOrchestrator) -> web.Application:
    """Build the aiohttp application serving the orchestrator."""
    app = web.Application()
    app[ORCHESTRATOR_KEY] = orchestrator
    _ = app.router.add_post("/send-email", handle_send_email)
    _ = app.router.add_get("/health", handle_health)
    return app


def run_server(config: MainConfig) -> None:
    """Build the orchestrator from configuration and serve until interrupted."""
    orchestrator = DeliveryOrchestrator(build_registry(config), policy=config.delivery)
    app = create_app(orchestrator)
    log_with_context(
        logger,
        logging.INFO,
        "Email service API starting",
        extra={"host": config.server.host, "port": config.server.port},
    )
    web.run_app(app, host=config.server.host, port=config.server.port, print=None)
