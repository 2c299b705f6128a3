"""HTTP server for the Scatterbrain content engine.

Endpoints:
    GET  /health           - Liveness check, returns {"status": "ok", ...}
    GET  /metrics          - Counters and uptime
    POST /analyze          - Three-stage pipeline analysis, saved as a thought
    POST /analyze/stream   - Same analysis as server-sent events
    POST /generate         - Research-augmented content for a topic, not saved
    POST /voice/analyze    - Voice-aware content generation
    GET  /voice/discovery  - The voice discovery questionnaire
    POST /voice/discovery  - Score answers and create or update the voice profile
    POST /voice/feedback   - Record feedback on generated content
    GET  /voice/feedback   - Page through the caller's feedback history

Every route except /health, /metrics and GET /voice/discovery requires an
``Authorization: Bearer <token>`` header, resolved to a user id by the
configured TokenVerifier. Errors are returned as JSON with the status code
for their ErrorKind.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from aiohttp import web

from scatterbrain.core.auth import TokenVerifier, bearer_token
from scatterbrain.core.exceptions import (
    ErrorKind,
    ScatterbrainError,
    ValidationError,
    http_status_for,
)
from scatterbrain.service import DEFAULT_HISTORY_LIMIT, ThoughtService

logger = logging.getLogger(__name__)


@dataclass
class ServerMetrics:
    """Server metrics for monitoring.

    Tracks request outcomes and uptime. Counters are only touched from the
    event loop.
    """

    start_time: float = field(default_factory=time.time)
    requests_total: int = 0
    processed_total: int = 0
    errors_total: int = 0
    timeouts_total: int = 0

    def increment_requests(self) -> None:
        self.requests_total += 1

    def increment_processed(self) -> None:
        self.processed_total += 1

    def record_error(self, kind: ErrorKind | str | None = None) -> None:
        """Count a failed request; upstream timeouts are also counted separately."""
        self.errors_total += 1
        if kind in (ErrorKind.UPSTREAM_TIMEOUT, ErrorKind.UPSTREAM_TIMEOUT.value):
            self.timeouts_total += 1

    def get_uptime_seconds(self) -> float:
        return time.time() - self.start_time

    def to_dict(self) -> dict[str, Any]:
        """Convert metrics to dictionary for JSON response."""
        return {
            "uptime_seconds": round(self.get_uptime_seconds(), 2),
            "requests_total": self.requests_total,
            "processed_total": self.processed_total,
            "errors_total": self.errors_total,
            "timeouts_total": self.timeouts_total,
        }


# AppKeys for typed access to shared components
SERVICE_KEY = web.AppKey("service", ThoughtService)
VERIFIER_KEY = web.AppKey("verifier", TokenVerifier)
METRICS_KEY = web.AppKey("metrics", ServerMetrics)


def error_response(error: ScatterbrainError) -> web.Response:
    return web.json_response(error.to_dict(), status=http_status_for(error.kind))


async def authenticate(request: web.Request) -> str:
    """Resolve the request's bearer token to a user id.

    Raises:
        AuthError: If the header is missing or the token is not accepted.
    """
    token = bearer_token(request.headers.get("Authorization"))
    return await request.app[VERIFIER_KEY].verify(token)


async def read_json_object(request: web.Request) -> dict[str, Any]:
    """Parse the request body as a JSON object.

    Raises:
        ValidationError: If the body is not valid JSON or not an object.
    """
    try:
        body = await request.json()
    except json.JSONDecodeError:
        raise ValidationError("Invalid JSON body")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _query_int(request: web.Request, name: str, default: int) -> int:
    raw = request.query.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


async def health_handler(request: web.Request) -> web.Response:
    """Liveness check, also reporting the configured request budget."""
    return web.json_response(
        {
            "status": "ok",
            "request_timeout": request.app[SERVICE_KEY].request_timeout,
        }
    )


async def metrics_handler(request: web.Request) -> web.Response:
    return web.json_response(request.app[METRICS_KEY].to_dict())


async def _handle(request: web.Request, operation) -> web.Response:
    """Run an authenticated JSON operation and map engine errors to responses."""
    metrics = request.app[METRICS_KEY]
    metrics.increment_requests()
    try:
        user_id = await authenticate(request)
        payload = await operation(request.app[SERVICE_KEY], user_id)
    except ScatterbrainError as e:
        metrics.record_error(e.kind)
        logger.warning(
            "%s %s failed: %s", request.method, request.path, e, extra={"kind": e.kind.value}
        )
        return error_response(e)
    metrics.increment_processed()
    return web.json_response(payload)


async def analyze_handler(request: web.Request) -> web.Response:
    """Run the three-stage pipeline on {content, sourceType?, userProfile?}."""

    async def operation(service: ThoughtService, user_id: str) -> dict[str, Any]:
        return await service.analyze(user_id, await read_json_object(request))

    return await _handle(request, operation)


async def analyze_stream_handler(request: web.Request) -> web.StreamResponse:
    """Stream pipeline progress as server-sent events.

    Authentication and validation failures are plain JSON errors. Once the
    stream starts, every outcome ends with a terminal ``complete`` or
    ``error`` event.
    """
    metrics = request.app[METRICS_KEY]
    metrics.increment_requests()
    service = request.app[SERVICE_KEY]
    try:
        user_id = await authenticate(request)
        text, source_type = service.validate_analysis(await read_json_object(request))
    except ScatterbrainError as e:
        metrics.record_error(e.kind)
        return error_response(e)

    response = web.StreamResponse(
        headers={
            "Content-Type": "text/event-stream",
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        }
    )
    await response.prepare(request)

    async def send(event: dict[str, Any]) -> None:
        await response.write(f"data: {json.dumps(event)}\n\n".encode("utf-8"))

    failed_kind = None
    events = service.stream_analysis(user_id, text, source_type)
    try:
        async for event in events:
            if event.get("stage") == "error":
                failed_kind = event.get("kind")
            await send(event)
    except ConnectionResetError:
        logger.info("Client closed stream early", extra={"user_id": user_id})
        metrics.record_error()
        return response
    except Exception as e:
        logger.exception("Stream aborted: %s", e, extra={"user_id": user_id})
        failed_kind = ErrorKind.UPSTREAM_FAILURE
        await send({"stage": "error", "status": "failed", "error": str(e)})
    finally:
        await events.aclose()

    if failed_kind is None:
        metrics.increment_processed()
    else:
        metrics.record_error(failed_kind)
    await response.write_eof()
    return response


async def generate_handler(request: web.Request) -> web.Response:
    """Run the research-augmented generator on {topic, userProfile?}."""

    async def operation(service: ThoughtService, user_id: str) -> dict[str, Any]:
        return await service.generate(user_id, await read_json_object(request))

    return await _handle(request, operation)


async def voice_analyze_handler(request: web.Request) -> web.Response:
    """Generate voice-aware content for {content, brainId?}."""

    async def operation(service: ThoughtService, user_id: str) -> dict[str, Any]:
        return await service.voice_analyze(user_id, await read_json_object(request))

    return await _handle(request, operation)


async def discovery_questions_handler(request: web.Request) -> web.Response:
    return web.json_response(request.app[SERVICE_KEY].discovery_questions())


async def discovery_submit_handler(request: web.Request) -> web.Response:
    """Score {responses: [...]} and create or update the caller's profile."""

    async def operation(service: ThoughtService, user_id: str) -> dict[str, Any]:
        return await service.submit_discovery(user_id, await read_json_object(request))

    return await _handle(request, operation)


async def feedback_submit_handler(request: web.Request) -> web.Response:
    async def operation(service: ThoughtService, user_id: str) -> dict[str, Any]:
        return await service.submit_feedback(user_id, await read_json_object(request))

    return await _handle(request, operation)


async def feedback_history_handler(request: web.Request) -> web.Response:
    """Return feedback history, paged by ?limit=&offset=."""

    async def operation(service: ThoughtService, user_id: str) -> dict[str, Any]:
        return await service.feedback_history(
            user_id,
            limit=_query_int(request, "limit", DEFAULT_HISTORY_LIMIT),
            offset=_query_int(request, "offset", 0),
        )

    return await _handle(request, operation)


def create_app(
    service: ThoughtService,
    verifier: TokenVerifier,
    metrics: ServerMetrics | None = None,
) -> web.Application:
    """Create and configure the aiohttp application.

    Args:
        service: Request boundary wrapping the engine.
        verifier: Resolves bearer tokens to user ids.
        metrics: Optional metrics instance; a fresh one when omitted.

    Returns:
        Configured aiohttp Application with all routes registered.
    """
    app = web.Application()
    app[SERVICE_KEY] = service
    app[VERIFIER_KEY] = verifier
    app[METRICS_KEY] = metrics or ServerMetrics()

    app.router.add_get("/health", health_handler)
    app.router.add_get("/metrics", metrics_handler)
    app.router.add_post("/analyze", analyze_handler)
    app.router.add_post("/analyze/stream", analyze_stream_handler)
    app.router.add_post("/generate", generate_handler)
    app.router.add_post("/voice/analyze", voice_analyze_handler)
    app.router.add_get("/voice/discovery", discovery_questions_handler)
    app.router.add_post("/voice/discovery", discovery_submit_handler)
    app.router.add_post("/voice/feedback", feedback_submit_handler)
    app.router.add_get("/voice/feedback", feedback_history_handler)
    return app


async def run_server(
    app: web.Application, host: str = "0.0.0.0", port: int = 8766
) -> web.AppRunner:
    """Start serving an application.

    Args:
        app: Application built by create_app.
        host: Host to bind to (default: 0.0.0.0).
        port: Port to listen on (default: 8766).

    Handlers are cancelled when their client disconnects, which also cancels
    the LLM calls they are awaiting.

    Returns:
        The AppRunner instance (for testing/cleanup).
    """
    runner = web.AppRunner(app, handler_cancellation=True)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("Server listening on %s:%d", host, port)
    return runner
