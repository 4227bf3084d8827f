"""FastAPI server exposing LlamaStack models through OpenAI-compatible endpoints."""

import asyncio
import sys
import time
from contextlib import asynccontextmanager
from datetime import datetime
from functools import partial
from typing import Any, Awaitable, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send
import structlog

from .auth import AuthError, validate_bearer_token
from .client import LlamaStackClient, LlamaStackError, UpstreamTimeoutError
from .config import AdapterConfig, ConfigError, load_config
from .health import HEALTH_TIMEOUT, VERSION, HealthChecker, utcnow
from .log import SERVICE_NAME, configure_logging
from .translate import build_models_envelope, translate_error_response

logger = structlog.get_logger(__name__)

LIST_MODELS_TIMEOUT = 30.0
SHUTDOWN_GRACE_PERIOD = 30


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Probe LlamaStack on startup. The service starts even if it is down."""
    client: LlamaStackClient = app.state.client
    try:
        await client.health(timeout=HEALTH_TIMEOUT)
    except LlamaStackError as e:
        logger.warning("LlamaStack health check failed on startup", error=str(e))
        logger.info("Service will continue but may not function properly")
    else:
        logger.info("Successfully connected to LlamaStack")
    yield


class ClientDisconnectedError(UpstreamTimeoutError):
    """Raised when the caller goes away before LlamaStack answers."""

    def __init__(self, message: str = "Client disconnected before LlamaStack answered"):
        super().__init__(message)


async def wait_for_disconnect(request: Request) -> None:
    """Return once the ASGI server reports that the client has gone."""
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            return


async def run_until_disconnect(request: Request, call: Awaitable[Any]) -> Any:
    """Await an upstream call, cancelling it if the client disconnects first.

    Raises:
        ClientDisconnectedError: The client went away; the call was cancelled
    """
    upstream = asyncio.ensure_future(call)
    watcher = asyncio.ensure_future(wait_for_disconnect(request))
    try:
        done, _ = await asyncio.wait(
            {upstream, watcher},
            return_when=asyncio.FIRST_COMPLETED,
        )
    finally:
        for task in (upstream, watcher):
            if not task.done():
                task.cancel()

    if upstream in done:
        return upstream.result()

    await asyncio.gather(upstream, return_exceptions=True)
    logger.warning(
        "Client disconnected, abandoning LlamaStack call",
        client_ip=request.client.host if request.client else None,
        path=request.url.path,
    )
    raise ClientDisconnectedError()


class AccessLogMiddleware:
    """Write one access log line per HTTP request."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        status = {"code": 500}

        async def send_with_status(message: Message) -> None:
            if message["type"] == "http.response.start":
                status["code"] = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_with_status)
        finally:
            request = Request(scope)
            logger.info(
                "request",
                client_ip=request.client.host if request.client else None,
                method=request.method,
                path=request.url.path,
                status=status["code"],
                latency_ms=round((time.perf_counter() - start) * 1000, 2),
                user_agent=request.headers.get("user-agent", ""),
            )


async def list_models(request: Request):
    """List available models from LlamaStack."""
    state = request.app.state
    start = time.perf_counter()
    client_ip = request.client.host if request.client else None
    logger.info("Received models list request", client_ip=client_ip)

    if state.config.enable_auth:
        try:
            validate_bearer_token(request.headers.get("Authorization"))
        except AuthError as e:
            logger.warning("Authentication failed", reason=e.kind, error=str(e))
            return JSONResponse(
                status_code=401,
                content=translate_error_response(
                    "Authentication required",
                    "authentication_error",
                ),
            )

    try:
        models = await run_until_disconnect(
            request, state.client.list_models(timeout=LIST_MODELS_TIMEOUT)
        )
    except LlamaStackError as e:
        logger.error(
            "Failed to fetch models from LlamaStack",
            error=str(e),
            error_type=type(e).__name__,
        )
        return JSONResponse(
            status_code=500,
            content=translate_error_response(
                "Failed to retrieve models from external service",
                "internal_error",
            ),
        )

    envelope = build_models_envelope(models)
    logger.info(
        "Successfully returned models",
        count=len(models),
        duration_ms=round((time.perf_counter() - start) * 1000, 2),
    )
    return JSONResponse(content=envelope.model_dump())


async def health_check(request: Request):
    """Deep health check including LlamaStack connectivity."""
    status_code, snapshot = await request.app.state.health.check_health(
        run=partial(run_until_disconnect, request)
    )
    return JSONResponse(status_code=status_code, content=snapshot.model_dump(mode="json"))


async def readiness_check(request: Request):
    """Readiness probe."""
    status_code, body = await request.app.state.health.check_readiness(
        run=partial(run_until_disconnect, request)
    )
    return JSONResponse(status_code=status_code, content=body)


async def liveness_check(request: Request):
    """Liveness probe."""
    return request.app.state.health.check_liveness()


async def root():
    """Root endpoint with API information."""
    return {
        "service": SERVICE_NAME,
        "version": VERSION,
        "endpoints": [
            "GET /health - Service health check",
            "GET /ready - Kubernetes readiness probe",
            "GET /live - Kubernetes liveness probe",
            "GET /v1/models - List available models (OpenAI compatible)",
        ],
    }


def create_app(
    config: AdapterConfig,
    client: Optional[LlamaStackClient] = None,
    started_at: Optional[datetime] = None,
    clock: Callable[[], datetime] = utcnow,
) -> FastAPI:
    """Create the FastAPI application for one adapter process.

    Args:
        config: Adapter configuration
        client: LlamaStack client (default: built from config)
        started_at: Process start time used for uptime (default: now)
        clock: Time source for health timestamps

    Returns:
        The configured application
    """
    if client is None:
        client = LlamaStackClient(
            base_url=config.llamastack_endpoint,
            api_key=config.llamastack_api_key,
            timeout=config.upstream_timeout,
        )

    app = FastAPI(
        title="LlamaStack OpenAI Adapter",
        description="OpenAI-compatible model listing for LlamaStack",
        version=VERSION,
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.client = client
    app.state.health = HealthChecker(client, started_at=started_at, clock=clock)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Origin", "Content-Type", "Authorization"],
    )
    app.add_middleware(AccessLogMiddleware)

    app.add_api_route("/health", health_check, methods=["GET"])
    app.add_api_route("/ready", readiness_check, methods=["GET"])
    app.add_api_route("/live", liveness_check, methods=["GET"])
    app.add_api_route("/v1/models", list_models, methods=["GET"])
    app.add_api_route("/", root, methods=["GET"])

    return app


def main() -> None:
    """Run the adapter under uvicorn until SIGINT/SIGTERM."""
    import uvicorn

    try:
        config = load_config()
    except ConfigError as e:
        print(f"Failed to load configuration: {e}", file=sys.stderr)
        sys.exit(1)

    configure_logging(config.log_level, config.log_json)
    logger.info("Starting LlamaStack adapter service")
    logger.info(
        "Configuration",
        endpoint=config.llamastack_endpoint,
        auth=config.enable_auth,
    )

    app = create_app(config)

    logger.info("Starting server", bind=config.bind)
    uvicorn.run(
        app,
        host=config.address,
        port=config.port,
        log_level=config.log_level.lower(),
        access_log=False,
        timeout_graceful_shutdown=SHUTDOWN_GRACE_PERIOD,
    )
    logger.info("Server exited")


if __name__ == "__main__":
    main()
