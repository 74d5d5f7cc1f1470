"""FastAPI app factory: request logging, error envelopes, the two polling routes."""
from __future__ import annotations

import time
from collections.abc import Callable
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from . import __version__
from .api import router as api_router
from .api.models import ErrorResponse
from .config import AgentSettings
from .domain.commands import ShellCommandRunner
from .domain.errors import AgentError
from .logging_conf import get_logger, setup_logging

logger = get_logger("agent")


def create_app(
    settings: AgentSettings | None = None, runner: ShellCommandRunner | None = None
) -> FastAPI:
    """Build the agent application around one immutable settings object.

    Without explicit settings they are read from the `KOTH_*` environment, so
    `uvicorn koth_agent.main:create_app --factory` works too.
    """
    if settings is None:
        from .cli import parse_args
        from .config import settings_from_args

        setup_logging()
        settings = settings_from_args(parse_args([]))

    app = FastAPI(
        title="King of the Hill Agent",
        description="Small HTTP interface for scoring servers to poll during a King of the Hill CTF.",
        version=__version__,
    )
    app.state.settings = settings
    app.state.runner = runner or ShellCommandRunner(timeout=settings.command_timeout)

    @app.exception_handler(AgentError)
    async def _agent_error(request: Request, exc: AgentError) -> JSONResponse:
        # Generic text only; the detailed reason stays in the log.
        body = ErrorResponse(error=exc.public_message)
        return JSONResponse(status_code=exc.status_code, content=body.model_dump())

    @app.middleware("http")
    async def request_logger(request: Request, call_next: Callable[[Request], Response]):
        """JSON request logging with a correlation id.

        - Propagates an incoming X-Request-ID or mints one
        - Logs start and end events with method/path/peer/status/elapsed_ms
        - Echoes X-Request-ID on the response
        """
        request_id = request.headers.get("X-Request-ID", str(uuid4()))
        request.state.request_id = request_id
        peer = request.client.host if request.client else None

        start = time.perf_counter()
        logger.info(
            "request.start",
            extra={
                "event": "request_start",
                "method": request.method,
                "path": request.url.path,
                "peer": peer,
                "request_id": request_id,
            },
        )
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request.error",
                extra={
                    "event": "request_error",
                    "path": request.url.path,
                    "method": request.method,
                    "request_id": request_id,
                },
            )
            raise
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000.0

        response.headers["X-Request-ID"] = request_id
        logger.info(
            "request.end",
            extra={
                "event": "request_end",
                "status_code": response.status_code,
                "elapsed_ms": round(elapsed_ms, 2),
                "request_id": request_id,
            },
        )
        return response

    app.include_router(api_router)

    logger.info(
        "app.created",
        extra={
            "event": "app_created",
            "auth_enabled": settings.auth_enabled,
            "origins": [str(n) for n in settings.origins],
            "owner_source": "command" if settings.owner_cmd else "file",
        },
    )
    return app
