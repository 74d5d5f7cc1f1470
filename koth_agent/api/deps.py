"""Request dependencies: injected settings/runner and the authorization gate."""
from __future__ import annotations

from fastapi import Request

from ..config import AgentSettings
from ..domain.auth import origin_allowed, token_authorized
from ..domain.commands import ShellCommandRunner
from ..domain.errors import AuthFailure, ForbiddenOrigin
from ..logging_conf import get_logger

logger = get_logger("api.auth")


def get_settings(request: Request) -> AgentSettings:
    return request.app.state.settings


def get_runner(request: Request) -> ShellCommandRunner:
    return request.app.state.runner


def _raw_header(request: Request, name: bytes) -> bytes | None:
    # request.headers decodes as latin-1; secrets are compared on the wire bytes.
    for key, value in request.headers.raw:
        if key.lower() == name:
            return value
    return None


def authorize(request: Request) -> None:
    """Reject the request unless both the token and the peer address pass.

    The token is checked first, so a request failing both gets 401, not 403.
    """
    settings = get_settings(request)
    peer = request.client.host if request.client else None

    if not token_authorized(settings.token, _raw_header(request, b"authorization")):
        logger.info("auth.rejected", extra={"event": "auth_rejected", "peer": peer})
        raise AuthFailure("invalid or missing token")

    if not origin_allowed(peer, settings.origins):
        logger.info("origin.rejected", extra={"event": "origin_rejected", "peer": peer})
        raise ForbiddenOrigin(f"peer {peer!r} is not in the allowed ranges")
