from __future__ import annotations

import asyncio

import httpx

from koth_agent.logging_conf import get_logger
from koth_poller.types import AgentUnauthorizedError, EndpointResult, PollError

logger = get_logger("poller.client")

HEALTH_PATH = "/healthcheck"
STATUS_PATH = "/status"


def auth_headers(token: str | None) -> dict[str, str]:
    """Authorization header in the `Token <secret>` form the agent accepts."""
    return {"Authorization": f"Token {token}"} if token else {}


async def fetch(client: httpx.AsyncClient, path: str) -> EndpointResult:
    """GET one agent endpoint.

    - 401/403 raise AgentUnauthorizedError; the rest come back as results
    - A non-JSON body is kept as None rather than failing the poll
    """
    r = await client.get(path)
    if r.status_code in (401, 403):
        raise AgentUnauthorizedError(path, r.status_code)
    try:
        body = r.json()
    except ValueError:
        body = None
    logger.info(
        "poll.endpoint",
        extra={"event": "poll_endpoint", "path": path, "http_status": r.status_code},
    )
    return EndpointResult(path=path, http_status=r.status_code, body=body)


async def poll_agent(
    base_url: str,
    *,
    token: str | None = None,
    timeout_s: float = 10.0,
    verify: bool = True,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[EndpointResult, EndpointResult]:
    """Poll /healthcheck and /status concurrently, the way a scoring server does."""
    async with httpx.AsyncClient(
        base_url=base_url,
        headers=auth_headers(token),
        timeout=timeout_s,
        verify=verify,
        transport=transport,
    ) as client:
        # Let both requests finish before the client closes, then surface the first error.
        results = await asyncio.gather(
            fetch(client, HEALTH_PATH), fetch(client, STATUS_PATH), return_exceptions=True
        )
    for res in results:
        if isinstance(res, httpx.HTTPError):
            raise PollError(f"could not poll agent at {base_url}: {res}") from res
        if isinstance(res, BaseException):
            raise res
    health, status = results
    return health, status
