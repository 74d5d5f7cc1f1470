from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class EndpointResult:
    """One polled endpoint: HTTP status plus decoded JSON body (None if not JSON)."""

    path: str
    http_status: int
    body: Any

    @property
    def ok(self) -> bool:
        return self.http_status == 200 and isinstance(self.body, dict) and self.body.get("success") is True


class PollError(RuntimeError):
    """Raised when the agent cannot be polled at all (connection, TLS, timeout)."""


class AgentUnauthorizedError(PollError):
    """Raised when the agent rejects the poller's token (401) or address (403)."""

    def __init__(self, path: str, http_status: int) -> None:
        super().__init__(f"agent rejected {path} with HTTP {http_status}")
        self.path = path
        self.http_status = http_status
