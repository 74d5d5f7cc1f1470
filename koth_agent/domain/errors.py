from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .commands import CommandResult

__all__ = [
    "AgentError",
    "AuthFailure",
    "ForbiddenOrigin",
    "CommandFailure",
    "OwnerFileError",
    "ConfigurationError",
]


class AgentError(Exception):
    """Base class for agent errors.

    `code` is a stable machine string; `status_code` is the HTTP status the
    API maps the error to when it escapes a request.
    """

    code: str = "agent_error"
    status_code: int = 500
    public_message: str = "Internal Server Error"


class AuthFailure(AgentError):
    """The request did not carry the configured shared secret."""

    code = "unauthorized"
    status_code = 401
    public_message = "Unauthorized"


class ForbiddenOrigin(AgentError):
    """The peer address is outside every allowed CIDR range."""

    code = "forbidden"
    status_code = 403
    public_message = "Forbidden"


class CommandFailure(AgentError):
    """A configured command exited non-zero or wrote to stderr."""

    code = "command_failed"

    def __init__(self, command: str, result: CommandResult) -> None:
        super().__init__(f"command {command!r} failed with status {result.exit_code}")
        self.command = command
        self.result = result


class OwnerFileError(AgentError):
    """The owner file could not be read."""

    code = "owner_file_unreadable"


class ConfigurationError(AgentError):
    """Startup configuration is unusable (bad CIDR, bad TLS material)."""

    code = "configuration_error"
