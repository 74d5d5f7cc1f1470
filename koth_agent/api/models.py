from __future__ import annotations

from pydantic import BaseModel

from ..domain.commands import CommandResult


class StatusData(BaseModel):
    """Current owner of the box."""
    identifier: str


class StatusResponse(BaseModel):
    """Envelope returned by /status."""
    success: bool
    data: StatusData


class HealthData(BaseModel):
    """Raw outcome of the health command, untrimmed."""
    stdout: str
    stderr: str
    status: int

    @classmethod
    def from_result(cls, result: CommandResult) -> HealthData:
        return cls(stdout=result.stdout, stderr=result.stderr, status=result.exit_code)


class HealthResponse(BaseModel):
    """Envelope returned by /healthcheck."""
    success: bool
    data: HealthData


class ErrorResponse(BaseModel):
    """Body of 401/403 responses."""
    success: bool = False
    error: str
