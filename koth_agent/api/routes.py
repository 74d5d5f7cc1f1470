from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from ..config import AgentSettings
from ..domain.commands import ShellCommandRunner
from ..domain.errors import CommandFailure, OwnerFileError
from ..logging_conf import get_logger
from ..service import agent_service
from .deps import authorize, get_runner, get_settings
from .models import ErrorResponse, HealthData, HealthResponse, StatusData, StatusResponse

router = APIRouter(dependencies=[Depends(authorize)])
logger = get_logger("api")

_AUTH_RESPONSES = {
    status.HTTP_401_UNAUTHORIZED: {
        "model": ErrorResponse,
        "description": "Request did not provide a valid authentication token",
    },
    status.HTTP_403_FORBIDDEN: {
        "model": ErrorResponse,
        "description": "Request did not come from an IP within the allowed ranges",
    },
}


# Handlers are plain `def`: commands block, so FastAPI runs them in its thread pool.
@router.get(
    "/status",
    response_model=StatusResponse,
    summary="Show the current owner of the server",
    responses={
        **_AUTH_RESPONSES,
        status.HTTP_500_INTERNAL_SERVER_ERROR: {
            "model": StatusResponse,
            "description": "Owner could not be determined",
        },
    },
)
def owner_status(
    response: Response,
    settings: AgentSettings = Depends(get_settings),
    runner: ShellCommandRunner = Depends(get_runner),
) -> StatusResponse:
    """Return the owner identifier from the owner command or the owner file."""
    try:
        identifier = agent_service.current_owner(settings, runner)
    except (CommandFailure, OwnerFileError) as e:
        logger.warning("status.failed", extra={"event": "status_failed", "error_code": e.code})
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return StatusResponse(success=False, data=StatusData(identifier=""))
    return StatusResponse(success=True, data=StatusData(identifier=identifier))


@router.get(
    "/healthcheck",
    response_model=HealthResponse,
    summary="Run the health command and report its outcome",
    responses={
        **_AUTH_RESPONSES,
        status.HTTP_500_INTERNAL_SERVER_ERROR: {
            "model": HealthResponse,
            "description": "Health command did not run successfully",
        },
    },
)
def healthcheck(
    response: Response,
    settings: AgentSettings = Depends(get_settings),
    runner: ShellCommandRunner = Depends(get_runner),
) -> HealthResponse:
    """Report stdout, stderr and exit status of the health command."""
    result = agent_service.run_healthcheck(settings, runner)
    if not result.succeeded:
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HealthResponse(success=result.succeeded, data=HealthData.from_result(result))
