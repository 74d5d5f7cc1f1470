from __future__ import annotations

from pathlib import Path

from ..config import AgentSettings
from ..domain.commands import CommandResult, ShellCommandRunner
from ..domain.errors import CommandFailure, OwnerFileError
from ..logging_conf import get_logger

logger = get_logger("service.agent")


def read_owner_file(path: Path) -> str:
    """Return the trimmed contents of the owner file.

    Raises:
        OwnerFileError: if the file cannot be read. The caller turns this into
            a failed response; the server keeps running.
    """
    try:
        raw = path.read_bytes()
    except OSError as e:
        logger.error(
            "owner_file.unreadable",
            extra={"event": "owner_file_unreadable", "path": str(path), "error": str(e)},
        )
        raise OwnerFileError(f"cannot read owner file {path}: {e}") from e
    return raw.decode("utf-8", errors="replace").strip()


# ------------------------
# Use-cases
# ------------------------

def current_owner(settings: AgentSettings, runner: ShellCommandRunner) -> str:
    """Determine who owns the box right now.

    With an owner command configured its raw stdout is the identifier (not
    trimmed); otherwise the owner file is read and trimmed.
    """
    if settings.owner_cmd:
        result = runner.run(settings.owner_cmd)
        if not result.succeeded:
            raise CommandFailure(settings.owner_cmd, result)
        return result.stdout
    return read_owner_file(settings.owner_file)


def run_healthcheck(settings: AgentSettings, runner: ShellCommandRunner) -> CommandResult:
    """Run the health command. The caller reports the result either way."""
    return runner.run(settings.health_cmd)
