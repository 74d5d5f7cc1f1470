from __future__ import annotations

import signal
import subprocess
import time
from dataclasses import dataclass

from ..logging_conf import get_logger

__all__ = [
    "DEFAULT_SHELL",
    "CommandResult",
    "ShellCommandRunner",
]

DEFAULT_SHELL = "sh"
# Exit status reported when the child produced none of its own.
ABNORMAL_EXIT = 1

logger = get_logger("agent.commands")


@dataclass(frozen=True)
class CommandResult:
    """Captured outcome of one command run. Streams are "" when unused."""

    stdout: str
    stderr: str
    exit_code: int

    @property
    def succeeded(self) -> bool:
        return self.stderr == "" and self.exit_code == 0


def _decode(raw: bytes | str | None) -> str:
    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw
    return raw.decode("utf-8", errors="replace")


def _abnormal(stdout: str, stderr: str, reason: str) -> CommandResult:
    # Never let a failure be silent: fall back to the reason on an empty stderr.
    return CommandResult(stdout=stdout, stderr=stderr or reason, exit_code=ABNORMAL_EXIT)


def _signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)


class ShellCommandRunner:
    """Run a full command line through `sh -c`, capturing both streams.

    The child inherits the agent's environment and working directory. With
    `timeout=None` (the default) a command runs until it exits.
    """

    def __init__(self, *, shell: str = DEFAULT_SHELL, timeout: float | None = None) -> None:
        self.shell = shell
        self.timeout = timeout

    def run(self, command: str) -> CommandResult:
        start = time.perf_counter()
        result = self._execute(command)
        elapsed_ms = (time.perf_counter() - start) * 1000.0

        extra = {
            "event": "command_run",
            "command": command,
            "exit_code": result.exit_code,
            "elapsed_ms": round(elapsed_ms, 2),
        }
        if result.succeeded:
            logger.debug("command.run", extra=extra)
        else:
            logger.warning("command.failed", extra={**extra, "stderr": result.stderr})
        return result

    def _execute(self, command: str) -> CommandResult:
        try:
            proc = subprocess.run(
                [self.shell, "-c", command],
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            return _abnormal(
                _decode(e.stdout),
                _decode(e.stderr),
                f"command timed out after {self.timeout}s",
            )
        except OSError as e:
            return _abnormal("", "", str(e))

        stdout = _decode(proc.stdout)
        stderr = _decode(proc.stderr)
        if proc.returncode < 0:
            return _abnormal(stdout, stderr, f"terminated by signal {_signal_name(-proc.returncode)}")
        return CommandResult(stdout=stdout, stderr=stderr, exit_code=proc.returncode)
