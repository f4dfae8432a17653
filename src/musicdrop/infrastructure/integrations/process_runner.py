"""Uniform wrapper for running external tools (yt-dlp, spotdl, ferric).

Hey future me - this is the ONLY place that starts child processes. Arguments always go
in as a literal argv list via create_subprocess_exec, never through a shell. Together
with the URL allow-list in input_validation that is the complete injection defence, so
don't ever add a "shell=True" convenience path here.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from musicdrop.domain.exceptions import (
    ProcessFailedError,
    ProcessSpawnError,
    ProcessTimeoutError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessOutput:
    """Captured result of a finished process."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        """True when the process exited with status 0."""
        return self.returncode == 0


def _decode(data: bytes | None) -> str:
    return (data or b"").decode("utf-8", errors="replace")


class ProcessRunner:
    """Runs an executable with an argv list and captures its output."""

    def __init__(self, kill_grace_seconds: float = 5.0) -> None:
        """Initialize runner.

        Args:
            kill_grace_seconds: How long to wait for a killed child to be reaped
        """
        self._kill_grace_seconds = kill_grace_seconds

    async def run(
        self,
        executable: str | Path,
        args: list[str],
        timeout: float | None = None,
    ) -> ProcessOutput:
        """Run `executable` with `args` and wait for it to exit.

        Args:
            executable: Program name (looked up on PATH) or path
            args: Literal argument vector, passed as-is
            timeout: Seconds before the child is killed, None waits forever

        Returns:
            ProcessOutput of a successful (exit 0) run

        Raises:
            ProcessSpawnError: The executable could not be started
            ProcessFailedError: The process exited non-zero
            ProcessTimeoutError: The process ran longer than `timeout`
        """
        program = os.fspath(executable)
        logger.debug("Running %s with %d args", program, len(args))

        try:
            process = await asyncio.create_subprocess_exec(
                program,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            # FileNotFoundError, PermissionError, exec format errors, ...
            raise ProcessSpawnError(f"Could not start {program}: {e}", program) from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except TimeoutError:
            await self._kill(process, program)
            raise ProcessTimeoutError(program, timeout or 0.0) from None
        except asyncio.CancelledError:
            # Client went away or app shutting down, don't leave orphans behind
            await self._kill(process, program)
            raise

        output = ProcessOutput(
            returncode=process.returncode if process.returncode is not None else -1,
            stdout=_decode(stdout),
            stderr=_decode(stderr),
        )

        if not output.success:
            logger.warning(
                "%s exited with status %d", program, output.returncode,
                extra={"executable": program, "returncode": output.returncode},
            )
            raise ProcessFailedError(
                program, output.returncode, stderr=output.stderr, stdout=output.stdout
            )

        return output

    async def _kill(self, process: asyncio.subprocess.Process, program: str) -> None:
        if process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout=self._kill_grace_seconds)
        except TimeoutError:
            logger.error("Killed %s (pid %s) did not exit", program, process.pid)
        else:
            logger.warning("Killed %s (pid %s)", program, process.pid)


def count_files(directory: Path) -> int:
    """Count plain files (not directories) directly inside `directory`.

    Returns 0 for a missing directory.
    """
    try:
        with os.scandir(directory) as entries:
            return sum(1 for entry in entries if entry.is_file(follow_symlinks=False))
    except FileNotFoundError:
        return 0
