import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from .constants import APP_NAME

logger = logging.getLogger(APP_NAME)


@dataclass
class CommandResult:
    """Captured outcome of a single shell command.

    Attributes:
        success (bool): Whether the command exited with status 0.
        exit_code (int | None): Exit status, or None if the process never started.
        stdout (str): Captured standard output.
        stderr (str): Captured standard error.
        error (str | None): Description of the failure, if any.
    """

    success: bool
    exit_code: int | None
    stdout: str = ""
    stderr: str = ""
    error: str | None = None

    @property
    def output(self) -> str:
        """Combined stdout and stderr, stripped."""
        return "\n".join(p for p in (self.stdout.strip(), self.stderr.strip()) if p)


async def run_command(command: str, cwd: str | Path | None = None) -> CommandResult:
    """Executes a shell command string and captures its output.

    The command is run through the system shell so `&&` chains work. Exactly one
    attempt is made and no timeout is applied.

    Args:
        command (str): The shell command line.
        cwd (str | Path | None, optional): Working directory. Defaults to the
                                           current process directory.

    Returns:
        CommandResult: The captured result. Spawn errors and non-zero exits are
                       reported here rather than raised.
    """
    logger.debug(f"Running: {command} (cwd={cwd or '.'})")
    try:
        process = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
        )
        stdout_bytes, stderr_bytes = await process.communicate()
    except OSError as e:
        logger.error(f"Could not start command '{command}': {e}")
        return CommandResult(success=False, exit_code=None, error=str(e))

    stdout = stdout_bytes.decode("utf-8", errors="replace") if stdout_bytes else ""
    stderr = stderr_bytes.decode("utf-8", errors="replace") if stderr_bytes else ""

    if process.returncode != 0:
        return CommandResult(
            success=False,
            exit_code=process.returncode,
            stdout=stdout,
            stderr=stderr,
            error=f"Command exited with status {process.returncode}",
        )

    return CommandResult(
        success=True, exit_code=process.returncode, stdout=stdout, stderr=stderr
    )
