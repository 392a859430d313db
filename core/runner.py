"""External command execution for installer and version-control calls."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Captured outcome of a finished process."""

    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Standard output followed by standard error."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


class CommandRunner:
    """Runs one external command at a time and waits for it to exit.

    No timeout is applied: an install can block for as long as the
    installer takes. Callers that need a bound must enforce it themselves.
    """

    async def run(self, args: list[str], cwd: str | Path) -> CommandResult:
        """Run a command to completion.

        Args:
            args: Program and arguments
            cwd: Working directory for the process

        Returns:
            Exit code with full stdout and stderr
        """
        logger.debug("Running %s in %s", " ".join(args), cwd)

        process = await asyncio.create_subprocess_exec(
            *args,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()

        result = CommandResult(
            args=list(args),
            returncode=process.returncode,
            stdout=stdout.decode("utf-8", errors="replace") if stdout else "",
            stderr=stderr.decode("utf-8", errors="replace") if stderr else "",
        )
        logger.debug("%s exited with code %d", args[0], result.returncode)
        return result
