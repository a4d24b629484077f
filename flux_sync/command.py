"""Library for issuing commands using asyncio and returning the result.

Every sync stage shells out to an external tool. A stage hands the absolute
deadline of the sync attempt to `run` or `run_piped`, and an expired deadline
kills the running subprocess and raises the stage exception of the command.
"""

import asyncio
from abc import ABC, abstractmethod
import logging
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from collections.abc import Sequence
import os
import signal

from .exceptions import CommandException

_LOGGER = logging.getLogger(__name__)

_CONCURRENCY = 20
_SEM = asyncio.Semaphore(_CONCURRENCY)


# No public API
__all__: list[str] = []


class Task(ABC):
    """An instance of a async task to execute."""

    @abstractmethod
    async def run(self, stdin: bytes | None = None) -> bytes:
        """Execute the task and return the result."""


def format_path(path: Path) -> str:
    """Format path for debugging."""
    if path.is_absolute():
        cwd = Path.cwd()
        if path.is_relative_to(cwd):
            rel_path = str(path.relative_to(cwd))
            return f"{rel_path} (abs)"
    return str(path)


@dataclass
class Command(Task):
    """An instance of a command to run."""

    cmd: list[str]
    """Array of command line arguments."""

    cwd: Path | None = None
    """Current working directory."""

    exc: type[CommandException] = CommandException
    """Exception to throw in case of an error."""

    @property
    def string(self) -> str:
        """Render the command as a single string."""
        return " ".join([shlex.quote(arg) for arg in self.cmd])

    def __str__(self) -> str:
        """Render as a debug string."""
        cwd: str = ""
        if self.cwd:
            cwd = f"({format_path(self.cwd)}) "
        return f"{cwd}{self.string}"

    async def run(self, stdin: bytes | None = None) -> bytes:
        """Run the command, returning stdout.

        The subprocess runs in its own process group, and the whole group is
        killed if the calling task is cancelled.
        """
        _LOGGER.debug("Running command: %s", self)
        proc = await asyncio.create_subprocess_shell(
            self.string,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=self.cwd,
            start_new_session=True,
        )
        try:
            out, err = await proc.communicate(stdin)
        except asyncio.CancelledError:
            _LOGGER.debug("Killing command: %s", self)
            _kill_group(proc)
            await proc.wait()
            raise
        if proc.returncode:
            errors = [f"Command '{self}' failed with return code {proc.returncode}"]
            if out:
                errors.append(out.decode("utf-8", errors="replace"))
            if err:
                errors.append(err.decode("utf-8", errors="replace"))
            _LOGGER.debug("\n".join(errors))
            raise self.exc("\n".join(errors))
        return out


def _kill_group(proc: asyncio.subprocess.Process) -> None:
    """Kill the process and any children it started."""
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


async def _run_piped_with_sem(
    cmds: Sequence[Task], deadline: float | None
) -> bytes:
    """Run a set of commands, piped together, returning stdout of last."""
    stdin = None
    out = None
    for cmd in cmds:
        try:
            async with asyncio.timeout_at(deadline):
                out = await cmd.run(stdin)
        except TimeoutError as err:
            if isinstance(cmd, Command):
                raise cmd.exc(f"Command '{cmd}' timed out") from err
            raise err
        stdin = out
    return out or b""


async def run_piped(cmds: Sequence[Task], deadline: float | None = None) -> bytes:
    """Run a set of commands, piped together, returning stdout of last.

    The deadline is an absolute time on the event loop clock, see
    `deadline_after`.
    """
    async with _SEM:
        result = await _run_piped_with_sem(cmds, deadline)
    return result


async def run(cmd: Task, deadline: float | None = None) -> bytes:
    """Run the specified command and return stdout."""
    return await run_piped([cmd], deadline=deadline)


def deadline_after(timeout: float) -> float:
    """Return the absolute loop time that is `timeout` seconds from now."""
    return asyncio.get_running_loop().time() + timeout
