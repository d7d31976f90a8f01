"""Async git subprocess runner with cancellation and process-tree kill."""

import asyncio
import contextlib
import os
import signal
from collections.abc import Sequence
from pathlib import Path

import structlog

from vcsflow.exceptions import (
    CommandCancelledError,
    CommandTimeoutError,
    InvalidRepositoryError,
    InvocationError,
)
from vcsflow.git.models import CommandInvocation, CommandResult

logger = structlog.get_logger()

# Applied to every call so paths come back unquoted and relative to the work
# tree root, whatever directory git is started from
GIT_CONFIG_OVERRIDES = (
    "-c",
    "core.quotePath=false",
    "-c",
    "status.relativePaths=false",
)


class CommandRunner:
    """Runs one git command per call and captures its full output."""

    def __init__(self, binary: str = "git", timeout: float | None = None) -> None:
        self._binary = binary
        self._timeout = timeout

    @property
    def binary(self) -> str:
        return self._binary

    async def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path,
        cancel: asyncio.Event | None = None,
    ) -> CommandResult:
        """Execute git with *args* in *cwd*.

        Raises InvocationError (or a subclass) when the process cannot be
        spawned, is cancelled, or times out. A non-zero exit code is not an
        error here; it is reported through CommandResult.exit_code.
        """
        invocation = CommandInvocation(binary=self._binary, args=list(args), cwd=cwd)
        if not invocation.cwd.is_dir():
            raise InvalidRepositoryError(f"Directory does not exist: {cwd}")
        if cancel is not None and cancel.is_set():
            raise CommandCancelledError("Operation cancelled before git was started")

        cmd = (invocation.binary, *GIT_CONFIG_OVERRIDES, *invocation.args)
        logger.debug("git_exec", command=cmd, cwd=str(cwd))

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=cwd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except FileNotFoundError as e:
            raise InvocationError(
                f"{self._binary} is not installed or not in PATH"
            ) from e
        except OSError as e:
            logger.error("git_exec_error", command=cmd, error=str(e))
            raise InvocationError(str(e)) from e

        stdout_bytes, stderr_bytes = await self._wait(proc, cmd, cancel)
        stdout = stdout_bytes.decode("utf-8", errors="replace").strip()
        stderr = stderr_bytes.decode("utf-8", errors="replace").strip()
        return CommandResult(
            exit_code=proc.returncode or 0, stdout=stdout, stderr=stderr
        )

    async def _wait(
        self,
        proc: asyncio.subprocess.Process,
        cmd: tuple[str, ...],
        cancel: asyncio.Event | None,
    ) -> tuple[bytes, bytes]:
        # communicate() drains stdout and stderr concurrently
        communicate = asyncio.ensure_future(proc.communicate())
        waiters: set[asyncio.Future] = {communicate}
        cancel_waiter: asyncio.Future | None = None
        if cancel is not None:
            cancel_waiter = asyncio.ensure_future(cancel.wait())
            waiters.add(cancel_waiter)

        try:
            done, _pending = await asyncio.wait(
                waiters, timeout=self._timeout, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            logger.warning("git_exec_task_cancelled", command=cmd)
            await _kill_tree(proc, communicate)
            raise
        finally:
            if cancel_waiter is not None and not cancel_waiter.done():
                cancel_waiter.cancel()

        if communicate in done:
            return communicate.result()

        await _kill_tree(proc, communicate)
        if cancel_waiter is not None and cancel_waiter in done:
            logger.warning("git_exec_cancelled", command=cmd)
            raise CommandCancelledError("Operation cancelled; git process terminated")
        logger.warning("git_exec_timeout", command=cmd, timeout=self._timeout)
        raise CommandTimeoutError(f"Command timed out after {self._timeout}s")


async def _kill_tree(proc: asyncio.subprocess.Process, communicate: asyncio.Future) -> None:
    """Kill the child's whole process group, then reap it."""
    with contextlib.suppress(ProcessLookupError, PermissionError):
        os.killpg(proc.pid, signal.SIGKILL)
    with contextlib.suppress(ProcessLookupError):
        proc.kill()
    communicate.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await communicate
    with contextlib.suppress(ProcessLookupError):
        await proc.wait()
