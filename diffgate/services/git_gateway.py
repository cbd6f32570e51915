"""VCS command gateway.

Thin async wrapper over the ``git`` executable. Reads return patch text,
writes return nothing; every failure surfaces as ``ExternalCommandError``.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from pathlib import Path

from diffgate.config.constants import DEFAULT_COMMIT_HISTORY_COUNT
from diffgate.core.errors import ExternalCommandError
from diffgate.utils.logger import get_logger

logger = get_logger("services.git")

DIFF_FLAGS = ("--no-color", "--no-ext-diff")


class CommandGateway(ABC):
    """Read and write operations against one working copy."""

    @abstractmethod
    async def diff_unstaged(self) -> str:
        """Patch of working tree vs index."""

    @abstractmethod
    async def diff_staged(self) -> str:
        """Patch of index vs HEAD."""

    @abstractmethod
    async def stage(self, file_path: str) -> None: ...

    @abstractmethod
    async def unstage(self, file_path: str) -> None: ...

    @abstractmethod
    async def commit(self, message: str) -> None: ...

    @abstractmethod
    async def push(self) -> None: ...

    @abstractmethod
    async def stash(self) -> None: ...

    async def recent_commit_subjects(
        self, count: int = DEFAULT_COMMIT_HISTORY_COUNT
    ) -> list[str]:
        return []


class GitCommandGateway(CommandGateway):
    """Runs git subcommands in ``repo_path`` via asyncio subprocesses.

    ``timeout`` (seconds) is optional; without it a hung git process blocks only
    the coroutine awaiting it, never the event loop.
    """

    def __init__(
        self, repo_path: str | Path, *, git_binary: str = "git", timeout: float | None = None
    ):
        self.repo_path = Path(repo_path)
        self.git_binary = git_binary
        self.timeout = timeout

    async def _run(self, *args: str) -> str:
        argv = [self.git_binary, *args]
        start = time.perf_counter()
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self.repo_path),
            )
        except FileNotFoundError as e:
            raise ExternalCommandError(
                f"git executable not found: {self.git_binary}", command=argv
            ) from e
        except OSError as e:
            raise ExternalCommandError(
                f"Failed to start git: {e}", command=argv
            ) from e

        try:
            out_b, err_b = await asyncio.wait_for(proc.communicate(), self.timeout)
        except TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise ExternalCommandError(
                f"git {args[0]} timed out after {self.timeout}s", command=argv
            ) from e

        stderr = err_b.decode("utf-8", errors="replace").strip()
        duration_ms = int((time.perf_counter() - start) * 1000)
        if proc.returncode != 0:
            logger.debug(
                "git command failed",
                argv=argv,
                exit_code=proc.returncode,
                duration_ms=duration_ms,
            )
            raise ExternalCommandError(
                f"git {args[0]} failed: {stderr or f'exit code {proc.returncode}'}",
                command=argv,
                exit_code=proc.returncode,
                stderr=stderr,
            )

        logger.debug("git command done", argv=argv, duration_ms=duration_ms)
        return out_b.decode("utf-8", errors="replace")

    async def diff_unstaged(self) -> str:
        return await self._run("diff", *DIFF_FLAGS)

    async def diff_staged(self) -> str:
        return await self._run("diff", "--cached", *DIFF_FLAGS)

    async def stage(self, file_path: str) -> None:
        await self._run("add", "--", file_path)

    async def unstage(self, file_path: str) -> None:
        await self._run("restore", "--staged", "--", file_path)

    async def commit(self, message: str) -> None:
        await self._run("commit", "-m", message)

    async def push(self) -> None:
        await self._run("push")

    async def stash(self) -> None:
        await self._run("stash", "push")

    async def recent_commit_subjects(
        self, count: int = DEFAULT_COMMIT_HISTORY_COUNT
    ) -> list[str]:
        """Subjects of the last ``count`` commits; empty for a repo without history."""
        try:
            output = await self._run("log", f"-{count}", "--format=%s")
        except ExternalCommandError as e:
            logger.debug("No commit history available", error=str(e))
            return []
        return [line for line in output.strip().split("\n") if line.strip()]
