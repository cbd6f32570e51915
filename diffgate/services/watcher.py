"""Repository watcher: owns the live diff snapshot.

Filesystem events under the repository root are debounced ("latest event
wins, fixed settle delay") into a refresh that re-reads the unstaged and
staged patches through the command gateway. Refresh failures are logged and
leave the previous snapshot in place.

Overlapping refreshes are not serialized: when an earlier-started refresh
finishes after a later-started one, its (older) result is applied last. Set
``discard_stale=True`` to drop results from refreshes that started before the
one currently applied.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from diffgate.core.background_tasks import BackgroundTaskManager
from diffgate.core.scheduling import EPOCH, Scheduler, TimerHandle
from diffgate.services.diff_hash import build_combined_diff, compute_diff_hash
from diffgate.services.git_gateway import CommandGateway
from diffgate.utils.logger import watcher_logger as logger

DEFAULT_DEBOUNCE_MS = 150
DEFAULT_IGNORE_DIRS = ("node_modules", "dist", "build")


@dataclass(frozen=True)
class DiffSnapshot:
    """Unstaged and staged patches captured together by one refresh."""

    unstaged_patch: str = ""
    staged_patch: str = ""
    updated_at: datetime = field(default=EPOCH)

    @property
    def combined_diff(self) -> str:
        return build_combined_diff(self.unstaged_patch, self.staged_patch)

    @property
    def diff_hash(self) -> str:
        return compute_diff_hash(self.combined_diff)


class _RepoEventHandler(FileSystemEventHandler):
    """Forwards relevant watchdog events (observer thread) to the event loop."""

    def __init__(self, watcher: RepoWatcher, loop: asyncio.AbstractEventLoop):
        super().__init__()
        self.watcher = watcher
        self.loop = loop

    def _handle_event(self, event: FileSystemEvent) -> None:
        paths = [event.src_path, getattr(event, "dest_path", "")]
        if all(not p or self.watcher.should_ignore(p) for p in paths):
            return
        if not self.loop.is_closed():
            self.loop.call_soon_threadsafe(self.watcher.schedule_refresh)

    # Opened/closed events are skipped: git reads files while diffing
    def on_created(self, event: FileSystemEvent) -> None:
        self._handle_event(event)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._handle_event(event)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._handle_event(event)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._handle_event(event)


class RepoWatcher:
    """Keeps ``DiffSnapshot`` in sync with one working copy."""

    def __init__(
        self,
        repo_path: str | Path,
        gateway: CommandGateway,
        scheduler: Scheduler,
        tasks: BackgroundTaskManager,
        *,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        ignore_dirs: Iterable[str] = DEFAULT_IGNORE_DIRS,
        discard_stale: bool = False,
    ):
        self._repo_path = str(repo_path)
        self._root = Path(repo_path).resolve()
        self.gateway = gateway
        self.scheduler = scheduler
        self.tasks = tasks
        self.debounce_ms = debounce_ms
        self.ignore_dirs = frozenset(ignore_dirs)
        self.discard_stale = discard_stale

        self._snapshot = DiffSnapshot()
        self._pending_timer: TimerHandle | None = None
        self._observer: Observer | None = None

        self._started_seq = 0
        self._applied_seq = 0
        self.refresh_count = 0
        self.consecutive_failures = 0
        self.last_error: str | None = None

    def get_repo_path(self) -> str:
        return self._repo_path

    def get_latest(self) -> DiffSnapshot:
        return self._snapshot

    @property
    def has_pending_refresh(self) -> bool:
        return self._pending_timer is not None

    def should_ignore(self, path: str | Path) -> bool:
        """True for dotfiles/dot-dirs, ignored directories and paths outside the root."""
        try:
            rel = Path(path).resolve().relative_to(self._root)
        except ValueError:
            return True
        return any(
            part.startswith(".") or part in self.ignore_dirs for part in rel.parts
        )

    async def refresh(self) -> bool:
        """Re-read both patches and replace the snapshot if both reads succeed.

        Returns True when a new snapshot was applied. Never raises.
        """
        self._started_seq += 1
        seq = self._started_seq
        try:
            unstaged, staged = await asyncio.gather(
                self.gateway.diff_unstaged(), self.gateway.diff_staged()
            )
        except Exception as e:
            self.consecutive_failures += 1
            self.last_error = str(e)
            logger.error(
                "Failed to compute git diff",
                repo=self._repo_path,
                error=str(e),
                consecutive_failures=self.consecutive_failures,
            )
            return False

        if self.discard_stale and seq < self._applied_seq:
            logger.debug(
                "Discarding stale refresh result", seq=seq, applied=self._applied_seq
            )
            return False

        previous = self._snapshot
        now = self.scheduler.now()
        self._snapshot = DiffSnapshot(
            unstaged_patch=unstaged,
            staged_patch=staged,
            updated_at=max(now, previous.updated_at),
        )
        self._applied_seq = seq
        self.refresh_count += 1
        self.consecutive_failures = 0
        self.last_error = None
        logger.debug(
            "Diff snapshot refreshed",
            seq=seq,
            unstaged_bytes=len(unstaged),
            staged_bytes=len(staged),
        )
        return True

    def schedule_refresh(self) -> None:
        """Debounce entry point for filesystem events."""
        if self._pending_timer is not None:
            self._pending_timer.cancel()
        self._pending_timer = self.scheduler.schedule(
            self.debounce_ms / 1000.0, self._on_debounce_elapsed
        )

    def _on_debounce_elapsed(self) -> None:
        self._pending_timer = None
        self.tasks.create_task(self.refresh(), name="diff-refresh")

    def trigger_refresh(self) -> asyncio.Task[None]:
        """Refresh right away, bypassing the debounce window."""
        return self.tasks.create_task(self.refresh(), name="diff-refresh-now")

    async def start(self) -> None:
        """Compute the initial snapshot and start watching the repository root."""
        await self.refresh()

        loop = asyncio.get_running_loop()
        self._observer = Observer()
        self._observer.schedule(
            _RepoEventHandler(self, loop), str(self._root), recursive=True
        )
        self._observer.start()
        logger.info(
            "Started watching repository",
            repo=self._repo_path,
            debounce_ms=self.debounce_ms,
            ignore_dirs=sorted(self.ignore_dirs),
        )

    async def stop(self) -> None:
        if self._pending_timer is not None:
            self._pending_timer.cancel()
            self._pending_timer = None

        if self._observer is None:
            return
        observer = self._observer
        self._observer = None
        loop = asyncio.get_running_loop()
        try:
            await asyncio.wait_for(loop.run_in_executor(None, observer.stop), 2.0)
            await asyncio.wait_for(
                loop.run_in_executor(None, lambda: observer.join(timeout=1.0)), 2.0
            )
            logger.info("Stopped watching repository", repo=self._repo_path)
        except (TimeoutError, asyncio.CancelledError) as e:
            logger.debug(f"Repository observer stop interrupted: {type(e).__name__}")
