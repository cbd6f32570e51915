"""Polling loop that keeps a reconciled staged/unstaged view of the server."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from unidiff import UnidiffParseError

from diffgate.client.http import DiffGateClient, DiffGateClientError
from diffgate.client.patches import FileEntry, parse_patch_files
from diffgate.client.reconciler import PendingIntent, ReconciledView, reconcile
from diffgate.utils.logger import client_logger as logger

DEFAULT_POLL_INTERVAL = 1.0
UNPARSEABLE_DIFF_MESSAGE = "Diff loaded but could not be parsed."

ViewCallback = Callable[[ReconciledView], None]


class ReconcilingPoller:
    """Polls ``/diffs/latest`` and merges it with optimistic stage/unstage moves.

    Stage and unstage update the view before their request is sent. A failed
    write is raised to the caller and the pending move is left in place; the
    next polls prune it once the path vanishes or the move shows up.
    """

    def __init__(
        self, client: DiffGateClient, interval: float = DEFAULT_POLL_INTERVAL
    ):
        self.client = client
        self.interval = interval
        self._staged: list[FileEntry] = []
        self._unstaged: list[FileEntry] = []
        self._pending = PendingIntent()
        self._view = ReconciledView()
        self._subscribers: list[ViewCallback] = []
        self._task: asyncio.Task[None] | None = None
        self.diff_hash: str | None = None
        self.last_error: str | None = None

    @property
    def view(self) -> ReconciledView:
        return self._view

    @property
    def pending(self) -> PendingIntent:
        return self._pending

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def subscribe(self, callback: ViewCallback) -> Callable[[], None]:
        """Register ``callback`` for view changes; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def _rebuild(self) -> None:
        view = reconcile(self._staged, self._unstaged, self._pending)
        self._pending = view.pending
        if view == self._view:
            return
        self._view = view
        for callback in list(self._subscribers):
            try:
                callback(view)
            except Exception as e:
                logger.error(
                    "View subscriber failed",
                    callback=getattr(callback, "__name__", repr(callback)),
                    error=str(e),
                )

    def apply_snapshot(self, unstaged_patch: str, staged_patch: str) -> bool:
        """Replace the authoritative lists and rebuild the view.

        Returns False (keeping the previous lists) when a patch cannot be parsed.
        """
        try:
            staged = parse_patch_files(staged_patch, "staged")
            unstaged = parse_patch_files(unstaged_patch, "unstaged")
        except UnidiffParseError as e:
            logger.warning("Failed to parse polled diff", error=str(e))
            self.last_error = UNPARSEABLE_DIFF_MESSAGE
            return False

        self._staged = staged
        self._unstaged = unstaged
        self.last_error = None
        self._rebuild()
        return True

    async def poll_once(self) -> bool:
        try:
            snapshot = await self.client.latest_diff()
        except DiffGateClientError as e:
            self.last_error = e.message
            logger.debug("Poll failed", status_code=e.status_code, error=e.message)
            return False
        self.diff_hash = snapshot.get("diffHash")
        return self.apply_snapshot(
            snapshot.get("unstagedPatch") or "", snapshot.get("stagedPatch") or ""
        )

    async def stage(self, path: str) -> None:
        self._pending = self._pending.with_stage(path)
        self._rebuild()
        await self._write(self.client.stage(path), "stage", path)

    async def unstage(self, path: str) -> None:
        self._pending = self._pending.with_unstage(path)
        self._rebuild()
        await self._write(self.client.unstage(path), "unstage", path)

    async def _write(self, request, action: str, path: str) -> None:
        try:
            await request
        except DiffGateClientError as e:
            self.last_error = e.message
            logger.warning(f"Failed to {action} file", path=path, error=e.message)
            raise

    async def _run(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="diffgate-poll")
        logger.debug("Started polling", interval=self.interval)

    async def close(self) -> None:
        """Cancel the poll loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Stopped polling")
