"""Merge authoritative file lists with optimistic pending moves.

A stage/unstage click moves the file to the target list immediately. The
move stays pending until a poll shows the path in the target list, or until
the path leaves both lists. Everything here is pure: the poller owns the state.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from diffgate.client.patches import FileEntry


@dataclass(frozen=True)
class PendingIntent:
    """Paths with an unconfirmed move; a path is in at most one set."""

    stage: frozenset[str] = frozenset()
    unstage: frozenset[str] = frozenset()

    def with_stage(self, path: str) -> PendingIntent:
        return PendingIntent(self.stage | {path}, self.unstage - {path})

    def with_unstage(self, path: str) -> PendingIntent:
        return PendingIntent(self.stage - {path}, self.unstage | {path})

    def is_empty(self) -> bool:
        return not self.stage and not self.unstage


@dataclass(frozen=True)
class ReconciledView:
    staged: list[FileEntry] = field(default_factory=list)
    unstaged: list[FileEntry] = field(default_factory=list)
    pending: PendingIntent = field(default_factory=PendingIntent)


def insert_by_path(base: list[FileEntry], moved: list[FileEntry]) -> list[FileEntry]:
    """Insert each moved entry before the first base entry whose path sorts after it.

    ``base`` keeps its own (patch) order; moved entries are placed in path order.
    """
    if not moved:
        return base
    ordered = list(base)
    for entry in sorted(moved, key=lambda e: e.path):
        index = next(
            (i for i, existing in enumerate(ordered) if existing.path > entry.path),
            None,
        )
        if index is None:
            ordered.append(entry)
        else:
            ordered.insert(index, entry)
    return ordered


def _prune(
    pending: frozenset[str], target_paths: set[str], source_paths: set[str]
) -> frozenset[str]:
    # Confirmed once the target list has the path; dropped once both lists lose it.
    # A partially staged file sits in both lists and is shown in both.
    return frozenset(
        path
        for path in pending
        if path not in target_paths and path in source_paths
    )


def _merge(
    target: list[FileEntry],
    source: list[FileEntry],
    moving_in: frozenset[str],
    moving_out: frozenset[str],
    status: str,
) -> list[FileEntry]:
    base = [entry for entry in target if entry.path not in moving_out]
    present = {entry.path for entry in base}
    moved: list[FileEntry] = []
    for entry in source:
        if entry.path in moving_in and entry.path not in present:
            moved.append(entry.moved_to(status))
            present.add(entry.path)
    return insert_by_path(base, moved)


def reconcile(
    staged: list[FileEntry],
    unstaged: list[FileEntry],
    pending: PendingIntent,
) -> ReconciledView:
    """Build both displayed lists from one poll and the current pending moves."""
    staged_paths = {entry.path for entry in staged}
    unstaged_paths = {entry.path for entry in unstaged}
    pruned = PendingIntent(
        stage=_prune(pending.stage, staged_paths, unstaged_paths),
        unstage=_prune(pending.unstage, unstaged_paths, staged_paths),
    )
    return ReconciledView(
        staged=_merge(staged, unstaged, pruned.stage, pruned.unstage, "staged"),
        unstaged=_merge(unstaged, staged, pruned.unstage, pruned.stage, "unstaged"),
        pending=pruned,
    )
