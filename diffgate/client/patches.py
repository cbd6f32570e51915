"""Patch text to per-file sidebar entries."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal

from unidiff import PatchSet

FileStatus = Literal["staged", "unstaged"]


@dataclass(frozen=True)
class FileEntry:
    key: str
    path: str
    additions: int
    deletions: int
    status: FileStatus

    def moved_to(self, status: FileStatus) -> FileEntry:
        """Copy re-tagged for the opposite list while a move is pending."""
        return replace(self, key=f"{status}:{self.path}:pending", status=status)


def parse_patch_files(patch_text: str, status: FileStatus) -> list[FileEntry]:
    """One entry per file section of ``patch_text``, in patch order.

    Keys are ``{status}:{path}:{index}``. Raises ``unidiff.UnidiffParseError``
    for text that is not a unified diff.
    """
    if not patch_text.strip():
        return []
    entries = []
    for index, patched_file in enumerate(PatchSet(patch_text)):
        path = patched_file.path or "Untitled"
        entries.append(
            FileEntry(
                key=f"{status}:{path}:{index}",
                path=path,
                additions=patched_file.added,
                deletions=patched_file.removed,
                status=status,
            )
        )
    return entries
