"""Combined diff representation and its content fingerprint.

The same combined text is used when a quiz is generated and when a strict
commit is gated, so both sides must build it through ``build_combined_diff``.
"""

from __future__ import annotations

import hashlib
import re

UNSTAGED_MARKER = "--- UNSTAGED ---"
STAGED_MARKER = "--- STAGED ---"
EMPTY_SECTION = "(none)"


def build_combined_diff(unstaged_patch: str, staged_patch: str) -> str:
    """Join both patches into one text with explicit section markers.

    Whitespace-only patches are rendered as ``(none)``; non-empty patches are
    kept byte for byte.
    """
    unstaged = unstaged_patch if unstaged_patch.strip() else EMPTY_SECTION
    staged = staged_patch if staged_patch.strip() else EMPTY_SECTION
    return "\n".join([UNSTAGED_MARKER, unstaged, "", STAGED_MARKER, staged])


def compute_diff_hash(combined_diff: str) -> str:
    """SHA-256 hex digest of the combined diff's UTF-8 bytes."""
    return hashlib.sha256(combined_diff.encode("utf-8")).hexdigest()


def snapshot_hash(unstaged_patch: str, staged_patch: str) -> str:
    return compute_diff_hash(build_combined_diff(unstaged_patch, staged_patch))


# Hash of a working copy with no changes at all
EMPTY_DIFF_HASH = snapshot_hash("", "")


def _normalize_path(file_path: str) -> str:
    return re.sub(r"^[\\/]", "", re.sub(r"^\.[\\/]", "", file_path))


def _is_header_for_path(line: str, file_path: str) -> bool:
    if not line.startswith("diff --git "):
        return False
    parts = line.split(" ")
    a_path = parts[2].removeprefix("a/") if len(parts) > 2 else ""
    b_path = parts[3].removeprefix("b/") if len(parts) > 3 else ""
    return file_path in (a_path, b_path)


def extract_file_diff(patch: str, file_path: str) -> str | None:
    """Return the ``diff --git`` section of ``patch`` touching ``file_path``.

    Matches either side of the header so renames can be looked up by their
    old or new name. Returns None when the file is not in the patch.
    """
    if not patch.strip():
        return None

    target = _normalize_path(file_path)
    collecting = False
    buffer: list[str] = []
    for line in patch.split("\n"):
        if line.startswith("diff --git "):
            if collecting:
                return "\n".join(buffer)
            collecting = _is_header_for_path(line, target)
            buffer = [line]
            continue
        if collecting:
            buffer.append(line)

    return "\n".join(buffer) if collecting else None
