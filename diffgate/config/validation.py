"""Validation of the configured repository root."""

from __future__ import annotations

from pathlib import Path


def validate_repo_path(repo_path: str | None) -> list[str]:
    """Return a list of problems with ``repo_path``; empty means usable.

    A missing value is not an error here: the server starts in an
    unconfigured state and diff-dependent endpoints answer 503.
    """
    if not repo_path:
        return []

    root = Path(repo_path).expanduser()
    errors: list[str] = []
    if not root.exists():
        errors.append(f"Repository path does not exist: {root}")
    elif not root.is_dir():
        errors.append(f"Repository path is not a directory: {root}")
    elif not (root / ".git").exists():
        errors.append(f"Repository path is not a git working copy: {root}")
    return errors
