"""Append-only quiz result log and the strict-mode commit gate.

Results live in one JSON array per repository, newest first, at
``<repo>/.diffgate/quiz-results.json``. Records are never edited or removed.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

from diffgate.config.constants import QUIZ_RESULTS_FILE_NAME, STATE_DIR_NAME
from diffgate.core.errors import GateViolation, PersistenceError
from diffgate.utils.logger import get_logger

logger = get_logger("services.quiz_results")

GATE_VIOLATION_MESSAGE = "Pre-commit quiz must be completed."


def results_path(repo_path: str | Path) -> Path:
    return Path(repo_path) / STATE_DIR_NAME / QUIZ_RESULTS_FILE_NAME


def _read_sync(path: Path) -> list[dict[str, Any]]:
    try:
        data = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    except OSError as e:
        raise PersistenceError(f"Failed to read quiz results: {e}") from e

    try:
        parsed = json.loads(data)
    except json.JSONDecodeError as e:
        raise PersistenceError(
            f"Quiz results file is not valid JSON ({path}): {e}"
        ) from e
    if not isinstance(parsed, list):
        raise PersistenceError(f"Quiz results file must hold a JSON array: {path}")
    return parsed


def _write_sync(path: Path, results: list[dict[str, Any]]) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(
            json.dumps(results, ensure_ascii=False, indent=2), encoding="utf-8"
        )
        tmp_path.replace(path)
    except OSError as e:
        raise PersistenceError(f"Failed to write quiz results: {e}") from e


async def read_quiz_results(repo_path: str | Path) -> list[dict[str, Any]]:
    """Return all stored results, newest first; empty if nothing was stored yet."""
    return await asyncio.to_thread(_read_sync, results_path(repo_path))


async def append_quiz_result(
    repo_path: str | Path, result: dict[str, Any]
) -> dict[str, Any]:
    """Prepend ``result`` to the stored sequence, creating the file if needed."""
    path = results_path(repo_path)
    existing = await asyncio.to_thread(_read_sync, path)
    await asyncio.to_thread(_write_sync, path, [result, *existing])
    return result


class QuizGate:
    """Quiz result log for one repository plus the strict-mode check."""

    def __init__(self, repo_path: str | Path):
        self.repo_path = Path(repo_path)
        # Serializes read-modify-write appends within this process
        self._write_lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return results_path(self.repo_path)

    async def read(self) -> list[dict[str, Any]]:
        return await read_quiz_results(self.repo_path)

    async def record(self, result: dict[str, Any]) -> dict[str, Any]:
        async with self._write_lock:
            stored = await append_quiz_result(self.repo_path, result)
        logger.info(
            "Quiz result recorded",
            result_id=result.get("id"),
            diff_hash=result.get("diffHash"),
            score=result.get("score"),
            total=result.get("total"),
        )
        return stored

    async def is_satisfied(self, fingerprint: str) -> bool:
        """True iff a stored result was taken on exactly this diff.

        Always re-reads the file so results recorded by another request count.
        """
        results = await self.read()
        return any(
            isinstance(r, dict) and r.get("diffHash") == fingerprint for r in results
        )

    async def ensure_satisfied(self, fingerprint: str) -> None:
        if not await self.is_satisfied(fingerprint):
            logger.warning("Strict-mode gate rejected", diff_hash=fingerprint)
            raise GateViolation(GATE_VIOLATION_MESSAGE)
