"""Free-form questions about the current changes.

A question is answered either from the selected file's section of the diff
or from the whole combined diff. The generator picks the scope; when it
cannot, keywords in the question decide.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from diffgate.core.errors import GenerationError
from diffgate.llm.generator import TextGenerator
from diffgate.services.ai.normalize import extract_json_object
from diffgate.utils.logger import get_logger

logger = get_logger("services.ai.review")

ReviewScope = Literal["file", "repo"]

REPO_SIGNALS = (
    "whole",
    "overall",
    "entire",
    "commit",
    "codebase",
    "repo",
    "project",
    "all changes",
    "across files",
)


@dataclass
class ScopeDecision:
    scope: ReviewScope
    reason: str | None = None


def heuristic_scope(question: str) -> ReviewScope:
    lower = question.lower()
    return "repo" if any(signal in lower for signal in REPO_SIGNALS) else "file"


def parse_scope_decision(text: str | None) -> ScopeDecision | None:
    parsed = extract_json_object(text)
    if not parsed or parsed.get("scope") not in ("file", "repo"):
        return None
    reason = parsed.get("reason")
    return ScopeDecision(
        scope=parsed["scope"],
        reason=reason if isinstance(reason, str) and reason.strip() else None,
    )


async def decide_scope(generator: TextGenerator, question: str) -> ScopeDecision:
    prompt = "\n".join(
        [
            "Decide whether the user question needs only the selected file diff or the full repo diff.",
            'Respond ONLY with JSON: {"scope":"file"|"repo","reason":"short reason"}',
            f"Question: {question}",
        ]
    )
    try:
        decision = parse_scope_decision(await generator.generate(prompt))
    except GenerationError as e:
        logger.warning("Scope decision failed, using keywords", error=e.message)
        decision = None
    return decision or ScopeDecision(scope=heuristic_scope(question))


def build_answer_prompt(
    *,
    question: str,
    scope: ReviewScope,
    repo_path: str | None,
    file_path: str | None,
    file_diff: str | None,
    full_diff: str,
) -> str:
    use_file = scope == "file" and bool(file_diff and file_diff.strip())
    return "\n".join(
        [
            "You are diffgate, a supervisor reviewing code changes.",
            "Answer the user question using ONLY the provided diff context.",
            "If the context is insufficient, say what is missing.",
            f"Repository: {repo_path or 'unknown'}",
            f"Scope: {'file' if use_file else 'repo'}",
            f"Selected file: {file_path or 'none'}",
            "--- CONTEXT ---",
            file_diff if use_file else full_diff,
            "--- QUESTION ---",
            question,
        ]
    )


async def answer_question(
    generator: TextGenerator,
    *,
    question: str,
    scope: ReviewScope,
    repo_path: str | None,
    file_path: str | None,
    file_diff: str | None,
    full_diff: str,
) -> str:
    prompt = build_answer_prompt(
        question=question,
        scope=scope,
        repo_path=repo_path,
        file_path=file_path,
        file_diff=file_diff,
        full_diff=full_diff,
    )
    return await generator.generate(prompt)
