"""Comprehension quiz generation over the current diff."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from diffgate.core.errors import GenerationError
from diffgate.llm.generator import TextGenerator
from diffgate.services.ai.normalize import extract_json_object
from diffgate.utils.logger import get_logger

logger = get_logger("services.ai.quiz")

OPTIONS_PER_QUESTION = 4


@dataclass
class QuizQuestion:
    id: str
    prompt: str
    options: list[str]
    answer_index: int
    explanation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["answerIndex"] = data.pop("answer_index")
        if data["explanation"] is None:
            data.pop("explanation")
        return data


def _parse_question(raw: Any, index: int) -> QuizQuestion | None:
    if not isinstance(raw, dict):
        return None
    prompt = raw.get("prompt").strip() if isinstance(raw.get("prompt"), str) else ""
    options = (
        [o.strip() for o in raw["options"] if isinstance(o, str)]
        if isinstance(raw.get("options"), list)
        else []
    )
    answer_index = raw.get("answerIndex")
    if isinstance(answer_index, bool) or not isinstance(answer_index, int):
        answer_index = -1
    if (
        not prompt
        or len(options) != OPTIONS_PER_QUESTION
        or not 0 <= answer_index < OPTIONS_PER_QUESTION
    ):
        return None

    raw_id = raw.get("id")
    explanation = raw.get("explanation")
    return QuizQuestion(
        id=raw_id if isinstance(raw_id, str) and raw_id.strip() else f"q{index + 1}",
        prompt=prompt,
        options=options,
        answer_index=answer_index,
        explanation=explanation.strip() if isinstance(explanation, str) else None,
    )


def parse_quiz(text: str | None) -> list[QuizQuestion] | None:
    """Keep well-formed questions; None when the payload has none."""
    parsed = extract_json_object(text)
    if not parsed or not isinstance(parsed.get("questions"), list):
        return None
    questions = [
        q
        for q in (_parse_question(raw, i) for i, raw in enumerate(parsed["questions"]))
        if q is not None
    ]
    return questions or None


def build_quiz_prompt(
    *,
    repo_path: str | None,
    full_diff: str,
    question_count: int,
    rules: str | None = None,
    include_explanations: bool = True,
) -> str:
    if include_explanations:
        schema = (
            '{"questions":[{"id":"q1","prompt":"...", "options":["A","B","C","D"], '
            '"answerIndex":0, "explanation":"..."}]}'
        )
    else:
        schema = (
            '{"questions":[{"id":"q1","prompt":"...", "options":["A","B","C","D"], '
            '"answerIndex":0}]}'
        )
    rules_block = rules.strip() if rules else ""
    lines = [
        "You are diffgate. Create a comprehension quiz about the code changes.",
        "Use ONLY the provided diff context.",
        "Return ONLY JSON with shape:",
        schema,
        f"Number of questions: {question_count}",
        f"Repository: {repo_path or 'unknown'}",
    ]
    if rules_block:
        lines += ["--- RULES ---", rules_block]
    lines += ["--- CONTEXT ---", full_diff]
    return "\n".join(lines)


async def build_quiz(
    generator: TextGenerator,
    *,
    repo_path: str | None,
    full_diff: str,
    question_count: int,
    rules: str | None = None,
    include_explanations: bool = True,
) -> list[QuizQuestion]:
    prompt = build_quiz_prompt(
        repo_path=repo_path,
        full_diff=full_diff,
        question_count=question_count,
        rules=rules,
        include_explanations=include_explanations,
    )
    response = await generator.generate(prompt)
    questions = parse_quiz(response)
    if not questions:
        logger.warning("Quiz parsing failed", response_chars=len(response))
        raise GenerationError("Quiz parsing failed")
    return questions
