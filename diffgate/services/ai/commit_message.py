"""Commit message generation from the current diff."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from diffgate.core.errors import GenerationError
from diffgate.llm.generator import TextGenerator
from diffgate.services.ai.normalize import extract_json_object


class CommitMessageStyle(str, Enum):
    CONVENTIONAL = "conventional"
    DESCRIPTIVE = "descriptive"
    SIMPLE = "simple"


STYLE_INSTRUCTIONS = {
    CommitMessageStyle.CONVENTIONAL: (
        "Use conventional commits format: type(scope): description. "
        "Types: feat, fix, docs, style, refactor, test, chore."
    ),
    CommitMessageStyle.DESCRIPTIVE: (
        "Write a descriptive commit message that explains what changed and why."
    ),
    CommitMessageStyle.SIMPLE: (
        "Write a short, simple commit message summarizing the changes."
    ),
}


@dataclass
class CommitMessage:
    subject: str
    body: str | None = None


def parse_commit_message(text: str | None) -> CommitMessage | None:
    parsed = extract_json_object(text)
    if not parsed:
        return None
    subject = parsed.get("subject")
    if not isinstance(subject, str) or not subject.strip():
        return None
    body = parsed.get("body")
    return CommitMessage(
        subject=subject.strip(),
        body=body.strip() if isinstance(body, str) and body.strip() else None,
    )


def build_commit_message_prompt(
    *,
    repo_path: str | None,
    full_diff: str,
    style: CommitMessageStyle,
    include_body: bool,
    recent_subjects: list[str] | None = None,
    custom_rules: str | None = None,
) -> str:
    if recent_subjects:
        style_section = [
            "IMPORTANT: Match the style and format of the previous commit messages in this repository.",
            "--- RECENT COMMIT MESSAGES (for style reference) ---",
            *(f"{i + 1}. {msg}" for i, msg in enumerate(recent_subjects)),
            "--- END RECENT COMMITS ---",
            "Analyze the patterns above (capitalization, prefixes, tense, length) and follow the same style.",
        ]
    else:
        style_section = [f"Style: {STYLE_INSTRUCTIONS[style]}"]

    body_instruction = (
        "Include a body with more details about the changes."
        if include_body
        else "Do not include a body, only the subject line."
    )
    rules_block = custom_rules.strip() if custom_rules else ""

    lines = [
        "You are diffgate. Generate a git commit message for the provided changes.",
        "Analyze the diff carefully and create an appropriate commit message.",
        "Return ONLY JSON with shape:",
        '{"subject":"...", "body":"..." or null}',
        *style_section,
        body_instruction,
        f"Repository: {repo_path or 'unknown'}",
    ]
    if rules_block:
        lines += ["--- CUSTOM RULES ---", rules_block]
    lines += ["--- DIFF ---", full_diff]
    return "\n".join(lines)


async def generate_commit_message(
    generator: TextGenerator,
    *,
    repo_path: str | None,
    full_diff: str,
    style: CommitMessageStyle = CommitMessageStyle.CONVENTIONAL,
    include_body: bool = False,
    recent_subjects: list[str] | None = None,
    custom_rules: str | None = None,
) -> CommitMessage:
    prompt = build_commit_message_prompt(
        repo_path=repo_path,
        full_diff=full_diff,
        style=style,
        include_body=include_body,
        recent_subjects=recent_subjects,
        custom_rules=custom_rules,
    )
    parsed = parse_commit_message(await generator.generate(prompt))
    if parsed is None:
        raise GenerationError("Commit message generation failed")
    return parsed
