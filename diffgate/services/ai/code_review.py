"""Multi-agent code review of the current diff.

Each enabled agent (bug hunter, security, quality) reviews the combined diff
independently; findings are merged, ordered by severity and summarized.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Literal

from diffgate.llm.generator import TextGenerator
from diffgate.services.ai.normalize import extract_json_object
from diffgate.utils.logger import get_logger

logger = get_logger("services.ai.code_review")

ReviewCategory = Literal["bug", "security", "quality"]
ReviewSeverity = Literal["critical", "warning", "suggestion"]

SEVERITY_ORDER = {"critical": 0, "warning": 1, "suggestion": 2}
NO_FINDINGS_SUMMARY = "No issues found. The code changes look good!"
FALLBACK_SUMMARY = "Review completed with findings."

FINDINGS_SHAPE = (
    "Return ONLY JSON with this shape:\n"
    '{"findings": [{"severity": "critical|warning|suggestion", "title": "...", '
    '"description": "...", "file": "filename", "line": number}]}\n\n'
    'If no issues found, return {"findings": []}'
)

AGENT_INSTRUCTIONS: dict[str, str] = {
    "bug": """You are a Bug Hunter agent. Analyze the code diff for potential bugs and issues.

Look for:
- Logic errors and incorrect conditions
- Null/undefined reference risks
- Off-by-one errors and boundary issues
- Race conditions and async problems
- Resource leaks (memory, file handles)
- Error handling gaps
- Edge cases not handled""",
    "security": """You are a Security Agent. Analyze the code diff for security vulnerabilities.

Look for OWASP Top 10 and common security issues:
- SQL Injection, Command Injection
- Cross-Site Scripting (XSS)
- Insecure authentication/authorization
- Sensitive data exposure (API keys, passwords, tokens)
- Security misconfigurations
- Insecure deserialization
- Using components with known vulnerabilities
- Improper input validation
- Path traversal vulnerabilities
- Hardcoded secrets or credentials""",
    "quality": """You are a Code Quality Agent. Analyze the code diff for quality improvements.

Look for:
- Code readability issues
- Naming conventions violations
- DRY principle violations (repeated code)
- SOLID principle violations
- Complex/nested conditionals that could be simplified
- Missing or inadequate comments for complex logic
- Inconsistent code style
- Performance anti-patterns
- Better API/library usage opportunities""",
}


@dataclass
class ReviewFinding:
    category: ReviewCategory
    severity: ReviewSeverity
    title: str
    description: str
    file: str | None = None
    line: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "category": self.category,
            "severity": self.severity,
            "title": self.title,
            "description": self.description,
        }
        if self.file is not None:
            data["file"] = self.file
        if self.line is not None:
            data["line"] = self.line
        return data


@dataclass
class CodeReviewResult:
    summary: str
    findings: list[ReviewFinding] = field(default_factory=list)

    @property
    def stats(self) -> dict[str, int]:
        def count(attr: str, value: str) -> int:
            return sum(1 for f in self.findings if getattr(f, attr) == value)

        return {
            "bugs": count("category", "bug"),
            "security": count("category", "security"),
            "quality": count("category", "quality"),
            "critical": count("severity", "critical"),
            "warnings": count("severity", "warning"),
            "suggestions": count("severity", "suggestion"),
        }


def _parse_finding(raw: Any, category: ReviewCategory) -> ReviewFinding | None:
    if not isinstance(raw, dict):
        return None
    title = raw["title"].strip() if isinstance(raw.get("title"), str) else ""
    description = (
        raw["description"].strip() if isinstance(raw.get("description"), str) else ""
    )
    if not title or not description:
        return None
    severity = raw.get("severity")
    line = raw.get("line")
    return ReviewFinding(
        category=category,
        severity=severity if severity in SEVERITY_ORDER else "suggestion",
        title=title,
        description=description,
        file=raw["file"] if isinstance(raw.get("file"), str) else None,
        line=line if isinstance(line, int) and not isinstance(line, bool) else None,
    )


def parse_findings(text: str | None, category: ReviewCategory) -> list[ReviewFinding]:
    """Findings an agent reported; malformed output counts as no findings."""
    parsed = extract_json_object(text)
    if not parsed or not isinstance(parsed.get("findings"), list):
        return []
    findings = (_parse_finding(raw, category) for raw in parsed["findings"])
    return [f for f in findings if f is not None]


def build_agent_prompt(category: ReviewCategory, diff: str, repo_path: str | None) -> str:
    return (
        f"{AGENT_INSTRUCTIONS[category]}\n\n{FINDINGS_SHAPE}\n\n"
        f"Repository: {repo_path or 'unknown'}\n\n--- DIFF ---\n{diff}"
    )


async def run_agent(
    generator: TextGenerator,
    category: ReviewCategory,
    diff: str,
    repo_path: str | None,
) -> list[ReviewFinding]:
    response = await generator.generate(build_agent_prompt(category, diff, repo_path))
    findings = parse_findings(response, category)
    logger.debug("Review agent finished", agent=category, findings=len(findings))
    return findings


async def summarize(generator: TextGenerator, findings: list[ReviewFinding]) -> str:
    if not findings:
        return NO_FINDINGS_SUMMARY
    findings_text = "\n".join(
        f"{i + 1}. [{f.category.upper()}/{f.severity}] {f.title}: {f.description}"
        for i, f in enumerate(findings)
    )
    prompt = (
        "You are a Code Review Summarizer. Create a brief 2-3 sentence summary "
        "of the code review findings.\n\n"
        f"Findings:\n{findings_text}\n\n"
        "Write a concise summary highlighting the most important issues. "
        "Be direct and actionable.\n"
        "Return ONLY the summary text, no JSON or formatting."
    )
    summary = (await generator.generate(prompt)).strip()
    return summary or FALLBACK_SUMMARY


async def run_code_review(
    generator: TextGenerator,
    *,
    repo_path: str | None,
    full_diff: str,
    enable_bug_hunter: bool = True,
    enable_security: bool = True,
    enable_quality: bool = True,
) -> CodeReviewResult:
    enabled: list[ReviewCategory] = [
        category
        for category, on in (
            ("bug", enable_bug_hunter),
            ("security", enable_security),
            ("quality", enable_quality),
        )
        if on
    ]
    results = await asyncio.gather(
        *(run_agent(generator, category, full_diff, repo_path) for category in enabled)
    )
    findings = sorted(
        (f for agent_findings in results for f in agent_findings),
        key=lambda f: SEVERITY_ORDER[f.severity],
    )
    return CodeReviewResult(summary=await summarize(generator, findings), findings=findings)
