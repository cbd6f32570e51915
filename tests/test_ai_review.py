"""Tests for diff questions and multi-agent code review."""

import json

import pytest
from conftest import FakeGenerator
from fastapi.testclient import TestClient

from diffgate.api.app import create_app
from diffgate.core.errors import GenerationError
from diffgate.services.ai.code_review import (
    NO_FINDINGS_SUMMARY,
    parse_findings,
    run_code_review,
)
from diffgate.services.ai.review import (
    build_answer_prompt,
    decide_scope,
    heuristic_scope,
)

SCOPE_PROMPT = "Decide whether"
ANSWER_PROMPT = "--- QUESTION ---"


def findings(*items):
    return json.dumps({"findings": list(items)})


@pytest.mark.parametrize(
    "question,scope",
    [
        ("Is the whole commit ready?", "repo"),
        ("How does this affect the Codebase?", "repo"),
        ("Any issues across files?", "repo"),
        ("Why did b change to 2?", "file"),
    ],
)
def test_heuristic_scope(question, scope):
    assert heuristic_scope(question) == scope


@pytest.mark.asyncio
async def test_decide_scope_uses_generator_answer():
    generator = FakeGenerator('Sure: {"scope": "repo", "reason": "spans files"}')

    decision = await decide_scope(generator, "Why did b change?")

    assert decision.scope == "repo"
    assert decision.reason == "spans files"
    assert "Question: Why did b change?" in generator.prompts[0]


@pytest.mark.asyncio
async def test_decide_scope_falls_back_to_keywords():
    unusable = FakeGenerator('{"scope": "everything"}')
    assert (await decide_scope(unusable, "Is the entire project ok?")).scope == "repo"

    failing = FakeGenerator()
    failing.failures[SCOPE_PROMPT] = GenerationError("Text generation failed: timeout")
    decision = await decide_scope(failing, "What does this line do?")
    assert decision.scope == "file"
    assert decision.reason is None


def test_answer_prompt_prefers_file_diff_for_file_scope():
    prompt = build_answer_prompt(
        question="q",
        scope="file",
        repo_path="/work/app",
        file_path="src/b.ts",
        file_diff="FILE DIFF",
        full_diff="FULL DIFF",
    )

    assert "Scope: file" in prompt
    assert "Selected file: src/b.ts" in prompt
    assert "FILE DIFF" in prompt
    assert "FULL DIFF" not in prompt


def test_answer_prompt_uses_full_diff_without_file_section():
    prompt = build_answer_prompt(
        question="q",
        scope="file",
        repo_path=None,
        file_path="missing.ts",
        file_diff=None,
        full_diff="FULL DIFF",
    )

    assert "Scope: repo" in prompt
    assert "FULL DIFF" in prompt
    assert "Repository: unknown" in prompt


def test_parse_findings_normalizes_entries():
    text = "Report:\n" + findings(
        {"severity": "critical", "title": " Leak ", "description": " fd left open ", "file": "a.ts", "line": 3},
        {"severity": "blocker", "title": "Odd", "description": "unknown severity", "line": True},
        {"title": "No description"},
        "junk",
    )

    parsed = parse_findings(text, "bug")

    assert [f.to_dict() for f in parsed] == [
        {
            "category": "bug",
            "severity": "critical",
            "title": "Leak",
            "description": "fd left open",
            "file": "a.ts",
            "line": 3,
        },
        {
            "category": "bug",
            "severity": "suggestion",
            "title": "Odd",
            "description": "unknown severity",
        },
    ]
    assert parse_findings("no json here", "quality") == []


@pytest.fixture
def review_generator():
    return FakeGenerator(
        replies={
            "Summarizer": "Fix the injection first.",
            "Bug Hunter": findings(
                {"severity": "suggestion", "title": "Rename", "description": "x is vague"}
            ),
            "Security Agent": findings(
                {"severity": "critical", "title": "Injection", "description": "shell=True"}
            ),
            "Code Quality Agent": findings(
                {"severity": "warning", "title": "Duplication", "description": "copy of a.ts"}
            ),
        }
    )


@pytest.mark.asyncio
async def test_code_review_merges_and_orders_findings(review_generator):
    result = await run_code_review(review_generator, repo_path="/work/app", full_diff="DIFF")

    assert [f.title for f in result.findings] == ["Injection", "Duplication", "Rename"]
    assert [f.category for f in result.findings] == ["security", "quality", "bug"]
    assert result.summary == "Fix the injection first."
    assert result.stats == {
        "bugs": 1,
        "security": 1,
        "quality": 1,
        "critical": 1,
        "warnings": 1,
        "suggestions": 1,
    }
    assert "[SECURITY/critical] Injection: shell=True" in review_generator.prompts[-1]


@pytest.mark.asyncio
async def test_code_review_runs_only_enabled_agents(review_generator):
    result = await run_code_review(
        review_generator,
        repo_path=None,
        full_diff="DIFF",
        enable_security=False,
        enable_quality=False,
    )

    assert [f.category for f in result.findings] == ["bug"]
    assert not any("Security Agent" in p for p in review_generator.prompts)


@pytest.mark.asyncio
async def test_clean_review_skips_summarizer():
    generator = FakeGenerator(findings())

    result = await run_code_review(generator, repo_path=None, full_diff="DIFF")

    assert result.findings == []
    assert result.summary == NO_FINDINGS_SUMMARY
    assert len(generator.prompts) == 3


@pytest.fixture
def client(make_runtime, review_generator):
    review_generator.replies[SCOPE_PROMPT] = '{"scope": "file", "reason": "one file"}'
    review_generator.replies[ANSWER_PROMPT] = "x was bumped to 2."
    runtime = make_runtime(review_generator=review_generator)
    with TestClient(create_app(runtime)) as test_client:
        yield test_client


def test_review_answers_from_selected_file(client, review_generator):
    response = client.post(
        "/ai/review", json={"question": " Why did x change? ", "filePath": "./src/b.ts"}
    )

    assert response.status_code == 200
    assert response.json() == {
        "scope": "file",
        "reason": "one file",
        "answer": "x was bumped to 2.",
    }
    prompt = review_generator.prompts[-1]
    assert "diff --git a/src/b.ts b/src/b.ts" in prompt
    assert "src/a.ts" not in prompt
    assert prompt.endswith("--- QUESTION ---\nWhy did x change?")


def test_review_without_file_uses_combined_diff(client, review_generator):
    response = client.post("/ai/review", json={"question": "Anything risky?"})

    assert response.status_code == 200
    prompt = review_generator.prompts[-1]
    assert "Selected file: none" in prompt
    assert "--- UNSTAGED ---" in prompt
    assert "--- STAGED ---" in prompt


@pytest.mark.parametrize("body", [{}, {"question": "   "}, {"filePath": "src/a.ts"}])
def test_review_requires_question(client, body):
    response = client.post("/ai/review", json=body)

    assert response.status_code == 400
    assert response.json() == {"error": "Question is required"}


def test_review_generation_failure(client, review_generator):
    review_generator.failures[ANSWER_PROMPT] = GenerationError(
        "Text generation failed: boom"
    )

    response = client.post("/ai/review", json={"question": "Why?"})

    assert response.status_code == 500
    assert response.json() == {"error": "AI review failed"}


def test_review_endpoints_require_generator(make_runtime):
    with TestClient(create_app(make_runtime())) as client:
        for path, body in (("/ai/review", {"question": "q"}), ("/ai/code-review", {})):
            response = client.post(path, json=body)
            assert response.status_code == 503
            assert response.json() == {"error": "OPENAI_API_KEY not configured"}


def test_code_review_endpoint(client, review_generator):
    response = client.post("/ai/code-review", json={})

    assert response.status_code == 200
    data = response.json()
    assert data["summary"] == "Fix the injection first."
    assert [f["severity"] for f in data["findings"]] == ["critical", "warning", "suggestion"]
    assert data["stats"]["security"] == 1
    assert data["stats"]["suggestions"] == 1
    assert "--- UNSTAGED ---" in review_generator.prompts[0]


def test_code_review_endpoint_honors_review_config(client):
    response = client.post(
        "/ai/code-review",
        json={"reviewConfig": {"enableBugHunter": False, "enableQuality": False}},
    )

    data = response.json()
    assert [f["category"] for f in data["findings"]] == ["security"]
    assert data["stats"] == {
        "bugs": 0,
        "security": 1,
        "quality": 0,
        "critical": 1,
        "warnings": 0,
        "suggestions": 0,
    }


def test_code_review_agent_failure(client, review_generator):
    review_generator.failures["Bug Hunter"] = GenerationError("Text generation failed")

    response = client.post("/ai/code-review", json={})

    assert response.status_code == 500
    assert response.json() == {"error": "Code review failed"}


def test_code_review_requires_repo(make_runtime, review_generator):
    runtime = make_runtime(review_generator=review_generator, watcher=None)
    with TestClient(create_app(runtime)) as client:
        response = client.post("/ai/code-review", json={})

    assert response.status_code == 503
    assert response.json() == {"error": "DIFF_REPO_PATH not configured"}
