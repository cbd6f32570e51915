"""API request/response schemas.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from diffgate.config.constants import MAX_QUIZ_QUESTION_COUNT


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(CamelModel):
    status: str = "ok"
    service: str = "diffgate"
    repo_configured: bool = False


class RepoResponse(CamelModel):
    path: str


class OkResponse(CamelModel):
    ok: bool = True


class DiffSnapshotResponse(CamelModel):
    unstaged_patch: str
    staged_patch: str
    updated_at: str
    diff_hash: str


class FilePathRequest(CamelModel):
    # Optional here so a missing value is reported as "filePath is required"
    file_path: str | None = None


class CommitRequest(CamelModel):
    message: str | None = None
    strict_mode: bool = False


class PushRequest(CamelModel):
    strict_mode: bool = False


class QuizQuestion(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    id: str
    prompt: str
    options: list[str]
    answer_index: int | None = None
    explanation: str | None = None


class QuizResult(CamelModel):
    """One completed quiz; ``diff_hash`` pins it to the diff it was taken on."""

    id: int | None = None
    score: int = Field(ge=0)
    total: int = Field(ge=0)
    answered: int = Field(ge=0)
    completed_at: str | None = None
    questions: list[QuizQuestion]
    answers: dict[str, int | None]
    diff_hash: str = Field(min_length=1)


class RecordQuizResultRequest(CamelModel):
    result: QuizResult


class RecordQuizResultResponse(CamelModel):
    result: dict[str, Any]


class QuizResultsResponse(CamelModel):
    results: list[dict[str, Any]]


class QuizConfig(CamelModel):
    rules: str | None = None
    include_explanations: bool = True


class QuizRequest(CamelModel):
    count: int | None = Field(default=None, ge=1, le=MAX_QUIZ_QUESTION_COUNT)
    quiz_config: QuizConfig | None = None


class QuizResponse(CamelModel):
    questions: list[dict[str, Any]]
    diff_hash: str


class CommitMessageRequest(CamelModel):
    style: Literal["conventional", "descriptive", "simple"] = "conventional"
    include_body: bool = False
    follow_previous_style: bool = False
    custom_rules: str | None = None


class CommitMessageResponse(CamelModel):
    subject: str
    body: str | None = None


class ReviewRequest(CamelModel):
    # Optional here so a missing value is reported as "Question is required"
    question: str | None = None
    file_path: str | None = None


class ReviewResponse(CamelModel):
    scope: Literal["file", "repo"]
    reason: str | None = None
    answer: str


class ReviewConfig(CamelModel):
    enable_bug_hunter: bool = True
    enable_security: bool = True
    enable_quality: bool = True


class CodeReviewRequest(CamelModel):
    review_config: ReviewConfig | None = None


class CodeReviewStats(CamelModel):
    bugs: int = 0
    security: int = 0
    quality: int = 0
    critical: int = 0
    warnings: int = 0
    suggestions: int = 0


class CodeReviewResponse(CamelModel):
    summary: str
    findings: list[dict[str, Any]]
    stats: CodeReviewStats


class ConfigResponse(CamelModel):
    config: dict[str, Any]


class ConfigUpdateRequest(CamelModel):
    config: dict[str, Any] | None = None
