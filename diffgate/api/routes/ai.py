"""Text-generation endpoints over the current diff."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from diffgate.api.deps import get_runtime
from diffgate.api.schemas import (
    CodeReviewRequest,
    CodeReviewResponse,
    CodeReviewStats,
    CommitMessageRequest,
    CommitMessageResponse,
    QuizRequest,
    QuizResponse,
    ReviewConfig,
    ReviewRequest,
    ReviewResponse,
)
from diffgate.config.constants import (
    DEFAULT_COMMIT_HISTORY_COUNT,
    DEFAULT_QUIZ_QUESTION_COUNT,
)
from diffgate.core.errors import GenerationError, ValidationError
from diffgate.core.runtime import DiffGateRuntime
from diffgate.services.ai.code_review import run_code_review
from diffgate.services.ai.commit_message import (
    CommitMessageStyle,
    generate_commit_message,
)
from diffgate.services.ai.quiz import build_quiz
from diffgate.services.ai.review import answer_question, decide_scope
from diffgate.services.diff_hash import extract_file_diff
from diffgate.utils.logger import get_logger

logger = get_logger("api.ai")

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/quiz", response_model=QuizResponse)
async def generate_quiz(
    payload: QuizRequest | None = None,
    runtime: DiffGateRuntime = Depends(get_runtime),  # noqa: B008
):
    """Build a quiz on the current snapshot.

    The returned ``diffHash`` identifies the diff the questions were asked
    about; a result recorded with it satisfies strict mode for that diff only.
    """
    generator = runtime.require_generator("quiz")
    snapshot = runtime.require_watcher().get_latest()
    payload = payload or QuizRequest()
    quiz_config = payload.quiz_config
    count = payload.count or DEFAULT_QUIZ_QUESTION_COUNT

    questions = await build_quiz(
        generator,
        repo_path=runtime.repo_path,
        full_diff=snapshot.combined_diff,
        question_count=count,
        rules=quiz_config.rules if quiz_config else None,
        include_explanations=quiz_config.include_explanations if quiz_config else True,
    )
    logger.info("Quiz generated", questions=len(questions), requested=count)
    return QuizResponse(
        questions=[q.to_dict() for q in questions], diff_hash=snapshot.diff_hash
    )


@router.post("/commit-message", response_model=CommitMessageResponse)
async def commit_message(
    payload: CommitMessageRequest | None = None,
    runtime: DiffGateRuntime = Depends(get_runtime),  # noqa: B008
):
    generator = runtime.require_generator("commit_message")
    snapshot = runtime.require_watcher().get_latest()
    payload = payload or CommitMessageRequest()

    recent_subjects: list[str] = []
    if payload.follow_previous_style:
        recent_subjects = await runtime.require_gateway().recent_commit_subjects(
            DEFAULT_COMMIT_HISTORY_COUNT
        )

    message = await generate_commit_message(
        generator,
        repo_path=runtime.repo_path,
        full_diff=snapshot.combined_diff,
        style=CommitMessageStyle(payload.style),
        include_body=payload.include_body,
        recent_subjects=recent_subjects,
        custom_rules=payload.custom_rules,
    )
    return CommitMessageResponse(subject=message.subject, body=message.body)


@router.post("/review", response_model=ReviewResponse)
async def review(
    payload: ReviewRequest | None = None,
    runtime: DiffGateRuntime = Depends(get_runtime),  # noqa: B008
):
    """Answer a question about the selected file or the whole change set."""
    generator = runtime.require_generator("review")
    question = (payload.question or "").strip() if payload else ""
    if not question:
        raise ValidationError("Question is required")
    file_path = (payload.file_path or "").strip() or None
    snapshot = runtime.require_watcher().get_latest()

    file_diff = (
        extract_file_diff(
            f"{snapshot.unstaged_patch}\n{snapshot.staged_patch}", file_path
        )
        if file_path
        else None
    )
    try:
        decision = await decide_scope(generator, question)
        answer = await answer_question(
            generator,
            question=question,
            scope=decision.scope,
            repo_path=runtime.repo_path,
            file_path=file_path,
            file_diff=file_diff,
            full_diff=snapshot.combined_diff,
        )
    except GenerationError as e:
        logger.error("AI review failed", file_path=file_path, error=e.message)
        raise GenerationError("AI review failed") from e
    return ReviewResponse(scope=decision.scope, reason=decision.reason, answer=answer)


@router.post("/code-review", response_model=CodeReviewResponse)
async def code_review(
    payload: CodeReviewRequest | None = None,
    runtime: DiffGateRuntime = Depends(get_runtime),  # noqa: B008
):
    generator = runtime.require_generator("review")
    snapshot = runtime.require_watcher().get_latest()
    config = (payload.review_config if payload else None) or ReviewConfig()

    try:
        result = await run_code_review(
            generator,
            repo_path=runtime.repo_path,
            full_diff=snapshot.combined_diff,
            enable_bug_hunter=config.enable_bug_hunter,
            enable_security=config.enable_security,
            enable_quality=config.enable_quality,
        )
    except GenerationError as e:
        logger.error("Code review failed", error=e.message)
        raise GenerationError("Code review failed") from e
    logger.info("Code review completed", findings=len(result.findings))
    return CodeReviewResponse(
        summary=result.summary,
        findings=[f.to_dict() for f in result.findings],
        stats=CodeReviewStats(**result.stats),
    )
