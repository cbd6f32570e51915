from __future__ import annotations

import time
from datetime import UTC, datetime

from fastapi import APIRouter, Depends

from diffgate.api.deps import get_runtime
from diffgate.api.schemas import (
    QuizResultsResponse,
    RecordQuizResultRequest,
    RecordQuizResultResponse,
)
from diffgate.core.errors import ValidationError
from diffgate.core.runtime import DiffGateRuntime
from diffgate.core.scheduling import to_iso
from diffgate.services.quiz_results import QuizGate

router = APIRouter(prefix="/quiz", tags=["quiz"])


def _require_gate(runtime: DiffGateRuntime) -> QuizGate:
    if runtime.quiz_gate is None:
        raise ValidationError("Repository not selected")
    return runtime.quiz_gate


@router.get("/results", response_model=QuizResultsResponse)
async def list_quiz_results(
    runtime: DiffGateRuntime = Depends(get_runtime),  # noqa: B008
):
    """All stored results for the repository, newest first."""
    results = await _require_gate(runtime).read()
    return QuizResultsResponse(results=results)


@router.post("/results", response_model=RecordQuizResultResponse)
async def record_quiz_result(
    payload: RecordQuizResultRequest,
    runtime: DiffGateRuntime = Depends(get_runtime),  # noqa: B008
):
    gate = _require_gate(runtime)
    result = payload.result.model_dump(by_alias=True)
    if result["id"] is None:
        result["id"] = int(time.time() * 1000)
    if not result["completedAt"]:
        result["completedAt"] = to_iso(datetime.now(UTC))
    stored = await gate.record(result)
    return RecordQuizResultResponse(result=stored)
