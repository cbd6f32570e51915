from __future__ import annotations

from fastapi import APIRouter, Depends

from diffgate.api.deps import get_runtime
from diffgate.api.schemas import HealthResponse
from diffgate.core.runtime import DiffGateRuntime

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(runtime: DiffGateRuntime = Depends(get_runtime)):  # noqa: B008
    return HealthResponse(repo_configured=runtime.is_configured)
