from __future__ import annotations

from fastapi import APIRouter, Depends

from diffgate.api.deps import get_runtime
from diffgate.api.schemas import RepoResponse
from diffgate.core.runtime import DiffGateRuntime

router = APIRouter()


@router.get("/repo", response_model=RepoResponse)
async def get_repo(runtime: DiffGateRuntime = Depends(get_runtime)):  # noqa: B008
    return RepoResponse(path=runtime.require_repo())
