from __future__ import annotations

from fastapi import APIRouter, Depends

from diffgate.api.deps import get_runtime
from diffgate.api.schemas import DiffSnapshotResponse
from diffgate.core.runtime import DiffGateRuntime
from diffgate.core.scheduling import to_iso

router = APIRouter(tags=["diffs"])


@router.get("/diffs/latest", response_model=DiffSnapshotResponse)
async def latest_diff(runtime: DiffGateRuntime = Depends(get_runtime)):  # noqa: B008
    """Current snapshot plus the fingerprint a quiz must match for strict mode."""
    snapshot = runtime.require_watcher().get_latest()
    return DiffSnapshotResponse(
        unstaged_patch=snapshot.unstaged_patch,
        staged_patch=snapshot.staged_patch,
        updated_at=to_iso(snapshot.updated_at),
        diff_hash=snapshot.diff_hash,
    )
