"""VCS write endpoints.

Each write re-reads the diff right away (except push, which leaves the
working tree untouched) so pollers see the change without waiting out the
watcher's debounce window.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from diffgate.api.deps import get_runtime
from diffgate.api.schemas import CommitRequest, FilePathRequest, OkResponse, PushRequest
from diffgate.core.errors import ExternalCommandError, ValidationError
from diffgate.core.runtime import DiffGateRuntime
from diffgate.utils.logger import get_logger

logger = get_logger("api.git")

router = APIRouter(prefix="/git", tags=["git"])


def _require_file_path(payload: FilePathRequest | None) -> str:
    file_path = payload.file_path if payload else None
    if not file_path:
        raise ValidationError("filePath is required")
    return file_path


async def _enforce_gate(runtime: DiffGateRuntime) -> None:
    fingerprint = runtime.require_watcher().get_latest().diff_hash
    await runtime.require_quiz_gate().ensure_satisfied(fingerprint)


@router.post("/stage", response_model=OkResponse)
async def stage_file(
    payload: FilePathRequest | None = None,
    runtime: DiffGateRuntime = Depends(get_runtime),  # noqa: B008
):
    gateway = runtime.require_gateway()
    file_path = _require_file_path(payload)
    try:
        await gateway.stage(file_path)
    except ExternalCommandError as e:
        logger.error("Failed to stage file", file_path=file_path, error=e.message)
        raise
    runtime.require_watcher().trigger_refresh()
    return OkResponse()


@router.post("/unstage", response_model=OkResponse)
async def unstage_file(
    payload: FilePathRequest | None = None,
    runtime: DiffGateRuntime = Depends(get_runtime),  # noqa: B008
):
    gateway = runtime.require_gateway()
    file_path = _require_file_path(payload)
    try:
        await gateway.unstage(file_path)
    except ExternalCommandError as e:
        logger.error("Failed to unstage file", file_path=file_path, error=e.message)
        raise
    runtime.require_watcher().trigger_refresh()
    return OkResponse()


@router.post("/commit", response_model=OkResponse)
async def commit(
    payload: CommitRequest | None = None,
    runtime: DiffGateRuntime = Depends(get_runtime),  # noqa: B008
):
    gateway = runtime.require_gateway()
    payload = payload or CommitRequest()
    message = (payload.message or "").strip()
    if not message:
        raise ValidationError("Commit message is required")

    if payload.strict_mode:
        await _enforce_gate(runtime)
    try:
        await gateway.commit(message)
    except ExternalCommandError as e:
        logger.error("Failed to commit", error=e.message)
        raise
    logger.info("Committed changes", strict_mode=payload.strict_mode)
    runtime.require_watcher().trigger_refresh()
    return OkResponse()


@router.post("/push", response_model=OkResponse)
async def push(
    payload: PushRequest | None = None,
    runtime: DiffGateRuntime = Depends(get_runtime),  # noqa: B008
):
    gateway = runtime.require_gateway()
    payload = payload or PushRequest()
    if payload.strict_mode:
        await _enforce_gate(runtime)
    try:
        await gateway.push()
    except ExternalCommandError as e:
        logger.error("Failed to push", error=e.message)
        raise
    logger.info("Pushed changes", strict_mode=payload.strict_mode)
    return OkResponse()


@router.post("/stash", response_model=OkResponse)
async def stash(runtime: DiffGateRuntime = Depends(get_runtime)):  # noqa: B008
    gateway = runtime.require_gateway()
    try:
        await gateway.stash()
    except ExternalCommandError as e:
        logger.error("Failed to stash", error=e.message)
        raise
    runtime.require_watcher().trigger_refresh()
    return OkResponse()
