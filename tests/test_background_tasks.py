"""Tests for background task tracking and shutdown."""

import asyncio

import pytest

from diffgate.core.background_tasks import BackgroundTaskManager


@pytest.mark.asyncio
async def test_failures_are_logged_not_raised():
    manager = BackgroundTaskManager()

    async def broken():
        raise RuntimeError("boom")

    task = manager.create_task(broken(), name="broken")
    await task

    assert task.exception() is None
    assert not manager.has_tasks


@pytest.mark.asyncio
async def test_drain_waits_for_tasks_spawned_meanwhile():
    manager = BackgroundTaskManager()
    finished = []

    async def child():
        await asyncio.sleep(0)
        finished.append("child")

    async def parent():
        manager.create_task(child(), name="child")
        finished.append("parent")

    manager.create_task(parent(), name="parent")
    await manager.drain()

    assert finished == ["parent", "child"]
    assert manager.active_count == 0


@pytest.mark.asyncio
async def test_shutdown_cancels_tasks_past_timeout():
    manager = BackgroundTaskManager()
    started = asyncio.Event()

    async def forever():
        started.set()
        await asyncio.Event().wait()

    task = manager.create_task(forever(), name="forever")
    await started.wait()
    await manager.shutdown(timeout=0.05)

    assert task.cancelled()
    assert not manager.has_tasks


@pytest.mark.asyncio
async def test_cancel_all_clears_tracking():
    manager = BackgroundTaskManager()
    task = manager.create_task(asyncio.sleep(10), name="sleep")
    await asyncio.sleep(0)

    manager.cancel_all()
    await asyncio.gather(task, return_exceptions=True)

    assert task.cancelled()
    assert manager.active_count == 0
