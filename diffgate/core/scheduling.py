"""Cancellable scheduling and clock abstractions.

The watcher never touches ``loop.call_later`` or ``datetime.now`` directly so
tests can drive debounce windows and refresh timestamps deterministically.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(ABC):
    """Runs callbacks after a delay and reports the current time."""

    @abstractmethod
    def schedule(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Call ``callback`` once after ``delay`` seconds; returns a cancellable handle."""

    @abstractmethod
    def now(self) -> datetime:
        """Current UTC time."""


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self.loop.call_later(delay, callback)

    def now(self) -> datetime:
        return datetime.now(UTC)


EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def to_iso(value: datetime) -> str:
    # Z suffix for UTC to simplify client parsing
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")
