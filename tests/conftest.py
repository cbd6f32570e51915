"""Shared pytest fixtures for all tests."""

from __future__ import annotations

import asyncio
import shutil
import subprocess
from collections import deque
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from diffgate.core.background_tasks import BackgroundTaskManager
from diffgate.core.errors import ExternalCommandError
from diffgate.core.runtime import DiffGateRuntime
from diffgate.core.scheduling import Scheduler
from diffgate.llm.generator import TextGenerator
from diffgate.services.git_gateway import CommandGateway
from diffgate.services.quiz_results import QuizGate
from diffgate.services.watcher import RepoWatcher

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")

SAMPLE_UNSTAGED = """\
diff --git a/src/a.ts b/src/a.ts
index 83db48f..bf269f4 100644
--- a/src/a.ts
+++ b/src/a.ts
@@ -1,3 +1,4 @@
 export const a = 1
-export const b = 2
+export const b = 3
+export const c = 4
 export default a
diff --git a/src/b.ts b/src/b.ts
index 1f2c3d4..5e6f7a8 100644
--- a/src/b.ts
+++ b/src/b.ts
@@ -1,2 +1,2 @@
-const x = 1
+const x = 2
 export { x }
"""

SAMPLE_STAGED = """\
diff --git a/README.md b/README.md
index 0a1b2c3..4d5e6f7 100644
--- a/README.md
+++ b/README.md
@@ -1 +1,2 @@
 # demo
+Some docs.
"""


class ManualTimer:
    def __init__(self, when: datetime, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler(Scheduler):
    """Fake clock: timers fire only when the test calls ``advance``."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2024, 1, 1, tzinfo=UTC)
        self.timers: list[ManualTimer] = []

    def schedule(self, delay: float, callback) -> ManualTimer:
        timer = ManualTimer(self.current + timedelta(seconds=delay), callback)
        self.timers.append(timer)
        return timer

    def now(self) -> datetime:
        return self.current

    @property
    def pending(self) -> list[ManualTimer]:
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds: float) -> int:
        """Move the clock forward and fire due timers; returns how many fired."""
        self.current += timedelta(seconds=seconds)
        due = sorted(
            (t for t in self.pending if t.when <= self.current), key=lambda t: t.when
        )
        for timer in due:
            self.timers.remove(timer)
            timer.callback()
        return len(due)


@dataclass
class ScriptedRead:
    unstaged: str
    staged: str
    release: asyncio.Event


class FakeGateway(CommandGateway):
    """In-memory gateway recording writes; reads can be held until released."""

    def __init__(self, unstaged: str = "", staged: str = ""):
        self.unstaged = unstaged
        self.staged = staged
        self.calls: list[tuple] = []
        self.diff_reads = 0
        self.read_error: Exception | None = None
        self.write_errors: dict[str, Exception] = {}
        self.subjects: list[str] = []
        self._unstaged_script: deque[ScriptedRead] = deque()
        self._staged_script: deque[ScriptedRead] = deque()

    def script(self, unstaged: str, staged: str) -> asyncio.Event:
        """Queue the result of one future refresh; it completes once the event is set."""
        item = ScriptedRead(unstaged, staged, asyncio.Event())
        self._unstaged_script.append(item)
        self._staged_script.append(item)
        return item.release

    async def diff_unstaged(self) -> str:
        self.diff_reads += 1
        if self._unstaged_script:
            item = self._unstaged_script.popleft()
            await item.release.wait()
            return item.unstaged
        if self.read_error:
            raise self.read_error
        return self.unstaged

    async def diff_staged(self) -> str:
        if self._staged_script:
            item = self._staged_script.popleft()
            await item.release.wait()
            return item.staged
        if self.read_error:
            raise self.read_error
        return self.staged

    async def _write(self, name: str, *args) -> None:
        if name in self.write_errors:
            raise self.write_errors[name]
        self.calls.append((name, *args))

    async def stage(self, file_path: str) -> None:
        await self._write("stage", file_path)

    async def unstage(self, file_path: str) -> None:
        await self._write("unstage", file_path)

    async def commit(self, message: str) -> None:
        await self._write("commit", message)

    async def push(self) -> None:
        await self._write("push")

    async def stash(self) -> None:
        await self._write("stash")

    async def recent_commit_subjects(self, count: int = 10) -> list[str]:
        return self.subjects[:count]


class FakeGenerator(TextGenerator):
    """Returns ``response``, or the reply of the first ``replies`` key found in the prompt."""

    def __init__(self, response: str = "", replies: dict[str, str] | None = None):
        self.response = response
        self.replies = replies or {}
        self.failures: dict[str, Exception] = {}
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        for marker, error in self.failures.items():
            if marker in prompt:
                raise error
        for marker, reply in self.replies.items():
            if marker in prompt:
                return reply
        return self.response


def git_failure(command: str = "commit") -> ExternalCommandError:
    return ExternalCommandError(
        f"git {command} failed: fatal: something broke",
        command=["git", command],
        exit_code=128,
        stderr="fatal: something broke",
    )


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path_factory):
    """Keep tests away from the real config dir and ambient env settings."""
    config_dir = Path(tmp_path_factory.mktemp("global_config"))
    monkeypatch.setenv("DIFFGATE_CONFIG_DIR", str(config_dir))
    for key in ("DIFF_REPO_PATH", "OPENAI_API_KEY", "OPENAI_BASE_URL", "CORS_ORIGIN"):
        monkeypatch.delenv(key, raising=False)
    return config_dir


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway(unstaged=SAMPLE_UNSTAGED, staged=SAMPLE_STAGED)


@pytest.fixture
def repo_dir(tmp_path: Path) -> Path:
    """Directory shaped like a working copy (no real git needed)."""
    root = tmp_path / "repo"
    (root / ".git").mkdir(parents=True)
    return root


@pytest.fixture
def make_runtime(repo_dir, gateway, scheduler):
    """Build a runtime over the fake gateway; keyword args override fields."""

    def _make(**overrides) -> DiffGateRuntime:
        tasks = BackgroundTaskManager()
        watcher = RepoWatcher(repo_dir, gateway, scheduler, tasks)
        fields = {
            "repo_path": str(repo_dir),
            "gateway": gateway,
            "watcher": watcher,
            "quiz_gate": QuizGate(repo_dir),
            "tasks": tasks,
        }
        fields.update(overrides)
        return DiffGateRuntime(**fields)

    return _make


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Real git repository with one commit; skipped when git is missing."""
    if shutil.which("git") is None:
        pytest.skip("git not installed")
    root = tmp_path / "git-repo"
    root.mkdir()

    def git(*args: str) -> None:
        subprocess.run(["git", *args], cwd=root, check=True, capture_output=True)

    git("init", "-q")
    git("config", "user.email", "dev@example.com")
    git("config", "user.name", "Dev")
    git("config", "commit.gpgsign", "false")
    (root / "a.txt").write_text("one\n")
    (root / "b.txt").write_text("two\n")
    git("add", ".")
    git("commit", "-q", "-m", "Initial commit")
    return root
