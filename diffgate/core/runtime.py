"""Runtime context owned by one server instance.

Holds the immutable repository root and the services built around it. The
FastAPI app keeps a single instance on ``app.state.runtime`` and hands it to
route handlers through ``diffgate.api.deps``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from diffgate.config.settings import Settings
from diffgate.config.validation import validate_repo_path
from diffgate.core.background_tasks import BackgroundTaskManager
from diffgate.core.errors import ConfigurationError
from diffgate.core.scheduling import AsyncioScheduler, Scheduler
from diffgate.llm.generator import ChatOpenAIGenerator, TextGenerator
from diffgate.services.git_gateway import CommandGateway, GitCommandGateway
from diffgate.services.quiz_results import QuizGate
from diffgate.services.watcher import RepoWatcher
from diffgate.utils.logger import get_logger

logger = get_logger("core.runtime")

REPO_NOT_CONFIGURED = "DIFF_REPO_PATH not configured"
GENERATOR_NOT_CONFIGURED = "OPENAI_API_KEY not configured"


@dataclass
class DiffGateRuntime:
    repo_path: str | None = None
    gateway: CommandGateway | None = None
    watcher: RepoWatcher | None = None
    quiz_gate: QuizGate | None = None
    tasks: BackgroundTaskManager = field(default_factory=BackgroundTaskManager)
    quiz_generator: TextGenerator | None = None
    commit_message_generator: TextGenerator | None = None
    review_generator: TextGenerator | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.repo_path) and self.watcher is not None

    def require_repo(self) -> str:
        if not self.repo_path:
            raise ConfigurationError(REPO_NOT_CONFIGURED)
        return self.repo_path

    def require_watcher(self) -> RepoWatcher:
        if self.watcher is None:
            raise ConfigurationError(REPO_NOT_CONFIGURED)
        return self.watcher

    def require_gateway(self) -> CommandGateway:
        if self.gateway is None:
            raise ConfigurationError(REPO_NOT_CONFIGURED)
        return self.gateway

    def require_quiz_gate(self) -> QuizGate:
        if self.quiz_gate is None:
            raise ConfigurationError(REPO_NOT_CONFIGURED)
        return self.quiz_gate

    def require_generator(self, kind: str) -> TextGenerator:
        generator = {
            "quiz": self.quiz_generator,
            "review": self.review_generator,
        }.get(kind, self.commit_message_generator)
        if generator is None:
            raise ConfigurationError(GENERATOR_NOT_CONFIGURED)
        return generator

    async def start(self) -> None:
        if self.watcher is not None:
            await self.watcher.start()

    async def stop(self) -> None:
        if self.watcher is not None:
            await self.watcher.stop()
        await self.tasks.shutdown(timeout=5.0)


def build_runtime(
    settings: Settings,
    *,
    repo_path: str | None = None,
    gateway: CommandGateway | None = None,
    scheduler: Scheduler | None = None,
) -> DiffGateRuntime:
    """Wire services for ``repo_path`` (or ``settings.repo_path``).

    Without a usable repository the runtime is returned unconfigured and every
    repository-dependent operation raises ConfigurationError.
    """
    repo_path = repo_path or settings.repo_path
    tasks = BackgroundTaskManager()

    generators: dict[str, TextGenerator | None] = {
        "quiz": None,
        "commit": None,
        "review": None,
    }
    api_key = settings.openai_api_key
    if api_key:
        options = settings.get_provider_config("openai").get("options") or {}
        models = {
            "quiz": settings.quiz_model,
            "commit": settings.commit_message_model,
            "review": settings.review_model,
        }
        for kind, model in models.items():
            generators[kind] = ChatOpenAIGenerator(
                model,
                api_key=api_key,
                base_url=settings.openai_base_url,
                options=options,
            )

    if not repo_path:
        logger.error("Missing DIFF_REPO_PATH; diff endpoints will answer 503")
        return DiffGateRuntime(
            tasks=tasks,
            quiz_generator=generators["quiz"],
            commit_message_generator=generators["commit"],
            review_generator=generators["review"],
        )

    errors = validate_repo_path(repo_path)
    if errors:
        # Keep the path: git failures surface per request and in refresh logs
        logger.warning("Repository path looks unusable", errors=errors)

    gateway = gateway or GitCommandGateway(repo_path, timeout=settings.git_timeout_s)
    watcher = RepoWatcher(
        repo_path,
        gateway,
        scheduler or AsyncioScheduler(),
        tasks,
        debounce_ms=settings.debounce_ms,
        ignore_dirs=settings.watch_ignore_dirs,
        discard_stale=settings.discard_stale_refreshes,
    )
    return DiffGateRuntime(
        repo_path=repo_path,
        gateway=gateway,
        watcher=watcher,
        quiz_gate=QuizGate(repo_path),
        tasks=tasks,
        quiz_generator=generators["quiz"],
        commit_message_generator=generators["commit"],
        review_generator=generators["review"],
    )
