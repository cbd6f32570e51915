from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from diffgate import __version__
from diffgate.api.routes.ai import router as ai_router
from diffgate.api.routes.config import router as config_router
from diffgate.api.routes.diffs import router as diffs_router
from diffgate.api.routes.git import router as git_router
from diffgate.api.routes.health import router as health_router
from diffgate.api.routes.quiz import router as quiz_router
from diffgate.api.routes.repo import router as repo_router
from diffgate.config import settings
from diffgate.core.errors import DiffGateError
from diffgate.core.runtime import DiffGateRuntime, build_runtime
from diffgate.utils.logger import api_logger, request_log


def _format_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "Invalid request: " + "; ".join(parts) if parts else "Invalid request"


@asynccontextmanager
async def lifespan(app: FastAPI):
    runtime: DiffGateRuntime = app.state.runtime
    try:
        await runtime.start()
    except OSError as e:
        # Snapshot stays at its initial value; requests still report git errors
        api_logger.error(
            "Failed to start repository watcher",
            repo=runtime.repo_path,
            error=str(e),
        )

    config_manager = getattr(app.state, "config_manager", None)
    if config_manager is not None:

        def on_config_change(new_config):
            watcher = runtime.watcher
            debounce_ms = new_config.get("debounce_ms")
            if watcher is not None and isinstance(debounce_ms, int):
                if debounce_ms != watcher.debounce_ms:
                    api_logger.info(
                        "Applying new debounce window",
                        old=watcher.debounce_ms,
                        new=debounce_ms,
                    )
                    watcher.debounce_ms = debounce_ms

        config_manager.register_change_callback(on_config_change)
        await config_manager.start_watching()
        api_logger.info("Config file watcher started with change callback")

    yield

    try:
        api_logger.info("Starting shutdown cleanup")
        if config_manager is not None:
            try:
                await config_manager.stop_watching()
                api_logger.info("Config file watcher stopped")
            except asyncio.CancelledError:
                api_logger.debug("Config watcher stop cancelled, continuing cleanup")
        await runtime.stop()
        api_logger.info("Shutdown completed")
    except Exception as e:
        api_logger.error("Shutdown cleanup failed", exc_info=True, error=str(e))


def create_app(runtime: DiffGateRuntime | None = None) -> FastAPI:
    app = FastAPI(
        title="diffgate",
        description="Live git diff server with a pre-commit comprehension quiz gate",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.runtime = runtime or build_runtime(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(repo_router)
    app.include_router(diffs_router)
    app.include_router(git_router)
    app.include_router(quiz_router)
    app.include_router(ai_router)
    app.include_router(config_router)

    @app.exception_handler(DiffGateError)
    async def handle_diffgate_error(request: Request, exc: DiffGateError):
        log = api_logger.error if exc.status_code >= 500 else api_logger.warning
        log(
            "Request failed",
            path=request.url.path,
            status_code=exc.status_code,
            error_type=type(exc).__name__,
            error=exc.message,
        )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        message = _format_validation_error(exc)
        api_logger.warning("Invalid request body", path=request.url.path, error=message)
        return JSONResponse(status_code=400, content={"error": message})

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        # Pollers hit /diffs/latest every second
        if request.url.path != "/diffs/latest" or response.status_code >= 400:
            request_log(
                api_logger,
                request.method,
                request.url.path,
                response.status_code,
                round((time.perf_counter() - start) * 1000, 1),
            )
        return response

    return app
