"""Structured logging for diffgate using structlog.

Stdlib records (uvicorn, watchdog, httpx) are routed through the same
structlog formatter as our own loggers. Output format, colors and level come
from ``LOG_FORMAT``, ``LOG_COLORS`` and ``LOG_LEVEL``.
"""

import logging
import os

import structlog
from structlog.types import FilteringBoundLogger, Processor

# Third-party loggers that are noisy at the root level
LIBRARY_LEVELS: dict[str, int] = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "openai": logging.INFO,
    "watchdog": logging.INFO,
}


def env_flag(name: str, default: bool = True) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("true", "1", "yes", "on")


def build_renderer(log_format: str | None = None, colors: bool | None = None) -> Processor:
    """JSON renderer for ``json``, colored console renderer otherwise."""
    log_format = (log_format or os.getenv("LOG_FORMAT", "pretty")).lower()
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    if colors is None:
        colors = env_flag("LOG_COLORS")
    return structlog.dev.ConsoleRenderer(colors=colors)


def configure_structlog(
    log_format: str | None = None,
    colors: bool | None = None,
    level: str | None = None,
) -> None:
    handler = logging.StreamHandler()
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=build_renderer(log_format, colors),
            foreign_pre_chain=[
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
            ],
        )
    )
    logging.root.handlers = [handler]
    logging.root.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())
    logging.captureWarnings(True)

    for name, library_level in LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(library_level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_structlog()


def request_log(
    logger: FilteringBoundLogger,
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    **kwargs,
):
    logger.info(
        f"{method} {path} - {status_code}",
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=duration_ms,
        **kwargs,
    )


def get_logger(name: str, level: int = logging.INFO) -> FilteringBoundLogger:
    logging.getLogger(name).setLevel(level)
    return structlog.get_logger(name)


logger = get_logger("diffgate")
api_logger = get_logger("diffgate.api", level=logging.DEBUG)
watcher_logger = get_logger("diffgate.watcher", level=logging.DEBUG)
client_logger = get_logger("diffgate.client", level=logging.DEBUG)
