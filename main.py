#!/usr/bin/env python3
"""Main entry point for the diffgate server.

Bootstraps a Uvicorn ASGI server around diffgate.api.app.create_app().
Loads a .env file from the current directory if present, then reads
~/.diffgate/config.json (or $DIFFGATE_CONFIG_DIR/config.json).
CLI flags take precedence over config and environment variables.
"""

import asyncio
import os
import signal
import sys
from argparse import ArgumentParser
from pathlib import Path

shutdown_event = asyncio.Event()

if __name__ == "__main__":
    # Parse arguments FIRST so --help works without config or logging
    parser = ArgumentParser(description="Start the diffgate server")
    parser.add_argument(
        "--repo",
        help="Path to the git working copy to watch (overrides DIFF_REPO_PATH)",
    )
    parser.add_argument("--host", help="Bind address (overrides SERVER_HOST)")
    parser.add_argument(
        "--port", type=int, help="Port to listen on (overrides SERVER_PORT)"
    )
    parser.add_argument(
        "--log-format",
        choices=["pretty", "json"],
        help="Log format (pretty or json). Overrides config and LOG_FORMAT env var.",
    )
    parser.add_argument(
        "--log-colors",
        type=lambda x: x.lower() in ("true", "1", "yes", "on"),
        help="Enable colored logs (true/false). Overrides config and LOG_COLORS env var.",
    )
    args, _ = parser.parse_known_args()

    # Logging env vars must be set before the logger module is imported
    if args.log_format:
        os.environ["LOG_FORMAT"] = args.log_format
    if args.log_colors is not None:
        os.environ["LOG_COLORS"] = "true" if args.log_colors else "false"

    from dotenv import load_dotenv

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    from diffgate.utils.logger import get_logger

    startup_logger = get_logger("server.startup")

    def signal_handler(signum, frame):
        """Handle shutdown signals gracefully."""
        sig_name = signal.Signals(signum).name
        startup_logger.info(f"Received {sig_name}, initiating graceful shutdown...")
        shutdown_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    from diffgate.config import create_config_manager, get_default_config, settings

    try:
        config_manager = create_config_manager(defaults=get_default_config())
        asyncio.run(config_manager.initialize())
        settings._config_manager = config_manager
    except Exception as e:
        startup_logger.error("Failed to initialize configuration", error=str(e))
        sys.exit(1)

    repo_path = args.repo or settings.repo_path
    if repo_path:
        repo_path = str(Path(repo_path).expanduser().resolve())
    host = args.host or settings.server_host
    port = args.port or settings.server_port

    try:
        import uvicorn

        from diffgate import __version__
        from diffgate.api.app import create_app
        from diffgate.config.logging_config import get_logging_config
        from diffgate.core.runtime import build_runtime

        runtime = build_runtime(settings, repo_path=repo_path)
        app = create_app(runtime)
        app.state.config_manager = config_manager

        startup_logger.info(
            "Starting diffgate server",
            version=__version__,
            server_url=f"http://{host}:{port}",
            repo=repo_path,
            debounce_ms=settings.debounce_ms,
            ai_enabled=runtime.quiz_generator is not None,
        )

        config = uvicorn.Config(
            app,
            host=host,
            port=port,
            log_config=get_logging_config(),
            lifespan="on",
            timeout_graceful_shutdown=5,
        )
        server = uvicorn.Server(config)
        # Signals are handled above
        server.install_signal_handlers = False  # type: ignore[attr-defined]

        async def run_server():
            serve_task = asyncio.create_task(server.serve())
            shutdown_task = asyncio.create_task(shutdown_event.wait())

            done, _pending = await asyncio.wait(
                {shutdown_task, serve_task}, return_when=asyncio.FIRST_COMPLETED
            )

            if shutdown_task in done:
                startup_logger.info("Stopping server due to shutdown signal...")
                server.should_exit = True
                await serve_task
            else:
                shutdown_task.cancel()

        asyncio.run(run_server())
    except ImportError as e:
        startup_logger.error(
            "Error importing required modules",
            error=str(e),
            hint="Run: pip install -e .",
        )
        sys.exit(1)
    except Exception as e:
        startup_logger.error("Error starting server", error=str(e))
        sys.exit(1)
