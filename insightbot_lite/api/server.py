"""aiohttp server for the insightbot_lite TRMNL plugin."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from typing import Any

from ..core.config_manager import (
    DEFAULT_DATABASE_PATH,
    DEFAULT_SERVER_BIND,
    DEFAULT_SERVER_PORT,
    get_config_value,
)
from ..core.http_client import close_all_clients, get_shared_client
from ..storage.installations import InstallationStore

logger = logging.getLogger(__name__)


def make_app(config: Any, store: InstallationStore, http_client: Any) -> Any:
    """Create the aiohttp application with every plugin route registered.

    Args:
        config: Application configuration (dict or attribute object)
        store: Installation store shared by all handlers
        http_client: httpx.AsyncClient for PostHog and TRMNL requests

    Returns:
        aiohttp.web.Application
    """
    from aiohttp import web

    from .routes import (
        register_install_routes,
        register_markup_routes,
        register_settings_routes,
    )

    app = web.Application()

    register_install_routes(app, config=config, store=store, http_client=http_client)
    register_settings_routes(app, store=store)
    register_markup_routes(app, config=config, store=store, http_client=http_client)

    async def _shutdown(_app: Any) -> None:
        logger.info("Application shutdown requested")

    app.on_shutdown.append(_shutdown)
    return app


async def _serve(config: Any, external_stop_event: asyncio.Event | None = None) -> None:
    """Run the server until signalled to stop.

    Args:
        config: Server configuration object/dict.
        external_stop_event: Optional event to signal shutdown. If provided,
            signal handlers are not registered (caller owns signal handling).
    """
    from aiohttp import web

    stop_event = external_stop_event or asyncio.Event()

    if not get_config_value(config, "trmnl_client_id") or not get_config_value(
        config, "trmnl_client_secret"
    ):
        logger.warning("TRMNL_CLIENT_ID or TRMNL_CLIENT_SECRET not set; installs will fail")

    store = InstallationStore(get_config_value(config, "database_path", DEFAULT_DATABASE_PATH))
    http_client = await get_shared_client("lite_server")

    app = make_app(config, store, http_client)
    runner = web.AppRunner(app)
    await runner.setup()

    host = get_config_value(config, "server_bind", DEFAULT_SERVER_BIND)
    port = int(get_config_value(config, "server_port", DEFAULT_SERVER_PORT))
    site = web.TCPSite(runner, host=host, port=port)
    try:
        await site.start()
    except OSError:
        logger.exception("Failed to start server on %s:%d", host, port)
        await runner.cleanup()
        await close_all_clients()
        raise

    logger.info("TRMNL PostHog plugin running on http://%s:%d", host, port)

    if external_stop_event is None:
        loop = asyncio.get_running_loop()

        def _on_signal() -> None:
            logger.info("Shutdown signal received")
            stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, _on_signal)
    else:
        logger.debug("Using external stop event - skipping signal handler registration")

    await stop_event.wait()
    logger.info("Stop event received, shutting down")

    await runner.cleanup()

    try:
        await close_all_clients()
        logger.debug("Shared HTTP clients cleaned up")
    except Exception as e:
        logger.warning("Error cleaning up shared HTTP clients: %s", e)

    logger.info("Server shutdown complete")


def start_server(config: Any) -> None:
    """Start the asyncio event loop and HTTP server.

    Args:
        config: dict or dataclass-like object with keys:
            - server_bind: host to bind (str)
            - server_port: port (int)
            - database_path: SQLite file holding installations (str)
            - trmnl_client_id / trmnl_client_secret: TRMNL OAuth credentials
            - refresh_rate_seconds: device refresh interval for rendered insights
            - error_refresh_rate_seconds: refresh interval for error/setup screens
            - debug_logging: enable debug logging for insightbot_lite (bool)

    Blocks the calling thread until SIGINT/SIGTERM is received.
    """
    from ..lite_logging import configure_lite_logging

    debug_mode = bool(get_config_value(config, "debug_logging", False))
    configure_lite_logging(debug_mode=debug_mode)
    logger.info("Logging configuration applied: debug_mode=%s", debug_mode)

    try:
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception:
        logger.exception("Server terminated unexpectedly")
        raise
