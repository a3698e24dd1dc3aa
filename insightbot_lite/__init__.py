"""insightbot_lite - TRMNL plugin that renders PostHog shared insights for e-ink.

The package keeps imports light at the top level so the rendering pipeline can be
used (and tested) without starting the aiohttp server or touching the network.
"""

__version__ = "0.1.0"

from typing import Optional


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to console.

    Installs a colorized console handler on the root logger when no handler is
    present yet. The INSIGHTBOT_DEBUG environment variable (truthy values: "1",
    "true", "yes", "on") forces DEBUG verbosity regardless of ``level_name``.
    """
    import logging
    import os
    import sys

    from colorlog import ColoredFormatter

    debug_env = os.environ.get("INSIGHTBOT_DEBUG", "")
    if debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    # Only configure a handler if none are present to avoid duplicate output.
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        # HH:MM:SS  LEVEL   logger.name: message (only the level is colorized)
        fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
        log_colors = {
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        }
        handler.setFormatter(ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors))
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
    root.setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )


def run_server(args: Optional[object] = None) -> None:
    """Start the insightbot_lite HTTP server.

    Args:
        args: Optional command line namespace carrying ``port`` and ``debug``.

    Behavior:
    - Initialize console logging early using INSIGHTBOT_LOG_LEVEL (env) if present.
    - Load configuration from the environment and an optional .env file.
    - Apply command line overrides, then block in ``start_server`` until shutdown.
    """
    import logging
    import os

    _init_logging(os.environ.get("INSIGHTBOT_LOG_LEVEL"))
    logger = logging.getLogger(__name__)

    from .api.server import start_server
    from .core.config_manager import ConfigManager

    cfg = ConfigManager().load_full_config()

    if args is not None:
        port = getattr(args, "port", None)
        if port is not None:
            try:
                cfg["server_port"] = int(port)
                logger.debug("Applied command line port override: %d", cfg["server_port"])
            except (ValueError, TypeError) as e:
                logger.warning("Invalid port value from command line '%s': %s", port, e)
        if getattr(args, "debug", False):
            cfg["debug_logging"] = True

    # Only surface non-secret keys.
    diagnostic_cfg = {k: cfg.get(k) for k in ("server_bind", "server_port", "database_path")}
    logger.debug("Resolved configuration (diagnostic): %s", diagnostic_cfg)

    start_server(cfg)
