"""Route modules for insightbot_lite server."""

from .install_routes import register_install_routes
from .markup_routes import register_markup_routes
from .settings_routes import register_settings_routes

__all__ = [
    "register_install_routes",
    "register_markup_routes",
    "register_settings_routes",
]
