"""Markup polling and health routes for insightbot_lite."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ...core.config_manager import (
    DEFAULT_ERROR_REFRESH_RATE_SECONDS,
    DEFAULT_REFRESH_RATE_SECONDS,
    get_config_value,
)
from ...domain.models import MarkupResponse
from ...rendering.markup import render_error, render_markup, render_no_config
from ...sources.exceptions import InsightSourceError
from ...sources.posthog_fetcher import fetch_insight
from ..request_helpers import bearer_token, plugin_setting_id_from_trmnl, read_body

logger = logging.getLogger(__name__)

INSTALLATION_NOT_FOUND_MESSAGE = "Installation not found. Please reinstall the plugin."


async def resolve_plugin_setting_id(
    request: Any, body: dict[str, Any], store: Any
) -> Optional[str]:
    """Work out which installation a markup poll is for.

    Checked in order: the ``plugin_setting_id`` query parameter (local dev),
    the ``trmnl`` metadata field, a bare ``plugin_setting_id`` body field, and
    finally the installation owning the request's bearer token.
    """
    setting_id = request.query.get("plugin_setting_id")
    if setting_id:
        return setting_id

    setting_id = plugin_setting_id_from_trmnl(body.get("trmnl"))
    if setting_id:
        return setting_id

    if body.get("plugin_setting_id"):
        return str(body["plugin_setting_id"])

    token = bearer_token(request)
    if token:
        installation = await store.get_installation_by_token(token)
        if installation is not None:
            return installation.plugin_setting_id

    return None


def register_markup_routes(app: Any, config: Any, store: Any, http_client: Any) -> None:
    """Register the markup and health routes.

    Args:
        app: aiohttp web application
        config: Application configuration
        store: InstallationStore used to look up share URLs
        http_client: httpx.AsyncClient used to fetch share pages
    """
    from aiohttp import web

    refresh_rate = int(
        get_config_value(config, "refresh_rate_seconds", DEFAULT_REFRESH_RATE_SECONDS)
    )
    error_refresh_rate = int(
        get_config_value(
            config, "error_refresh_rate_seconds", DEFAULT_ERROR_REFRESH_RATE_SECONDS
        )
    )

    def _respond(markup: str, rate: int) -> Any:
        return web.json_response(MarkupResponse.for_all_layouts(markup, rate).model_dump())

    async def markup(request: Any) -> Any:
        """Render the plugin screen for the polling installation."""
        body = await read_body(request)
        setting_id = await resolve_plugin_setting_id(request, body, store)

        if not setting_id:
            logger.debug("Markup request without an identifiable installation")
            return _respond(render_no_config(), error_refresh_rate)

        installation = await store.get_installation(setting_id)
        if installation is None:
            logger.warning("Markup requested for unknown installation %s", setting_id)
            return _respond(render_error(INSTALLATION_NOT_FOUND_MESSAGE), error_refresh_rate)

        if not installation.posthog_url:
            return _respond(render_no_config(), error_refresh_rate)

        try:
            insight = await fetch_insight(installation.posthog_url, http_client)
        except InsightSourceError as e:
            logger.error("Markup fetch error for %s: %s", setting_id, e)
            return _respond(render_error(f"Could not load insight: {e}"), error_refresh_rate)

        return _respond(render_markup(insight), refresh_rate)

    async def health(_request: Any) -> Any:
        return web.json_response({"status": "ok"})

    app.router.add_post("/markup", markup)
    app.router.add_get("/markup", markup)
    app.router.add_get("/health", health)
