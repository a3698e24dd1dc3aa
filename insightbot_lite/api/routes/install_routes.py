"""TRMNL install, install-success and uninstall webhooks."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ...core.config_manager import get_config_value
from ..request_helpers import bearer_token, read_body

logger = logging.getLogger(__name__)

TRMNL_TOKEN_URL = "https://trmnl.com/oauth/token"


class TokenExchangeError(Exception):
    """TRMNL rejected the OAuth code or answered with an unusable payload."""


async def exchange_install_token(
    http_client: httpx.AsyncClient, code: str, client_id: Any, client_secret: Any
) -> tuple[str, str]:
    """Trade the temporary install code for a permanent access token.

    Returns:
        ``(plugin_setting_id, access_token)``

    Raises:
        TokenExchangeError: On a non-2xx answer or a payload missing either value
        httpx.HTTPError: On network failure
    """
    response = await http_client.post(
        TRMNL_TOKEN_URL,
        json={
            "code": code,
            "client_id": client_id,
            "client_secret": client_secret,
            "grant_type": "authorization_code",
        },
    )

    if not response.is_success:
        logger.error("Token exchange failed: %d %s", response.status_code, response.text)
        raise TokenExchangeError("Failed to exchange token with TRMNL")

    try:
        token_data = response.json()
    except ValueError as e:
        raise TokenExchangeError("Unexpected response from TRMNL token endpoint") from e

    if not isinstance(token_data, dict):
        raise TokenExchangeError("Unexpected response from TRMNL token endpoint")

    access_token = token_data.get("access_token")
    setting_id = token_data.get("plugin_setting_id") or token_data.get("id")
    if not access_token or not setting_id:
        logger.error("Unexpected token response keys: %s", sorted(token_data))
        raise TokenExchangeError("Unexpected response from TRMNL token endpoint")

    return str(setting_id), str(access_token)


def register_install_routes(app: Any, config: Any, store: Any, http_client: Any) -> None:
    """Register the installation lifecycle routes.

    Args:
        app: aiohttp web application
        config: Application configuration (TRMNL OAuth client credentials)
        store: InstallationStore
        http_client: httpx.AsyncClient used for the OAuth exchange
    """
    from aiohttp import web

    client_id = get_config_value(config, "trmnl_client_id")
    client_secret = get_config_value(config, "trmnl_client_secret")

    async def install(request: Any) -> Any:
        """OAuth landing: TRMNL redirects here with a code and a callback URL."""
        code = request.query.get("token")
        callback_url = request.query.get("installation_callback_url")
        if not code or not callback_url:
            return web.Response(status=400, text="Missing token or installation_callback_url")

        try:
            setting_id, access_token = await exchange_install_token(
                http_client, code, client_id, client_secret
            )
        except TokenExchangeError as e:
            return web.Response(status=502, text=str(e))
        except httpx.HTTPError:
            logger.exception("Install error during token exchange")
            return web.Response(status=500, text="Internal server error during installation")

        await store.upsert_installation(setting_id, access_token)
        logger.info("Installed: plugin_setting_id=%s", setting_id)

        raise web.HTTPFound(callback_url)

    async def install_success(request: Any) -> Any:
        """TRMNL confirms a completed installation."""
        body = await read_body(request)
        logger.info("Install success webhook received: %s", body)
        return web.Response(status=200, text="OK")

    async def uninstall(request: Any) -> Any:
        """Remove an installation by explicit id or by its bearer token."""
        body = await read_body(request)
        setting_id = body.get("plugin_setting_id") or request.query.get("plugin_setting_id")

        if not setting_id:
            token = bearer_token(request)
            if token:
                installation = await store.get_installation_by_token(token)
                if installation is not None:
                    setting_id = installation.plugin_setting_id

        if setting_id:
            await store.delete_installation(str(setting_id))
            logger.info("Uninstalled: plugin_setting_id=%s", setting_id)
        else:
            logger.warning("Uninstall received but could not identify installation: %s", body)

        return web.Response(status=200, text="OK")

    app.router.add_get("/install", install)
    app.router.add_post("/install/success", install_success)
    app.router.add_post("/uninstall", uninstall)
    app.router.add_delete("/uninstall", uninstall)
