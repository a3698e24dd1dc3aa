"""Settings form where a user attaches a PostHog share URL to an installation."""

from __future__ import annotations

import logging
from string import Template
from typing import Any
from urllib.parse import urlencode

from ...rendering.text import escape_markup
from ...sources.posthog_fetcher import validate_share_url
from ..request_helpers import read_body

logger = logging.getLogger(__name__)

SAVED_BANNER = (
    '<div class="banner banner--success">'
    "✓ Settings saved. Your display will update on the next refresh.</div>"
)

# $-placeholders keep the CSS braces literal
SETTINGS_PAGE = Template(
    """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>PostHog Insight – Settings</title>
  <style>
    *, *::before, *::after { box-sizing: border-box; margin: 0; padding: 0; }
    body {
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
      background: #f5f5f5; color: #111;
      display: flex; align-items: center; justify-content: center;
      min-height: 100vh; padding: 1rem;
    }
    .card {
      background: #fff; border: 1px solid #ddd; border-radius: 8px;
      padding: 2rem; max-width: 480px; width: 100%;
      box-shadow: 0 2px 8px rgba(0,0,0,.08);
    }
    h1 { font-size: 1.25rem; margin-bottom: 0.25rem; }
    p.subtitle { font-size: 0.875rem; color: #666; margin-bottom: 1.5rem; }
    label { display: block; font-size: 0.875rem; font-weight: 600; margin-bottom: 0.375rem; }
    input[type="url"] {
      width: 100%; padding: 0.625rem 0.75rem;
      border: 1px solid #ccc; border-radius: 6px; font-size: 0.9rem;
    }
    input[type="url"]:focus { border-color: #1d4ed8; outline: none; }
    .hint { font-size: 0.75rem; color: #888; margin-top: 0.375rem; line-height: 1.5; }
    button {
      margin-top: 1.25rem; width: 100%; padding: 0.625rem;
      background: #111; color: #fff; border: none; border-radius: 6px;
      font-size: 0.9rem; font-weight: 600; cursor: pointer;
    }
    button:hover { background: #333; }
    .banner { margin-top: 1rem; padding: 0.625rem 0.75rem; border-radius: 6px;
              font-size: 0.875rem; line-height: 1.5; }
    .banner--success { background: #f0fdf4; border: 1px solid #bbf7d0; color: #166534; }
    .banner--error { background: #fef2f2; border: 1px solid #fecaca; color: #991b1b; }
    .examples { margin-top: 0.5rem; font-size: 0.75rem; color: #888; }
    .examples code {
      display: block; margin-top: 0.2rem; font-family: monospace;
      background: #f3f4f6; padding: 0.2rem 0.4rem; border-radius: 3px;
    }
  </style>
</head>
<body>
  <div class="card">
    <h1>PostHog Insight Viewer</h1>
    <p class="subtitle">Connect a public PostHog shared insight to your TRMNL display.</p>

    <form method="POST" action="/settings">
      <input type="hidden" name="plugin_setting_id" value="$plugin_setting_id">

      <label for="posthog_url">PostHog shared insight URL</label>
      <input type="url" id="posthog_url" name="posthog_url"
             placeholder="https://us.posthog.com/shared/AbCdEf123"
             value="$posthog_url" required autocomplete="off">
      <p class="hint">
        In PostHog, open an insight → click <strong>Share</strong> → enable public sharing → copy the link.
        The URL must be publicly accessible (no login required).
      </p>
      <div class="examples">
        Accepted formats:
        <code>https://us.posthog.com/shared/&lt;token&gt;</code>
        <code>https://eu.posthog.com/shared/&lt;token&gt;</code>
        <code>https://app.posthog.com/shared/&lt;token&gt;</code>
      </div>

      <button type="submit">Save settings</button>
    </form>
    $saved_banner
    $error_banner
  </div>
</body>
</html>"""
)


def render_settings_page(
    plugin_setting_id: str, posthog_url: str = "", saved: bool = False, error: str = ""
) -> str:
    """Render the settings form with every interpolated value escaped."""
    error_banner = ""
    if error:
        error_banner = f'<div class="banner banner--error">⚠ {escape_markup(error)}</div>'
    return SETTINGS_PAGE.substitute(
        plugin_setting_id=escape_markup(plugin_setting_id),
        posthog_url=escape_markup(posthog_url),
        saved_banner=SAVED_BANNER if saved else "",
        error_banner=error_banner,
    )


def _settings_location(plugin_setting_id: str, **params: str) -> str:
    return "/settings?" + urlencode({"plugin_setting_id": plugin_setting_id, **params})


def register_settings_routes(app: Any, store: Any) -> None:
    """Register GET and POST /settings.

    Args:
        app: aiohttp web application
        store: InstallationStore holding the share URLs
    """
    from aiohttp import web

    async def get_settings(request: Any) -> Any:
        """Show the settings form for one installation."""
        setting_id = request.query.get("plugin_setting_id")
        if not setting_id:
            return web.Response(status=400, text="Missing plugin_setting_id")

        installation = await store.get_installation(setting_id)
        current_url = (installation.posthog_url or "") if installation else ""

        html = render_settings_page(
            setting_id,
            posthog_url=current_url,
            saved=request.query.get("saved") == "1",
            error=request.query.get("error", ""),
        )
        return web.Response(text=html, content_type="text/html")

    async def post_settings(request: Any) -> Any:
        """Validate and save a share URL, then redirect back to the form."""
        body = await read_body(request)
        setting_id = str(body.get("plugin_setting_id") or "")
        if not setting_id:
            return web.Response(status=400, text="Missing plugin_setting_id")

        posthog_url = body.get("posthog_url")
        url_error = validate_share_url(posthog_url)
        if url_error:
            raise web.HTTPFound(_settings_location(setting_id, error=url_error))

        saved = await store.set_posthog_url(setting_id, posthog_url.strip())
        if not saved:
            raise web.HTTPFound(
                _settings_location(
                    setting_id, error="Installation not found. Please reinstall the plugin."
                )
            )

        logger.info("Settings saved: plugin_setting_id=%s url=%s", setting_id, posthog_url)
        raise web.HTTPFound(_settings_location(setting_id, saved="1"))

    app.router.add_get("/settings", get_settings)
    app.router.add_post("/settings", post_settings)
