"""Standalone HTML preview of the plugin screen.

Wraps rendered markup in an 800x480 shell that mirrors the TRMNL hardware so a
share URL can be checked in a browser without a device.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

import httpx

from .core.config_manager import (
    DEFAULT_ERROR_REFRESH_RATE_SECONDS,
    DEFAULT_REFRESH_RATE_SECONDS,
)
from .core.http_client import create_client
from .rendering.markup import render_error, render_markup
from .rendering.text import escape_markup
from .sources.exceptions import InsightSourceError
from .sources.posthog_fetcher import fetch_insight

logger = logging.getLogger(__name__)

TRMNL_PLUGIN_CSS = "https://usetrmnl.com/css/latest/plugins.css"


def build_preview_html(markup: str, refresh_rate: int, label: str) -> str:
    """Wrap ``markup`` in a page that shows it on an 800x480 screen."""
    safe_label = escape_markup(label)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <title>TRMNL Preview – {safe_label}</title>
  <link rel="stylesheet" href="{TRMNL_PLUGIN_CSS}">
  <style>
    *, *::before, *::after {{ box-sizing: border-box; margin: 0; padding: 0; }}
    body {{
      background: #555;
      display: flex;
      flex-direction: column;
      align-items: center;
      justify-content: center;
      min-height: 100vh;
      gap: 12px;
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
    }}
    .meta {{ color: #ddd; font-size: 12px; letter-spacing: 0.05em; }}
    .screen {{
      width: 800px;
      height: 480px;
      background: white;
      position: relative;
      overflow: hidden;
      container-type: size;
      box-shadow: 0 4px 24px rgba(0,0,0,0.4);
    }}
  </style>
</head>
<body>
  <div class="meta">800 × 480 · {safe_label} · refresh: {refresh_rate}s</div>
  <div class="screen">{markup}</div>
</body>
</html>"""


async def render_share_url(
    share_url: str, client: Optional[httpx.AsyncClient] = None
) -> tuple[str, int]:
    """Fetch and render a share URL the way /markup would.

    Args:
        share_url: Public PostHog share link
        client: Client to fetch with; a temporary one is created when omitted

    Returns:
        ``(markup, refresh_rate)``; load failures render the error layout
    """
    if client is None:
        async with create_client() as own_client:
            return await render_share_url(share_url, own_client)

    try:
        insight = await fetch_insight(share_url, client)
    except InsightSourceError as e:
        logger.warning("Could not load %s: %s", share_url, e)
        return render_error(f"Could not load insight: {e}"), DEFAULT_ERROR_REFRESH_RATE_SECONDS
    return render_markup(insight), DEFAULT_REFRESH_RATE_SECONDS


async def write_preview(
    share_url: str, output: Union[str, Path], client: Optional[httpx.AsyncClient] = None
) -> Path:
    """Render ``share_url`` and write the preview page to ``output``.

    Returns:
        The path written
    """
    markup, refresh_rate = await render_share_url(share_url, client)
    path = Path(output)
    path.write_text(build_preview_html(markup, refresh_rate, share_url), encoding="utf-8")
    logger.info("Preview written to %s", path)
    return path
