"""Helpers for reading TRMNL webhook requests."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

logger = logging.getLogger(__name__)

_BEARER_RE = re.compile(r"^Bearer\s+", re.IGNORECASE)


def bearer_token(request: Any) -> Optional[str]:
    """Return the bearer token of the Authorization header, if any."""
    auth_header = request.headers.get("Authorization", "")
    token = _BEARER_RE.sub("", auth_header).strip()
    if not token or token == auth_header.strip():
        return None
    return token


async def read_body(request: Any) -> dict[str, Any]:
    """Read a form-encoded or JSON request body into a plain dict.

    Bodies that cannot be decoded, or that decode to something other than an
    object, yield an empty dict.
    """
    if request.method in ("GET", "HEAD") or not request.can_read_body:
        return {}

    if request.content_type == "application/json":
        try:
            body = await request.json()
        except ValueError as e:
            logger.warning("Could not parse JSON request body: %s", e)
            return {}
        return body if isinstance(body, dict) else {}

    form = await request.post()
    return dict(form)


def plugin_setting_id_from_trmnl(raw: Any) -> Optional[str]:
    """Extract ``plugin_setting_id`` from TRMNL's ``trmnl`` metadata field.

    TRMNL posts the metadata as a URL-encoded JSON string; JSON bodies may carry
    it as an object. The id sits at the top level or under ``user``.
    """
    if not raw:
        return None

    data = raw
    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.warning("Could not parse trmnl body: %s", e)
            return None

    if not isinstance(data, dict):
        return None

    user = data.get("user")
    setting_id = data.get("plugin_setting_id") or (
        user.get("plugin_setting_id") if isinstance(user, dict) else None
    )
    return str(setting_id) if setting_id else None
