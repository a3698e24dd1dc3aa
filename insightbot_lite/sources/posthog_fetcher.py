"""Fetch a PostHog public share page and extract its embedded insight data.

PostHog server-renders shared insights and dashboards, embedding the data as
JSON inside ``<script id="posthog-exported-data">``. There is no JSON API for
share links, so the HTML page is fetched and that block decoded.
"""

import json
import logging
import re
from typing import Any, Optional
from urllib.parse import urlsplit

import httpx

from ..domain.models import CanonicalInsight
from ..domain.normalizer import normalize
from .exceptions import (
    ExportedDataDecodeError,
    ExportedDataMissingError,
    InsightFetchError,
    ShareUrlError,
)

logger = logging.getLogger(__name__)

SHARED_PATH_RE = re.compile(r"/shared/([A-Za-z0-9_-]+)")
SHARED_PATH_PREFIX_RE = re.compile(r"^/shared/[A-Za-z0-9_-]+")

EXPORTED_DATA_RE = re.compile(
    r"<script[^>]+id=[\"']posthog-exported-data[\"'][^>]*>(.*?)</script>",
    re.IGNORECASE | re.DOTALL,
)

POSTHOG_CLOUD_DOMAIN = "posthog.com"
POSTHOG_CLOUD_HOSTS = frozenset({"us.posthog.com", "eu.posthog.com", "app.posthog.com"})


def clean_share_url(url: str) -> str:
    """Drop the query string and any trailing slashes."""
    return url.split("?", 1)[0].rstrip("/")


def share_token_from_url(url: str) -> str:
    """Return the ``/shared/<token>`` token of a share link.

    Raises:
        ShareUrlError: If the URL has no share token
    """
    match = SHARED_PATH_RE.search(url)
    if not match:
        raise ShareUrlError("Could not extract share token from URL")
    return match.group(1)


def validate_share_url(raw: Any) -> Optional[str]:
    """Check a user-supplied share URL.

    Known PostHog cloud hosts are enforced strictly; any other host is
    accepted as a self-hosted instance as long as it has a share path.

    Returns:
        None when the URL is acceptable, otherwise a user-facing error message
    """
    if not raw or not isinstance(raw, str):
        return "PostHog URL is required."

    try:
        parts = urlsplit(raw.strip())
        hostname = parts.hostname or ""
    except ValueError:
        return "PostHog URL is not a valid URL."

    if not parts.scheme or not parts.netloc:
        return "PostHog URL is not a valid URL."

    if parts.scheme.lower() != "https":
        return "PostHog URL must use HTTPS."

    if not SHARED_PATH_PREFIX_RE.match(parts.path):
        return (
            "PostHog URL must include a /shared/<token> path. "
            "In PostHog: open an insight → Share → Copy link."
        )

    if hostname.endswith(POSTHOG_CLOUD_DOMAIN) and hostname not in POSTHOG_CLOUD_HOSTS:
        return (
            f'Unrecognised PostHog cloud host "{hostname}". '
            "Expected us.posthog.com, eu.posthog.com, or app.posthog.com."
        )

    return None


def extract_exported_data(html: str) -> Any:
    """Decode the ``posthog-exported-data`` block of a share page.

    PostHog double-encodes the value (a JSON string holding JSON), so a
    two-step decode is tried first and a single decode used as fallback.

    Raises:
        ExportedDataMissingError: If the page has no exported-data block
        ExportedDataDecodeError: If neither decode succeeds
    """
    match = EXPORTED_DATA_RE.search(html)
    if not match:
        raise ExportedDataMissingError(
            "Could not find posthog-exported-data in page. "
            "Make sure the insight is shared publicly."
        )

    raw = match.group(1).strip()
    try:
        inner = json.loads(raw)
        if isinstance(inner, str):
            return json.loads(inner)
        return inner
    except json.JSONDecodeError:
        logger.debug("Double decode of exported data failed, trying single decode")

    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise ExportedDataDecodeError(f"Failed to parse posthog-exported-data JSON: {e}") from e


async def fetch_insight_payload(share_url: str, client: httpx.AsyncClient) -> Any:
    """Fetch a share page and return its decoded exported-data payload.

    Args:
        share_url: Public PostHog share link
        client: Client used for the request; the caller owns its lifecycle

    Raises:
        ShareUrlError: If the URL has no share token; nothing is requested
        InsightFetchError: On network failure or a non-2xx response
        ExportedDataMissingError: If the page carries no data block
        ExportedDataDecodeError: If the data block is not valid JSON
    """
    url = clean_share_url(share_url)
    token = share_token_from_url(url)
    logger.debug("Fetching PostHog share page %s (token %s)", url, token)

    try:
        response = await client.get(url)
    except httpx.TimeoutException as e:
        raise InsightFetchError(f"Timed out fetching {url}") from e
    except httpx.HTTPError as e:
        raise InsightFetchError(f"Network error fetching {url}: {e}") from e

    if not response.is_success:
        logger.warning("PostHog returned %d for %s", response.status_code, url)
        raise InsightFetchError(
            f"PostHog returned {response.status_code} for {url}",
            status_code=response.status_code,
        )

    return extract_exported_data(response.text)


async def fetch_insight(share_url: str, client: httpx.AsyncClient) -> CanonicalInsight:
    """Fetch a share link and normalize it into a CanonicalInsight."""
    payload = await fetch_insight_payload(share_url, client)
    insight = normalize(payload)
    logger.info(
        "Loaded %s insight %r (%d points)", insight.type.value, insight.title, len(insight.series)
    )
    return insight
