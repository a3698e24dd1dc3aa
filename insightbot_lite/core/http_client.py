"""Shared httpx client for outbound requests (PostHog pages, TRMNL OAuth).

One AsyncClient is created lazily per client id and reused across requests so
connection pools survive between device polls.
"""

import asyncio
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

_shared_clients: dict[str, httpx.AsyncClient] = {}
_client_lock = asyncio.Lock()

DEFAULT_LIMITS = httpx.Limits(
    max_connections=10,
    max_keepalive_connections=5,
)

DEFAULT_TIMEOUT = httpx.Timeout(
    connect=10.0,
    read=30.0,
    write=10.0,
    pool=30.0,
)

# PostHog answers 406 to browser-style Accept lists, so none is set here and
# httpx sends its default "Accept: */*", which PostHog serves as text/html.
DEFAULT_BROWSER_HEADERS: dict[str, str] = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept-Language": "en-US,en;q=0.9",
}


def create_client(
    timeout: Optional[httpx.Timeout] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create a standalone client with the default headers and limits.

    Args:
        timeout: Custom timeout configuration
        transport: Optional transport, e.g. ``httpx.MockTransport`` in tests

    Returns:
        A new httpx.AsyncClient the caller is responsible for closing
    """
    return httpx.AsyncClient(
        transport=transport,
        limits=DEFAULT_LIMITS,
        timeout=timeout or DEFAULT_TIMEOUT,
        follow_redirects=True,
        headers=DEFAULT_BROWSER_HEADERS,
    )


async def get_shared_client(client_id: str = "default") -> httpx.AsyncClient:
    """Get or create the shared client registered under ``client_id``."""
    async with _client_lock:
        client = _shared_clients.get(client_id)
        if client is None or client.is_closed:
            logger.debug("Creating shared HTTP client '%s'", client_id)
            client = create_client()
            _shared_clients[client_id] = client
        return client


async def close_all_clients() -> None:
    """Close every shared client; called on server shutdown."""
    async with _client_lock:
        for client_id, client in _shared_clients.items():
            try:
                if not client.is_closed:
                    await client.aclose()
                    logger.debug("Closed shared HTTP client '%s'", client_id)
            except Exception as e:
                logger.warning("Error closing shared HTTP client '%s': %s", client_id, e)

        _shared_clients.clear()
        logger.info("All shared HTTP clients closed")
