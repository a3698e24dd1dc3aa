from collections.abc import AsyncIterator, Callable, Generator
from typing import Any

import httpx
import pytest

from insightbot_lite.core.http_client import close_all_clients
from insightbot_lite.storage.installations import InstallationStore

SHARE_URL = "https://us.posthog.com/shared/AbCdEf123"


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Clear insightbot environment variables so host settings cannot leak in."""
    for name in (
        "INSIGHTBOT_DEBUG",
        "INSIGHTBOT_LOG_LEVEL",
        "INSIGHTBOT_WEB_HOST",
        "INSIGHTBOT_SERVER_BIND",
        "INSIGHTBOT_WEB_PORT",
        "INSIGHTBOT_SERVER_PORT",
        "PORT",
        "INSIGHTBOT_DB_PATH",
        "DB_PATH",
        "INSIGHTBOT_REFRESH_RATE",
        "INSIGHTBOT_ERROR_REFRESH_RATE",
        "TRMNL_CLIENT_ID",
        "TRMNL_CLIENT_SECRET",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture(autouse=True)
async def cleanup_shared_http_clients() -> AsyncIterator[None]:
    """Close shared httpx clients after every test to prevent resource leaks."""
    yield
    await close_all_clients()


# ==================== PostHog Payload Fixtures ====================


@pytest.fixture
def trends_line_insight() -> dict[str, Any]:
    """Modern query-based trends insight with a three-point line series."""
    return {
        "name": "Pageviews",
        "query": {
            "kind": "InsightVizNode",
            "source": {"kind": "TrendsQuery", "trendsFilter": {"display": "ActionsLineGraph"}},
        },
        "result": [
            {
                "label": "$pageview",
                "count": 60,
                "data": [10, 20, 30],
                "labels": ["1-Jan-2024", "2-Jan-2024", "3-Jan-2024"],
            }
        ],
    }


@pytest.fixture
def funnel_insight() -> dict[str, Any]:
    """Legacy filters-based funnel insight with three steps."""
    return {
        "name": "Signup funnel",
        "filters": {"insight": "FUNNELS"},
        "result": [
            {"name": "Visited", "count": 1000},
            {"name": "Signed up", "count": 400},
            {"name": "Activated", "count": 250},
        ],
    }


@pytest.fixture
def exported_page() -> Callable[[str], str]:
    """Build a share page that embeds ``payload_json`` the way PostHog does."""

    def builder(payload_json: str) -> str:
        return (
            "<!DOCTYPE html><html><head><title>PostHog</title></head><body>"
            '<div id="root"></div>'
            f'<script id="posthog-exported-data" type="application/json">{payload_json}</script>'
            "</body></html>"
        )

    return builder


# ==================== HTTP and Storage Fixtures ====================


@pytest.fixture
async def mock_http_client() -> AsyncIterator[Callable[..., httpx.AsyncClient]]:
    """Return a factory for httpx clients backed by an in-process handler."""
    clients: list[httpx.AsyncClient] = []

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield factory

    for client in clients:
        await client.aclose()


@pytest.fixture
def installation_store(tmp_path: Any) -> InstallationStore:
    """Installation store backed by a fresh SQLite file."""
    return InstallationStore(tmp_path / "data.sqlite")
