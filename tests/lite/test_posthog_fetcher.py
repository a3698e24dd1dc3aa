"""Tests for insightbot_lite PostHog share page fetching."""

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from insightbot_lite.domain.models import InsightType
from insightbot_lite.sources.exceptions import (
    ExportedDataDecodeError,
    ExportedDataMissingError,
    InsightFetchError,
    InsightSourceError,
    ShareUrlError,
)
from insightbot_lite.sources.posthog_fetcher import (
    clean_share_url,
    extract_exported_data,
    fetch_insight,
    fetch_insight_payload,
    share_token_from_url,
    validate_share_url,
)

pytestmark = pytest.mark.unit

SHARE_URL = "https://us.posthog.com/shared/AbCdEf123"


class TestShareUrlHelpers:
    """URL cleaning and token extraction."""

    def test_clean_share_url_when_query_and_trailing_slash_then_stripped(self) -> None:
        """Test that the query string and trailing slashes are removed."""
        assert clean_share_url(f"{SHARE_URL}//?whitelabel=1") == SHARE_URL

    def test_share_token_from_url_when_share_path_then_token(self) -> None:
        """Test token extraction."""
        assert share_token_from_url(SHARE_URL) == "AbCdEf123"

    def test_share_token_from_url_when_no_share_path_then_raises(self) -> None:
        """Test that a URL without /shared/ raises ShareUrlError."""
        with pytest.raises(ShareUrlError, match="Could not extract share token"):
            share_token_from_url("https://us.posthog.com/project/1/insights/abc")

    def test_share_url_error_when_raised_then_is_source_error(self) -> None:
        """Test the exception hierarchy."""
        assert issubclass(ShareUrlError, InsightSourceError)
        assert issubclass(InsightFetchError, InsightSourceError)


class TestValidateShareUrl:
    """User-supplied share URL validation."""

    @pytest.mark.parametrize(
        "url",
        [
            SHARE_URL,
            "https://eu.posthog.com/shared/x_y-Z",
            "https://app.posthog.com/shared/abc?whitelabel",
            "https://analytics.example.com/shared/abc",
        ],
    )
    def test_validate_share_url_when_acceptable_then_none(self, url: str) -> None:
        """Test cloud and self-hosted URLs that pass."""
        assert validate_share_url(url) is None

    @pytest.mark.parametrize("raw", [None, "", 42])
    def test_validate_share_url_when_missing_then_required(self, raw: Any) -> None:
        """Test empty and non-string input."""
        assert validate_share_url(raw) == "PostHog URL is required."

    def test_validate_share_url_when_unparseable_then_invalid(self) -> None:
        """Test a string that is not a URL."""
        assert validate_share_url("not a url") == "PostHog URL is not a valid URL."

    def test_validate_share_url_when_http_then_https_required(self) -> None:
        """Test the HTTPS requirement."""
        assert validate_share_url("http://us.posthog.com/shared/abc") == "PostHog URL must use HTTPS."

    def test_validate_share_url_when_no_share_path_then_path_message(self) -> None:
        """Test the /shared/<token> path requirement."""
        message = validate_share_url("https://us.posthog.com/insights/abc")

        assert message is not None
        assert "/shared/<token>" in message

    def test_validate_share_url_when_unknown_cloud_host_then_host_message(self) -> None:
        """Test that unknown posthog.com subdomains are rejected."""
        message = validate_share_url("https://xx.posthog.com/shared/abc")

        assert message is not None
        assert 'Unrecognised PostHog cloud host "xx.posthog.com"' in message


class TestExtractExportedData:
    """Decoding the embedded exported-data block."""

    def test_extract_exported_data_when_double_encoded_then_object(
        self, exported_page: Callable[[str], str], trends_line_insight: dict[str, Any]
    ) -> None:
        """Test the usual PostHog double encoding."""
        html = exported_page(json.dumps(json.dumps(trends_line_insight)))

        assert extract_exported_data(html) == trends_line_insight

    def test_extract_exported_data_when_single_encoded_then_object(
        self, exported_page: Callable[[str], str], trends_line_insight: dict[str, Any]
    ) -> None:
        """Test the single decode fallback."""
        html = exported_page(json.dumps(trends_line_insight))

        assert extract_exported_data(html) == trends_line_insight

    def test_extract_exported_data_when_attributes_reordered_then_found(self) -> None:
        """Test that the id can appear after other attributes with single quotes."""
        html = "<SCRIPT type='application/json' id='posthog-exported-data'>\n{\"a\": 1}\n</SCRIPT>"

        assert extract_exported_data(html) == {"a": 1}

    def test_extract_exported_data_when_block_missing_then_missing_error(self) -> None:
        """Test the missing block error."""
        with pytest.raises(ExportedDataMissingError, match="shared publicly"):
            extract_exported_data("<html><body>Not found</body></html>")

    def test_extract_exported_data_when_invalid_json_then_decode_error(
        self, exported_page: Callable[[str], str]
    ) -> None:
        """Test that bad JSON raises after both attempts."""
        with pytest.raises(ExportedDataDecodeError, match="Failed to parse"):
            extract_exported_data(exported_page("{not json"))


class TestFetchInsight:
    """HTTP fetch through an in-process transport."""

    async def test_fetch_insight_payload_when_200_then_payload(
        self,
        mock_http_client: Callable[..., httpx.AsyncClient],
        exported_page: Callable[[str], str],
        trends_line_insight: dict[str, Any],
    ) -> None:
        """Test that the cleaned URL is requested and the payload decoded."""
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return httpx.Response(200, text=exported_page(json.dumps(json.dumps(trends_line_insight))))

        client = mock_http_client(handler)

        payload = await fetch_insight_payload(f"{SHARE_URL}/?x=1", client)

        assert payload == trends_line_insight
        assert requested == [SHARE_URL]

    async def test_fetch_insight_payload_when_404_then_fetch_error_with_status(
        self, mock_http_client: Callable[..., httpx.AsyncClient]
    ) -> None:
        """Test non-2xx responses."""
        client = mock_http_client(lambda request: httpx.Response(404, text="nope"))

        with pytest.raises(InsightFetchError) as exc_info:
            await fetch_insight_payload(SHARE_URL, client)

        assert exc_info.value.status_code == 404
        assert "PostHog returned 404" in str(exc_info.value)

    async def test_fetch_insight_payload_when_connect_error_then_fetch_error(
        self, mock_http_client: Callable[..., httpx.AsyncClient]
    ) -> None:
        """Test that transport failures are wrapped."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = mock_http_client(handler)

        with pytest.raises(InsightFetchError, match="Network error") as exc_info:
            await fetch_insight_payload(SHARE_URL, client)

        assert exc_info.value.status_code is None

    async def test_fetch_insight_payload_when_timeout_then_fetch_error(
        self, mock_http_client: Callable[..., httpx.AsyncClient]
    ) -> None:
        """Test that timeouts are wrapped."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        client = mock_http_client(handler)

        with pytest.raises(InsightFetchError, match="Timed out"):
            await fetch_insight_payload(SHARE_URL, client)

    async def test_fetch_insight_when_funnel_page_then_canonical_insight(
        self,
        mock_http_client: Callable[..., httpx.AsyncClient],
        exported_page: Callable[[str], str],
        funnel_insight: dict[str, Any],
    ) -> None:
        """Test fetch followed by normalization."""
        client = mock_http_client(
            lambda request: httpx.Response(200, text=exported_page(json.dumps(funnel_insight)))
        )

        insight = await fetch_insight(SHARE_URL, client)

        assert insight.type is InsightType.FUNNEL
        assert insight.title == "Signup funnel"
        assert [p.value for p in insight.series] == [1000, 400, 250]

    async def test_fetch_insight_payload_when_no_share_token_then_raises_before_request(
        self, mock_http_client: Callable[..., httpx.AsyncClient]
    ) -> None:
        """Test that a URL without /shared/<token> is rejected without a network call."""
        requested: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(request)
            return httpx.Response(200, text="")

        client = mock_http_client(handler)

        with pytest.raises(ShareUrlError, match="Could not extract share token"):
            await fetch_insight_payload("https://us.posthog.com/project/1/insights/abc", client)

        assert requested == []
