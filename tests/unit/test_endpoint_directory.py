"""Unit tests for the endpoint directory client."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from reachability.integration.endpoint_directory import (
    EndpointDirectoryClient,
    clean_fqdn,
    clean_ip,
    extract_targets,
)
from reachability.middleware.error_handler import DirectoryUnavailableError
from reachability.models.requests import LookupType

DIRECTORY_URL = "https://endpoints.office.com/endpoints/WorldWide"

ENTRIES = [
    {
        "id": 163,
        "serviceArea": "MEM",
        "urls": ["*.manage.microsoft.com", "manage.microsoft.com", "*.dm.microsoft.com"],
        "ips": ["104.46.162.96/27", "13.67.13.176/28", "2603:1006:2000::/48"],
    },
    {
        "id": 172,
        "serviceArea": "MEM",
        "urls": ["https://enterpriseregistration.windows.net"],
    },
    {
        "id": 56,
        "serviceArea": "Common",
        "urls": ["login.microsoftonline.com"],
        "ips": ["20.190.128.0/18"],
    },
]


def _response(status: int = 200, payload: object = ENTRIES) -> httpx.Response:
    return httpx.Response(
        status,
        json=payload,
        request=httpx.Request("GET", DIRECTORY_URL),
    )


@pytest.fixture
def client() -> EndpointDirectoryClient:
    return EndpointDirectoryClient(directory_url=DIRECTORY_URL, max_retries=3)


class TestCleaning:
    @pytest.mark.parametrize(
        "pattern,expected",
        [
            ("*.manage.microsoft.com", "manage.microsoft.com"),
            ("manage.microsoft.com", "manage.microsoft.com"),
            ("https://enterpriseregistration.windows.net", "enterpriseregistration.windows.net"),
            ("*", ""),
        ],
    )
    def test_clean_fqdn(self, pattern: str, expected: str) -> None:
        assert clean_fqdn(pattern) == expected

    @pytest.mark.parametrize(
        "entry,expected",
        [
            ("104.46.162.96/27", "104.46.162.96"),
            ("13.67.13.176", "13.67.13.176"),
            ("2603:1006:2000::/48", None),
        ],
    )
    def test_clean_ip(self, entry: str, expected: str | None) -> None:
        assert clean_ip(entry) == expected

    def test_extract_fqdn_targets(self) -> None:
        assert extract_targets(ENTRIES, LookupType.FQDN, "MEM") == [
            "dm.microsoft.com",
            "enterpriseregistration.windows.net",
            "manage.microsoft.com",
        ]

    def test_extract_ip_targets(self) -> None:
        assert extract_targets(ENTRIES, LookupType.IP, "MEM") == ["104.46.162.96", "13.67.13.176"]


class TestFetch:
    @pytest.mark.asyncio
    async def test_fetch_sends_service_area_and_request_id(self, client: EndpointDirectoryClient) -> None:
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=_response()) as mock_get:
            targets = await client.fetch(LookupType.FQDN)

        assert "manage.microsoft.com" in targets
        params = mock_get.call_args.kwargs["params"]
        assert params["ServiceAreas"] == "MEM"
        assert len(params["clientrequestid"]) == 36

    @pytest.mark.asyncio
    async def test_results_are_cached_per_lookup_type(self, client: EndpointDirectoryClient) -> None:
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=_response()) as mock_get:
            await client.fetch(LookupType.FQDN)
            await client.fetch(LookupType.FQDN)
            await client.fetch(LookupType.IP)

        assert mock_get.call_count == 2

    @pytest.mark.asyncio
    async def test_retries_on_connection_error(self, client: EndpointDirectoryClient) -> None:
        calls = 0

        async def side_effect(*args, **kwargs):
            nonlocal calls
            calls += 1
            if calls == 1:
                raise httpx.ConnectError("Connection refused")
            return _response()

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, side_effect=side_effect):
            with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
                targets = await client.fetch(LookupType.IP)

        assert targets == ["104.46.162.96", "13.67.13.176"]
        assert calls == 2
        mock_sleep.assert_awaited_once_with(1)

    @pytest.mark.asyncio
    async def test_retries_on_server_error_with_backoff(self, client: EndpointDirectoryClient) -> None:
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=_response(503, {})) as mock_get:
            with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
                with pytest.raises(DirectoryUnavailableError, match="after 3 attempts"):
                    await client.fetch()

        assert mock_get.call_count == 3
        assert [c.args[0] for c in mock_sleep.await_args_list] == [1, 2]

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self, client: EndpointDirectoryClient) -> None:
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=_response(400, {})) as mock_get:
            with pytest.raises(DirectoryUnavailableError):
                await client.fetch()

        assert mock_get.call_count == 1

    @pytest.mark.asyncio
    async def test_unexpected_payload(self, client: EndpointDirectoryClient) -> None:
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=_response(200, {"error": "x"})):
            with pytest.raises(DirectoryUnavailableError, match="unexpected payload"):
                await client.fetch()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [httpx.ReadError("connection reset"), httpx.RemoteProtocolError("peer closed connection")],
    )
    async def test_dropped_connection_is_retried_then_wrapped(
        self, client: EndpointDirectoryClient, error: httpx.TransportError
    ) -> None:
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, side_effect=error) as mock_get:
            with patch("asyncio.sleep", new_callable=AsyncMock):
                with pytest.raises(DirectoryUnavailableError, match="after 3 attempts"):
                    await client.fetch()

        assert mock_get.call_count == 3

    @pytest.mark.asyncio
    async def test_other_request_errors_are_wrapped_immediately(self, client: EndpointDirectoryClient) -> None:
        error = httpx.TooManyRedirects("redirect loop", request=httpx.Request("GET", DIRECTORY_URL))
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, side_effect=error) as mock_get:
            with pytest.raises(DirectoryUnavailableError, match="TooManyRedirects"):
                await client.fetch()

        assert mock_get.call_count == 1
