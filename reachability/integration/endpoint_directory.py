"""Client for the Microsoft 365 endpoint web service.

Fetches the published endpoint list for one service area (Intune is ``MEM``)
and reduces it to a sorted, de-duplicated target list: either hostnames
(``LookupType.FQDN``) or individual IPv4 addresses (``LookupType.IP``).
Transient failures are retried with exponential backoff, and results are
cached in memory per lookup type.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
import uuid
from typing import Any

import httpx

from reachability.middleware.error_handler import DirectoryUnavailableError
from reachability.models.requests import LookupType
from reachability.validators.ip import is_ipv4_literal

logger = logging.getLogger(__name__)

_PROTOCOL_PREFIX = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")


def clean_fqdn(pattern: str) -> str:
    """Turn a published URL pattern (``*.manage.microsoft.com``) into a hostname."""
    cleaned = pattern.strip().replace("*", "")
    if cleaned.startswith("."):
        cleaned = cleaned[1:]
    return _PROTOCOL_PREFIX.sub("", cleaned)


def clean_ip(entry: str) -> str | None:
    """Strip a CIDR suffix; return the address only if it is dotted-quad IPv4."""
    address = entry.strip().split("/", 1)[0]
    return address if is_ipv4_literal(address) else None


def extract_targets(
    entries: list[dict[str, Any]], lookup_type: LookupType, service_area: str
) -> list[str]:
    """Reduce raw directory entries to a sorted, de-duplicated target list."""
    found: set[str] = set()
    for entry in entries:
        if not isinstance(entry, dict) or entry.get("serviceArea") != service_area:
            continue
        if lookup_type == LookupType.FQDN:
            for url in entry.get("urls") or []:
                host = clean_fqdn(str(url))
                if host:
                    found.add(host)
        else:
            for ip in entry.get("ips") or []:
                address = clean_ip(str(ip))
                if address:
                    found.add(address)
    return sorted(found)


class EndpointDirectoryClient:
    """HTTP client for the endpoint directory with caching and retries.

    Parameters
    ----------
    directory_url:
        Base URL of the directory instance (e.g. ".../endpoints/WorldWide").
    service_area:
        Service area whose entries are used (default "MEM").
    max_retries:
        Maximum attempts on transient failures (default 3).
    timeout_seconds:
        Per-request timeout.
    cache_ttl_seconds:
        TTL for cached target lists (default 3600 = 1 hour).
    """

    def __init__(
        self,
        directory_url: str,
        service_area: str = "MEM",
        max_retries: int = 3,
        timeout_seconds: float = 15.0,
        cache_ttl_seconds: int = 3600,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._directory_url = directory_url.rstrip("/")
        self._service_area = service_area
        self._max_retries = max_retries
        self._timeout_seconds = timeout_seconds
        self._cache_ttl_seconds = cache_ttl_seconds
        self._transport = transport

        # Cache: lookup_type -> (targets, expiry_timestamp)
        self._cache: dict[LookupType, tuple[list[str], float]] = {}

    async def fetch(self, lookup_type: LookupType = LookupType.FQDN) -> list[str]:
        """Return the target list for *lookup_type*, cached within TTL.

        Raises
        ------
        DirectoryUnavailableError
            If the directory cannot be read after all retry attempts, or
            returns a payload that is not an entry list.
        """
        cached = self._cache.get(lookup_type)
        if cached is not None:
            targets, expiry = cached
            if time.monotonic() < expiry:
                logger.debug("Directory cache hit for lookup_type=%s", lookup_type.value)
                return list(targets)

        entries = await self._fetch_with_retries()
        targets = extract_targets(entries, lookup_type, self._service_area)
        logger.info(
            "Loaded %d %s targets from endpoint directory",
            len(targets),
            lookup_type.value,
            extra={"total": len(targets)},
        )

        self._cache[lookup_type] = (targets, time.monotonic() + self._cache_ttl_seconds)
        return list(targets)

    def invalidate_cache(self) -> None:
        self._cache.clear()

    async def _fetch_with_retries(self) -> list[dict[str, Any]]:
        """Fetch the raw entry list with exponential backoff retries.

        Retry schedule: 1s, 2s, 4s (base 1s, factor 2).
        """
        last_exception: Exception | None = None

        for attempt in range(self._max_retries):
            params = {"ServiceAreas": self._service_area, "clientrequestid": str(uuid.uuid4())}
            try:
                async with httpx.AsyncClient(transport=self._transport) as client:
                    response = await client.get(
                        self._directory_url,
                        params=params,
                        timeout=self._timeout_seconds,
                    )
                response.raise_for_status()
                try:
                    data = response.json()
                except ValueError as exc:
                    raise DirectoryUnavailableError(
                        "Endpoint directory returned invalid JSON"
                    ) from exc
                if not isinstance(data, list):
                    raise DirectoryUnavailableError(
                        "Endpoint directory returned an unexpected payload",
                        payload_type=type(data).__name__,
                    )
                return data

            except httpx.TransportError as exc:
                last_exception = exc
                reason = f"unreachable ({type(exc).__name__})"
            except httpx.HTTPStatusError as exc:
                if exc.response.status_code < 500:
                    # 4xx is not retryable
                    raise DirectoryUnavailableError(
                        f"Endpoint directory returned status {exc.response.status_code}",
                        status=exc.response.status_code,
                    ) from exc
                last_exception = exc
                reason = f"status {exc.response.status_code}"
            except httpx.HTTPError as exc:
                raise DirectoryUnavailableError(
                    f"Endpoint directory request failed: {type(exc).__name__}"
                ) from exc

            backoff = 2**attempt  # 1s, 2s, 4s
            logger.warning(
                "Endpoint directory %s (attempt %d/%d), retrying in %ds",
                reason,
                attempt + 1,
                self._max_retries,
                backoff,
            )
            if attempt < self._max_retries - 1:
                await asyncio.sleep(backoff)

        logger.error("Failed to fetch endpoint directory after %d attempts", self._max_retries)
        raise DirectoryUnavailableError(
            f"Endpoint directory unavailable after {self._max_retries} attempts",
            attempts=self._max_retries,
        ) from last_exception
