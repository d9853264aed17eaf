"""JetBrains Marketplace client.

Every public operation is fail-soft: network errors, timeouts and error
responses are logged, recorded in ``last_failure`` and turned into an empty
result (or None for single-item lookups). Nothing is retried.
"""

from __future__ import annotations

import asyncio
import json
import logging
import ssl
from collections.abc import Callable
from enum import Enum
from http.client import HTTPException
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from jbplugins import __version__
from jbplugins.config.schemas import DEFAULT_MARKETPLACE_URL, PluginRecord, PluginVersion
from jbplugins.registry.common import normalize_plugins, normalize_update

logger = logging.getLogger(__name__)

TYPEAHEAD_PATH = "/api/search/plugins"
BROWSE_PATH = "/api/searchPlugins"
UPDATES_PATH = "/api/plugins/{plugin_id}/updates"

# Timeouts in seconds
TYPEAHEAD_TIMEOUT = 10
BROWSE_TIMEOUT = 15
VERSION_TIMEOUT = 5

MIN_QUERY_LENGTH = 2
DEFAULT_MAX_RESULTS = 20
DEFAULT_ENRICH_LIMIT = 100

# Search terms swept to assemble the popular-plugin catalog
# fmt: off
POPULAR_CATEGORIES = [
    # Languages & frameworks
    "java", "kotlin", "python", "javascript", "typescript", "rust", "go", "ruby", "php",
    "scala", "swift",
    # Tools & integrations
    "git", "docker", "kubernetes", "database", "sql", "maven", "gradle", "npm",
    # Code quality
    "lint", "sonar", "qodana", "code quality", "inspection",
    # AI & productivity
    "ai", "copilot", "assistant", "productivity",
    # Themes
    "theme", "material", "icon",
    # Editors & navigation
    "vim", "editor", "navigation",
    # Formats
    "markdown", "json", "yaml", "xml",
    # Testing & debugging
    "test", "debug", "coverage",
    # Cloud & DevOps
    "aws", "azure", "cloud", "terraform",
    # Generic
    "plugin", "tool", "support", "framework",
]
# fmt: on

ProgressCallback = Callable[[int, int, str], None]


class FailureKind(str, Enum):
    """Category of a failed marketplace request."""

    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    CONNECTION = "connection"
    HTTP_ERROR = "http_error"
    INVALID_RESPONSE = "invalid_response"


ADVISORY_MESSAGES: dict[FailureKind, str] = {
    FailureKind.TIMEOUT: "Request timed out. Please try again.",
    FailureKind.RATE_LIMITED: (
        "Rate limited by the JetBrains Marketplace. Please wait a moment and try again."
    ),
    FailureKind.SERVER_ERROR: (
        "The JetBrains Marketplace is currently unavailable. Please try again later."
    ),
    FailureKind.CONNECTION: (
        "Unable to reach the JetBrains Marketplace. Please check your internet connection."
    ),
    FailureKind.HTTP_ERROR: "The JetBrains Marketplace rejected the request.",
    FailureKind.INVALID_RESPONSE: "The JetBrains Marketplace returned an unexpected response.",
}


def advisory_message(kind: FailureKind) -> str:
    """User-facing explanation for a failure category."""
    return ADVISORY_MESSAGES[kind]


def classify_status(status_code: int) -> FailureKind:
    """Map an HTTP error status to a failure category."""
    if status_code == 429:
        return FailureKind.RATE_LIMITED
    if status_code >= 500:
        return FailureKind.SERVER_ERROR
    return FailureKind.HTTP_ERROR


class MarketplaceError(Exception):
    """Error interacting with the JetBrains Marketplace."""

    def __init__(
        self,
        message: str,
        kind: FailureKind,
        url: str | None = None,
        status_code: int | None = None,
    ):
        self.kind = kind
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class MarketplaceClient:
    """Client for the JetBrains Marketplace search and update endpoints."""

    def __init__(
        self,
        base_url: str = DEFAULT_MARKETPLACE_URL,
        max_results: int = DEFAULT_MAX_RESULTS,
        enrich_limit: int = DEFAULT_ENRICH_LIMIT,
    ):
        """Initialize the marketplace client.

        Args:
            base_url: Marketplace root URL
            max_results: Result cap for typeahead and interactive searches
            enrich_limit: How many top plugins get version metadata attached
                          by fetch_all_popular_plugins
        """
        self._base_url = base_url.rstrip("/")
        self._max_results = max_results
        self._enrich_limit = enrich_limit
        self._ssl_context = ssl.create_default_context()
        self.last_failure: FailureKind | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def max_results(self) -> int:
        return self._max_results

    def _get_json(self, path: str, params: dict[str, Any], timeout: float) -> Any:
        """Make a blocking GET request and decode the JSON body.

        Args:
            path: Endpoint path below the base URL
            params: Query parameters
            timeout: Request timeout in seconds

        Returns:
            Decoded JSON response

        Raises:
            MarketplaceError: If the request fails or the body is not JSON
        """
        url = f"{self._base_url}{path}"
        if params:
            url = f"{url}?{urlencode(params)}"
        logger.debug("GET %s (timeout=%ss)", url, timeout)

        request = Request(url, method="GET")
        request.add_header("Accept", "application/json")
        request.add_header("User-Agent", f"jb-plugins/{__version__}")

        try:
            with urlopen(request, timeout=timeout, context=self._ssl_context) as response:
                body: bytes = response.read()
        except HTTPError as e:
            raise MarketplaceError(
                f"HTTP {e.code}: {e.reason} for {url}",
                kind=classify_status(e.code),
                url=url,
                status_code=e.code,
            ) from e
        except URLError as e:
            if isinstance(e.reason, TimeoutError):
                kind = FailureKind.TIMEOUT
            else:
                kind = FailureKind.CONNECTION
            raise MarketplaceError(
                f"Failed to connect to {url}: {e.reason}", kind=kind, url=url
            ) from e
        except TimeoutError as e:
            raise MarketplaceError(
                f"Request timed out for {url}", kind=FailureKind.TIMEOUT, url=url
            ) from e
        except OSError as e:
            raise MarketplaceError(
                f"Connection error for {url}: {e}", kind=FailureKind.CONNECTION, url=url
            ) from e
        except HTTPException as e:
            raise MarketplaceError(
                f"Malformed HTTP response from {url}: {e!r}",
                kind=FailureKind.INVALID_RESPONSE,
                url=url,
            ) from e

        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MarketplaceError(
                f"Invalid JSON from {url}: {e}", kind=FailureKind.INVALID_RESPONSE, url=url
            ) from e

    async def _fetch(self, path: str, params: dict[str, Any], timeout: float) -> Any | None:
        """Run a request off the event loop, converting failures to None."""
        try:
            data = await asyncio.to_thread(self._get_json, path, params, timeout)
        except MarketplaceError as e:
            self.last_failure = e.kind
            logger.info("Marketplace request failed (%s): %s", e.kind.value, e)
            return None
        self.last_failure = None
        return data

    async def typeahead_search(self, query: str) -> list[PluginRecord]:
        """Search plugins using the marketplace's ranked typeahead search.

        Args:
            query: Free-text query; fewer than 2 characters returns nothing
                   without contacting the marketplace

        Returns:
            At most max_results records in marketplace ranking order
        """
        query = query.strip()
        if len(query) < MIN_QUERY_LENGTH:
            return []

        data = await self._fetch(
            TYPEAHEAD_PATH, {"query": query, "max": self._max_results}, TYPEAHEAD_TIMEOUT
        )
        return normalize_plugins(data)[: self._max_results]

    async def browse_search(
        self, query: str, max_results: int | None = None, timeout: float = BROWSE_TIMEOUT
    ) -> list[PluginRecord]:
        """Search plugins using the browse/category endpoint.

        Args:
            query: Category or keyword (an empty query browses everything)
            max_results: Result cap (defaults to max_results)
            timeout: Request timeout in seconds

        Returns:
            Records in marketplace order
        """
        params = {"search": query or "a", "max": max_results or self._max_results}
        data = await self._fetch(BROWSE_PATH, params, timeout)
        return normalize_plugins(data)

    async def fetch_latest_version(self, plugin_id: int) -> PluginVersion | None:
        """Look up the newest published update of a plugin.

        Args:
            plugin_id: Numeric marketplace id

        Returns:
            PluginVersion, or None if unavailable
        """
        data = await self._fetch(
            UPDATES_PATH.format(plugin_id=plugin_id), {"size": 1}, VERSION_TIMEOUT
        )
        return normalize_update(data)

    async def lookup_plugin(self, xml_id: str) -> PluginRecord | None:
        """Find the marketplace record for an exact identifier.

        Args:
            xml_id: Plugin identifier

        Returns:
            The matching record, or None if the search has no exact match
        """
        results = await self.browse_search(xml_id, timeout=TYPEAHEAD_TIMEOUT)
        for record in results:
            if record.xml_id == xml_id:
                return record
        return None

    async def _enrichment_for(
        self, record: PluginRecord
    ) -> tuple[PluginVersion | None, FailureKind | None]:
        if record.plugin_id is None:
            return None, None
        version = await self.fetch_latest_version(record.plugin_id)
        return version, self.last_failure

    async def fetch_all_popular_plugins(
        self, progress: ProgressCallback | None = None
    ) -> list[PluginRecord]:
        """Assemble a catalog of popular plugins.

        Sweeps POPULAR_CATEGORIES one request at a time, keeping the first
        record seen for each identifier, sorts by downloads (highest first)
        and then fetches version metadata concurrently for the top
        enrich_limit plugins only.

        Afterwards last_failure holds the first failure of the whole sweep,
        so a partial catalog can still be reported.

        Args:
            progress: Called as progress(index, total, category) before each
                      category request

        Returns:
            Unique records sorted by downloads
        """
        merged: dict[str, PluginRecord] = {}
        failure: FailureKind | None = None
        total = len(POPULAR_CATEGORIES)
        for index, category in enumerate(POPULAR_CATEGORIES):
            if progress is not None:
                progress(index + 1, total, category)
            for record in await self.browse_search(category, DEFAULT_MAX_RESULTS):
                merged.setdefault(record.xml_id, record)
            failure = failure or self.last_failure

        result = sorted(merged.values(), key=lambda r: r.downloads or 0, reverse=True)
        logger.info("Collected %d unique plugins from %d categories", len(result), total)

        top = result[: self._enrich_limit]
        enrichments = await asyncio.gather(*(self._enrichment_for(r) for r in top))
        for record, (version, kind) in zip(top, enrichments):
            failure = failure or kind
            if version is not None:
                record.latest_version = version.version
                record.idea_version = version.idea_version

        self.last_failure = failure
        return result
