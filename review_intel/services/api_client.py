"""
HTTP boundary to the review-analysis backend.

``ReviewIntelClient`` is a thin async wrapper over ``httpx.AsyncClient``:
one method per backend endpoint, each returning the decoded JSON body
untouched. Normalization happens in the callers. Every failure (non-2xx
status, network error, undecodable body) surfaces as ``TransportError``
and is never retried here.

Example:
    >>> async with ReviewIntelClient() as client:
    ...     status = await client.get_init_status("389801252")
"""

from typing import Any, Optional, Protocol
from urllib.parse import quote

import httpx

from review_intel.config.settings import Settings, get_settings
from review_intel.utils.errors import TransportError
from review_intel.utils.logger import get_logger

logger = get_logger(__name__)


class ReviewBackend(Protocol):
    """The backend capability the job controller and pipelines depend on."""

    async def init_app(self, app_id: str, include_competitors: bool = True) -> Any: ...
    async def get_init_status(self, app_id: str) -> Any: ...
    async def get_overview(self, app_id: str) -> Any: ...
    async def get_issues(self, app_id: str) -> Any: ...
    async def get_issue_detail(self, app_id: str, issue_id: str) -> Any: ...
    async def get_requests(self, app_id: str) -> Any: ...
    async def get_strengths(self, app_id: str) -> Any: ...
    async def get_regression_timeline(self, app_id: str, view: str = "version") -> Any: ...
    async def discover_competitors(self, app_id: str) -> Any: ...
    async def get_competitors(self, app_id: str) -> Any: ...
    async def get_swot(self, app_id: str) -> Any: ...
    async def get_roadmap(self, app_id: str) -> Any: ...
    async def list_apps(self) -> Any: ...
    async def analyze_competitors(self, app_id: str, competitor_ids: list[str], days: int = 365) -> Any: ...
    async def query(self, app_id: str, query: str) -> Any: ...


class ReviewIntelClient:
    """
    Async client for the review-analysis REST API.

    Owns one ``httpx.AsyncClient``; use as an async context manager or call
    ``connect()`` / ``disconnect()`` explicitly.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._request_count = 0
        self._error_count = 0

    async def connect(self) -> None:
        """Initialize HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.api_base_url,
                timeout=httpx.Timeout(self.settings.request_timeout_seconds),
                headers={"Accept": "application/json"},
                transport=self._transport,
            )

    async def disconnect(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ReviewIntelClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    @staticmethod
    def _app_path(app_id: str, suffix: str = "") -> str:
        return f"/apps/{quote(str(app_id), safe='')}{suffix}"

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return "Request failed"
        if isinstance(body, dict):
            message = body.get("message") or body.get("error")
            if isinstance(message, str) and message:
                return message
        return f"HTTP error {response.status_code}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
        cached: bool = False,
    ) -> Any:
        if not self._client:
            await self.connect()

        query = dict(params or {})
        if cached and self.settings.use_response_cache:
            query["cache"] = "yes"
        endpoint = f"{method} {path}"

        self._request_count += 1
        logger.debug("Backend request", endpoint=endpoint, params=query or None)

        try:
            response = await self._client.request(method, path, params=query or None, json=json)
            response.raise_for_status()
            data = response.json() if response.content else None

        except httpx.HTTPStatusError as e:
            self._error_count += 1
            message = self._error_message(e.response)
            logger.error(
                "Backend request failed",
                endpoint=endpoint,
                status_code=e.response.status_code,
                error=message,
            )
            raise TransportError(message, status_code=e.response.status_code, endpoint=endpoint) from e

        except httpx.HTTPError as e:
            self._error_count += 1
            message = str(e) or type(e).__name__
            logger.error("Backend unreachable", endpoint=endpoint, error=message)
            raise TransportError(message, endpoint=endpoint) from e

        except ValueError as e:
            self._error_count += 1
            logger.error("Backend returned invalid JSON", endpoint=endpoint, error=str(e))
            raise TransportError(f"Invalid JSON response from {endpoint}", endpoint=endpoint) from e

        logger.debug("Backend response", endpoint=endpoint, status_code=response.status_code)
        return data

    # -------------------------------------------------------------------------
    # Apps & analysis jobs
    # -------------------------------------------------------------------------

    async def list_apps(self) -> Any:
        return await self._request("GET", "/apps")

    async def init_app(self, app_id: str, include_competitors: bool = True) -> Any:
        """Start (or re-attach to) the backend analysis job for an app."""
        return await self._request(
            "POST",
            self._app_path(app_id, "/init"),
            json={"includeCompetitors": include_competitors},
            cached=True,
        )

    async def get_init_status(self, app_id: str) -> Any:
        return await self._request("GET", self._app_path(app_id, "/init/status"))

    # -------------------------------------------------------------------------
    # Analysis results
    # -------------------------------------------------------------------------

    async def get_overview(self, app_id: str) -> Any:
        return await self._request("GET", self._app_path(app_id, "/overview"), cached=True)

    async def get_issues(self, app_id: str) -> Any:
        return await self._request("GET", self._app_path(app_id, "/issues"), cached=True)

    async def get_issue_detail(self, app_id: str, issue_id: str) -> Any:
        path = self._app_path(app_id, f"/issues/{quote(str(issue_id), safe='')}")
        return await self._request("GET", path, cached=True)

    async def get_requests(self, app_id: str) -> Any:
        return await self._request("GET", self._app_path(app_id, "/requests"), cached=True)

    async def get_strengths(self, app_id: str) -> Any:
        return await self._request("GET", self._app_path(app_id, "/strengths"), cached=True)

    async def get_regression_timeline(self, app_id: str, view: str = "version") -> Any:
        return await self._request(
            "GET",
            self._app_path(app_id, "/regression-timeline"),
            params={"view": view},
            cached=True,
        )

    async def get_roadmap(self, app_id: str) -> Any:
        return await self._request("GET", self._app_path(app_id, "/roadmap"), cached=True)

    async def query(self, app_id: str, query: str) -> Any:
        """Ask a natural-language question about the app's reviews."""
        return await self._request(
            "POST",
            self._app_path(app_id, "/query"),
            json={"query": query},
            cached=True,
        )

    # -------------------------------------------------------------------------
    # Competitive intelligence
    # -------------------------------------------------------------------------

    async def discover_competitors(self, app_id: str) -> Any:
        """Idempotent on the backend; repeat calls may answer with an error body."""
        return await self._request("POST", self._app_path(app_id, "/competitors/discover"))

    async def get_competitors(self, app_id: str) -> Any:
        return await self._request("GET", self._app_path(app_id, "/competitors"), cached=True)

    async def get_swot(self, app_id: str) -> Any:
        return await self._request("GET", self._app_path(app_id, "/competitors/swot"), cached=True)

    async def analyze_competitors(
        self,
        app_id: str,
        competitor_ids: list[str],
        days: int = 365,
    ) -> Any:
        return await self._request(
            "POST",
            self._app_path(app_id, "/competitors/analyze"),
            json={"competitorIds": list(competitor_ids), "days": days},
        )

    def get_stats(self) -> dict[str, Any]:
        """Get client statistics."""
        return {
            "base_url": self.settings.api_base_url,
            "connected": self._client is not None,
            "request_count": self._request_count,
            "error_count": self._error_count,
        }


__all__ = ["ReviewBackend", "ReviewIntelClient"]
