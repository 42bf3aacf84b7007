"""MIA — Meta API Client.

Handles authentication, retry logic, rate limiting, and pagination.
Uses a pre-issued access token from settings; login flows live elsewhere.
"""

import asyncio
from typing import Any, Dict, List, Optional

import httpx

from mia.config import settings
from mia.core.logging import get_logger

logger = get_logger("meta.client")

META_BASE = f"{settings.meta_base_url}/{settings.meta_api_version}"
MAX_RETRIES = 3
RETRY_BASE_DELAY = 2  # seconds

# Fields requested per insights row; the transformer reads these
INSIGHT_FIELDS = (
    "impressions,clicks,spend,reach,frequency,ctr,cpc,cpm,cpp,"
    "actions,conversion_values,video_play_actions,video_avg_time_watched_actions,"
    "quality_ranking,engagement_rate_ranking,conversion_rate_ranking"
)
CAMPAIGN_FIELDS = (
    "id,name,status,objective,buying_type,budget_remaining,daily_budget,"
    "lifetime_budget,start_time,stop_time,created_time,updated_time"
)
ACCOUNT_FIELDS = "name,account_id,account_status,currency,timezone_name"


class MetaAPIError(Exception):
    """Raised when Meta API returns an error."""

    def __init__(self, message: str, status_code: int = 0, error_code: int = 0):
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)


class MetaClient:
    """Async HTTP client for Meta Marketing API."""

    def __init__(
        self,
        access_token: str | None = None,
        ad_account_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.access_token = access_token or settings.meta_access_token
        self.ad_account_id = ad_account_id or settings.meta_ad_account_id
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=30.0, transport=self._transport)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    # ── Core Request Method ──

    def _signed_url(self, url: str, params: Dict[str, Any] | None) -> httpx.URL:
        """`url` with `params` merged into its query and the token added once.

        Paging `next` links already carry their cursor (and usually the
        token), so the existing query string is kept intact.
        """
        signed = httpx.URL(url)
        if params:
            signed = signed.copy_merge_params(params)
        if "access_token" not in signed.params:
            signed = signed.copy_set_param("access_token", self.access_token)
        return signed

    @staticmethod
    async def _backoff(attempt: int, reason: str) -> None:
        wait = RETRY_BASE_DELAY * (2 ** (attempt - 1))
        logger.warning(f"{reason}. Retrying in {wait}s (attempt {attempt}/{MAX_RETRIES})")
        await asyncio.sleep(wait)

    @staticmethod
    def _graph_error(response: httpx.Response) -> MetaAPIError:
        error: Dict[str, Any] = {}
        if response.headers.get("content-type", "").startswith("application/json"):
            error = response.json().get("error") or {}
        return MetaAPIError(
            error.get("message") or f"Graph API returned {response.status_code}",
            response.status_code,
            error.get("code", 0),
        )

    async def _request(
        self,
        method: str,
        url: str,
        params: Dict[str, Any] | None = None,
    ) -> Dict[str, Any]:
        """Signed Graph API call; 429, 5xx and transport errors are retried."""
        signed = self._signed_url(url, params)
        client = await self._get_client()

        for attempt in range(1, MAX_RETRIES + 1):
            try:
                resp = await client.request(method, signed)
            except httpx.RequestError as e:
                if attempt < MAX_RETRIES:
                    await self._backoff(attempt, f"Request error: {e}")
                    continue
                raise MetaAPIError(
                    f"Connection failed after {MAX_RETRIES} retries: {e}"
                ) from e

            if resp.status_code == 429:
                await self._backoff(attempt, "Rate limited (429)")
                continue
            if resp.status_code >= 500 and attempt < MAX_RETRIES:
                await self._backoff(attempt, f"Server error {resp.status_code}")
                continue
            if resp.is_error:
                raise self._graph_error(resp)
            return resp.json()

        raise MetaAPIError("Max retries exhausted", status_code=429)

    # ── Pagination ──

    async def _paginated_get(
        self,
        url: str,
        params: Dict[str, Any] | None = None,
        max_pages: int = 50,
    ) -> List[Dict[str, Any]]:
        """Collect `data` across pages by following `paging.next` verbatim."""
        records: List[Dict[str, Any]] = []
        next_url: str | None = url
        next_params = params

        pages = 0
        while next_url and pages < max_pages:
            page = await self._request("GET", next_url, next_params)
            records.extend(page.get("data", []))
            next_url = (page.get("paging") or {}).get("next")
            next_params = None
            pages += 1

        if next_url:
            logger.warning(f"Stopped after {max_pages} pages of {url}")
        logger.info(f"Fetched {len(records)} records over {pages} pages from {url}")
        return records

    # ── Token Validation ──

    async def validate_token(self) -> Dict[str, Any]:
        """Inspect the configured token via `debug_token`."""
        result = await self._request(
            "GET", f"{META_BASE}/debug_token", {"input_token": self.access_token}
        )
        token = result.get("data") or {}
        return {
            "valid": bool(token.get("is_valid")),
            "expires_at": token.get("expires_at", 0),
            "scopes": token.get("scopes") or [],
            "app_id": token.get("app_id", ""),
        }

    # ── Account & Campaigns ──

    async def get_account_info(self) -> Dict[str, Any]:
        """Fetch ad account details."""
        url = f"{META_BASE}/{self.ad_account_id}"
        return await self._request("GET", url, {"fields": ACCOUNT_FIELDS})

    async def fetch_campaigns_with_insights(
        self, date_preset: str | None = None
    ) -> Dict[str, Any]:
        """Fetch campaigns with an embedded insights edge.

        Returns the `{"campaigns": [...], "account": {...}}` payload the
        Meta transformer consumes.
        """
        preset = date_preset or settings.meta_date_preset
        url = f"{META_BASE}/{self.ad_account_id}/campaigns"
        fields = f"{CAMPAIGN_FIELDS},insights.date_preset({preset}){{{INSIGHT_FIELDS}}}"
        campaigns = await self._paginated_get(url, {"fields": fields, "limit": 100})
        account = await self.get_account_info()
        return {"campaigns": campaigns, "account": account}
