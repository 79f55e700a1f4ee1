"""
Upstream reporting API client: one fetch operation per endpoint.

Each ``fetch_*`` method requests a single day and returns the raw,
heterogeneous rows of that report. Retrying is not done here; failures are
classified so the retry guard can decide:

- Timeouts, transport errors and statuses in ``RETRYABLE_STATUSES`` raise
  ``TransientNetworkError``
- Every other non-2xx response, and undecodable JSON, raises
  ``PermanentRequestError``
"""

import httpx
from datetime import date as date_type
from typing import Any, Dict, List, Optional
from core.config import settings
from core.exceptions import PermanentRequestError, TransientNetworkError
from ingestion.transformers.lookups import NETWORK_IDS
import logging

logger = logging.getLogger(__name__)

CAMPAIGN_DIMENSIONS = "date-strategisCampaignId"


def extract_rows(payload: Any) -> List[Dict[str, Any]]:
    """Unwrap the row list from the response envelopes the API uses."""
    if not payload:
        return []
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        data = payload.get("data")
        if isinstance(data, list):
            return data
        if isinstance(payload.get("rows"), list):
            return payload["rows"]
        if isinstance(data, dict) and isinstance(data.get("data"), list):
            return data["data"]
    return []


class StrategisApi:
    """
    Async client for the reporting endpoints feeding the campaign index.

    Features:
    - Bearer token authentication
    - Shared ``httpx.AsyncClient`` (pass one in to control transport/tests)
    - Failure classification into transient vs permanent errors

    Usage:
        async with StrategisApi() as api:
            rows = await api.fetch_s1_daily(date(2025, 1, 10))
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        bearer_token: Optional[str] = None,
        organization: Optional[str] = None,
        ad_source: Optional[str] = None,
        network_id: Optional[str] = None,
        timezone: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.STRATEGIS_BASE_URL).rstrip("/")
        self.bearer_token = bearer_token or settings.STRATEGIS_BEARER_TOKEN
        self.organization = organization or settings.STRATEGIS_ORGANIZATION
        self.ad_source = ad_source or settings.STRATEGIS_AD_SOURCE
        self.network_id = network_id or settings.STRATEGIS_NETWORK_ID
        self.timezone = timezone or settings.STRATEGIS_TIMEZONE
        self.timeout = timeout or settings.STRATEGIS_TIMEOUT_SECONDS
        self.retryable_statuses = frozenset(settings.RETRYABLE_STATUSES)
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)

    async def __aenter__(self) -> "StrategisApi":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, endpoint: str, path: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        GET one report and return its rows.

        Raises:
            TransientNetworkError: Timeout, transport failure or retryable status
            PermanentRequestError: Any other failure
        """
        headers = {"Content-Type": "application/json"}
        if self.bearer_token:
            headers["Authorization"] = f"Bearer {self.bearer_token}"
        url = f"{self.base_url}{path}"
        context = {"url": url}

        try:
            response = await self._client.get(url, params=params, headers=headers, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise TransientNetworkError(
                f"Request timeout for {endpoint}", endpoint=endpoint,
                context={**context, "timeout": self.timeout}, original_exception=e
            )
        except httpx.TransportError as e:
            raise TransientNetworkError(
                f"Network error for {endpoint}", endpoint=endpoint,
                context=context, original_exception=e
            )

        status = response.status_code
        if status in self.retryable_statuses:
            raise TransientNetworkError(
                f"Transient HTTP {status} from {endpoint}", endpoint=endpoint,
                http_status=status, context=context
            )
        if status >= 400:
            raise PermanentRequestError(
                f"HTTP {status} from {endpoint}", endpoint=endpoint, http_status=status,
                context={**context, "response_body": response.text[:500]}
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise PermanentRequestError(
                f"Failed to parse JSON response from {endpoint}", endpoint=endpoint,
                http_status=status, context={**context, "response_body": response.text[:500]},
                original_exception=e
            )

        rows = extract_rows(payload)
        logger.debug(f"{endpoint}: {len(rows)} rows from {path}")
        return rows

    def _day(self, date: date_type) -> Dict[str, Any]:
        day = date.isoformat()
        return {"dateStart": day, "dateEnd": day, "organization": self.organization}

    # ------------------------------------------------------------------
    # Revenue and taxonomy (critical)
    # ------------------------------------------------------------------

    async def fetch_s1_daily(self, date: date_type, include_all_networks: bool = False) -> List[Dict[str, Any]]:
        params = {
            **self._day(date),
            "adSource": self.ad_source,
            "timezone": self.timezone,
            "dbSource": settings.STRATEGIS_DB_SOURCE,
            "dimensions": CAMPAIGN_DIMENSIONS,
        }
        if not include_all_networks:
            params["networkId"] = self.network_id
        return await self._get("s1_daily_v3", "/api/s1/report/daily-v3", params)

    async def fetch_facebook_campaigns(self, date: date_type, include_all_networks: bool = False) -> List[Dict[str, Any]]:
        params = {**self._day(date), "adSource": self.ad_source, "dbSource": settings.STRATEGIS_DB_SOURCE}
        return await self._get("facebook_campaigns", "/api/facebook/campaigns", params)

    async def fetch_facebook_report(self, date: date_type, include_all_networks: bool = False) -> List[Dict[str, Any]]:
        params = {
            **self._day(date),
            "adSource": self.ad_source,
            "level": "campaign",
            "dimensions": "campaignId",
            "cached": 1,
            "dbSource": settings.STRATEGIS_DB_SOURCE,
        }
        if not include_all_networks:
            params["networkName"] = "facebook"
        return await self._get("facebook_report", "/api/facebook/report", params)

    # ------------------------------------------------------------------
    # Spend, pixel and auxiliary feeds (optional)
    # ------------------------------------------------------------------

    async def fetch_facebook_adsets(self, date: date_type, include_all_networks: bool = False) -> List[Dict[str, Any]]:
        params = {**self._day(date), "adSource": self.ad_source, "dbSource": settings.STRATEGIS_DB_SOURCE}
        return await self._get("facebook_adsets", "/api/facebook/adsets/day", params)

    async def fetch_s1_rpc_average(self, date: date_type, include_all_networks: bool = False) -> List[Dict[str, Any]]:
        params = {
            "date": date.isoformat(),
            "days": settings.STRATEGIS_RPC_DAYS,
            "organization": self.organization,
            "adSource": self.ad_source,
            "timezone": self.timezone,
            "dimensions": "strategisCampaignId",
        }
        if not include_all_networks:
            params["networkId"] = self.network_id
        return await self._get("s1_rpc_average", "/api/s1/rpc-average", params)

    async def fetch_strategis_metrics(self, date: date_type, include_all_networks: bool = False) -> List[Dict[str, Any]]:
        params = {
            **self._day(date),
            "adSource": self.ad_source,
            "dbSource": settings.STRATEGIS_DB_SOURCE,
            "timezone": self.timezone,
            "dimensions": CAMPAIGN_DIMENSIONS,
        }
        if not include_all_networks:
            params["networkName"] = "facebook"
        return await self._get("strategis_metrics", "/api/strategis-report", params)

    async def fetch_facebook_pixel(self, date: date_type, include_all_networks: bool = False) -> List[Dict[str, Any]]:
        params = {
            **self._day(date),
            "adSource": self.ad_source,
            "timezone": self.timezone,
            "dimensions": CAMPAIGN_DIMENSIONS,
        }
        if not include_all_networks:
            params["networkName"] = "facebook"
        return await self._get("facebook_pixel", "/api/facebook-pixel-report", params)

    async def fetch_platform_report(self, platform: str, date: date_type) -> List[Dict[str, Any]]:
        """Spend report of one native ad platform (taboola, outbrain, ...)."""
        params = {
            **self._day(date),
            "adSource": self.ad_source,
            "networkId": NETWORK_IDS[platform],
            "timezone": self.timezone,
            "dimensions": CAMPAIGN_DIMENSIONS,
        }
        return await self._get(f"{platform}_report", f"/api/{platform}/report", params)

    async def fetch_taboola_report(self, date: date_type, include_all_networks: bool = False) -> List[Dict[str, Any]]:
        return await self.fetch_platform_report("taboola", date)

    async def fetch_outbrain_report(self, date: date_type, include_all_networks: bool = False) -> List[Dict[str, Any]]:
        return await self.fetch_platform_report("outbrain", date)

    async def fetch_newsbreak_report(self, date: date_type, include_all_networks: bool = False) -> List[Dict[str, Any]]:
        return await self.fetch_platform_report("newsbreak", date)

    async def fetch_mediago_report(self, date: date_type, include_all_networks: bool = False) -> List[Dict[str, Any]]:
        return await self.fetch_platform_report("mediago", date)

    async def fetch_zemanta_report(self, date: date_type, include_all_networks: bool = False) -> List[Dict[str, Any]]:
        return await self.fetch_platform_report("zemanta", date)

    async def fetch_smartnews_report(self, date: date_type, include_all_networks: bool = False) -> List[Dict[str, Any]]:
        return await self.fetch_platform_report("smartnews", date)
