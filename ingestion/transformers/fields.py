"""
"First present key wins" field extraction for heterogeneous source rows.

Every upstream report names the same logical field differently
(``campaign_id`` vs ``campaignId`` vs ``campaign``). The candidate-key
tuples below are the single place that schema knowledge lives; each logical
field is read by trying its candidates in order.
"""

import math
from typing import Any, Dict, Iterable, Optional, Sequence

# ----------------------------------------------------------------------------
# Identity
# ----------------------------------------------------------------------------

STRATEGIS_CAMPAIGN_ID_KEYS = (
    "strategisCampaignId",
    "strategis_campaign_id",
    "strategiscampaignid",
    "strategisCampaignID",
)
NETWORK_CAMPAIGN_ID_KEYS = ("campaign_id", "campaignId", "campaign", "networkCampaignId", "id")
SNAPSHOT_CAMPAIGN_ID_KEYS = ("campaign_id", "campaignid", "campaign")

# ----------------------------------------------------------------------------
# Identifying attributes
# ----------------------------------------------------------------------------

ACCOUNT_ID_KEYS = ("account_id", "ad_account_id", "adAccountId", "accountid")
CAMPAIGN_NAME_KEYS = ("campaign_name", "networkCampaignName", "name")
ADSET_ID_KEYS = ("adset_id", "adSetId", "ad_set_id", "networkAdGroupId")
ADSET_NAME_KEYS = ("adset_name", "adSetName", "ad_set_name")
OWNER_KEYS = ("owner", "buyer")
LANE_KEYS = ("lane",)
CATEGORY_KEYS = ("category",)
MEDIA_SOURCE_KEYS = ("media_source", "source", "traffic_source", "networkName", "adSource")
SITE_KEYS = ("rsoc_site", "rsocSite", "site", "domain")
NETWORK_ID_KEYS = ("networkId", "network_id")

# ----------------------------------------------------------------------------
# Additive metrics
# ----------------------------------------------------------------------------

SPEND_KEYS = ("spend", "spend_usd", "amount_spent", "spent", "cost", "cost_usd")
REVENUE_KEYS = ("revenue", "revenue_usd", "estimated_revenue", "estimatedRevenue", "revenueUsd")
SESSION_KEYS = ("sessions", "searches", "visits")
CLICK_KEYS = ("clicks",)
CONVERSION_KEYS = ("conversions", "purchase", "purchases")
PIXEL_CONVERSION_KEYS = ("conversions", "purchases", "pixel_conversions")

# Pre-computed, not summable
RPC_KEYS = ("rpc", "rpc_average", "avg_rpc")
ROAS_KEYS = ("roas",)

# ----------------------------------------------------------------------------
# Captured snapshot columns (already snake_case, fewer variants)
# ----------------------------------------------------------------------------

SNAPSHOT_SITE_KEYS = ("rsoc_site", "site")
SNAPSHOT_CAMPAIGN_NAME_KEYS = ("campaign_name", "name")
SNAPSHOT_ADSET_ID_KEYS = ("adset_id", "ad_set_id")
SNAPSHOT_ADSET_NAME_KEYS = ("adset_name", "ad_set_name")
SNAPSHOT_OWNER_KEYS = ("owner",)
SNAPSHOT_MEDIA_SOURCE_KEYS = ("source", "traffic_source", "media_source")
SNAPSHOT_S1_ACCOUNT_KEYS = ("s1_google_account",)
SNAPSHOT_SPEND_KEYS = ("spend_usd", "spend")
SNAPSHOT_REVENUE_KEYS = ("revenue_usd", "revenue")
SNAPSHOT_SESSION_KEYS = ("sessions",)
SNAPSHOT_CLICK_KEYS = ("clicks",)
SNAPSHOT_CONVERSION_KEYS = ("conversions",)

# ----------------------------------------------------------------------------
# Financial presence scan (quality guard)
# ----------------------------------------------------------------------------

REVENUE_INDICATOR_FIELDS =("revenue", "revenue_usd", "estimated_revenue", "revenueUsd")
SPEND_INDICATOR_FIELDS = ("spend", "spend_usd", "spent", "cost", "cost_usd")


def pick(row: Dict[str, Any], keys: Sequence[str]) -> Any:
    """
    Return the value of the first candidate key that is present.

    None values and blank strings count as absent; any other value,
    including ``0`` and ``False``, is returned as-is.
    """
    for key in keys:
        value = row.get(key)
        if value is None:
            continue
        if isinstance(value, str):
            if value.strip():
                return value
            continue
        # pandas hands missing CSV cells over as NaN
        if isinstance(value, float) and math.isnan(value):
            continue
        return value
    return None


def pick_number(row: Dict[str, Any], keys: Sequence[str]) -> Optional[float]:
    """Like :func:`pick`, coerced to a finite float; anything else is None."""
    raw = pick(row, keys)
    if raw is None or isinstance(raw, bool):
        return None
    try:
        number = float(raw)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def pick_id(row: Dict[str, Any], keys: Sequence[str]) -> Optional[str]:
    """Like :func:`pick`, normalized to a stripped string identifier."""
    value = pick(row, keys)
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        # CSV readers turn numeric ids into floats
        value = int(value)
    text = str(value).strip()
    return text or None


def has_positive_value(rows: Iterable[Dict[str, Any]], fields: Sequence[str]) -> bool:
    """True when any row carries a positive number under any of ``fields``."""
    for row in rows:
        for field in fields:
            value = pick_number(row, (field,))
            if value is not None and value > 0:
                return True
    return False
