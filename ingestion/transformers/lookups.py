"""
Static dictionary lookups used while emitting fact records.

All maps are read-only. Unmapped keys resolve to ``None`` so callers can
leave the target column empty instead of inventing a label.
"""

from types import MappingProxyType
from typing import Any, Optional

NETWORK_IDS = MappingProxyType({
    "taboola": "107",
    "gemini": "108",
    "outbrain": "109",
    "facebookDigitalMoses": "110",
    "tiktok": "111",
    "facebook": "112",
    "mediago": "113",
    "googleads": "114",
    "zemanta": "115",
    "newsbreak": "116",
    "smartnews": "117",
})

NETWORK_ID_TO_PLATFORM = MappingProxyType({v: k for k, v in NETWORK_IDS.items()})

ENDPOINT_PLATFORMS = MappingProxyType({
    "taboola_report": "taboola",
    "outbrain_report": "outbrain",
    "newsbreak_report": "newsbreak",
    "mediago_report": "mediago",
    "zemanta_report": "zemanta",
    "smartnews_report": "smartnews",
    "facebook_report": "facebook",
    "facebook_campaigns": "facebook",
    "facebook_adsets": "facebook",
    "facebook_pixel": "facebook",
    "strategis_metrics": "facebook",
    "s1_daily_v3": "all",
    "s1_reconciled": "all",
    "s1_rpc_average": "all",
})

# RSOC site -> S1 Google account that monetizes it
SITE_TO_S1_ACCOUNT = MappingProxyType({
    "wesoughtit.com": "S1 Google - WSI",
    "searchalike.com": "S1 Google - SAL",
    "topicfinds.com": "S1 Google - TPF",
    "trendingtopics.io": "S1 Google - TTI",
    "knowfastly.com": "S1 Google - KNF",
})


def platform_for_network_id(network_id: Any) -> Optional[str]:
    """Map a numeric network id (``112`` or ``"112"``) to its platform label."""
    if network_id is None or network_id == "":
        return None
    if isinstance(network_id, float) and network_id.is_integer():
        network_id = int(network_id)
    return NETWORK_ID_TO_PLATFORM.get(str(network_id).strip())


def platform_for_endpoint(endpoint: str) -> Optional[str]:
    return ENDPOINT_PLATFORMS.get(endpoint)


def account_for_site(site: Optional[str]) -> Optional[str]:
    """Map a raw site string to its S1 account; scheme, www. and case are ignored."""
    if not site:
        return None
    host = str(site).strip().lower()
    for prefix in ("https://", "http://"):
        if host.startswith(prefix):
            host = host[len(prefix):]
    host = host.split("/", 1)[0]
    if host.startswith("www."):
        host = host[4:]
    return SITE_TO_S1_ACCOUNT.get(host)
