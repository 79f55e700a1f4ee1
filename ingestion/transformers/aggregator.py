"""
Merge normalized rows from every source into one aggregate per campaign.

The aggregator is created fresh for each run and fed one source at a time,
in the precedence order fixed by ``ingestion.sources``. Two rules hold:

- Identifying attributes are first-writer-wins. A later source only fills
  slots that are still empty, so taxonomy from the authoritative sources
  merged first is never clobbered by spend-only feeds.
- Numeric metrics are strictly additive, summed into the aggregate total and
  into a per-source breakdown kept for provenance.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date as date_type
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence
import logging
import math

from ingestion.transformers import fields as f
from ingestion.transformers.fields import pick, pick_id, pick_number
from ingestion.transformers.lookups import account_for_site, platform_for_endpoint, platform_for_network_id
from models.base import Level, SnapshotSource
from schemas.records import CampaignRecordCreate

logger = logging.getLogger(__name__)

METRIC_FIELDS = ("spend_usd", "revenue_usd", "sessions", "clicks", "conversions")


@dataclass
class CampaignAggregate:
    key: str
    strategis_campaign_id: Optional[str] = None
    campaign_id: Optional[str] = None
    account_id: Optional[str] = None
    campaign_name: Optional[str] = None
    adset_id: Optional[str] = None
    adset_name: Optional[str] = None
    owner: Optional[str] = None
    lane: Optional[str] = None
    category: Optional[str] = None
    media_source: Optional[str] = None
    rsoc_site: Optional[str] = None
    network_id: Optional[str] = None
    spend_usd: float = 0.0
    revenue_usd: float = 0.0
    sessions: float = 0.0
    clicks: float = 0.0
    conversions: float = 0.0
    avg_rpc: Optional[float] = None
    source_metrics: Dict[str, Dict[str, float]] = field(default_factory=dict)


@dataclass(frozen=True)
class MergeSpec:
    """What one source contributes: attribute and metric candidate keys."""
    attributes: Mapping[str, Sequence[str]] = field(default_factory=dict)
    metrics: Mapping[str, Sequence[str]] = field(default_factory=dict)
    fixed_media_source: Optional[str] = None
    rpc_keys: Optional[Sequence[str]] = None


_TAXONOMY = {
    "account_id": f.ACCOUNT_ID_KEYS,
    "campaign_name": f.CAMPAIGN_NAME_KEYS,
    "owner": f.OWNER_KEYS,
    "lane": f.LANE_KEYS,
    "category": f.CATEGORY_KEYS,
    "rsoc_site": f.SITE_KEYS,
}

_PLATFORM_SPEND = MergeSpec(
    attributes={
        "account_id": f.ACCOUNT_ID_KEYS,
        "campaign_name": f.CAMPAIGN_NAME_KEYS,
    },
    metrics={
        "spend_usd": f.SPEND_KEYS,
        "clicks": f.CLICK_KEYS,
        "conversions": f.CONVERSION_KEYS,
    },
)

MERGE_SPECS: Mapping[str, MergeSpec] = MappingProxyType({
    "s1_daily_v3": MergeSpec(
        attributes={
            "owner": f.OWNER_KEYS,
            "lane": f.LANE_KEYS,
            "category": f.CATEGORY_KEYS,
            "media_source": f.MEDIA_SOURCE_KEYS,
            "rsoc_site": f.SITE_KEYS,
            "network_id": f.NETWORK_ID_KEYS,
        },
        metrics={
            "revenue_usd": f.REVENUE_KEYS,
            "sessions": f.SESSION_KEYS,
            "clicks": f.CLICK_KEYS,
            "conversions": f.CONVERSION_KEYS,
        },
    ),
    "facebook_campaigns": MergeSpec(attributes=_TAXONOMY, fixed_media_source="facebook"),
    "facebook_report": MergeSpec(
        attributes=_TAXONOMY,
        metrics={
            "spend_usd": f.SPEND_KEYS,
            "clicks": f.CLICK_KEYS,
            "conversions": f.CONVERSION_KEYS,
        },
        fixed_media_source="facebook",
    ),
    "facebook_adsets": MergeSpec(
        attributes={
            "adset_id": f.ADSET_ID_KEYS,
            "adset_name": f.ADSET_NAME_KEYS,
        },
        metrics={
            "spend_usd": f.SPEND_KEYS,
            "clicks": f.CLICK_KEYS,
        },
        fixed_media_source="facebook",
    ),
    "s1_rpc_average": MergeSpec(rpc_keys=f.RPC_KEYS),
    "strategis_metrics": MergeSpec(
        attributes={
            "media_source": f.MEDIA_SOURCE_KEYS,
            "rsoc_site": f.SITE_KEYS,
            "network_id": f.NETWORK_ID_KEYS,
        },
        metrics={
            "sessions": f.SESSION_KEYS,
            "clicks": f.CLICK_KEYS,
            "spend_usd": f.SPEND_KEYS,
            "revenue_usd": f.REVENUE_KEYS,
        },
    ),
    "facebook_pixel": MergeSpec(
        metrics={
            "conversions": f.PIXEL_CONVERSION_KEYS,
            "clicks": f.CLICK_KEYS,
        },
    ),
    "taboola_report": _PLATFORM_SPEND,
    "outbrain_report": _PLATFORM_SPEND,
    "newsbreak_report": _PLATFORM_SPEND,
    "mediago_report": _PLATFORM_SPEND,
    "zemanta_report": _PLATFORM_SPEND,
    "smartnews_report": _PLATFORM_SPEND,
})


def as_nullable(value: float) -> Optional[float]:
    """Collapse zero and non-finite totals to None."""
    if value is None or not math.isfinite(value):
        return None
    return None if value == 0 else value


class CampaignAggregator:
    """
    Caller-owned, per-run map from canonical campaign key to aggregate.

    Usage:
        aggregator = CampaignAggregator(run_date, Level.CAMPAIGN)
        aggregator.merge("s1_daily_v3", s1_rows)
        aggregator.merge("taboola_report", taboola_rows)
        records = aggregator.to_records(SnapshotSource.DAY)
    """

    def __init__(self, date: date_type, level: Level):
        self.date = date
        self.level = level
        self._aggregates: Dict[str, CampaignAggregate] = {}
        self.rows_merged: Counter = Counter()
        self.rows_dropped: Counter = Counter()

    def __len__(self) -> int:
        return len(self._aggregates)

    def get(self, key: str) -> Optional[CampaignAggregate]:
        return self._aggregates.get(key)

    def merge(self, source: str, rows: Iterable[Dict[str, Any]]) -> int:
        """
        Merge every row of one source; returns the number of rows merged.

        Rows that resolve to neither identifier are unattributable and dropped.
        """
        try:
            spec = MERGE_SPECS[source]
        except KeyError:
            raise ValueError(f"No merge spec registered for source '{source}'")

        fixed_media_source = spec.fixed_media_source or platform_for_endpoint(source)
        if fixed_media_source == "all":
            fixed_media_source = None

        merged = 0
        for row in rows:
            agg = self._ensure_aggregate(row, source)
            if agg is None:
                self.rows_dropped[source] += 1
                continue
            merged += 1

            for attribute, keys in spec.attributes.items():
                if attribute == "network_id":
                    self._set_if_empty(agg, attribute, pick_id(row, keys))
                else:
                    self._set_if_empty(agg, attribute, pick(row, keys))
            if fixed_media_source:
                self._set_if_empty(agg, "media_source", fixed_media_source)

            for metric, keys in spec.metrics.items():
                self._add_number(agg, source, metric, pick_number(row, keys))

            if spec.rpc_keys:
                avg_rpc = pick_number(row, spec.rpc_keys)
                if avg_rpc is not None:
                    agg.avg_rpc = avg_rpc
                    agg.source_metrics[source]["avg_rpc"] = avg_rpc

        self.rows_merged[source] += merged
        if self.rows_dropped[source]:
            logger.info(
                f"{source}: merged {merged} rows, dropped {self.rows_dropped[source]} "
                f"without a campaign identifier"
            )
        return merged

    def to_records(self, snapshot_source: SnapshotSource) -> List[CampaignRecordCreate]:
        """Emit one immutable fact record per aggregate."""
        records = []
        for agg in self._aggregates.values():
            campaign_id = agg.strategis_campaign_id or agg.campaign_id
            spend = as_nullable(agg.spend_usd)
            revenue = as_nullable(agg.revenue_usd)
            roas = revenue / spend if spend and revenue else None
            network_platform = platform_for_network_id(agg.network_id)

            records.append(CampaignRecordCreate(
                campaign_id=campaign_id,
                level=self.level,
                date=self.date,
                snapshot_source=snapshot_source,
                account_id=agg.account_id,
                campaign_name=agg.campaign_name,
                adset_id=agg.adset_id,
                adset_name=agg.adset_name,
                owner=agg.owner,
                lane=agg.lane,
                category=agg.category,
                media_source=agg.media_source or network_platform,
                rsoc_site=agg.rsoc_site,
                s1_google_account=account_for_site(agg.rsoc_site),
                spend_usd=spend,
                revenue_usd=revenue,
                sessions=as_nullable(agg.sessions),
                clicks=as_nullable(agg.clicks),
                conversions=as_nullable(agg.conversions),
                roas=roas,
                raw_payload={
                    "strategis_campaign_id": agg.strategis_campaign_id,
                    "campaign_id": agg.campaign_id,
                    "network_id": agg.network_id,
                    "network_platform": network_platform,
                    "avg_rpc": agg.avg_rpc,
                    "source_metrics": agg.source_metrics,
                },
            ))
        return records

    def _ensure_aggregate(self, row: Dict[str, Any], source: str) -> Optional[CampaignAggregate]:
        strategis_id = pick_id(row, f.STRATEGIS_CAMPAIGN_ID_KEYS)
        campaign_id = pick_id(row, f.NETWORK_CAMPAIGN_ID_KEYS)
        key = strategis_id or campaign_id
        if not key:
            return None

        agg = self._aggregates.get(key)
        if agg is None:
            agg = CampaignAggregate(
                key=key,
                strategis_campaign_id=strategis_id,
                campaign_id=campaign_id or key,
            )
            self._aggregates[key] = agg
        else:
            self._set_if_empty(agg, "strategis_campaign_id", strategis_id)
            self._set_if_empty(agg, "campaign_id", campaign_id)

        metrics = agg.source_metrics.setdefault(source, {"rows": 0})
        metrics["rows"] += 1
        return agg

    @staticmethod
    def _add_number(agg: CampaignAggregate, source: str, metric: str, value: Optional[float]) -> None:
        if value is None or math.isnan(value):
            return
        setattr(agg, metric, getattr(agg, metric) + value)
        metrics = agg.source_metrics.setdefault(source, {"rows": 0})
        metrics[metric] = metrics.get(metric, 0.0) + value

    @staticmethod
    def _set_if_empty(agg: CampaignAggregate, attribute: str, value: Any) -> None:
        if value is None:
            return
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return
        if getattr(agg, attribute):
            return
        setattr(agg, attribute, value if isinstance(value, str) else str(value))
