"""MIA — Meta Raw → MetricsSnapshot Transformer.

Converts raw Meta Marketing API campaign insights into the universal
MetricsSnapshot schema with a MetaMetrics extension.
"""

from typing import Any, Dict, List, Optional

from mia.connectors.parsing import safe_float, safe_int
from mia.models.campaign_models import Campaign
from mia.models.insight_models import MetaMetrics, MetricsSnapshot, Ranking
from mia.core.logging import get_logger

logger = get_logger("meta.transformer")

# Action types counted as conversions
CONVERSION_ACTIONS = ("purchase", "complete_registration", "lead", "add_to_cart")
# Action types counted toward engagement rate
ENGAGEMENT_ACTIONS = ("like", "comment", "share", "post_engagement")
VIDEO_VIEW_ACTIONS = ("video_view", "video_play")

CAMPAIGN_STATUS_MAP = {
    "ACTIVE": "active",
    "PAUSED": "paused",
}


def _sum_actions(actions: List[Dict[str, Any]], action_types: tuple) -> float:
    return sum(
        safe_float(a.get("value"))
        for a in actions
        if a.get("action_type") in action_types
    )


def _extract_conversions(actions: List[Dict[str, Any]]) -> float:
    return float(
        sum(
            safe_int(a.get("value"))
            for a in actions
            if a.get("action_type") in CONVERSION_ACTIONS
        )
    )


def _extract_conversion_value(conversion_values: List[Dict[str, Any]]) -> float:
    return _sum_actions(conversion_values, ("purchase",))


def _engagement_rate(actions: List[Dict[str, Any]], impressions: int) -> float:
    if impressions <= 0:
        return 0.0
    return _sum_actions(actions, ENGAGEMENT_ACTIONS) / impressions * 100


def _find_action(
    actions: List[Dict[str, Any]], action_type: str
) -> Optional[Dict[str, Any]]:
    for action in actions:
        if action.get("action_type") == action_type:
            return action
    return None


def _video_completion_rate(video_actions: List[Dict[str, Any]]) -> float:
    """Completions / views; 0 unless both entries are present."""
    views = _find_action(video_actions, "video_view")
    completions = _find_action(video_actions, "video_complete")
    if not views or not completions:
        return 0.0
    view_count = safe_int(views.get("value"))
    if view_count <= 0:
        return 0.0
    return safe_int(completions.get("value")) / view_count * 100


def _normalize_ranking(ranking: Optional[str]) -> Ranking:
    """Collapse Graph API rankings (`BELOW_AVERAGE_35`, `UNKNOWN`, ...) to three buckets."""
    value = (ranking or "").lower()
    if value.startswith(Ranking.BELOW_AVERAGE.value):
        return Ranking.BELOW_AVERAGE
    if value.startswith(Ranking.ABOVE_AVERAGE.value):
        return Ranking.ABOVE_AVERAGE
    return Ranking.AVERAGE


def _transform_campaign(campaign: Dict[str, Any]) -> Optional[MetricsSnapshot]:
    rows = (campaign.get("insights") or {}).get("data") or []
    if not rows:
        return None
    row = rows[0]  # most recent insights window

    impressions = safe_int(row.get("impressions"))
    clicks = safe_int(row.get("clicks"))
    spend = safe_float(row.get("spend"))

    actions = row.get("actions") or []
    video_actions = row.get("video_play_actions") or []
    conversions = _extract_conversions(actions)
    conversion_value = _extract_conversion_value(row.get("conversion_values") or [])

    return MetricsSnapshot(
        campaign_id=str(campaign.get("id", "")),
        campaign_name=campaign.get("name", ""),
        platform="meta",
        impressions=impressions,
        clicks=clicks,
        ctr=safe_float(row.get("ctr")),
        cost=spend,
        conversions=conversions,
        conversion_rate=(conversions / clicks * 100) if clicks > 0 else 0.0,
        cpa=spend / (conversions or 1),
        roas=conversion_value / (spend or 1),
        platform_metrics=MetaMetrics(
            reach=safe_int(row.get("reach")),
            frequency=safe_float(row.get("frequency")),
            cpm=safe_float(row.get("cpm")),
            engagement_rate=_engagement_rate(actions, impressions),
            video_views=_sum_actions(video_actions, VIDEO_VIEW_ACTIONS),
            video_completion_rate=_video_completion_rate(video_actions),
            quality_ranking=_normalize_ranking(row.get("quality_ranking")),
            engagement_ranking=_normalize_ranking(row.get("engagement_rate_ranking")),
            conversion_ranking=_normalize_ranking(row.get("conversion_rate_ranking")),
        ),
    )


def transform_meta_ads_data(raw_data: Dict[str, Any]) -> List[MetricsSnapshot]:
    """Transform a raw Meta payload into one snapshot per campaign.

    Campaigns without any insights rows are dropped, not reported.
    """
    campaigns = raw_data.get("campaigns") or []
    snapshots = [
        s for s in (_transform_campaign(c) for c in campaigns) if s is not None
    ]
    logger.info(
        f"Normalized {len(snapshots)} Meta campaigns "
        f"({len(campaigns) - len(snapshots)} dropped without insights)"
    )
    return snapshots


def meta_campaigns_to_campaigns(raw_data: Dict[str, Any]) -> List[Campaign]:
    """Derive Campaign records (percent-scale ROAS) from the same payload.

    Meta budgets are expressed in minor currency units.
    """
    result: List[Campaign] = []
    for campaign in raw_data.get("campaigns") or []:
        rows = (campaign.get("insights") or {}).get("data") or []
        row = rows[0] if rows else {}
        impressions = safe_int(row.get("impressions"))
        clicks = safe_int(row.get("clicks"))
        spend = safe_float(row.get("spend"))
        conversions = _extract_conversions(row.get("actions") or [])
        conversion_value = _extract_conversion_value(
            row.get("conversion_values") or []
        )
        budget = safe_float(
            campaign.get("daily_budget") or campaign.get("lifetime_budget")
        )

        result.append(
            Campaign(
                id=str(campaign.get("id", "")),
                name=campaign.get("name", ""),
                platform="meta",
                status=CAMPAIGN_STATUS_MAP.get(
                    str(campaign.get("status", "")).upper(), "ended"
                ),
                budget=budget / 100,
                spend=spend,
                impressions=impressions,
                clicks=clicks,
                conversions=conversions,
                ctr=(clicks / impressions * 100) if impressions > 0 else 0.0,
                cpa=(spend / conversions) if conversions > 0 else 0.0,
                roas=(conversion_value / spend * 100) if spend > 0 else 0.0,
                start_date=(campaign.get("start_time") or "")[:10],
                end_date=(campaign.get("stop_time") or "")[:10] or None,
                created_at=campaign.get("created_time", ""),
                updated_at=campaign.get("updated_time", ""),
            )
        )
    logger.info(f"Derived {len(result)} Meta campaign records")
    return result
