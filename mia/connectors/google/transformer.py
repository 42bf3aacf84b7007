"""MIA — Google Ads Raw → MetricsSnapshot Transformer.

Converts a Google Ads campaign report (micros, string-encoded counts) into
the universal MetricsSnapshot schema with a GoogleMetrics extension.
"""

from typing import Any, Dict, List

from mia.connectors.parsing import micros_to_units, safe_float, safe_int
from mia.models.campaign_models import Campaign
from mia.models.insight_models import GoogleMetrics, MetricsSnapshot
from mia.core.logging import get_logger

logger = get_logger("google.transformer")

DEFAULT_QUALITY_SCORE = 7.0

CAMPAIGN_STATUS_MAP = {
    "ENABLED": "active",
    "PAUSED": "paused",
    "REMOVED": "ended",
}


def _average_quality_score(keywords: List[Dict[str, Any]]) -> float:
    """Mean keyword quality score; keywords without a score count as 7."""
    if not keywords:
        return DEFAULT_QUALITY_SCORE
    total = sum(
        safe_float(kw.get("quality_score")) or DEFAULT_QUALITY_SCORE
        for kw in keywords
    )
    return total / len(keywords)


def _transform_campaign(campaign: Dict[str, Any]) -> MetricsSnapshot:
    metrics = campaign.get("metrics") or {}

    cost = micros_to_units(metrics.get("cost_micros"))
    impressions = safe_int(metrics.get("impressions"))
    clicks = safe_int(metrics.get("clicks"))
    conversions = safe_float(metrics.get("conversions"))
    conversion_value = safe_float(metrics.get("conversions_value"))
    impression_share = safe_float(metrics.get("search_impression_share"))

    return MetricsSnapshot(
        campaign_id=str(campaign.get("id", "")),
        campaign_name=campaign.get("name", ""),
        platform="google",
        impressions=impressions,
        clicks=clicks,
        ctr=safe_float(metrics.get("ctr")),
        cost=cost,
        conversions=conversions,
        conversion_rate=safe_float(metrics.get("conversion_rate")),
        cpa=cost / (conversions or 1),
        roas=conversion_value / (cost or 1),
        platform_metrics=GoogleMetrics(
            quality_score=_average_quality_score(campaign.get("keywords") or []),
            impression_share=impression_share,
            search_impression_share=impression_share,
            # Not present in the campaign report
            top_of_page_rate=0.0,
            absolute_top_rate=0.0,
            avg_position=0.0,
            budget_lost_is=safe_float(
                metrics.get("search_budget_lost_impression_share")
            ),
            rank_lost_is=safe_float(metrics.get("search_rank_lost_impression_share")),
        ),
    )


def transform_google_ads_data(raw_data: Dict[str, Any]) -> List[MetricsSnapshot]:
    """Transform a raw Google Ads payload into one snapshot per campaign."""
    campaigns = raw_data.get("campaigns") or []
    snapshots = [_transform_campaign(c) for c in campaigns]
    logger.info(f"Normalized {len(snapshots)} Google Ads campaigns")
    return snapshots


def google_campaigns_to_campaigns(raw_data: Dict[str, Any]) -> List[Campaign]:
    """Derive Campaign records (percent-scale ROAS) from the same payload."""
    result: List[Campaign] = []
    for campaign in raw_data.get("campaigns") or []:
        metrics = campaign.get("metrics") or {}
        budget = micros_to_units((campaign.get("budget") or {}).get("amount_micros"))
        spend = micros_to_units(metrics.get("cost_micros"))
        impressions = safe_int(metrics.get("impressions"))
        clicks = safe_int(metrics.get("clicks"))
        conversions = safe_float(metrics.get("conversions"))
        conversion_value = safe_float(metrics.get("conversions_value"))

        result.append(
            Campaign(
                id=str(campaign.get("id", "")),
                name=campaign.get("name", ""),
                platform="google",
                status=CAMPAIGN_STATUS_MAP.get(
                    str(campaign.get("status", "")).upper(), "ended"
                ),
                budget=budget,
                spend=spend,
                impressions=impressions,
                clicks=clicks,
                conversions=conversions,
                ctr=(clicks / impressions * 100) if impressions > 0 else 0.0,
                cpa=(spend / conversions) if conversions > 0 else 0.0,
                roas=(conversion_value / spend * 100) if spend > 0 else 0.0,
                start_date=campaign.get("start_date", ""),
                end_date=campaign.get("end_date"),
            )
        )
    return result
