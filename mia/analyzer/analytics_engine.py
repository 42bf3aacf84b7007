"""MIA — Campaign Analytics Engine.

Pure functions over synced Campaign records:
- per-platform aggregates
- first-tier performance insights (fatigue, budget, overall, platform gap)
- dashboard filtering, top/worst performers, chart trend points
"""

from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from mia.models.campaign_models import (
    AdGroup,
    Campaign,
    DashboardFilters,
    PerformanceInsight,
    PlatformMetrics,
    TrendPoint,
)
from mia.core.metric_registry import get_metric, rankable_metrics
from mia.core.logging import get_logger

logger = get_logger("analyzer.analytics")

# Ad fatigue
FATIGUE_CTR_THRESHOLD = 1.0  # %
FATIGUE_CTR_HIGH_THRESHOLD = 0.5  # %
FATIGUE_MIN_IMPRESSIONS = 10000
# Budget optimization (percent-scale campaign ROAS)
SCALE_ROAS_THRESHOLD = 300.0
REDUCE_ROAS_THRESHOLD = 100.0
REDUCE_MIN_SPEND = 100.0
MAX_SCALE_INSIGHTS = 3
MAX_REDUCE_INSIGHTS = 2
# Overall performance
TARGET_CONVERSION_ROAS = 150.0
OVERALL_MIN_SPEND = 1000.0
PLATFORM_GAP_RATIO = 1.5

SEVERITY_ORDER = {"high": 3, "medium": 2, "low": 1}


def _conversion_roas(conversions: float, spend: float) -> float:
    """Campaign-layer ROAS proxy: conversions * 100 / spend."""
    return (conversions * 100 / spend) if spend > 0 else 0.0


def calculate_platform_metrics(campaigns: Iterable[Campaign]) -> List[PlatformMetrics]:
    """Group campaigns by platform and aggregate, in first-seen order."""
    groups: Dict[str, List[Campaign]] = {}
    for campaign in campaigns:
        groups.setdefault(campaign.platform, []).append(campaign)

    metrics: List[PlatformMetrics] = []
    for platform, platform_campaigns in groups.items():
        total_spend = sum(c.spend for c in platform_campaigns)
        total_impressions = sum(c.impressions for c in platform_campaigns)
        total_clicks = sum(c.clicks for c in platform_campaigns)
        total_conversions = sum(c.conversions for c in platform_campaigns)

        metrics.append(
            PlatformMetrics(
                platform=platform,
                total_spend=total_spend,
                total_impressions=total_impressions,
                total_clicks=total_clicks,
                total_conversions=total_conversions,
                average_ctr=(
                    (total_clicks / total_impressions * 100)
                    if total_impressions > 0
                    else 0.0
                ),
                average_cpa=(
                    (total_spend / total_conversions) if total_conversions > 0 else 0.0
                ),
                average_conversion_roas=_conversion_roas(total_conversions, total_spend),
                active_campaigns=sum(
                    1 for c in platform_campaigns if c.status == "active"
                ),
            )
        )
    return metrics


# ── Insights ──


def _detect_ad_fatigue(campaigns: Sequence[Campaign]) -> List[PerformanceInsight]:
    insights: List[PerformanceInsight] = []
    for campaign in campaigns:
        if (
            campaign.ctr < FATIGUE_CTR_THRESHOLD
            and campaign.impressions > FATIGUE_MIN_IMPRESSIONS
        ):
            insights.append(
                PerformanceInsight(
                    type="ad_fatigue",
                    severity=(
                        "high" if campaign.ctr < FATIGUE_CTR_HIGH_THRESHOLD else "medium"
                    ),
                    title=f"Ad Fatigue Detected: {campaign.name}",
                    description=(
                        f"CTR has dropped to {campaign.ctr:.2f}% with "
                        f"{campaign.impressions:,} impressions"
                    ),
                    recommendation=(
                        "Consider refreshing ad creatives, updating targeting, or "
                        "pausing underperforming ads"
                    ),
                    campaign_id=campaign.id,
                    estimated_impact="Could improve CTR by 15-30%",
                )
            )
    return insights


def _analyze_budget_optimization(
    campaigns: Sequence[Campaign],
) -> List[PerformanceInsight]:
    insights: List[PerformanceInsight] = []

    high_performers = sorted(
        (c for c in campaigns if c.roas > SCALE_ROAS_THRESHOLD and c.status == "active"),
        key=lambda c: c.roas,
        reverse=True,
    )
    low_performers = sorted(
        (
            c
            for c in campaigns
            if c.roas < REDUCE_ROAS_THRESHOLD
            and c.spend > REDUCE_MIN_SPEND
            and c.status == "active"
        ),
        key=lambda c: c.roas,
    )

    for campaign in high_performers[:MAX_SCALE_INSIGHTS]:
        insights.append(
            PerformanceInsight(
                type="budget_optimization",
                severity="medium",
                title=f"Scale High-Performing Campaign: {campaign.name}",
                description=(
                    f"Excellent ROAS of {campaign.roas:.0f}% with ${campaign.spend:.2f} spent"
                ),
                recommendation="Consider increasing budget by 20-50% to scale performance",
                campaign_id=campaign.id,
                estimated_impact="Could increase conversions by 25-40%",
            )
        )

    for campaign in low_performers[:MAX_REDUCE_INSIGHTS]:
        insights.append(
            PerformanceInsight(
                type="budget_optimization",
                severity="high",
                title=f"Underperforming Campaign: {campaign.name}",
                description=(
                    f"Low ROAS of {campaign.roas:.0f}% with ${campaign.spend:.2f} spent"
                ),
                recommendation=(
                    "Consider reducing budget, optimizing targeting, or pausing this campaign"
                ),
                campaign_id=campaign.id,
                estimated_impact="Could save 30-50% of wasted ad spend",
            )
        )

    return insights


def _analyze_performance(campaigns: Sequence[Campaign]) -> List[PerformanceInsight]:
    insights: List[PerformanceInsight] = []

    total_spend = sum(c.spend for c in campaigns)
    total_conversions = sum(c.conversions for c in campaigns)
    average_roas = _conversion_roas(total_conversions, total_spend)

    if average_roas < TARGET_CONVERSION_ROAS and total_spend > OVERALL_MIN_SPEND:
        insights.append(
            PerformanceInsight(
                type="keyword_performance",
                severity="high",
                title="Overall Performance Below Target",
                description=(
                    f"Average ROAS of {average_roas:.0f}% across all campaigns is below "
                    f"the {TARGET_CONVERSION_ROAS:.0f}% target"
                ),
                recommendation=(
                    "Review targeting, keywords, and ad creatives across all campaigns. "
                    "Consider A/B testing new approaches."
                ),
                estimated_impact="Could improve overall ROAS by 20-40%",
            )
        )

    platform_metrics = calculate_platform_metrics(campaigns)
    if len(platform_metrics) > 1:
        # First-seen wins on ties
        best = platform_metrics[0]
        worst = platform_metrics[0]
        for pm in platform_metrics[1:]:
            if pm.average_conversion_roas > best.average_conversion_roas:
                best = pm
            if pm.average_conversion_roas < worst.average_conversion_roas:
                worst = pm

        if best.average_conversion_roas > worst.average_conversion_roas * PLATFORM_GAP_RATIO:
            best_name = best.platform.upper()
            worst_name = worst.platform.upper()
            insights.append(
                PerformanceInsight(
                    type="creative_performance",
                    severity="medium",
                    title=f"{best_name} Outperforming {worst_name}",
                    description=(
                        f"{best_name} has {best.average_conversion_roas:.0f}% ROAS vs "
                        f"{worst_name}'s {worst.average_conversion_roas:.0f}%"
                    ),
                    recommendation=(
                        f"Consider reallocating budget from {worst.platform} to "
                        f"{best.platform} or applying successful strategies across platforms"
                    ),
                    estimated_impact="Could improve overall ROAS by 10-25%",
                )
            )

    return insights


def generate_insights(
    campaigns: Iterable[Campaign],
    ad_groups: Sequence[AdGroup] = (),
) -> List[PerformanceInsight]:
    """Fatigue, budget and overall-performance insights, high severity first."""
    campaigns = list(campaigns)
    insights: List[PerformanceInsight] = []
    insights.extend(_detect_ad_fatigue(campaigns))
    insights.extend(_analyze_budget_optimization(campaigns))
    insights.extend(_analyze_performance(campaigns))

    logger.info(
        f"Generated {len(insights)} performance insights from {len(campaigns)} campaigns",
        extra={"insight_count": len(insights)},
    )
    return sorted(insights, key=lambda i: SEVERITY_ORDER[i.severity], reverse=True)


# ── Filtering & Ranking ──


def _parse_date(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value[:10])
    except (TypeError, ValueError):
        return None


def filter_campaigns(
    campaigns: Iterable[Campaign], filters: DashboardFilters
) -> List[Campaign]:
    """Apply platform, date-range, campaign-id and status filters together.

    A campaign is in range when its start date falls within the inclusive
    filter window. Campaigns with an unparseable start date are excluded.
    """
    start = _parse_date(filters.date_range.start)
    end = _parse_date(filters.date_range.end)

    result: List[Campaign] = []
    for campaign in campaigns:
        if filters.platforms and campaign.platform not in filters.platforms:
            continue

        campaign_date = _parse_date(campaign.start_date)
        if campaign_date is None or start is None or end is None:
            continue
        if campaign_date < start or campaign_date > end:
            continue

        if filters.campaigns and campaign.id not in filters.campaigns:
            continue
        if filters.status and campaign.status not in filters.status:
            continue

        result.append(campaign)
    return result


def _check_rankable(metric: str) -> None:
    definition = get_metric(metric)
    if definition is None or not definition.rankable:
        raise ValueError(
            f"Cannot rank campaigns by {metric!r}; expected one of {rankable_metrics()}"
        )


def get_top_performers(
    campaigns: Iterable[Campaign], metric: str = "roas", limit: int = 5
) -> List[Campaign]:
    """Campaigns with a positive `metric`, highest first."""
    _check_rankable(metric)
    ranked = sorted(
        (c for c in campaigns if getattr(c, metric) > 0),
        key=lambda c: getattr(c, metric),
        reverse=True,
    )
    return ranked[:limit]


def get_worst_performers(
    campaigns: Iterable[Campaign], metric: str = "roas", limit: int = 5
) -> List[Campaign]:
    """Campaigns with a non-negative `metric`, lowest first."""
    _check_rankable(metric)
    ranked = sorted(
        (c for c in campaigns if getattr(c, metric) >= 0),
        key=lambda c: getattr(c, metric),
    )
    return ranked[:limit]


# ── Trends ──


def calculate_trends(
    campaigns: Iterable[Campaign],
    days: int = 30,
    today: Optional[date] = None,
) -> List[TrendPoint]:
    """Interpolate aggregate totals evenly over the last `days` days.

    Campaign records carry totals only, so every point is the same share
    of the totals. This is a chart placeholder, not a time series: it shows
    no day-to-day variation and must not be read as a forecast.
    """
    if days <= 0:
        return []

    campaigns = list(campaigns)
    today = today or date.today()

    day_spend = sum(c.spend / days for c in campaigns)
    day_conversions = sum(c.conversions / days for c in campaigns)
    day_impressions = sum(c.impressions / days for c in campaigns)
    day_clicks = sum(c.clicks / days for c in campaigns)

    trends: List[TrendPoint] = []
    for offset in range(days - 1, -1, -1):
        trends.append(
            TrendPoint(
                date=(today - timedelta(days=offset)).isoformat(),
                spend=round(day_spend, 2),
                conversions=round(day_conversions, 2),
                conversion_roas=round(_conversion_roas(day_conversions, day_spend), 2),
                impressions=round(day_impressions),
                clicks=round(day_clicks),
            )
        )
    return trends
