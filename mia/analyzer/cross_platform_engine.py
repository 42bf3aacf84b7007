"""MIA — Cross-Platform Analysis.

Rolls Google and Meta snapshots up into one CrossPlatformMetrics view and
derives account-level insights from it:
- campaigns well below the blended ROAS
- platform arbitrage (one platform clearly out-returning the other)
- high-ROAS campaigns worth scaling
- Google quality score / Meta quality ranking warnings
"""

from typing import List, Sequence

from mia.analyzer.insight_templates import rank_insights
from mia.models.analysis_models import (
    CrossPlatformMetrics,
    PlatformBreakdown,
    TopCampaign,
)
from mia.models.insight_models import (
    AdInsight,
    InsightType,
    MetricsSnapshot,
    Ranking,
    Severity,
)
from mia.core.logging import get_logger

logger = get_logger("analyzer.cross_platform")

UNDERPERFORMANCE_RATIO = 0.7
ARBITRAGE_ROAS_GAP = 0.5
SCALE_MIN_ROAS = 4.0
SCALE_MIN_COST = 1000.0
QUALITY_SCORE_WARNING = 6.0
TOP_CAMPAIGN_LIMIT = 10


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def _revenue(snapshot: MetricsSnapshot) -> float:
    return snapshot.roas * snapshot.cost


def _breakdown(snapshots: Sequence[MetricsSnapshot], total_spend: float) -> PlatformBreakdown:
    spend = sum(s.cost for s in snapshots)
    revenue = sum(_revenue(s) for s in snapshots)
    return PlatformBreakdown(
        spend=spend,
        revenue=revenue,
        conversions=sum(s.conversions for s in snapshots),
        roas=_ratio(revenue, spend),
        share=_ratio(spend, total_spend) * 100,
    )


def _insight_platform(snapshot: MetricsSnapshot) -> str:
    if snapshot.platform == "google":
        return "google"
    if snapshot.platform == "meta":
        return "meta"
    return "cross-platform"


def create_cross_platform_analysis(
    google: Sequence[MetricsSnapshot], meta: Sequence[MetricsSnapshot]
) -> CrossPlatformMetrics:
    """Aggregate both platforms; every ratio is 0 when its denominator is."""
    all_snapshots = [*google, *meta]

    total_spend = sum(s.cost for s in all_snapshots)
    total_revenue = sum(_revenue(s) for s in all_snapshots)
    total_conversions = sum(s.conversions for s in all_snapshots)
    total_impressions = sum(s.impressions for s in all_snapshots)
    total_clicks = sum(s.clicks for s in all_snapshots)

    ranked = sorted(
        (s for s in all_snapshots if s.platform in ("google", "meta")),
        key=lambda s: s.roas,
        reverse=True,
    )

    return CrossPlatformMetrics(
        total_spend=total_spend,
        total_revenue=total_revenue,
        total_conversions=total_conversions,
        total_impressions=total_impressions,
        total_clicks=total_clicks,
        average_roas=_ratio(total_revenue, total_spend),
        average_cpa=_ratio(total_spend, total_conversions),
        average_ctr=_ratio(total_clicks, total_impressions) * 100,
        google=_breakdown(google, total_spend),
        meta=_breakdown(meta, total_spend),
        top_performing_campaigns=[
            TopCampaign(
                id=s.campaign_id or "",
                name=s.campaign_name or "",
                platform=s.platform,
                roas=s.roas,
                spend=s.cost,
                conversions=s.conversions,
            )
            for s in ranked[:TOP_CAMPAIGN_LIMIT]
        ],
    )


# ── Insight Rules ──


def _underperformer_insights(
    snapshots: Sequence[MetricsSnapshot], cross: CrossPlatformMetrics, timeframe: str
) -> List[AdInsight]:
    average = cross.average_roas
    insights: List[AdInsight] = []
    for s in snapshots:
        if s.roas >= average * UNDERPERFORMANCE_RATIO:
            continue
        savings = s.cost * 0.3
        insights.append(
            AdInsight(
                id=f"underperforming_{s.campaign_id}",
                type=InsightType.ROAS_BELOW_TARGET,
                severity=Severity.CRITICAL if s.roas < 1 else Severity.HIGH,
                title=f"{s.campaign_name} Underperforming",
                description=(
                    f"Campaign ROAS of {s.roas:.2f} is "
                    f"{_ratio(average - s.roas, average) * 100:.1f}% below account average."
                ),
                recommendation=(
                    "Review targeting, adjust bids, or pause low-performing ad groups "
                    "to improve efficiency."
                ),
                estimated_impact=f"Potential monthly savings: ${savings:.0f}",
                estimated_impact_usd=round(savings),
                confidence=85,
                data_points=["roas", "cost", "conversions"],
                platform=_insight_platform(s),
                campaign_id=s.campaign_id,
                timeframe=timeframe,
                automation_possible=True,
            )
        )
    return insights


def _arbitrage_insights(
    google: Sequence[MetricsSnapshot],
    meta: Sequence[MetricsSnapshot],
    cross: CrossPlatformMetrics,
    timeframe: str,
) -> List[AdInsight]:
    # A missing platform reads as ROAS 0, which is not an arbitrage signal
    if not google or not meta:
        return []

    gap = abs(cross.google.roas - cross.meta.roas)
    if gap <= ARBITRAGE_ROAS_GAP:
        return []

    better, worse = (
        ("Google", "Meta") if cross.google.roas > cross.meta.roas else ("Meta", "Google")
    )
    upside = cross.total_spend * 0.2 * gap
    return [
        AdInsight(
            id="platform_arbitrage",
            type=InsightType.PLATFORM_ARBITRAGE,
            severity=Severity.OPPORTUNITY,
            title=f"{better} Outperforming {worse}",
            description=(
                f"{better} has {gap:.2f} higher ROAS. Consider reallocating budget to "
                "maximize returns."
            ),
            recommendation=(
                f"Shift 20-30% of budget from {worse} to {better} to improve overall "
                "performance."
            ),
            estimated_impact=f"Potential monthly revenue increase: ${upside:.0f}",
            estimated_impact_usd=round(upside),
            confidence=75,
            data_points=["roas", "spend", "platform_performance"],
            platform="cross-platform",
            timeframe=timeframe,
        )
    ]


def _scale_insights(
    snapshots: Sequence[MetricsSnapshot], timeframe: str
) -> List[AdInsight]:
    insights: List[AdInsight] = []
    for s in snapshots:
        if not (s.roas > SCALE_MIN_ROAS and s.cost > SCALE_MIN_COST):
            continue
        upside = s.cost * 0.5 * s.roas
        insights.append(
            AdInsight(
                id=f"budget_opportunity_{s.campaign_id}",
                type=InsightType.BUDGET_OPTIMIZATION,
                severity=Severity.OPPORTUNITY,
                title=f"Scale High-Performing Campaign: {s.campaign_name}",
                description=(
                    f"Campaign has excellent ROAS of {s.roas:.2f} and could benefit from "
                    "increased budget allocation."
                ),
                recommendation=(
                    "Consider increasing budget by 25-50% to capture more profitable "
                    "conversions."
                ),
                estimated_impact=f"Potential additional monthly revenue: ${upside:.0f}",
                estimated_impact_usd=round(upside),
                confidence=80,
                data_points=["roas", "spend", "conversions"],
                platform=_insight_platform(s),
                campaign_id=s.campaign_id,
                timeframe=timeframe,
                automation_possible=True,
            )
        )
    return insights


def _quality_insights(
    google: Sequence[MetricsSnapshot], meta: Sequence[MetricsSnapshot]
) -> List[AdInsight]:
    insights: List[AdInsight] = []

    for s in google:
        if s.google is None or s.google.quality_score >= QUALITY_SCORE_WARNING:
            continue
        savings = s.cost * 0.3
        insights.append(
            AdInsight(
                id=f"quality_score_{s.campaign_id}",
                type=InsightType.QUALITY_SCORE_DROP,
                severity=Severity.HIGH,
                title=f"Low Quality Score: {s.campaign_name}",
                description=(
                    f"Quality Score of {s.google.quality_score:.1f} is impacting campaign "
                    "efficiency and costs."
                ),
                recommendation=(
                    "Improve ad relevance, landing page experience, and keyword alignment "
                    "to boost Quality Score."
                ),
                estimated_impact=(
                    f"Potential CPC reduction: 20-40% (Monthly savings: ${savings:.0f})"
                ),
                estimated_impact_usd=round(savings),
                confidence=90,
                data_points=["quality_score", "cpc", "ctr"],
                platform="google",
                campaign_id=s.campaign_id,
                timeframe="Current",
            )
        )

    for s in meta:
        if s.meta is None or s.meta.quality_ranking != Ranking.BELOW_AVERAGE:
            continue
        savings = s.cost * 0.2
        insights.append(
            AdInsight(
                id=f"meta_quality_{s.campaign_id}",
                type=InsightType.CREATIVE_UNDERPERFORMING,
                severity=Severity.HIGH,
                title=f"Poor Meta Ad Quality: {s.campaign_name}",
                description=(
                    "Meta has rated this campaign's quality as below average, leading to "
                    "higher costs."
                ),
                recommendation=(
                    "Refresh creative content, improve targeting relevance, and enhance "
                    "post-click experience."
                ),
                estimated_impact=(
                    f"Expected cost reduction: 15-25% (Monthly savings: ${savings:.0f})"
                ),
                estimated_impact_usd=round(savings),
                confidence=85,
                data_points=["quality_ranking", "cpm", "engagement_rate"],
                platform="meta",
                campaign_id=s.campaign_id,
                timeframe="Current",
            )
        )

    return insights


def generate_insights_from_data(
    google: Sequence[MetricsSnapshot],
    meta: Sequence[MetricsSnapshot],
    cross: CrossPlatformMetrics,
    timeframe_label: str = "Last 30 days",
) -> List[AdInsight]:
    """Account-level insights across both platforms, highest priority first."""
    all_snapshots = [*google, *meta]
    insights: List[AdInsight] = []
    insights.extend(_underperformer_insights(all_snapshots, cross, timeframe_label))
    insights.extend(_arbitrage_insights(google, meta, cross, timeframe_label))
    insights.extend(_scale_insights(all_snapshots, timeframe_label))
    insights.extend(_quality_insights(google, meta))

    logger.info(
        f"Generated {len(insights)} cross-platform insights "
        f"({len(google)} Google, {len(meta)} Meta campaigns)",
        extra={"insight_count": len(insights)},
    )
    return rank_insights(insights)
