"""MIA — Analysis Pipeline Orchestrator.

Runs the full insight flow over normalized snapshots:
  build contexts → per-campaign rules → cross-platform roll-up → rank → InsightReport

Snapshots come from the Google/Meta transformers; nothing here talks to a
platform API.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from mia.config import settings
from mia.models.analysis_models import InsightReport
from mia.models.insight_models import (
    AdInsight,
    Benchmarks,
    CampaignInfo,
    InsightContext,
    InsightGenerationRules,
    MetricsSnapshot,
    TimeframeSnapshots,
)
from mia.analyzer.insight_engine import InsightEngine, platform_of
from mia.analyzer.insight_templates import rank_insights
from mia.analyzer.cross_platform_engine import (
    create_cross_platform_analysis,
    generate_insights_from_data,
)
from mia.core.logging import get_logger

logger = get_logger("analyzer.pipeline")


def industry_benchmark() -> MetricsSnapshot:
    """Industry averages from settings, as a snapshot."""
    return MetricsSnapshot(
        platform="combined",
        ctr=settings.industry_ctr_benchmark,
        cpa=settings.industry_cpa_benchmark,
        roas=settings.industry_roas_benchmark,
        conversion_rate=settings.industry_conversion_rate_benchmark,
    )


def aggregate_snapshots(snapshots: Sequence[MetricsSnapshot]) -> MetricsSnapshot:
    """Account-wide totals with re-derived ratios."""
    impressions = sum(s.impressions for s in snapshots)
    clicks = sum(s.clicks for s in snapshots)
    cost = sum(s.cost for s in snapshots)
    conversions = sum(s.conversions for s in snapshots)
    revenue = sum(s.roas * s.cost for s in snapshots)

    return MetricsSnapshot(
        campaign_id="account",
        campaign_name="Account",
        platform="combined",
        impressions=impressions,
        clicks=clicks,
        ctr=(clicks / impressions * 100) if impressions > 0 else 0.0,
        cost=cost,
        conversions=conversions,
        conversion_rate=(conversions / clicks * 100) if clicks > 0 else 0.0,
        cpa=(cost / conversions) if conversions > 0 else 0.0,
        roas=(revenue / cost) if cost > 0 else 0.0,
    )


def _by_campaign(snapshots: Sequence[MetricsSnapshot]) -> Dict[str, MetricsSnapshot]:
    return {s.campaign_id: s for s in snapshots if s.campaign_id}


def build_contexts(
    current: Sequence[MetricsSnapshot],
    previous: Sequence[MetricsSnapshot] = (),
    baseline: Sequence[MetricsSnapshot] = (),
    budgets: Optional[Dict[str, float]] = None,
    industry: Optional[MetricsSnapshot] = None,
) -> List[InsightContext]:
    """One InsightContext per current snapshot.

    Previous/baseline snapshots are matched by campaign id; a campaign with
    no baseline compares against its previous period. `budgets` maps
    campaign id → daily budget; unknown campaigns get 0, which disables the
    budget-utilization rule.
    """
    budgets = budgets or {}
    previous_by_id = _by_campaign(previous)
    baseline_by_id = _by_campaign(baseline)

    benchmarks = Benchmarks(
        industry=industry or industry_benchmark(),
        account=aggregate_snapshots(current),
        top_performing=max(current, key=lambda s: s.roas, default=MetricsSnapshot()),
    )

    contexts: List[InsightContext] = []
    for snapshot in current:
        campaign_id = snapshot.campaign_id or ""
        prior = previous_by_id.get(campaign_id, MetricsSnapshot())
        contexts.append(
            InsightContext(
                campaign=CampaignInfo(
                    id=campaign_id,
                    name=snapshot.campaign_name or "",
                    budget=budgets.get(campaign_id, 0.0),
                ),
                timeframe=TimeframeSnapshots(
                    current=snapshot,
                    previous=prior,
                    baseline=baseline_by_id.get(campaign_id, prior),
                ),
                benchmarks=benchmarks,
            )
        )
    return contexts


def split_by_platform(
    snapshots: Sequence[MetricsSnapshot],
) -> Tuple[List[MetricsSnapshot], List[MetricsSnapshot]]:
    """(google, meta) using the same attribution as insights."""
    google = [s for s in snapshots if platform_of(s) == "google"]
    meta = [s for s in snapshots if platform_of(s) == "meta"]
    return google, meta


def _dedupe_by_id(insights: Sequence[AdInsight]) -> List[AdInsight]:
    """First insight per id wins; per-campaign findings precede account-level ones."""
    seen: Dict[str, AdInsight] = {}
    for insight in insights:
        seen.setdefault(insight.id, insight)
    return list(seen.values())


def run_analysis(
    current: Sequence[MetricsSnapshot],
    previous: Sequence[MetricsSnapshot] = (),
    budgets: Optional[Dict[str, float]] = None,
    rules: Optional[InsightGenerationRules] = None,
    timeframe_label: str = "Last 30 days",
) -> InsightReport:
    """Execute the full MIA analysis over one set of snapshots."""
    logger.info(
        f"Starting analysis: {len(current)} campaigns, {len(previous)} previous snapshots"
    )
    engine = InsightEngine(rules)

    insights: List[AdInsight] = []
    skipped: List[str] = []
    for context in build_contexts(current, previous, budgets=budgets):
        if not engine.has_sufficient_data(context.timeframe.current):
            skipped.append(context.campaign.id)
            continue
        insights.extend(engine.generate_insights(context))

    google, meta = split_by_platform(current)
    cross = create_cross_platform_analysis(google, meta)
    insights.extend(generate_insights_from_data(google, meta, cross, timeframe_label))

    report = InsightReport(
        schema_version=settings.analysis_schema_version,
        generated_at=datetime.now(timezone.utc).isoformat(),
        currency=settings.account_currency,
        timeframe_label=timeframe_label,
        campaigns_analyzed=len(current) - len(skipped),
        campaigns_skipped=skipped,
        cross_platform=cross,
        insights=rank_insights(_dedupe_by_id(insights)),
    )

    logger.info(
        f"Analysis complete. {len(report.insights)} insights, "
        f"{len(skipped)} campaigns below the data threshold",
        extra={"insight_count": len(report.insights)},
    )
    return report
