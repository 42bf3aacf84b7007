"""MIA — Insight Templates & Priority Scoring.

Static metadata for the common insight scenarios, message builders for
the parametrised ones, and the priority score used to rank insights for
display.
"""

from typing import Any, Dict, Iterable, List

from pydantic import BaseModel

from mia.models.insight_models import AdInsight, InsightType, Severity

MAX_PRIORITY = 200.0

SEVERITY_WEIGHTS = {
    Severity.CRITICAL: 100,
    Severity.HIGH: 75,
    Severity.MEDIUM: 50,
    Severity.LOW: 25,
    Severity.OPPORTUNITY: 30,
}

# (minimum dollars, exclusive) → bonus, checked top-down
IMPACT_BONUS_TIERS = (
    (1000, 25),
    (500, 15),
    (100, 10),
    (50, 5),
)


class InsightTemplate(BaseModel):
    model_config = {"frozen": True}

    title: str
    severity: Severity
    type: InsightType
    actionable: bool = True
    automation_possible: bool = False


INSIGHT_TEMPLATES: Dict[str, InsightTemplate] = {
    # Performance
    "CTR_DECLINE_CRITICAL": InsightTemplate(
        title="Critical CTR Decline Alert",
        severity=Severity.CRITICAL,
        type=InsightType.CTR_DECLINE,
    ),
    "ROAS_BELOW_BREAKEVEN": InsightTemplate(
        title="Campaign Below Breakeven Point",
        severity=Severity.CRITICAL,
        type=InsightType.ROAS_BELOW_TARGET,
        automation_possible=True,
    ),
    "CONVERSION_RATE_DROP": InsightTemplate(
        title="Significant Conversion Rate Decline",
        severity=Severity.HIGH,
        type=InsightType.CONVERSION_DROP,
    ),
    # Budget & bidding
    "BUDGET_EXHAUSTED": InsightTemplate(
        title="Daily Budget Exhausted Early",
        severity=Severity.HIGH,
        type=InsightType.BUDGET_EXHAUSTION,
        automation_possible=True,
    ),
    "CPA_ABOVE_INDUSTRY": InsightTemplate(
        title="Cost Per Acquisition Above Industry Benchmark",
        severity=Severity.MEDIUM,
        type=InsightType.BID_OPTIMIZATION,
        automation_possible=True,
    ),
    # Creative & content
    "AD_FATIGUE_DETECTED": InsightTemplate(
        title="Ad Fatigue Symptoms Detected",
        severity=Severity.MEDIUM,
        type=InsightType.AD_FATIGUE,
    ),
    "VIDEO_LOW_COMPLETION": InsightTemplate(
        title="Low Video Completion Rate",
        severity=Severity.MEDIUM,
        type=InsightType.VIDEO_COMPLETION_LOW,
    ),
    # Audience & targeting
    "AUDIENCE_SATURATION": InsightTemplate(
        title="Audience Saturation Detected",
        severity=Severity.MEDIUM,
        type=InsightType.AUDIENCE_SATURATION,
        automation_possible=True,
    ),
    "HIGH_PERFORMING_DEMOGRAPHIC": InsightTemplate(
        title="High-Performing Demographic Segment",
        severity=Severity.OPPORTUNITY,
        type=InsightType.DEMOGRAPHIC_OPPORTUNITY,
        automation_possible=True,
    ),
    # Platform-specific
    "GOOGLE_QUALITY_SCORE_LOW": InsightTemplate(
        title="Quality Score Below Threshold",
        severity=Severity.HIGH,
        type=InsightType.QUALITY_SCORE_DROP,
    ),
    "GOOGLE_IMPRESSION_SHARE_LOW": InsightTemplate(
        title="Lost Impression Share Opportunity",
        severity=Severity.MEDIUM,
        type=InsightType.IMPRESSION_SHARE_LOSS,
        automation_possible=True,
    ),
    "META_QUALITY_RANKING_LOW": InsightTemplate(
        title="Meta Quality Ranking Below Average",
        severity=Severity.HIGH,
        type=InsightType.CREATIVE_UNDERPERFORMING,
    ),
    # Cross-platform
    "PLATFORM_PERFORMANCE_GAP": InsightTemplate(
        title="Performance Gap Between Platforms",
        severity=Severity.OPPORTUNITY,
        type=InsightType.PLATFORM_ARBITRAGE,
        automation_possible=True,
    ),
    "DUPLICATE_AUDIENCE_TARGETING": InsightTemplate(
        title="Overlapping Audience Targeting Detected",
        severity=Severity.MEDIUM,
        type=InsightType.DUPLICATE_TARGETING,
        automation_possible=True,
    ),
}


def _ctr_decline(data: Dict[str, Any]) -> Dict[str, str]:
    return {
        "description": (
            f"CTR has dropped {data['decline']}% from {data['previous']}% to "
            f"{data['current']}% in the last {data['timeframe']} days. This significant "
            "decline suggests ad fatigue, audience saturation, or increased competition."
        ),
        "recommendation": (
            "Immediate action required: Refresh ad creatives, test new audiences, or pause "
            "underperforming ads. Consider A/B testing new messaging approaches."
        ),
        "estimated_impact": (
            f"Recovering to previous CTR levels could increase clicks by "
            f"{round(data['potential_clicks'])} ({data['potential_revenue']} potential revenue)"
        ),
    }


def _roas_below_breakeven(data: Dict[str, Any]) -> Dict[str, str]:
    below_breakeven = data["roas"] < 1
    return {
        "description": (
            f"Current ROAS of {data['roas']}:1 is "
            f"{'below breakeven' if below_breakeven else 'below target'}. "
            + (
                "Every dollar spent is losing money."
                if below_breakeven
                else "Profitability is suboptimal."
            )
        ),
        "recommendation": (
            "URGENT: Pause campaign or dramatically reduce budget. Focus spend on "
            "highest-converting segments only."
            if below_breakeven
            else "Optimize for high-value audiences, improve landing page conversion, or "
            "adjust bidding to profitable keywords/placements."
        ),
        "estimated_impact": (
            f"Reaching {data['target_roas']}:1 ROAS would generate additional "
            f"${round(data['potential_profit'])} profit"
        ),
    }


def _budget_exhausted(data: Dict[str, Any]) -> Dict[str, str]:
    return {
        "description": (
            f"Campaign budget is being fully utilized by {data['exhaustion_time']} daily, "
            "limiting potential reach and conversions. "
            f"Current spend: ${data['daily_spend']}/{data['budget']}"
        ),
        "recommendation": (
            f"Consider increasing daily budget by {data['recommended_increase']}% or "
            "optimize bids to reduce CPC and extend budget throughout the day."
        ),
        "estimated_impact": (
            f"Budget increase could capture an estimated "
            f"{data['additional_conversions']} more conversions per day"
        ),
    }


def _ad_fatigue(data: Dict[str, Any]) -> Dict[str, str]:
    return {
        "description": (
            f"Average frequency of {data['frequency']} indicates users are seeing ads too "
            f"often. CTR has declined {data['ctr_decline']}% as frequency increased."
        ),
        "recommendation": (
            f"Refresh creative assets, expand audience size by {data['audience_expansion']}%, "
            f"or implement frequency capping at {data['recommended_frequency']}."
        ),
        "estimated_impact": "Creative refresh typically improves CTR by 15-25% and reduces CPC by 10-20%",
    }


def _quality_score_low(data: Dict[str, Any]) -> Dict[str, str]:
    return {
        "description": (
            f"Quality Score of {data['quality_score']}/10 is significantly impacting "
            f"performance. Low Quality Score increases CPC by an estimated {data['cpc_impact']}%."
        ),
        "recommendation": (
            "Focus on ad relevance improvement, landing page optimization, and expected CTR "
            "enhancement. Review keyword-ad-landing page alignment."
        ),
        "estimated_impact": (
            "Improving Quality Score to 7+ could reduce CPC by 20-40% "
            f"(estimated monthly savings: ${data['potential_savings']})"
        ),
    }


def _high_performing_demographic(data: Dict[str, Any]) -> Dict[str, str]:
    return {
        "description": (
            f"{data['demographic']} segment is performing {data['performance']}% better than "
            f"account average with {data['ctr']}% CTR and ${data['cpa']} CPA."
        ),
        "recommendation": (
            f"Scale this high-performing segment by increasing budget allocation by "
            f"{data['budget_increase']}% or expanding similar audiences."
        ),
        "estimated_impact": (
            f"Scaling this segment could increase monthly conversions by "
            f"{data['potential_conversions']} with similar efficiency"
        ),
    }


_MESSAGE_BUILDERS = {
    "CTR_DECLINE_CRITICAL": _ctr_decline,
    "ROAS_BELOW_BREAKEVEN": _roas_below_breakeven,
    "BUDGET_EXHAUSTED": _budget_exhausted,
    "AD_FATIGUE_DETECTED": _ad_fatigue,
    "GOOGLE_QUALITY_SCORE_LOW": _quality_score_low,
    "HIGH_PERFORMING_DEMOGRAPHIC": _high_performing_demographic,
}


def generate_insight_message(template: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Template metadata merged with rendered text.

    Templates without a message builder return their metadata only.
    Raises KeyError for an unknown template name or a missing data key.
    """
    message = INSIGHT_TEMPLATES[template].model_dump()
    builder = _MESSAGE_BUILDERS.get(template)
    if builder is not None:
        message.update(builder(data))
    return message


def calculate_insight_priority(insight: AdInsight) -> float:
    """Deterministic display priority in [0, 200]."""
    score = float(SEVERITY_WEIGHTS.get(insight.severity, 0))
    score += (insight.confidence / 100) * 20
    if insight.actionable:
        score += 15
    if insight.automation_possible:
        score += 10

    amount = insight.estimated_impact_usd
    if amount is not None:
        for minimum, bonus in IMPACT_BONUS_TIERS:
            if amount > minimum:
                score += bonus
                break

    return max(0.0, min(score, MAX_PRIORITY))


def rank_insights(insights: Iterable[AdInsight]) -> List[AdInsight]:
    """Attach priority to each insight and sort highest first (stable)."""
    ranked = [
        insight.model_copy(update={"priority": calculate_insight_priority(insight)})
        for insight in insights
    ]
    return sorted(ranked, key=lambda i: i.priority, reverse=True)
