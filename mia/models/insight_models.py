"""MIA — Insight Engine Models.

MetricsSnapshot is the normalized, platform-agnostic performance record
every connector produces. InsightContext bundles the snapshots the engine
needs for one campaign, and AdInsight is the engine's output unit.
"""

import re
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

IMPACT_DOLLAR_PATTERN = re.compile(r"\$(\d+)")


class Severity(str, Enum):
    """Insight severity, in display order."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    OPPORTUNITY = "opportunity"


SEVERITY_RANK = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
    Severity.OPPORTUNITY: 4,
}


class InsightType(str, Enum):
    # Performance
    PERFORMANCE_DECLINE = "performance_decline"
    PERFORMANCE_SPIKE = "performance_spike"
    CONVERSION_DROP = "conversion_drop"
    ROAS_BELOW_TARGET = "roas_below_target"
    CPA_INCREASING = "cpa_increasing"
    QUALITY_SCORE_DROP = "quality_score_drop"
    # Budget & bidding
    BUDGET_EXHAUSTION = "budget_exhaustion"
    BUDGET_UNDERUTILIZATION = "budget_underutilization"
    BUDGET_OPTIMIZATION = "budget_optimization"
    BID_OPTIMIZATION = "bid_optimization"
    DAYPARTING_OPPORTUNITY = "dayparting_opportunity"
    GEOGRAPHIC_REALLOCATION = "geographic_reallocation"
    # Creative & content
    AD_FATIGUE = "ad_fatigue"
    CREATIVE_UNDERPERFORMING = "creative_underperforming"
    HIGH_PERFORMING_CREATIVE = "high_performing_creative"
    VIDEO_COMPLETION_LOW = "video_completion_low"
    CTR_DECLINE = "ctr_decline"
    # Audience & targeting
    AUDIENCE_SATURATION = "audience_saturation"
    DEMOGRAPHIC_OPPORTUNITY = "demographic_opportunity"
    PLACEMENT_OPTIMIZATION = "placement_optimization"
    DEVICE_PERFORMANCE_GAP = "device_performance_gap"
    LOOKALIKE_EXPANSION = "lookalike_expansion"
    # Competition & market
    IMPRESSION_SHARE_LOSS = "impression_share_loss"
    COMPETITOR_ACTIVITY = "competitor_activity"
    SEASONAL_TREND = "seasonal_trend"
    KEYWORD_OPPORTUNITY = "keyword_opportunity"
    # Cross-platform
    PLATFORM_ARBITRAGE = "platform_arbitrage"
    ATTRIBUTION_DISCREPANCY = "attribution_discrepancy"
    DUPLICATE_TARGETING = "duplicate_targeting"
    BUDGET_REALLOCATION = "budget_reallocation"


class Ranking(str, Enum):
    """Meta relevance diagnostics ranking."""

    ABOVE_AVERAGE = "above_average"
    AVERAGE = "average"
    BELOW_AVERAGE = "below_average"


# ─────────────────────────────────────────────
# SNAPSHOTS
# ─────────────────────────────────────────────


class GoogleMetrics(BaseModel):
    """Google Ads extension of a snapshot."""

    kind: Literal["google"] = "google"
    quality_score: float = 7.0
    impression_share: float = 0.0
    search_impression_share: float = 0.0
    top_of_page_rate: float = 0.0
    absolute_top_rate: float = 0.0
    avg_position: float = 0.0
    budget_lost_is: Optional[float] = None
    rank_lost_is: Optional[float] = None


class MetaMetrics(BaseModel):
    """Meta Ads extension of a snapshot."""

    kind: Literal["meta"] = "meta"
    reach: float = 0.0
    frequency: float = 0.0
    cpm: float = 0.0
    engagement_rate: float = 0.0
    video_views: float = 0.0
    video_completion_rate: float = 0.0
    quality_ranking: Ranking = Ranking.AVERAGE
    engagement_ranking: Ranking = Ranking.AVERAGE
    conversion_ranking: Ranking = Ranking.AVERAGE


PlatformExtension = Annotated[
    Union[GoogleMetrics, MetaMetrics], Field(discriminator="kind")
]


class MetricsSnapshot(BaseModel):
    """Point-in-time normalized performance for one campaign.

    `roas` here is revenue / cost (a true ratio), unlike the percent-scale
    conversion proxy used at the campaign-aggregate layer.
    """

    campaign_id: Optional[str] = None
    campaign_name: Optional[str] = None
    platform: Optional[Literal["google", "meta", "combined"]] = None

    impressions: float = 0.0
    clicks: float = 0.0
    ctr: float = 0.0
    cost: float = 0.0
    conversions: float = 0.0
    conversion_rate: float = 0.0
    cpa: float = 0.0
    roas: float = 0.0

    platform_metrics: Optional[PlatformExtension] = None

    @property
    def google(self) -> Optional[GoogleMetrics]:
        if isinstance(self.platform_metrics, GoogleMetrics):
            return self.platform_metrics
        return None

    @property
    def meta(self) -> Optional[MetaMetrics]:
        if isinstance(self.platform_metrics, MetaMetrics):
            return self.platform_metrics
        return None


# ─────────────────────────────────────────────
# ENGINE INPUT
# ─────────────────────────────────────────────


class CampaignInfo(BaseModel):
    id: str
    name: str = ""
    objective: str = "conversions"
    budget: float = 0.0  # daily budget
    bid_strategy: str = "automatic"
    status: str = "active"


class AdSetInfo(BaseModel):
    id: str
    name: str = ""
    targeting: List[str] = []
    placements: List[str] = []
    audience: str = ""


class AdInfo(BaseModel):
    id: str
    name: str = ""
    type: str = ""
    creative: str = ""


class TimeframeSnapshots(BaseModel):
    current: MetricsSnapshot
    previous: MetricsSnapshot = MetricsSnapshot()
    baseline: MetricsSnapshot = MetricsSnapshot()


class Benchmarks(BaseModel):
    industry: MetricsSnapshot = MetricsSnapshot()
    account: MetricsSnapshot = MetricsSnapshot()
    top_performing: MetricsSnapshot = MetricsSnapshot()


class InsightContext(BaseModel):
    """Everything the engine needs to evaluate one campaign."""

    campaign: CampaignInfo
    ad_set: Optional[AdSetInfo] = None
    ad: Optional[AdInfo] = None
    timeframe: TimeframeSnapshots
    benchmarks: Benchmarks = Benchmarks()


# ─────────────────────────────────────────────
# RULE CONFIGURATION
# ─────────────────────────────────────────────


class PerformanceThresholds(BaseModel):
    model_config = {"frozen": True}

    critical_ctr_drop: float = 30.0  # % drop that triggers a critical alert
    conversion_rate_drop: float = 20.0  # % drop that triggers a high alert
    roas_target: float = 3.0
    quality_score_min: float = 5.0
    impression_share_min: float = 70.0
    frequency_max: float = 3.5
    conversion_rate_min: float = 2.0
    cost_increase_alert: float = 25.0
    cpa_over_industry: float = 50.0  # % above industry CPA
    ctr_over_account: float = 50.0  # % above account CTR
    video_completion_min: float = 25.0
    budget_exhaustion_pct: float = 95.0
    budget_underutilization_pct: float = 50.0


class AnalysisTimeframes(BaseModel):
    model_config = {"frozen": True}

    short_term: int = 7  # days
    medium_term: int = 30
    long_term: int = 90


class ConfidenceThresholds(BaseModel):
    model_config = {"frozen": True}

    minimum_spend: float = 100.0
    minimum_conversions: float = 5.0
    minimum_impressions: float = 1000.0


class InsightGenerationRules(BaseModel):
    """Immutable heuristic policy handed to the insight engine."""

    model_config = {"frozen": True}

    performance_thresholds: PerformanceThresholds = PerformanceThresholds()
    timeframes: AnalysisTimeframes = AnalysisTimeframes()
    confidence_thresholds: ConfidenceThresholds = ConfidenceThresholds()


def default_rules() -> InsightGenerationRules:
    """Stock thresholds."""
    return InsightGenerationRules()


# ─────────────────────────────────────────────
# ENGINE OUTPUT
# ─────────────────────────────────────────────


def parse_impact_usd(text: str) -> Optional[float]:
    """First `$<digits>` amount in an impact string, or None."""
    match = IMPACT_DOLLAR_PATTERN.search(text or "")
    return float(match.group(1)) if match else None


class AdInsight(BaseModel):
    """A single structured insight.

    `estimated_impact` is display text; `estimated_impact_usd` is the same
    projection as a number and is what the priority scorer reads. Insights
    built from text alone get the number parsed once, here.
    """

    id: str
    type: InsightType
    severity: Severity
    title: str
    description: str
    recommendation: str
    estimated_impact: str = ""
    estimated_impact_usd: Optional[float] = None
    confidence: float = Field(ge=0, le=100)
    data_points: List[str] = []
    platform: Literal["meta", "google", "cross-platform"]
    campaign_id: Optional[str] = None
    ad_set_id: Optional[str] = None
    ad_id: Optional[str] = None
    timeframe: str = ""
    actionable: bool = True
    automation_possible: bool = False
    priority: Optional[float] = None

    @model_validator(mode="after")
    def _derive_impact_usd(self) -> "AdInsight":
        if self.estimated_impact_usd is None:
            self.estimated_impact_usd = parse_impact_usd(self.estimated_impact)
        return self
