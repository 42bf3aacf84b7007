"""MIA — Campaign-Level Models.

Campaign records arrive from an ad-platform sync and are read-only here.
The analytics engine aggregates them into platform metrics, first-tier
performance insights and chart trend points.
"""

from typing import List, Literal, Optional
from pydantic import BaseModel

PlatformName = Literal["meta", "google", "linkedin", "tiktok"]
CampaignStatus = Literal["active", "paused", "ended"]


class Campaign(BaseModel):
    """A synced ad campaign.

    `roas` is the platform-reported, percent-scale return (300 == 3:1).
    ctr/cpa/roas may be zero when their denominators were zero upstream.
    """

    id: str
    name: str
    platform: PlatformName
    status: CampaignStatus = "active"
    budget: float = 0.0
    spend: float = 0.0
    impressions: int = 0
    clicks: int = 0
    conversions: float = 0.0
    ctr: float = 0.0
    cpa: float = 0.0
    roas: float = 0.0
    start_date: str = ""
    end_date: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""


class AdGroupTargeting(BaseModel):
    age: Optional[str] = None
    gender: Optional[str] = None
    location: Optional[str] = None
    interests: List[str] = []


class AdGroup(BaseModel):
    """Ad group / ad set under a campaign."""

    id: str
    campaign_id: str
    name: str
    platform: PlatformName
    budget: float = 0.0
    spend: float = 0.0
    impressions: int = 0
    clicks: int = 0
    conversions: float = 0.0
    ctr: float = 0.0
    cpa: float = 0.0
    keywords: List[str] = []
    targeting: Optional[AdGroupTargeting] = None


class PlatformMetrics(BaseModel):
    """Per-platform aggregate of campaigns.

    `average_conversion_roas` is conversions * 100 / spend, a proxy used
    because campaign records carry no revenue. It is not interchangeable
    with the revenue-based `MetricsSnapshot.roas`.
    """

    platform: PlatformName
    total_spend: float = 0.0
    total_impressions: int = 0
    total_clicks: int = 0
    total_conversions: float = 0.0
    average_ctr: float = 0.0
    average_cpa: float = 0.0
    average_conversion_roas: float = 0.0
    active_campaigns: int = 0


class PerformanceInsight(BaseModel):
    """First-tier insight derived from campaign aggregates."""

    type: Literal[
        "ad_fatigue", "budget_optimization", "keyword_performance", "creative_performance"
    ]
    severity: Literal["low", "medium", "high"]
    title: str
    description: str
    recommendation: str
    campaign_id: Optional[str] = None
    ad_group_id: Optional[str] = None
    estimated_impact: Optional[str] = None


class DateRange(BaseModel):
    start: str  # YYYY-MM-DD
    end: str  # YYYY-MM-DD


class DashboardFilters(BaseModel):
    """Conjunctive campaign filter. Empty lists mean "no constraint"."""

    platforms: List[str] = []
    date_range: DateRange
    campaigns: List[str] = []
    status: List[str] = []


class TrendPoint(BaseModel):
    """One day of the interpolated trend series."""

    date: str
    spend: float
    conversions: float
    conversion_roas: float
    impressions: int
    clicks: int


class QueryIntent(BaseModel):
    """Result of keyword-based intent classification."""

    type: Literal[
        "performance", "optimization", "comparison", "trend", "budget", "general"
    ] = "general"
    entities: List[str] = []
    timeframe: Optional[str] = None
    metric: Optional[str] = None
    platform: Optional[str] = None


class MarketingQuery(BaseModel):
    """A processed chat query and its response."""

    id: str
    query: str
    response: str
    intent: QueryIntent
    insights: List[PerformanceInsight] = []
    timestamp: str
    user_id: str
