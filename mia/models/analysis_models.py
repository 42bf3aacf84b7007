"""MIA — Analysis Output Models (Versioned)."""

from typing import List, Literal
from pydantic import BaseModel

from mia.models.insight_models import AdInsight


class PlatformBreakdown(BaseModel):
    """One platform's share of cross-platform spend and revenue."""

    spend: float = 0.0
    revenue: float = 0.0
    conversions: float = 0.0
    roas: float = 0.0
    share: float = 0.0  # % of total spend


class TopCampaign(BaseModel):
    id: str
    name: str
    platform: Literal["google", "meta"]
    roas: float
    spend: float
    conversions: float


class CrossPlatformMetrics(BaseModel):
    """Google + Meta roll-up built from normalized snapshots."""

    total_spend: float = 0.0
    total_revenue: float = 0.0
    total_conversions: float = 0.0
    total_impressions: float = 0.0
    total_clicks: float = 0.0
    average_roas: float = 0.0
    average_cpa: float = 0.0
    average_ctr: float = 0.0
    google: PlatformBreakdown = PlatformBreakdown()
    meta: PlatformBreakdown = PlatformBreakdown()
    top_performing_campaigns: List[TopCampaign] = []


class InsightReport(BaseModel):
    """MIA Insight Report v1 — ranked output of one analysis run."""

    schema_version: str = "1.0.0"
    generated_at: str = ""
    currency: str = "USD"
    timeframe_label: str = ""
    campaigns_analyzed: int = 0
    campaigns_skipped: List[str] = []  # ids that failed the minimum-data gate
    cross_platform: CrossPlatformMetrics = CrossPlatformMetrics()
    insights: List[AdInsight] = []
