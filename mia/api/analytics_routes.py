"""MIA — Campaign Analytics API Routes.

Every endpoint takes an optional `campaigns` list; when it is omitted the
most recently synced campaigns are used.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from mia.models.campaign_models import (
    AdGroup,
    Campaign,
    DashboardFilters,
    PerformanceInsight,
    PlatformMetrics,
    TrendPoint,
)
from mia.analyzer import analytics_engine as analytics
from mia.store import CampaignStore, get_store
from mia.core.logging import get_logger

logger = get_logger("api.analytics")

router = APIRouter(prefix="/analytics", tags=["Analytics"])


# ── Request Models ──


class CampaignsRequest(BaseModel):
    campaigns: Optional[List[Campaign]] = None


class InsightsRequest(CampaignsRequest):
    ad_groups: List[AdGroup] = []


class FilterRequest(CampaignsRequest):
    filters: DashboardFilters


class RankRequest(CampaignsRequest):
    metric: str = "roas"
    limit: int = Field(5, ge=1, le=100)


class TrendsRequest(CampaignsRequest):
    days: int = Field(30, ge=1, le=365)


def _campaigns(request: CampaignsRequest, campaign_store: CampaignStore) -> List[Campaign]:
    if request.campaigns is not None:
        return request.campaigns
    return campaign_store.campaigns()


# ── Endpoints ──


@router.post("/platform-metrics", response_model=List[PlatformMetrics])
async def platform_metrics(
    request: CampaignsRequest, campaign_store: CampaignStore = Depends(get_store)
):
    """Per-platform totals and averages."""
    return analytics.calculate_platform_metrics(_campaigns(request, campaign_store))


@router.post("/insights", response_model=List[PerformanceInsight])
async def performance_insights(
    request: InsightsRequest, campaign_store: CampaignStore = Depends(get_store)
):
    """Fatigue, budget and overall-performance insights."""
    return analytics.generate_insights(
        _campaigns(request, campaign_store), request.ad_groups
    )


@router.post("/filter", response_model=List[Campaign])
async def filter_campaigns(
    request: FilterRequest, campaign_store: CampaignStore = Depends(get_store)
):
    return analytics.filter_campaigns(_campaigns(request, campaign_store), request.filters)


@router.post("/top-performers", response_model=List[Campaign])
async def top_performers(
    request: RankRequest, campaign_store: CampaignStore = Depends(get_store)
):
    try:
        return analytics.get_top_performers(
            _campaigns(request, campaign_store), request.metric, request.limit
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/worst-performers", response_model=List[Campaign])
async def worst_performers(
    request: RankRequest, campaign_store: CampaignStore = Depends(get_store)
):
    try:
        return analytics.get_worst_performers(
            _campaigns(request, campaign_store), request.metric, request.limit
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/trends", response_model=List[TrendPoint])
async def trends(
    request: TrendsRequest, campaign_store: CampaignStore = Depends(get_store)
):
    """Chart series: totals spread evenly across `days`, not a real time series."""
    return analytics.calculate_trends(_campaigns(request, campaign_store), request.days)
