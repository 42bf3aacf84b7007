"""MIA — Insight Engine API Routes."""

from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from mia.models.analysis_models import InsightReport
from mia.models.insight_models import AdInsight, InsightContext, MetricsSnapshot
from mia.analyzer.insight_engine import InsightEngine
from mia.analyzer.insight_templates import calculate_insight_priority
from mia.analyzer.pipeline import run_analysis
from mia.store import CampaignStore, get_store
from mia.core.logging import get_logger

logger = get_logger("api.insights")

router = APIRouter(prefix="/insights", tags=["Insights"])


# ── Request / Response Models ──


class GenerateInsightsResponse(BaseModel):
    """Response for POST /insights/generate."""

    status: str = "success"
    sufficient_data: bool
    insights: List[AdInsight]


class PriorityResponse(BaseModel):
    priority: float


class AnalyzeRequest(BaseModel):
    """Request body for POST /insights/analyze.

    With no `current` snapshots, the most recently synced ones are analyzed.
    With no `budgets`, the stored campaigns' budgets are used.
    """

    current: List[MetricsSnapshot] = []
    previous: List[MetricsSnapshot] = []
    budgets: Dict[str, float] = {}
    """Daily budget per campaign id; campaigns without one skip the budget rule."""
    timeframe_label: str = "Last 30 days"


# ── Endpoints ──


@router.post("/generate", response_model=GenerateInsightsResponse)
async def generate_insights(context: InsightContext):
    """Run every rule against one campaign context.

    Insights come back sorted by severity then confidence, each with its
    display priority attached. `sufficient_data` is false when the campaign
    is below the minimum spend/impression gate.
    """
    engine = InsightEngine()
    sufficient = engine.has_sufficient_data(context.timeframe.current)
    insights = [
        i.model_copy(update={"priority": calculate_insight_priority(i)})
        for i in engine.generate_insights(context)
    ]
    return GenerateInsightsResponse(sufficient_data=sufficient, insights=insights)


@router.post("/priority", response_model=PriorityResponse)
async def score_insight(insight: AdInsight):
    """Display priority of a single insight (0-200)."""
    return PriorityResponse(priority=calculate_insight_priority(insight))


@router.post("/analyze", response_model=InsightReport)
async def analyze(
    request: AnalyzeRequest,
    campaign_store: CampaignStore = Depends(get_store),
):
    """Full analysis: per-campaign rules plus cross-platform insights."""
    current = request.current
    previous = request.previous
    budgets = request.budgets or campaign_store.budgets()
    if not current:
        current = campaign_store.snapshots()
        previous = previous or campaign_store.previous_snapshots()

    try:
        return run_analysis(
            current,
            previous,
            budgets=budgets,
            timeframe_label=request.timeframe_label,
        )
    except Exception as e:
        logger.error(f"Analysis failed: {e}")
        raise HTTPException(status_code=500, detail=f"Analysis failed: {str(e)}")
