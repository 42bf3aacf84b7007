"""MIA — Chat & Narrative Summary Routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from mia.ai.base_provider import AIProvider
from mia.ai.claude_provider import ClaudeProvider
from mia.analyzer.chat_engine import AIChatService
from mia.analyzer.pipeline import run_analysis
from mia.models.campaign_models import MarketingQuery
from mia.store import CampaignStore, get_store
from mia.core.logging import get_logger

logger = get_logger("api.chat")

router = APIRouter(prefix="/chat", tags=["Chat"])


# ── Request / Response Models ──


class ChatRequest(BaseModel):
    query: str
    user_id: str = "anonymous"


class SuggestionsResponse(BaseModel):
    suggestions: List[str]


class SummaryRequest(BaseModel):
    """Request body for POST /chat/summary."""

    question: Optional[str] = None
    timeframe_label: str = "Last 30 days"


class SummaryResponse(BaseModel):
    status: str
    provider_used: str
    summary: str


def get_ai_provider() -> AIProvider:
    return ClaudeProvider()


# ── Endpoints ──


@router.post("/query", response_model=MarketingQuery)
async def query(
    request: ChatRequest, campaign_store: CampaignStore = Depends(get_store)
):
    """Answer a free-text question about the synced campaigns."""
    service = AIChatService(campaign_store.campaigns())
    return service.process_query(request.query, request.user_id)


@router.get("/suggestions", response_model=SuggestionsResponse)
async def suggestions(campaign_store: CampaignStore = Depends(get_store)):
    service = AIChatService(campaign_store.campaigns())
    return SuggestionsResponse(suggestions=service.get_suggested_queries())


@router.post("/summary", response_model=SummaryResponse)
async def summary(
    request: SummaryRequest,
    campaign_store: CampaignStore = Depends(get_store),
    provider: AIProvider = Depends(get_ai_provider),
):
    """Narrate the current insight report with the configured AI provider."""
    if not provider.is_available():
        raise HTTPException(
            status_code=503,
            detail="No AI provider configured. Set ANTHROPIC_API_KEY.",
        )

    report = run_analysis(
        campaign_store.snapshots(),
        campaign_store.previous_snapshots(),
        budgets=campaign_store.budgets(),
        timeframe_label=request.timeframe_label,
    )

    try:
        text = await provider.generate_summary(
            report.model_dump(mode="json"), request.question
        )
    except Exception as e:
        logger.error(f"AI summary failed ({provider.name}): {e}")
        raise HTTPException(status_code=502, detail=f"AI summary failed: {str(e)}")

    return SummaryResponse(status="success", provider_used=provider.name, summary=text)
