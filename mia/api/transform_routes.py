"""MIA — Raw Payload Transform Routes.

Accept raw Google Ads / Meta payloads pushed by an external sync and
return the normalized snapshots and campaign records. With `store=true`
the result replaces that platform's data in the store.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from mia.models.campaign_models import Campaign
from mia.models.insight_models import MetricsSnapshot
from mia.connectors.google.transformer import (
    google_campaigns_to_campaigns,
    transform_google_ads_data,
)
from mia.connectors.meta.transformer import (
    meta_campaigns_to_campaigns,
    transform_meta_ads_data,
)
from mia.store import CampaignStore, get_store

router = APIRouter(prefix="/transform", tags=["Transform"])


class TransformResponse(BaseModel):
    platform: str
    snapshots: List[MetricsSnapshot]
    campaigns: List[Campaign]
    stored: bool = False


@router.post("/google", response_model=TransformResponse)
async def transform_google(
    raw: Dict[str, Any],
    store: bool = Query(False, description="Replace stored Google data"),
    campaign_store: CampaignStore = Depends(get_store),
):
    """Normalize a `{"campaigns": [...]}` Google Ads payload."""
    snapshots = transform_google_ads_data(raw)
    campaigns = google_campaigns_to_campaigns(raw)
    if store:
        campaign_store.replace("google", campaigns, snapshots)
    return TransformResponse(
        platform="google", snapshots=snapshots, campaigns=campaigns, stored=store
    )


@router.post("/meta", response_model=TransformResponse)
async def transform_meta(
    raw: Dict[str, Any],
    store: bool = Query(False, description="Replace stored Meta data"),
    campaign_store: CampaignStore = Depends(get_store),
):
    """Normalize a `{"campaigns": [...]}` Meta payload with embedded insights."""
    snapshots = transform_meta_ads_data(raw)
    campaigns = meta_campaigns_to_campaigns(raw)
    if store:
        campaign_store.replace("meta", campaigns, snapshots)
    return TransformResponse(
        platform="meta", snapshots=snapshots, campaigns=campaigns, stored=store
    )
