"""MIA — Meta API Routes."""

from typing import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException

from mia.connectors.meta.client import MetaClient, MetaAPIError
from mia.scheduler.jobs import sync_meta
from mia.store import CampaignStore, SyncStatus, get_store
from mia.core.logging import get_logger

logger = get_logger("api.meta")

router = APIRouter(prefix="/meta", tags=["Meta"])


async def get_meta_client() -> AsyncIterator[MetaClient]:
    client = MetaClient()
    try:
        yield client
    finally:
        await client.close()


@router.get("/validate-token")
async def validate_token(client: MetaClient = Depends(get_meta_client)):
    """Check if the Meta access token is valid.

    Returns validity status, expiration, and granted scopes.
    """
    try:
        result = await client.validate_token()
    except MetaAPIError as e:
        raise HTTPException(
            status_code=400, detail=f"Token validation failed: {str(e)}"
        )
    return {
        "status": "success",
        "valid": result["valid"],
        "expires_at": result["expires_at"],
        "scopes": result["scopes"],
        "app_id": result["app_id"],
    }


@router.post("/sync", response_model=SyncStatus)
async def sync(
    client: MetaClient = Depends(get_meta_client),
    campaign_store: CampaignStore = Depends(get_store),
):
    """Fetch campaigns with insights from Meta and replace the stored set."""
    try:
        return await sync_meta(client=client, target=campaign_store)
    except MetaAPIError as e:
        logger.error(f"Meta sync failed: {e}", extra={"status_code": e.status_code})
        raise HTTPException(status_code=502, detail=f"Meta sync failed: {str(e)}")


@router.get("/status", response_model=SyncStatus)
async def status(campaign_store: CampaignStore = Depends(get_store)):
    """Outcome of the last Meta sync."""
    return campaign_store.status("meta")
