"""MIA — Scheduler Jobs.

APScheduler interval job that re-syncs Meta campaigns into the store.
"""

from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from mia.config import settings
from mia.connectors.meta.client import MetaClient, MetaAPIError
from mia.connectors.meta.transformer import (
    meta_campaigns_to_campaigns,
    transform_meta_ads_data,
)
from mia.store import CampaignStore, SyncStatus, store
from mia.core.logging import get_logger

logger = get_logger("scheduler")

scheduler = AsyncIOScheduler()


async def sync_meta(
    client: Optional[MetaClient] = None,
    target: Optional[CampaignStore] = None,
    date_preset: Optional[str] = None,
) -> SyncStatus:
    """Fetch Meta campaigns, normalize them and replace the stored set.

    Raises MetaAPIError after recording the failure.
    """
    target = target or store
    owns_client = client is None
    client = client or MetaClient()
    try:
        raw = await client.fetch_campaigns_with_insights(date_preset)
    except MetaAPIError as e:
        target.record_failure("meta", str(e))
        raise
    finally:
        if owns_client:
            await client.close()

    target.replace(
        "meta",
        campaigns=meta_campaigns_to_campaigns(raw),
        snapshots=transform_meta_ads_data(raw),
    )
    return target.status("meta")


async def scheduled_sync_job():
    """Interval job; failures are logged, never raised."""
    logger.info("Scheduled Meta sync starting...")
    try:
        status = await sync_meta()
        logger.info(f"Scheduled sync complete. {status.campaigns} campaigns")
    except Exception as e:
        logger.error(f"Scheduled sync failed: {e}")


def start_scheduler():
    """Configure and start the scheduler."""
    if not settings.scheduler_enabled:
        logger.info("Scheduler disabled via config")
        return
    if not settings.meta_access_token:
        logger.info("No Meta access token configured, scheduler not started")
        return

    scheduler.add_job(
        scheduled_sync_job,
        "interval",
        minutes=settings.sync_interval_minutes,
        id="meta_sync",
        replace_existing=True,
        misfire_grace_time=600,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started. Meta sync every {settings.sync_interval_minutes} minutes"
    )


def stop_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
