"""MIA — In-Memory Campaign Store.

Holds the latest synced campaigns and snapshots per platform for the
lifetime of the process. Nothing is persisted; a restart starts empty.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel

from mia.models.campaign_models import Campaign
from mia.models.insight_models import MetricsSnapshot
from mia.core.logging import get_logger

logger = get_logger("store")


class SyncStatus(BaseModel):
    """Outcome of the most recent sync for one platform."""

    platform: str
    status: str = "never"  # never | success | failed
    synced_at: Optional[str] = None
    campaigns: int = 0
    error: Optional[str] = None


class CampaignStore:
    """Latest campaigns and snapshots, keyed by platform.

    Replacing a platform's snapshots keeps the outgoing set as that
    platform's previous period, so consecutive syncs feed period-over-period
    rules.
    """

    def __init__(self):
        self._campaigns: Dict[str, List[Campaign]] = {}
        self._snapshots: Dict[str, List[MetricsSnapshot]] = {}
        self._previous: Dict[str, List[MetricsSnapshot]] = {}
        self._status: Dict[str, SyncStatus] = {}

    def replace(
        self,
        platform: str,
        campaigns: List[Campaign],
        snapshots: List[MetricsSnapshot],
    ) -> None:
        if platform in self._snapshots:
            self._previous[platform] = self._snapshots[platform]
        self._campaigns[platform] = list(campaigns)
        self._snapshots[platform] = list(snapshots)
        self._status[platform] = SyncStatus(
            platform=platform,
            status="success",
            synced_at=datetime.now(timezone.utc).isoformat(),
            campaigns=len(campaigns),
        )
        logger.info(
            f"Stored {len(campaigns)} {platform} campaigns, {len(snapshots)} snapshots"
        )

    def record_failure(self, platform: str, error: str) -> None:
        previous = self._status.get(platform)
        self._status[platform] = SyncStatus(
            platform=platform,
            status="failed",
            synced_at=datetime.now(timezone.utc).isoformat(),
            campaigns=previous.campaigns if previous else 0,
            error=error,
        )

    def campaigns(self) -> List[Campaign]:
        return [c for group in self._campaigns.values() for c in group]

    def snapshots(self) -> List[MetricsSnapshot]:
        return [s for group in self._snapshots.values() for s in group]

    def previous_snapshots(self) -> List[MetricsSnapshot]:
        return [s for group in self._previous.values() for s in group]

    def budgets(self) -> Dict[str, float]:
        """Daily budget per stored campaign id."""
        return {c.id: c.budget for c in self.campaigns()}

    def status(self, platform: str) -> SyncStatus:
        return self._status.get(platform) or SyncStatus(platform=platform)

    def clear(self) -> None:
        self._campaigns.clear()
        self._snapshots.clear()
        self._previous.clear()
        self._status.clear()


store = CampaignStore()


def get_store() -> CampaignStore:
    """FastAPI dependency for the process-wide store."""
    return store
