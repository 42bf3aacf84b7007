"""MIA — Abstract AI Provider."""

from abc import ABC, abstractmethod
from typing import Optional


class AIProvider(ABC):
    """Abstract base for narrative generation over an InsightReport.

    Insights are produced deterministically; a provider only turns the
    report into prose. The service runs without one configured.
    """

    name: str = "base"

    @abstractmethod
    async def generate_summary(
        self, report_json: dict, question: Optional[str] = None
    ) -> str:
        """Generate a narrative summary from an InsightReport.

        Args:
            report_json: The InsightReport as a dict.
            question: Optional question to answer from the report.
                      If None, produce a general executive summary.

        Returns:
            A human-readable narrative string.
        """
        ...

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this provider is configured and ready."""
        ...
