"""MIA — Unified Metric Registry.

The campaign metrics users can ask about or rank by. The chat classifier
reads its query keywords from here and the analytics engine validates
top/worst performer requests against it.
"""

from typing import Dict, List, Tuple


class MetricDefinition:
    """Describes a single campaign metric."""

    def __init__(
        self,
        name: str,
        keywords: Tuple[str, ...] = (),
        rankable: bool = False,
    ):
        self.name = name
        self.keywords = keywords
        self.rankable = rankable

    def __repr__(self) -> str:
        return f"<Metric {self.name}>"


# ─────────────────────────────────────────────
# CAMPAIGN METRICS
# ─────────────────────────────────────────────

CAMPAIGN_METRICS: Dict[str, MetricDefinition] = {
    "roas": MetricDefinition("roas", ("roi", "roas", "return"), rankable=True),
    "ctr": MetricDefinition("ctr", ("ctr", "click-through"), rankable=True),
    "cpa": MetricDefinition("cpa", ("cpa", "cost per")),
    "conversions": MetricDefinition("conversions", ("conversion",), rankable=True),
    "spend": MetricDefinition("spend"),
    "impressions": MetricDefinition("impressions"),
    "clicks": MetricDefinition("clicks"),
}

# Order matters: the first metric whose keyword appears in a query wins
QUERY_METRICS = ("roas", "ctr", "cpa", "conversions")


# ─────────────────────────────────────────────
# HELPERS
# ─────────────────────────────────────────────


def get_metric(name: str) -> MetricDefinition | None:
    """Look up a metric by name."""
    return CAMPAIGN_METRICS.get(name)


def rankable_metrics() -> List[str]:
    """Names of the metrics campaigns may be ranked by."""
    return [m.name for m in CAMPAIGN_METRICS.values() if m.rankable]


def match_query_metric(text: str) -> str | None:
    """Return the first registered metric whose keywords appear in `text`."""
    for name in QUERY_METRICS:
        if any(keyword in text for keyword in CAMPAIGN_METRICS[name].keywords):
            return name
    return None
