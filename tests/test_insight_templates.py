"""
Priority scoring and template tests.

Guards against:
1. Priority escaping the 0-200 range
2. Impact bonus reading the wrong dollar figure (structured amount vs text)
3. Template messages silently dropping data keys
"""
import pytest

from mia.analyzer.insight_templates import (
    INSIGHT_TEMPLATES,
    calculate_insight_priority,
    generate_insight_message,
    rank_insights,
)
from mia.models.insight_models import AdInsight, InsightType, Severity


def _insight(**overrides) -> AdInsight:
    values = dict(
        id="i1",
        type=InsightType.ROAS_BELOW_TARGET,
        severity=Severity.MEDIUM,
        title="t",
        description="d",
        recommendation="r",
        confidence=50,
        platform="google",
        actionable=False,
        automation_possible=False,
    )
    values.update(overrides)
    return AdInsight(**values)


# ---------------------------------------------------------------------------
# calculate_insight_priority
# ---------------------------------------------------------------------------

def test_priority_components_add_up():
    insight = _insight(
        severity=Severity.CRITICAL,
        confidence=100,
        actionable=True,
        automation_possible=True,
        estimated_impact_usd=5000,
    )
    # 100 + 20 + 15 + 10 + 25
    assert calculate_insight_priority(insight) == 170


def test_priority_minimum_is_severity_plus_confidence():
    insight = _insight(severity=Severity.OPPORTUNITY, confidence=0)
    assert calculate_insight_priority(insight) == 30


@pytest.mark.parametrize(
    "amount,bonus",
    [(1001, 25), (1000, 15), (501, 15), (101, 10), (51, 5), (50, 0), (None, 0)],
)
def test_impact_bonus_tiers(amount, bonus):
    base = calculate_insight_priority(_insight())
    scored = calculate_insight_priority(_insight(estimated_impact_usd=amount))
    assert scored - base == bonus


def test_impact_amount_parsed_from_text_when_not_given():
    insight = _insight(estimated_impact="Potential profit increase: $150")
    assert insight.estimated_impact_usd == 150
    assert calculate_insight_priority(insight) == 50 + 10 + 10


def test_structured_amount_wins_over_text():
    insight = _insight(
        estimated_impact="Potential savings: $5000", estimated_impact_usd=60
    )
    assert calculate_insight_priority(insight) == 50 + 10 + 5


def test_text_without_dollars_adds_nothing():
    insight = _insight(estimated_impact="Potential 20-40% CPC reduction")
    assert insight.estimated_impact_usd is None
    assert calculate_insight_priority(insight) == 60


def test_priority_always_within_bounds():
    for severity in Severity:
        for confidence in (0, 50, 100):
            insight = _insight(
                severity=severity,
                confidence=confidence,
                actionable=True,
                automation_possible=True,
                estimated_impact_usd=10**9,
            )
            assert 0 <= calculate_insight_priority(insight) <= 200


def test_rank_insights_attaches_priority_and_sorts():
    low = _insight(id="low", severity=Severity.LOW)
    critical = _insight(id="critical", severity=Severity.CRITICAL)
    ranked = rank_insights([low, critical])
    assert [i.id for i in ranked] == ["critical", "low"]
    assert ranked[0].priority == 110
    assert low.priority is None  # inputs untouched


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

def test_fourteen_templates():
    assert len(INSIGHT_TEMPLATES) == 14
    assert INSIGHT_TEMPLATES["BUDGET_EXHAUSTED"].automation_possible


def test_roas_breakeven_message_switches_on_ratio():
    data = {"roas": 0.8, "target_roas": 3, "potential_profit": 1234.4}
    message = generate_insight_message("ROAS_BELOW_BREAKEVEN", data)
    assert message["severity"] == Severity.CRITICAL
    assert "below breakeven" in message["description"]
    assert message["recommendation"].startswith("URGENT")
    assert "$1234" in message["estimated_impact"]

    message = generate_insight_message("ROAS_BELOW_BREAKEVEN", {**data, "roas": 2.1})
    assert "below target" in message["description"]


def test_template_without_builder_returns_metadata_only():
    message = generate_insight_message("VIDEO_LOW_COMPLETION", {})
    assert message["title"] == "Low Video Completion Rate"
    assert "description" not in message


def test_unknown_template_raises():
    with pytest.raises(KeyError):
        generate_insight_message("NOPE", {})


def test_missing_data_key_raises():
    with pytest.raises(KeyError):
        generate_insight_message("GOOGLE_QUALITY_SCORE_LOW", {"quality_score": 4})
