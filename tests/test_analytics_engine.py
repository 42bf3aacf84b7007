"""
Campaign analytics tests.

Guards against:
1. Platform aggregates double-counting or dropping campaigns
2. Insight thresholds drifting (fatigue, scale/reduce, overall target, platform gap)
3. Filters treating empty lists as "match nothing"
4. Trend points being mistaken for a real series (they must be flat)
"""
from datetime import date

import pytest

from mia.analyzer.analytics_engine import (
    calculate_platform_metrics,
    calculate_trends,
    filter_campaigns,
    generate_insights,
    get_top_performers,
    get_worst_performers,
)
from mia.models.campaign_models import Campaign, DashboardFilters, DateRange


def _campaign(id, platform="google", **overrides) -> Campaign:
    values = dict(
        id=id,
        name=f"Campaign {id}",
        platform=platform,
        status="active",
        budget=100.0,
        spend=50.0,
        impressions=5000,
        clicks=100,
        conversions=1,
        ctr=2.0,
        cpa=50.0,
        roas=150.0,
        start_date="2026-03-10",
    )
    values.update(overrides)
    return Campaign(**values)


# ---------------------------------------------------------------------------
# calculate_platform_metrics
# ---------------------------------------------------------------------------

def test_no_campaigns_no_metrics():
    assert calculate_platform_metrics([]) == []


def test_two_platforms_grouped_and_summed():
    campaigns = [
        _campaign("g1", "google", spend=100.0),
        _campaign("m1", "meta", spend=250.0, status="paused"),
        _campaign("g2", "google", spend=30.0),
    ]
    metrics = calculate_platform_metrics(campaigns)

    assert [m.platform for m in metrics] == ["google", "meta"]
    assert sum(m.total_spend for m in metrics) == 380.0
    google, meta = metrics
    assert google.total_spend == 130.0
    assert google.active_campaigns == 2
    assert meta.active_campaigns == 0


def test_platform_ratios():
    [google] = calculate_platform_metrics(
        [_campaign("g1", spend=200.0, impressions=1000, clicks=50, conversions=4)]
    )
    assert google.average_ctr == 5.0
    assert google.average_cpa == 50.0
    assert google.average_conversion_roas == 2.0  # 4 * 100 / 200


def test_platform_ratios_guard_zero():
    [google] = calculate_platform_metrics(
        [_campaign("g1", spend=0.0, impressions=0, clicks=0, conversions=0)]
    )
    assert google.average_ctr == 0.0
    assert google.average_cpa == 0.0
    assert google.average_conversion_roas == 0.0


# ---------------------------------------------------------------------------
# generate_insights
# ---------------------------------------------------------------------------

def test_ad_fatigue_severity_split():
    campaigns = [
        _campaign("a", ctr=0.4, impressions=20000),
        _campaign("b", ctr=0.8, impressions=20000),
        _campaign("c", ctr=0.4, impressions=9000),
    ]
    fatigue = [i for i in generate_insights(campaigns) if i.type == "ad_fatigue"]
    assert {(i.campaign_id, i.severity) for i in fatigue} == {("a", "high"), ("b", "medium")}


def test_scale_top_three_high_roas_campaigns():
    campaigns = [_campaign(str(n), roas=300.0 + n * 10) for n in range(1, 6)]
    campaigns.append(_campaign("paused", roas=900.0, status="paused"))
    scale = [
        i
        for i in generate_insights(campaigns)
        if i.type == "budget_optimization" and i.severity == "medium"
    ]
    assert [i.campaign_id for i in scale] == ["5", "4", "3"]


def test_reduce_worst_two_low_roas_campaigns():
    campaigns = [
        _campaign("x", roas=90.0, spend=500.0),
        _campaign("y", roas=10.0, spend=500.0),
        _campaign("z", roas=50.0, spend=500.0),
        _campaign("cheap", roas=1.0, spend=100.0),
    ]
    reduce = [
        i
        for i in generate_insights(campaigns)
        if i.type == "budget_optimization" and i.severity == "high"
    ]
    assert [i.campaign_id for i in reduce] == ["y", "z"]


def test_overall_below_target():
    campaigns = [_campaign("g1", spend=2000.0, conversions=10, roas=150.0)]
    overall = [i for i in generate_insights(campaigns) if i.type == "keyword_performance"]
    assert len(overall) == 1
    assert overall[0].severity == "high"


def test_platform_gap():
    campaigns = [
        _campaign("g1", "google", spend=100.0, conversions=4),  # 4% conversion ROAS
        _campaign("m1", "meta", spend=100.0, conversions=2),  # 2%
    ]
    gap = [i for i in generate_insights(campaigns) if i.type == "creative_performance"]
    assert len(gap) == 1
    assert gap[0].title == "GOOGLE Outperforming META"


def test_insights_sorted_high_first():
    campaigns = [
        _campaign("a", ctr=0.8, impressions=20000),  # medium fatigue
        _campaign("b", roas=10.0, spend=500.0),  # high reduce
    ]
    severities = [i.severity for i in generate_insights(campaigns)]
    assert severities == sorted(severities, key=["high", "medium", "low"].index)


# ---------------------------------------------------------------------------
# filter_campaigns
# ---------------------------------------------------------------------------

def _filters(**overrides) -> DashboardFilters:
    values = dict(date_range=DateRange(start="2026-03-01", end="2026-03-31"))
    values.update(overrides)
    return DashboardFilters(**values)


def test_empty_filters_keep_everything_in_range():
    campaigns = [_campaign("g1"), _campaign("m1", "meta")]
    assert filter_campaigns(campaigns, _filters()) == campaigns


def test_date_range_is_inclusive():
    campaigns = [
        _campaign("first", start_date="2026-03-01"),
        _campaign("last", start_date="2026-03-31"),
        _campaign("after", start_date="2026-04-01"),
        _campaign("garbled", start_date="soon"),
    ]
    kept = filter_campaigns(campaigns, _filters())
    assert [c.id for c in kept] == ["first", "last"]


def test_filters_combine():
    campaigns = [
        _campaign("g1"),
        _campaign("g2", status="paused"),
        _campaign("m1", "meta"),
    ]
    kept = filter_campaigns(
        campaigns,
        _filters(platforms=["google"], status=["active"], campaigns=["g1", "m1"]),
    )
    assert [c.id for c in kept] == ["g1"]


# ---------------------------------------------------------------------------
# Top / worst performers
# ---------------------------------------------------------------------------

def test_top_performers_skip_zero():
    campaigns = [_campaign("a", roas=0.0), _campaign("b", roas=200.0), _campaign("c", roas=400.0)]
    assert [c.id for c in get_top_performers(campaigns)] == ["c", "b"]


def test_worst_performers_include_zero():
    campaigns = [_campaign("a", roas=0.0), _campaign("b", roas=200.0), _campaign("c", roas=400.0)]
    assert [c.id for c in get_worst_performers(campaigns, limit=2)] == ["a", "b"]


def test_rank_by_conversions():
    campaigns = [_campaign("a", conversions=3), _campaign("b", conversions=9)]
    assert get_top_performers(campaigns, "conversions", 1)[0].id == "b"


def test_unknown_rank_metric():
    with pytest.raises(ValueError):
        get_top_performers([_campaign("a")], "name")
    with pytest.raises(ValueError):
        get_worst_performers([_campaign("a")], "budget")
    # registered for chat, but not a ranking key
    with pytest.raises(ValueError, match="roas"):
        get_top_performers([_campaign("a")], "spend")


# ---------------------------------------------------------------------------
# calculate_trends
# ---------------------------------------------------------------------------

def test_trends_are_a_flat_interpolation():
    campaigns = [
        _campaign("a", spend=300.0, conversions=30, impressions=3000, clicks=90),
        _campaign("b", spend=300.0, conversions=0, impressions=3000, clicks=0),
    ]
    trends = calculate_trends(campaigns, days=30, today=date(2026, 3, 30))

    assert len(trends) == 30
    assert trends[0].date == "2026-03-01"
    assert trends[-1].date == "2026-03-30"
    assert {t.spend for t in trends} == {20.0}
    assert {t.conversions for t in trends} == {1.0}
    assert {t.conversion_roas for t in trends} == {5.0}
    assert {t.impressions for t in trends} == {200}
    assert {t.clicks for t in trends} == {3}


def test_trends_without_campaigns_are_zero():
    trends = calculate_trends([], days=7, today=date(2026, 3, 30))
    assert len(trends) == 7
    assert all(t.spend == 0 and t.conversion_roas == 0 for t in trends)
