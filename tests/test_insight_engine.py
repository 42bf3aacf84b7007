"""
Insight engine rule tests.

Guards against:
1. Insights leaking out of campaigns below the minimum-data gate
2. Severity/confidence ordering regressions
3. Threshold drift in individual rules (CTR decline, ROAS, budget, CPA, ...)
4. Rules ignoring the thresholds handed to the engine
"""
from mia.analyzer.insight_engine import InsightEngine, sort_insights
from mia.models.insight_models import (
    SEVERITY_RANK,
    Benchmarks,
    CampaignInfo,
    GoogleMetrics,
    InsightContext,
    InsightGenerationRules,
    InsightType,
    MetaMetrics,
    MetricsSnapshot,
    PerformanceThresholds,
    Ranking,
    Severity,
    TimeframeSnapshots,
)


def _snapshot(**overrides) -> MetricsSnapshot:
    """A healthy campaign that passes the gate and triggers no rule by default."""
    values = dict(
        campaign_id="c1",
        campaign_name="Spring Sale",
        platform="google",
        impressions=10000,
        clicks=200,
        ctr=2.0,
        cost=1000.0,
        conversions=20,
        conversion_rate=10.0,
        cpa=50.0,
        roas=4.0,
    )
    values.update(overrides)
    return MetricsSnapshot(**values)


def _context(current=None, previous=None, budget=0.0, benchmarks=None) -> InsightContext:
    return InsightContext(
        campaign=CampaignInfo(id="c1", name="Spring Sale", budget=budget),
        timeframe=TimeframeSnapshots(
            current=current or _snapshot(),
            previous=previous or MetricsSnapshot(),
        ),
        benchmarks=benchmarks or Benchmarks(),
    )


def _ids(insights):
    return [i.id for i in insights]


# ---------------------------------------------------------------------------
# Minimum-data gate
# ---------------------------------------------------------------------------

def test_low_spend_returns_nothing():
    engine = InsightEngine()
    context = _context(current=_snapshot(cost=99.0, roas=0.2))
    assert engine.generate_insights(context) == []


def test_low_impressions_returns_nothing():
    engine = InsightEngine()
    context = _context(current=_snapshot(impressions=999, roas=0.2))
    assert engine.generate_insights(context) == []


def test_has_sufficient_data_is_public():
    engine = InsightEngine()
    assert engine.has_sufficient_data(_snapshot(cost=100.0, impressions=1000))
    assert not engine.has_sufficient_data(_snapshot(cost=100.0, impressions=999))


def test_healthy_campaign_yields_no_insights():
    assert InsightEngine().generate_insights(_context()) == []


# ---------------------------------------------------------------------------
# Performance rules
# ---------------------------------------------------------------------------

def test_ctr_drop_of_a_third_is_critical():
    insights = InsightEngine().generate_insights(
        _context(current=_snapshot(ctr=1.0), previous=_snapshot(ctr=1.5))
    )
    ctr = [i for i in insights if i.type == InsightType.CTR_DECLINE]
    assert len(ctr) == 1
    assert ctr[0].severity == Severity.CRITICAL
    assert ctr[0].id == "ctr_decline_c1"


def test_ctr_drop_of_a_quarter_does_not_fire():
    insights = InsightEngine().generate_insights(
        _context(current=_snapshot(ctr=1.2), previous=_snapshot(ctr=1.6))
    )
    assert "ctr_decline_c1" not in _ids(insights)


def test_ctr_rule_needs_a_previous_period():
    insights = InsightEngine().generate_insights(_context(current=_snapshot(ctr=0.1)))
    assert "ctr_decline_c1" not in _ids(insights)


def test_conversion_rate_drop_reports_recovery_value():
    current = _snapshot(conversion_rate=5.0, clicks=200, conversions=10, cost=1000.0)
    previous = _snapshot(conversion_rate=10.0)
    insights = InsightEngine().generate_insights(_context(current, previous))

    drop = next(i for i in insights if i.type == InsightType.CONVERSION_DROP)
    assert drop.severity == Severity.HIGH
    # expected 20 conversions, got 10, at $100 each
    assert drop.estimated_impact_usd == 1000


def test_conversion_rule_needs_minimum_conversions():
    current = _snapshot(conversion_rate=1.0, conversions=4)
    previous = _snapshot(conversion_rate=10.0)
    insights = InsightEngine().generate_insights(_context(current, previous))
    assert "conversion_drop_c1" not in _ids(insights)


def test_roas_below_one_is_critical():
    insights = InsightEngine().generate_insights(_context(current=_snapshot(roas=0.5)))
    roas = next(i for i in insights if i.type == InsightType.ROAS_BELOW_TARGET)
    assert roas.severity == Severity.CRITICAL
    assert roas.estimated_impact_usd == 2500  # (3.0 - 0.5) * 1000
    assert "$2500" in roas.estimated_impact


def test_roas_severity_tiers():
    engine = InsightEngine()
    high = engine.generate_insights(_context(current=_snapshot(roas=1.5)))
    medium = engine.generate_insights(_context(current=_snapshot(roas=2.5)))
    assert next(i for i in high if i.type == InsightType.ROAS_BELOW_TARGET).severity == Severity.HIGH
    assert next(i for i in medium if i.type == InsightType.ROAS_BELOW_TARGET).severity == Severity.MEDIUM


# ---------------------------------------------------------------------------
# Budget & bidding
# ---------------------------------------------------------------------------

def test_weekly_spend_of_980_on_1000_budget_is_underutilized():
    # 980 / 7 days = 140 per day = 14% of the daily budget
    insights = InsightEngine().generate_insights(
        _context(current=_snapshot(cost=980.0), budget=1000.0)
    )
    budget = [i for i in insights if i.id.startswith("budget_")]
    assert len(budget) == 1
    assert budget[0].type == InsightType.BUDGET_UNDERUTILIZATION
    assert budget[0].severity == Severity.MEDIUM


def test_budget_exhaustion():
    # 7000 / 7 = 1000 per day against a 1000 budget = 100%
    insights = InsightEngine().generate_insights(
        _context(current=_snapshot(cost=7000.0), budget=1000.0)
    )
    assert "budget_exhaustion_c1" in _ids(insights)


def test_healthy_budget_band_is_silent():
    # 3500 / 7 = 500 per day = 50% utilization
    insights = InsightEngine().generate_insights(
        _context(current=_snapshot(cost=3500.0), budget=1000.0)
    )
    assert not [i for i in insights if i.id.startswith("budget_")]


def test_budget_rule_skipped_without_budget():
    insights = InsightEngine().generate_insights(
        _context(current=_snapshot(cost=980.0), budget=0.0)
    )
    assert not [i for i in insights if i.id.startswith("budget_")]


def test_cpa_far_above_industry():
    benchmarks = Benchmarks(industry=MetricsSnapshot(cpa=40.0))
    current = _snapshot(cpa=80.0, conversions=20)
    insights = InsightEngine().generate_insights(_context(current, benchmarks=benchmarks))

    cpa = next(i for i in insights if i.type == InsightType.BID_OPTIMIZATION)
    assert cpa.severity == Severity.HIGH
    assert cpa.estimated_impact_usd == 800  # (80 - 40) * 20


def test_cpa_rule_ignores_missing_industry_benchmark():
    insights = InsightEngine().generate_insights(_context(current=_snapshot(cpa=500.0)))
    assert "high_cpa_c1" not in _ids(insights)


# ---------------------------------------------------------------------------
# Audience, platform-specific rules
# ---------------------------------------------------------------------------

def test_ctr_well_above_account_is_an_opportunity():
    benchmarks = Benchmarks(account=MetricsSnapshot(ctr=1.0))
    insights = InsightEngine().generate_insights(
        _context(current=_snapshot(ctr=2.0), benchmarks=benchmarks)
    )
    audience = next(i for i in insights if i.type == InsightType.DEMOGRAPHIC_OPPORTUNITY)
    assert audience.severity == Severity.OPPORTUNITY


def test_google_quality_and_impression_share():
    current = _snapshot(
        platform_metrics=GoogleMetrics(quality_score=4.0, impression_share=50.0)
    )
    insights = InsightEngine().generate_insights(_context(current))
    assert {"quality_score_c1", "impression_share_c1"} <= set(_ids(insights))
    assert all(i.platform == "google" for i in insights)


def test_meta_rules_do_not_fire_for_google_snapshots():
    current = _snapshot(platform_metrics=GoogleMetrics(impression_share=90.0))
    insights = InsightEngine().generate_insights(_context(current))
    assert not [i for i in insights if i.id.startswith(("ad_fatigue", "meta_quality", "video_"))]


def test_meta_fatigue_quality_and_video():
    current = _snapshot(
        platform="meta",
        platform_metrics=MetaMetrics(
            frequency=4.2,
            quality_ranking=Ranking.BELOW_AVERAGE,
            video_completion_rate=10.0,
        ),
    )
    insights = InsightEngine().generate_insights(_context(current))
    ids = set(_ids(insights))
    assert {"ad_fatigue_c1", "meta_quality_c1", "video_completion_c1"} <= ids
    assert all(i.platform == "meta" for i in insights)


def test_meta_healthy_extension_is_silent():
    current = _snapshot(
        platform="meta",
        platform_metrics=MetaMetrics(frequency=2.0, video_completion_rate=40.0),
    )
    assert InsightEngine().generate_insights(_context(current)) == []


# ---------------------------------------------------------------------------
# Ordering and configuration
# ---------------------------------------------------------------------------

def test_insights_sorted_by_severity_then_confidence():
    current = _snapshot(
        platform="meta",
        ctr=1.0,
        roas=0.5,
        cost=7000.0,
        platform_metrics=MetaMetrics(
            frequency=5.0,
            quality_ranking=Ranking.BELOW_AVERAGE,
            video_completion_rate=5.0,
        ),
    )
    benchmarks = Benchmarks(account=MetricsSnapshot(ctr=0.5))
    insights = InsightEngine().generate_insights(
        _context(current, previous=_snapshot(ctr=2.0), budget=500.0, benchmarks=benchmarks)
    )
    assert len(insights) >= 6

    for a, b in zip(insights, insights[1:]):
        rank_a, rank_b = SEVERITY_RANK[a.severity], SEVERITY_RANK[b.severity]
        assert rank_a <= rank_b
        if rank_a == rank_b:
            assert a.confidence >= b.confidence


def test_sort_is_stable_for_ties():
    current = _snapshot(
        platform="meta",
        platform_metrics=MetaMetrics(frequency=5.0, video_completion_rate=5.0),
    )
    insights = InsightEngine().generate_insights(_context(current))
    # both medium; fatigue (80) before video (75)
    assert _ids(insights) == ["ad_fatigue_c1", "video_completion_c1"]
    assert sort_insights(list(reversed(insights))) == insights


def test_engine_uses_supplied_thresholds():
    rules = InsightGenerationRules(
        performance_thresholds=PerformanceThresholds(roas_target=0.4)
    )
    context = _context(current=_snapshot(roas=0.5))
    assert InsightEngine(rules).generate_insights(context) == []
    assert InsightEngine().generate_insights(context)
