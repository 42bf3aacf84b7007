"""MIA — Insight Engine.

Evaluates one InsightContext against a fixed set of heuristic rules:
- CTR / conversion-rate decline vs previous period
- ROAS below target, CPA above industry benchmark
- Budget exhaustion / underutilization
- Ad fatigue (Meta frequency), audience outperformance
- Google quality score and impression share
- Meta quality ranking and video completion

Every rule runs independently and emits at most one insight. Nothing is
generated when the current snapshot fails the minimum-data gate.
"""

from typing import Callable, List, Optional

from mia.models.insight_models import (
    SEVERITY_RANK,
    AdInsight,
    InsightContext,
    InsightGenerationRules,
    InsightType,
    MetricsSnapshot,
    Ranking,
    Severity,
    default_rules,
)
from mia.core.logging import get_logger

logger = get_logger("analyzer.insight")


def _pct_change(current: float, reference: float) -> float:
    return (current - reference) / reference * 100


def platform_of(snapshot: MetricsSnapshot) -> str:
    """Attribute an insight to Google when the snapshot is Google, else Meta."""
    if snapshot.google is not None or snapshot.platform == "google":
        return "google"
    return "meta"


def sort_insights(insights: List[AdInsight]) -> List[AdInsight]:
    """Stable sort: severity rank ascending, then confidence descending."""
    return sorted(
        insights, key=lambda i: (SEVERITY_RANK[i.severity], -i.confidence)
    )


class InsightEngine:
    """Rule evaluator for a single campaign context."""

    def __init__(self, rules: Optional[InsightGenerationRules] = None):
        self.rules = rules or default_rules()
        self._analyzers: List[Callable[[InsightContext], Optional[AdInsight]]] = [
            self._analyze_ctr_decline,
            self._analyze_conversion_decline,
            self._analyze_roas,
            self._analyze_budget_utilization,
            self._analyze_bidding,
            self._analyze_ad_fatigue,
            self._analyze_audience_performance,
            self._analyze_quality_score,
            self._analyze_impression_share,
            self._analyze_meta_quality_ranking,
            self._analyze_video_completion,
        ]

    def has_sufficient_data(self, metrics: MetricsSnapshot) -> bool:
        """Minimum spend and impressions before any insight is trusted."""
        thresholds = self.rules.confidence_thresholds
        return (
            metrics.cost >= thresholds.minimum_spend
            and metrics.impressions >= thresholds.minimum_impressions
        )

    def generate_insights(self, context: InsightContext) -> List[AdInsight]:
        """Run every rule over the context and return sorted insights."""
        if not self.has_sufficient_data(context.timeframe.current):
            logger.info(
                f"Insufficient data for campaign {context.campaign.id}, skipping",
                extra={"campaign_id": context.campaign.id},
            )
            return []

        insights: List[AdInsight] = []
        for analyze in self._analyzers:
            insight = analyze(context)
            if insight is not None:
                insights.append(insight)

        logger.info(
            f"Generated {len(insights)} insights for campaign {context.campaign.id}",
            extra={"campaign_id": context.campaign.id, "insight_count": len(insights)},
        )
        return sort_insights(insights)

    # ── Performance ──

    def _analyze_ctr_decline(self, context: InsightContext) -> Optional[AdInsight]:
        current = context.timeframe.current
        previous = context.timeframe.previous
        if previous.ctr <= 0:
            return None

        ctr_change = _pct_change(current.ctr, previous.ctr)
        if ctr_change > -self.rules.performance_thresholds.critical_ctr_drop:
            return None

        return AdInsight(
            id=f"ctr_decline_{context.campaign.id}",
            type=InsightType.CTR_DECLINE,
            severity=Severity.CRITICAL,
            title="Significant CTR Decline Detected",
            description=(
                f"Click-through rate has dropped by {abs(ctr_change):.1f}% compared to the "
                f"previous period ({previous.ctr:.2f}% → {current.ctr:.2f}%). This indicates "
                "potential ad fatigue, audience saturation, or increased competition."
            ),
            recommendation=(
                "Refresh ad creatives, test new audiences, or adjust bidding strategy. "
                "Consider pausing underperforming ads and launching new creative variations."
            ),
            estimated_impact=f"Potential to recover {abs(ctr_change * 0.6):.1f}% CTR improvement",
            confidence=85,
            data_points=["ctr", "impressions", "clicks"],
            platform=platform_of(current),
            campaign_id=context.campaign.id,
            timeframe=f"{self.rules.timeframes.short_term}-day comparison",
            actionable=True,
            automation_possible=False,
        )

    def _analyze_conversion_decline(
        self, context: InsightContext
    ) -> Optional[AdInsight]:
        current = context.timeframe.current
        previous = context.timeframe.previous
        if current.conversions < self.rules.confidence_thresholds.minimum_conversions:
            return None
        if previous.conversion_rate <= 0:
            return None

        change = _pct_change(current.conversion_rate, previous.conversion_rate)
        if change > -self.rules.performance_thresholds.conversion_rate_drop:
            return None

        expected_conversions = current.clicks * (previous.conversion_rate / 100)
        cost_per_conversion = current.cost / current.conversions
        recovery = (expected_conversions - current.conversions) * cost_per_conversion

        return AdInsight(
            id=f"conversion_drop_{context.campaign.id}",
            type=InsightType.CONVERSION_DROP,
            severity=Severity.HIGH,
            title="Conversion Rate Decline",
            description=(
                f"Conversion rate has dropped by {abs(change):.1f}% from "
                f"{previous.conversion_rate:.2f}% to {current.conversion_rate:.2f}%. "
                "This may indicate issues with landing page, offer relevance, or targeting quality."
            ),
            recommendation=(
                "Review landing page experience, check for technical issues, validate "
                "tracking setup, and consider audience refinement."
            ),
            estimated_impact=f"Potential revenue recovery: ${recovery:.0f}",
            estimated_impact_usd=round(recovery),
            confidence=80,
            data_points=["conversion_rate", "conversions", "clicks"],
            platform=platform_of(current),
            campaign_id=context.campaign.id,
            timeframe="Period comparison",
            actionable=True,
            automation_possible=False,
        )

    def _analyze_roas(self, context: InsightContext) -> Optional[AdInsight]:
        current = context.timeframe.current
        target = self.rules.performance_thresholds.roas_target
        if current.roas >= target:
            return None

        if current.roas < 1:
            severity = Severity.CRITICAL
        elif current.roas < 2:
            severity = Severity.HIGH
        else:
            severity = Severity.MEDIUM

        losing_money = current.roas < 1
        profit_gap = (target - current.roas) * current.cost

        return AdInsight(
            id=f"roas_below_target_{context.campaign.id}",
            type=InsightType.ROAS_BELOW_TARGET,
            severity=severity,
            title="ROAS Below Target",
            description=(
                f"Current ROAS of {current.roas:.2f}:1 is below the target of {target:g}:1. "
                + (
                    "Campaign is losing money on every conversion."
                    if losing_money
                    else "Campaign profitability is suboptimal."
                )
            ),
            recommendation=(
                "Immediate action required: Pause underperforming ads, increase bids on "
                "high-converting keywords/audiences, or reduce budget until optimization is complete."
                if losing_money
                else "Optimize for higher-value audiences, improve landing page conversion rate, "
                "or adjust bidding strategy to focus on profitable segments."
            ),
            estimated_impact=f"Potential profit increase: ${profit_gap:.0f}",
            estimated_impact_usd=round(profit_gap),
            confidence=90,
            data_points=["roas", "cost", "conversion_value"],
            platform=platform_of(current),
            campaign_id=context.campaign.id,
            timeframe="Current period",
            actionable=True,
            automation_possible=True,
        )

    # ── Budget & Bidding ──

    def _analyze_budget_utilization(
        self, context: InsightContext
    ) -> Optional[AdInsight]:
        current = context.timeframe.current
        budget = context.campaign.budget
        if budget <= 0:
            return None

        thresholds = self.rules.performance_thresholds
        daily_spend = current.cost / self.rules.timeframes.short_term
        utilization = daily_spend / budget * 100

        if utilization > thresholds.budget_exhaustion_pct:
            return AdInsight(
                id=f"budget_exhaustion_{context.campaign.id}",
                type=InsightType.BUDGET_EXHAUSTION,
                severity=Severity.HIGH,
                title="Budget Exhaustion Risk",
                description=(
                    f"Campaign is utilizing {utilization:.1f}% of daily budget, potentially "
                    "limiting reach and missing conversion opportunities."
                ),
                recommendation=(
                    "Consider increasing daily budget, optimize bids to reduce CPC, or "
                    "reallocate budget from underperforming campaigns."
                ),
                estimated_impact="Potential 15-30% increase in conversions with budget increase",
                confidence=85,
                data_points=["cost", "budget", "impressions"],
                platform=platform_of(current),
                campaign_id=context.campaign.id,
                timeframe="Daily average",
                actionable=True,
                automation_possible=True,
            )

        if utilization < thresholds.budget_underutilization_pct:
            return AdInsight(
                id=f"budget_underutilization_{context.campaign.id}",
                type=InsightType.BUDGET_UNDERUTILIZATION,
                severity=Severity.MEDIUM,
                title="Budget Underutilization",
                description=(
                    f"Campaign is only using {utilization:.1f}% of available budget, "
                    "indicating potential for increased reach or targeting expansion."
                ),
                recommendation=(
                    "Expand targeting, increase bids, or consider broader keyword/audience "
                    "matching to utilize full budget potential."
                ),
                estimated_impact="Opportunity to double current performance with proper budget utilization",
                confidence=75,
                data_points=["cost", "budget", "reach"],
                platform=platform_of(current),
                campaign_id=context.campaign.id,
                timeframe="Daily average",
                actionable=True,
                automation_possible=True,
            )

        # 50–95% is the healthy band
        return None

    def _analyze_bidding(self, context: InsightContext) -> Optional[AdInsight]:
        current = context.timeframe.current
        industry_cpa = context.benchmarks.industry.cpa
        if industry_cpa <= 0:
            return None

        cpa_difference = _pct_change(current.cpa, industry_cpa)
        if cpa_difference <= self.rules.performance_thresholds.cpa_over_industry:
            return None

        savings = (current.cpa - industry_cpa) * current.conversions

        return AdInsight(
            id=f"high_cpa_{context.campaign.id}",
            type=InsightType.BID_OPTIMIZATION,
            severity=Severity.HIGH,
            title="Cost Per Acquisition Above Industry Average",
            description=(
                f"Current CPA of ${current.cpa:.2f} is {cpa_difference:.1f}% higher than "
                f"industry average of ${industry_cpa:.2f}."
            ),
            recommendation=(
                "Optimize targeting to focus on higher-converting audiences, improve Quality "
                "Score, or test automated bidding strategies."
            ),
            estimated_impact=f"Potential cost savings: ${savings:.0f}",
            estimated_impact_usd=round(savings),
            confidence=75,
            data_points=["cpa", "conversions", "cost"],
            platform=platform_of(current),
            campaign_id=context.campaign.id,
            timeframe="Industry comparison",
            actionable=True,
            automation_possible=True,
        )

    # ── Creative & Audience ──

    def _analyze_ad_fatigue(self, context: InsightContext) -> Optional[AdInsight]:
        meta = context.timeframe.current.meta
        if meta is None:
            return None
        if meta.frequency <= self.rules.performance_thresholds.frequency_max:
            return None

        return AdInsight(
            id=f"ad_fatigue_{context.campaign.id}",
            type=InsightType.AD_FATIGUE,
            severity=Severity.MEDIUM,
            title="Ad Fatigue Detected",
            description=(
                f"Average frequency of {meta.frequency:.2f} indicates users are seeing ads "
                "too often, which can lead to decreased performance and negative user experience."
            ),
            recommendation=(
                "Refresh creative assets, expand audience size, or implement frequency "
                "capping to prevent overexposure."
            ),
            estimated_impact="Expected 10-20% CTR improvement with creative refresh",
            confidence=80,
            data_points=["frequency", "ctr", "reach"],
            platform="meta",
            campaign_id=context.campaign.id,
            timeframe="Current period",
            actionable=True,
            automation_possible=False,
        )

    def _analyze_audience_performance(
        self, context: InsightContext
    ) -> Optional[AdInsight]:
        current = context.timeframe.current
        account_ctr = context.benchmarks.account.ctr
        if account_ctr <= 0:
            return None

        ctr_vs_account = _pct_change(current.ctr, account_ctr)
        if ctr_vs_account <= self.rules.performance_thresholds.ctr_over_account:
            return None

        return AdInsight(
            id=f"high_performing_audience_{context.campaign.id}",
            type=InsightType.DEMOGRAPHIC_OPPORTUNITY,
            severity=Severity.OPPORTUNITY,
            title="High-Performing Audience Identified",
            description=(
                f"This campaign's CTR of {current.ctr:.2f}% is {ctr_vs_account:.1f}% higher "
                "than account average, indicating strong audience-ad fit."
            ),
            recommendation=(
                "Consider expanding this audience targeting to other campaigns or increasing "
                "budget allocation to capitalize on high engagement."
            ),
            estimated_impact="Opportunity to scale successful targeting approach",
            confidence=85,
            data_points=["ctr", "audience", "engagement"],
            platform=platform_of(current),
            campaign_id=context.campaign.id,
            timeframe="Account comparison",
            actionable=True,
            automation_possible=True,
        )

    # ── Google ──

    def _analyze_quality_score(self, context: InsightContext) -> Optional[AdInsight]:
        google = context.timeframe.current.google
        if google is None:
            return None
        if google.quality_score >= self.rules.performance_thresholds.quality_score_min:
            return None

        return AdInsight(
            id=f"quality_score_{context.campaign.id}",
            type=InsightType.QUALITY_SCORE_DROP,
            severity=Severity.HIGH,
            title="Low Quality Score Impact",
            description=(
                f"Quality Score of {google.quality_score:g}/10 is below recommended threshold, "
                "leading to higher CPCs and reduced ad visibility."
            ),
            recommendation=(
                "Improve ad relevance, landing page experience, and expected CTR through "
                "better keyword-ad-landing page alignment."
            ),
            estimated_impact="Potential 20-40% CPC reduction with Quality Score improvement",
            confidence=90,
            data_points=["quality_score", "cpc", "impression_share"],
            platform="google",
            campaign_id=context.campaign.id,
            timeframe="Current",
            actionable=True,
            automation_possible=False,
        )

    def _analyze_impression_share(
        self, context: InsightContext
    ) -> Optional[AdInsight]:
        google = context.timeframe.current.google
        if google is None:
            return None
        if (
            google.impression_share
            >= self.rules.performance_thresholds.impression_share_min
        ):
            return None

        return AdInsight(
            id=f"impression_share_{context.campaign.id}",
            type=InsightType.IMPRESSION_SHARE_LOSS,
            severity=Severity.MEDIUM,
            title="Low Search Impression Share",
            description=(
                f"Impression share of {google.impression_share:.1f}% indicates missed "
                "opportunities due to budget or rank limitations."
            ),
            recommendation=(
                "Increase bids, improve Quality Score, or raise budget to capture more "
                "available impressions."
            ),
            estimated_impact=(
                f"Potential {(100 - google.impression_share) * 0.3:.0f}% traffic increase"
            ),
            confidence=80,
            data_points=["impression_share", "budget", "quality_score"],
            platform="google",
            campaign_id=context.campaign.id,
            timeframe="Current",
            actionable=True,
            automation_possible=True,
        )

    # ── Meta ──

    def _analyze_meta_quality_ranking(
        self, context: InsightContext
    ) -> Optional[AdInsight]:
        meta = context.timeframe.current.meta
        if meta is None or meta.quality_ranking != Ranking.BELOW_AVERAGE:
            return None

        return AdInsight(
            id=f"meta_quality_{context.campaign.id}",
            type=InsightType.CREATIVE_UNDERPERFORMING,
            severity=Severity.HIGH,
            title="Below Average Quality Ranking",
            description=(
                "Meta has rated this ad's quality as below average, which may result in "
                "higher costs and reduced delivery."
            ),
            recommendation=(
                "Refresh creative content, ensure ad relevance to target audience, and "
                "improve post-click experience."
            ),
            estimated_impact="Expected 15-25% cost reduction with quality improvement",
            confidence=85,
            data_points=["quality_ranking", "engagement_ranking", "cpm"],
            platform="meta",
            campaign_id=context.campaign.id,
            timeframe="Current",
            actionable=True,
            automation_possible=False,
        )

    def _analyze_video_completion(
        self, context: InsightContext
    ) -> Optional[AdInsight]:
        meta = context.timeframe.current.meta
        if meta is None:
            return None
        if (
            meta.video_completion_rate
            >= self.rules.performance_thresholds.video_completion_min
        ):
            return None

        return AdInsight(
            id=f"video_completion_{context.campaign.id}",
            type=InsightType.VIDEO_COMPLETION_LOW,
            severity=Severity.MEDIUM,
            title="Low Video Completion Rate",
            description=(
                f"Video completion rate of {meta.video_completion_rate:.1f}% suggests content "
                "may not be engaging enough to hold viewer attention."
            ),
            recommendation=(
                "Create more engaging opening seconds, optimize video length, add captions, "
                "or test different creative formats."
            ),
            estimated_impact="Potential 30-50% improvement in engagement with optimized content",
            confidence=75,
            data_points=["video_completion_rate", "video_views", "engagement_rate"],
            platform="meta",
            campaign_id=context.campaign.id,
            timeframe="Current",
            actionable=True,
            automation_possible=False,
        )
