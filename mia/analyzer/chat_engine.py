"""MIA — Marketing Chat Engine.

Keyword-based intent router over free-text questions. Each intent maps to
a response builder that reads aggregates from the analytics engine; no
language model is involved.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from mia.analyzer import analytics_engine as analytics
from mia.core.metric_registry import match_query_metric
from mia.models.campaign_models import (
    AdGroup,
    Campaign,
    MarketingQuery,
    PerformanceInsight,
    QueryIntent,
)
from mia.core.logging import get_logger

logger = get_logger("analyzer.chat")

# Checked in order; a later group overrides an earlier match
OPTIMIZATION_KEYWORDS = ("optimize", "improve", "better")
COMPARISON_KEYWORDS = ("compare", "vs", "versus", "best", "worst")
TREND_KEYWORDS = ("trend", "over time", "dropped", "increased")
BUDGET_KEYWORDS = ("budget", "spend", "cost")

TIMEFRAME_KEYWORDS = ("today", "yesterday", "week", "month")
PLATFORM_KEYWORDS = (
    (("facebook", "meta"), "meta"),
    (("google",), "google"),
    (("linkedin",), "linkedin"),
    (("tiktok",), "tiktok"),
)

TREND_WINDOW_DAYS = 7
TREND_SAMPLE_DAYS = 3
MAX_SUGGESTIONS = 6

BASE_SUGGESTIONS = (
    "What's my ROAS this month?",
    "Which campaigns need optimization?",
    "Compare platform performance",
    "Show me budget recommendations",
)


def _contains_any(text: str, keywords: Sequence[str]) -> bool:
    return any(k in text for k in keywords)


def _conversion_roas(campaigns: Sequence[Campaign]) -> float:
    spend = sum(c.spend for c in campaigns)
    conversions = sum(c.conversions for c in campaigns)
    return (conversions * 100 / spend) if spend > 0 else 0.0


class AIChatService:
    """Answers marketing questions about the campaigns it holds."""

    def __init__(
        self,
        campaigns: Optional[List[Campaign]] = None,
        ad_groups: Optional[List[AdGroup]] = None,
    ):
        self.campaigns: List[Campaign] = list(campaigns or [])
        self.ad_groups: List[AdGroup] = list(ad_groups or [])

    def update_data(
        self, campaigns: List[Campaign], ad_groups: Optional[List[AdGroup]] = None
    ) -> None:
        self.campaigns = list(campaigns)
        self.ad_groups = list(ad_groups or [])

    def process_query(self, query: str, user_id: str) -> MarketingQuery:
        """Classify, answer, and attach the insights relevant to the intent."""
        normalized = query.lower().strip()
        intent = self.analyze_query_intent(normalized)
        response = self._generate_response(intent)
        insights = self._relevant_insights(intent)

        logger.info(
            f"Chat query classified as {intent.type} "
            f"(metric={intent.metric}, platform={intent.platform})",
            extra={"insight_count": len(insights)},
        )
        return MarketingQuery(
            id=f"query-{uuid.uuid4().hex[:12]}",
            query=query,
            response=response,
            intent=intent,
            insights=insights,
            timestamp=datetime.now(timezone.utc).isoformat(),
            user_id=user_id,
        )

    def analyze_query_intent(self, query: str) -> QueryIntent:
        """Substring classification of an already-lowercased query."""
        query = query.lower()
        intent_type = "general"

        metric = match_query_metric(query)
        if metric:
            intent_type = "performance"
        if _contains_any(query, OPTIMIZATION_KEYWORDS):
            intent_type = "optimization"
        if _contains_any(query, COMPARISON_KEYWORDS):
            intent_type = "comparison"
        if _contains_any(query, TREND_KEYWORDS):
            intent_type = "trend"
        if _contains_any(query, BUDGET_KEYWORDS):
            intent_type = "budget"

        timeframe = next((t for t in TIMEFRAME_KEYWORDS if t in query), None)
        platform = next(
            (name for keys, name in PLATFORM_KEYWORDS if _contains_any(query, keys)),
            None,
        )

        entities = [e for e in (platform, timeframe, metric) if e]
        return QueryIntent(
            type=intent_type,
            entities=entities,
            timeframe=timeframe,
            metric=metric,
            platform=platform,
        )

    # ── Responses ──

    def _generate_response(self, intent: QueryIntent) -> str:
        if intent.type == "performance":
            return self._performance_response(intent)
        if intent.type == "optimization":
            return self._optimization_response()
        if intent.type == "comparison":
            return self._comparison_response(intent)
        if intent.type == "trend":
            return self._trend_response()
        if intent.type == "budget":
            return self._budget_response()
        return self._general_response()

    def _performance_response(self, intent: QueryIntent) -> str:
        campaigns = (
            [c for c in self.campaigns if c.platform == intent.platform]
            if intent.platform
            else self.campaigns
        )
        if not campaigns:
            return (
                "I don't have enough campaign data to analyze performance. Please ensure "
                "your ad platforms are connected and synced."
            )

        total_spend = sum(c.spend for c in campaigns)
        total_conversions = sum(c.conversions for c in campaigns)
        total_clicks = sum(c.clicks for c in campaigns)
        total_impressions = sum(c.impressions for c in campaigns)
        roas = _conversion_roas(campaigns)
        ctr = (total_clicks / total_impressions * 100) if total_impressions > 0 else 0.0

        where = (
            f" on {intent.platform.upper()}" if intent.platform else " across all platforms"
        )

        if intent.metric == "roas":
            if roas > 200:
                verdict = "This is excellent performance! 🎉"
            elif roas > 150:
                verdict = "This is good performance, but there's room for improvement."
            else:
                verdict = (
                    "This is below target. I recommend reviewing your targeting and ad "
                    "creatives."
                )
            return (
                f"Your current ROAS{where} is {roas:.1f}%. {verdict} You've spent "
                f"${total_spend:.2f} and generated {total_conversions:g} conversions."
            )

        if intent.metric == "ctr":
            if ctr > 2:
                verdict = "This is excellent! Your ads are highly engaging."
            elif ctr > 1:
                verdict = "This is decent, but you could improve ad relevance."
            else:
                verdict = (
                    "This is low. Consider refreshing your ad creatives and improving "
                    "targeting."
                )
            return (
                f"Your average CTR{where} is {ctr:.2f}%. {verdict} You've had "
                f"{total_clicks:,} clicks from {total_impressions:,} impressions."
            )

        return (
            f"Here's your performance summary{where}: {roas:.1f}% ROAS, {ctr:.2f}% CTR, "
            f"{total_conversions:g} conversions from ${total_spend:.2f} spend."
        )

    def _optimization_response(self) -> str:
        insights = analytics.generate_insights(self.campaigns, self.ad_groups)
        high_priority = [i for i in insights if i.severity == "high"][:3]

        if not high_priority:
            return (
                "Your campaigns are performing well! Here are some general optimization "
                "tips: 1) Test new ad creatives regularly, 2) Refine your targeting based "
                "on best-performing audiences, 3) Adjust bids based on performance data."
            )

        lines = ["Here are my top optimization recommendations:", ""]
        for index, insight in enumerate(high_priority, 1):
            lines.append(f"{index}. **{insight.title}**")
            lines.append(f"   {insight.recommendation}")
            lines.append(f"   {insight.estimated_impact}")
            lines.append("")
        return "\n".join(lines)

    def _comparison_response(self, intent: QueryIntent) -> str:
        if intent.platform:
            platform_campaigns = [
                c for c in self.campaigns if c.platform == intent.platform
            ]
            top = analytics.get_top_performers(platform_campaigns, "roas", 1)
            worst = analytics.get_worst_performers(platform_campaigns, "roas", 1)
            name = intent.platform.upper()
            if not top or not worst:
                return f"I need more campaign data for {name} to make meaningful comparisons."
            return (
                f"On {name}:\n"
                f"🏆 **Best Performer**: {top[0].name} ({top[0].roas:.1f}% ROAS)\n"
                f"📉 **Needs Attention**: {worst[0].name} ({worst[0].roas:.1f}% ROAS)\n\n"
                "Consider reallocating budget from underperformers to top performers."
            )

        platform_metrics = analytics.calculate_platform_metrics(self.campaigns)
        if len(platform_metrics) < 2:
            return (
                "I need data from multiple platforms to make comparisons. Please connect "
                "more ad platforms."
            )

        best = platform_metrics[0]
        for pm in platform_metrics[1:]:
            if pm.average_conversion_roas > best.average_conversion_roas:
                best = pm

        lines = ["**Platform Performance Comparison:**", ""]
        for pm in platform_metrics:
            marker = "🏆" if pm.platform == best.platform else "📊"
            lines.append(
                f"{marker} **{pm.platform.upper()}**: {pm.average_conversion_roas:.1f}% ROAS, "
                f"${pm.total_spend:.2f} spend, {pm.total_conversions:g} conversions"
            )
        return "\n".join(lines) + "\n"

    def _trend_response(self) -> str:
        trends = analytics.calculate_trends(self.campaigns, TREND_WINDOW_DAYS)
        recent = trends[-TREND_SAMPLE_DAYS:]
        older = trends[:TREND_SAMPLE_DAYS]

        recent_roas = sum(t.conversion_roas for t in recent) / len(recent)
        recent_spend = sum(t.spend for t in recent) / len(recent)
        older_roas = sum(t.conversion_roas for t in older) / len(older)
        change = (
            (recent_roas - older_roas) / older_roas * 100 if older_roas > 0 else 0.0
        )

        sign = "+" if change > 0 else ""
        lines = [
            "**Recent Performance Trends:**",
            "",
            f"📈 Average ROAS: {recent_roas:.1f}% ({sign}{change:.1f}% vs last week)",
            f"💰 Daily Spend: ${recent_spend:.2f}",
            "",
        ]
        if change > 10:
            lines.append(
                "🎉 Great news! Your ROAS is trending upward. Keep doing what you're doing!"
            )
        elif change < -10:
            lines.append(
                "⚠️ Your ROAS has declined recently. Consider reviewing recent changes to "
                "campaigns, targeting, or creatives."
            )
        else:
            lines.append(
                "📊 Your performance is relatively stable. Consider testing new strategies "
                "to drive growth."
            )
        return "\n".join(lines)

    def _budget_response(self) -> str:
        total_spend = sum(c.spend for c in self.campaigns)
        total_budget = sum(c.budget for c in self.campaigns)
        utilization = (total_spend / total_budget * 100) if total_budget > 0 else 0.0

        winners = analytics.get_top_performers(self.campaigns, "roas", 3)
        losers = analytics.get_worst_performers(self.campaigns, "roas", 2)

        lines = [
            "**Budget Analysis:**",
            "",
            f"💰 Total Spend: ${total_spend:.2f}",
            f"📊 Budget Utilization: {utilization:.1f}%",
            "",
        ]
        if winners:
            lines.append("**Scale These Winners:**")
            for c in winners:
                lines.append(
                    f"• {c.name}: {c.roas:.1f}% ROAS - Consider increasing budget"
                )
            lines.append("")
        if losers:
            lines.append("**Budget Reallocation Opportunities:**")
            for c in losers:
                lines.append(
                    f"• {c.name}: {c.roas:.1f}% ROAS - Consider reducing or pausing"
                )
        return "\n".join(lines)

    def _general_response(self) -> str:
        total = len(self.campaigns)
        active = sum(1 for c in self.campaigns if c.status == "active")
        total_spend = sum(c.spend for c in self.campaigns)
        return (
            f"I'm here to help with your marketing analytics! Currently tracking {total} "
            f"campaigns ({active} active) with ${total_spend:.2f} total spend.\n\n"
            "Try asking me:\n"
            '• "What\'s my ROI this week?"\n'
            '• "Which campaign is performing best?"\n'
            '• "How can I optimize my ad spend?"\n'
            '• "Compare Facebook vs Google performance"'
        )

    # ── Insights & Suggestions ──

    def _relevant_insights(self, intent: QueryIntent) -> List[PerformanceInsight]:
        insights = analytics.generate_insights(self.campaigns, self.ad_groups)
        if intent.type == "optimization":
            return [i for i in insights if i.type in ("budget_optimization", "ad_fatigue")]
        if intent.type == "budget":
            return [i for i in insights if i.type == "budget_optimization"]
        if intent.type == "performance":
            return [
                i
                for i in insights
                if i.type in ("keyword_performance", "creative_performance")
            ]
        return insights[:3]

    def get_suggested_queries(self) -> List[str]:
        """Starter questions, extended by what the data contains."""
        suggestions = list(BASE_SUGGESTIONS)
        platforms = {c.platform for c in self.campaigns}
        if "meta" in platforms:
            suggestions.append("How is Facebook performing?")
        if "google" in platforms:
            suggestions.append("What's my Google Ads ROI?")
        if any(c.roas < 100 for c in self.campaigns):
            suggestions.append("Why are my conversions low?")
        return suggestions[:MAX_SUGGESTIONS]
