"""MIA — Anthropic Claude Provider."""

import json
from typing import Optional
from anthropic import AsyncAnthropic

from mia.ai.base_provider import AIProvider
from mia.config import settings
from mia.core.logging import get_logger

logger = get_logger("ai.claude")

SYSTEM_PROMPT = """You are the narrative layer of MIA, a marketing intelligence agent.

You are reading a pre-computed insight report for Google Ads and Meta Ads campaigns.
Your job is INTERPRETATION ONLY.

STRICT RULES:

1. NEVER calculate, derive, estimate, round, or modify numeric values.
2. NEVER convert currency. Use the "currency" field from the data exactly as provided.
3. Insights are already ranked by "priority". Discuss them in that order.
4. Campaign ids listed in "campaigns_skipped" had too little spend or too few
   impressions to analyze. Say so; do NOT speculate about their performance.
5. Cross-platform "roas" values are revenue / spend ratios (3.0 means 3:1).
6. Do NOT introduce any new numbers not present in the data.
7. If uncertain, state uncertainty rather than guessing.

FORMAT RULES:
- Lead with the most important finding
- Use bullet points for clarity
- Keep it under 500 words
- Be direct and actionable
"""


class ClaudeProvider(AIProvider):
    """Anthropic Claude provider for narrative generation."""

    name = "claude"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key or settings.anthropic_api_key
        self.model = model or settings.anthropic_model
        self.client = AsyncAnthropic(api_key=self.api_key) if self.api_key else None

    def is_available(self) -> bool:
        return self.client is not None

    async def generate_summary(
        self, report_json: dict, question: Optional[str] = None
    ) -> str:
        if not self.is_available():
            raise RuntimeError("Claude provider not configured")

        data_block = json.dumps(report_json, indent=2)

        if question:
            user_prompt = (
                f'The user asks: "{question}"\n\n'
                f"Answer this specific question using ONLY the report below. "
                f"Be concise and reference specific insights from the data.\n\n"
                f"Report:\n{data_block}"
            )
        else:
            user_prompt = (
                f"Summarize this insight report for a marketing lead:\n\n{data_block}"
            )

        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=1000,
                system=SYSTEM_PROMPT,
                messages=[
                    {"role": "user", "content": user_prompt},
                ],
            )
            return (
                response.content[0].text
                if response.content
                else "No summary generated."
            )
        except Exception as e:
            logger.error(f"Claude generation failed: {e}")
            raise
