"""Chat assistant: classify a message, run discovery, summarize the result."""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import Settings
from .errors import ConfigurationError, LLMError
from .llm_client import LLMClient
from .models import DataSource, DiscoveryResult, Intent
from .orchestrator import DiscoveryOrchestrator, build_orchestrator
from .prompts import DEFAULT_CONTEXT, FINAL_RESPONSE_PROMPT, SUMMARY_PROMPTS

logger = logging.getLogger(__name__)


@dataclass
class AssistantReply:
    """Answer to one chat message."""
    message: str
    intent: Intent
    result: DiscoveryResult
    summary: str
    recommended_sources: List[DataSource] = field(default_factory=list)
    llm_used: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "intent": {
                "query_type": self.intent.query_type,
                "normalized_query": self.intent.normalized_query,
                "explanation": self.intent.explanation,
                "confidence": self.intent.confidence,
            },
            "summary": self.summary,
            "llm_used": self.llm_used,
            "recommended_sources": [source.name for source in self.recommended_sources],
            "result": self.result.to_dict(),
        }


def render_summary(result: DiscoveryResult) -> str:
    """Plain-text summary used when no LLM is available."""
    if not result.success:
        return f"Discovery failed: {result.error}"

    lines = []
    if result.fallback_used:
        lines.append("Live extraction was unavailable; showing demonstration data.")
    lines.append(result.message)

    for item in result.opportunities[:5]:
        opp, analysis = item.opportunity, item.analysis
        lines.append(
            f"- {opp.match} | {opp.market} @ {opp.best_odd:.2f} ({opp.bookmaker}): "
            f"expected {analysis.expected_probability * 100:.1f}% vs market "
            f"{analysis.market_probability * 100:.1f}%, {analysis.recommendation.value}"
        )
        for risk in analysis.risks:
            lines.append(f"    risk: {risk}")

    lines.append(f"Sources consulted: {len(result.sources_used)} in {result.execution_time_ms}ms.")
    lines.append("Bet responsibly: stake no more than 1-2% of your bankroll per pick.")
    return "\n".join(lines)


class ScoutAssistant:
    """Conversational front end over the discovery pipeline."""

    def __init__(self, orchestrator: DiscoveryOrchestrator, llm_client: Optional[LLMClient] = None):
        self.orchestrator = orchestrator
        self.llm_client = llm_client

    async def close(self):
        await self.orchestrator.close()
        if self.llm_client is not None:
            await self.llm_client.close()

    async def classify(self, message: str) -> Intent:
        if self.llm_client is None:
            return Intent(query_type="general", normalized_query=message, explanation="No LLM configured")
        return await self.llm_client.classify_intent(message)

    async def summarize(self, message: str, intent: Intent, result: DiscoveryResult) -> Optional[str]:
        """LLM summary for the intent's query type, or None when the LLM fails."""
        if self.llm_client is None:
            return None

        data = result.to_dict()
        prompt, context = SUMMARY_PROMPTS.get(intent.query_type, (FINAL_RESPONSE_PROMPT, DEFAULT_CONTEXT))
        try:
            return await self.llm_client.summarize(prompt, data, context=context, message=message)
        except LLMError as e:
            logger.warning(f"LLM summary failed, using template: {e}")
            return None

    async def ask(self, message: str) -> AssistantReply:
        """
        Answer a chat message.

        Args:
            message: The user's message

        Returns:
            AssistantReply with the discovery result and a summary
        """
        intent = await self.classify(message)
        query = intent.normalized_query or message
        logger.info(f"Running discovery for {intent.query_type} query: {query}")

        result = await self.orchestrator.discover(query)
        recommended = self.orchestrator.selector.catalog.recommended_for(intent.query_type)

        summary = await self.summarize(message, intent, result)
        llm_used = summary is not None
        if summary is None:
            summary = render_summary(result)

        return AssistantReply(
            message=message,
            intent=intent,
            result=result,
            summary=summary,
            recommended_sources=recommended,
            llm_used=llm_used,
        )


def build_assistant(settings: Settings) -> ScoutAssistant:
    """Build an assistant from settings; a missing LLM key means template summaries."""
    llm_client = None
    try:
        llm_client = LLMClient.from_settings(settings)
    except ConfigurationError as e:
        logger.warning(f"LLM unavailable, summaries will use templates: {e}")
    return ScoutAssistant(build_orchestrator(settings), llm_client)
