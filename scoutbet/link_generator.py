"""Bookmaker deep-link generation for actionable opportunities."""
import asyncio
import logging
import time
from typing import List, Sequence
from urllib.parse import quote, urlparse

from .errors import LinkGenerationError
from .models import (
    AnalyzedOpportunity,
    ConfidenceTier,
    GeneratedLink,
    LinkGenerationResult,
    Opportunity,
    Recommendation,
    ValueAnalysis,
)

logger = logging.getLogger(__name__)

HIGH_CONFIDENCE_BOOKMAKERS = ["Bet365", "Betfair", "Sportingbet", "Betano"]
MEDIUM_CONFIDENCE_BOOKMAKERS = ["Rivalo", "Pixbet", "Betway", "1xBet"]
LOW_CONFIDENCE_BOOKMAKERS = ["Bwin", "William Hill", "Unibet"]

BOOKMAKER_URLS = {
    "Bet365": "https://www.bet365.com",
    "Betfair": "https://www.betfair.com",
    "Sportingbet": "https://sportingbet.com",
    "Betano": "https://www.betano.com",
    "Rivalo": "https://www.rivalo.com",
    "Pixbet": "https://www.pixbet.com",
    "Betway": "https://www.betway.com",
    "1xBet": "https://1xbet.com",
    "Bwin": "https://www.bwin.com",
    "William Hill": "https://www.williamhill.com",
    "Unibet": "https://www.unibet.com",
}
DEFAULT_BOOKMAKER_URL = BOOKMAKER_URLS["Bet365"]

# Per-bookmaker tier attached to each generated link
BOOKMAKER_TIERS = {
    "Bet365": ConfidenceTier.HIGH,
    "Betfair": ConfidenceTier.HIGH,
    "Sportingbet": ConfidenceTier.HIGH,
    "Betano": ConfidenceTier.MEDIUM,
    "Rivalo": ConfidenceTier.MEDIUM,
    "Pixbet": ConfidenceTier.MEDIUM,
    "Betway": ConfidenceTier.MEDIUM,
}

NO_VALUE_ERROR = "no value"


def bookmakers_for_confidence(confidence: float) -> List[str]:
    """Candidate bookmakers for an analysis confidence."""
    if confidence >= 0.7:
        return HIGH_CONFIDENCE_BOOKMAKERS + MEDIUM_CONFIDENCE_BOOKMAKERS
    if confidence >= 0.5:
        return MEDIUM_CONFIDENCE_BOOKMAKERS + HIGH_CONFIDENCE_BOOKMAKERS[:2]
    return LOW_CONFIDENCE_BOOKMAKERS + MEDIUM_CONFIDENCE_BOOKMAKERS[:2]


def bookmaker_url(bookmaker: str, match: str) -> str:
    base = BOOKMAKER_URLS.get(bookmaker, DEFAULT_BOOKMAKER_URL)
    return f"{base}/search?q={quote(match, safe='')}"


def bookmaker_tier(bookmaker: str) -> ConfidenceTier:
    return BOOKMAKER_TIERS.get(bookmaker, ConfidenceTier.LOW)


def is_valid_link(link: GeneratedLink) -> bool:
    """Sanity check: http(s) URL with a host and odds strictly between 1 and 10."""
    parsed = urlparse(link.direct_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return False
    return 1.0 < link.odds < 10.0


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class LinkGenerator:
    """Builds bookmaker search links for opportunities worth acting on."""

    def build_links(self, opportunity: Opportunity, analysis: ValueAnalysis) -> List[GeneratedLink]:
        """
        Build and sort links for every candidate bookmaker.

        Raises:
            LinkGenerationError: If the opportunity has no match text
        """
        if not opportunity.match:
            raise LinkGenerationError("Opportunity has no match to search for")

        links = [
            GeneratedLink(
                bookmaker=bookmaker,
                direct_url=bookmaker_url(bookmaker, opportunity.match),
                odds=opportunity.best_odd,
                market=opportunity.market,
                confidence_tier=bookmaker_tier(bookmaker),
            )
            for bookmaker in bookmakers_for_confidence(analysis.confidence)
        ]
        links.sort(key=lambda link: (link.confidence_tier.rank, link.odds), reverse=True)
        return links

    async def generate(self, opportunity: Opportunity, analysis: ValueAnalysis) -> LinkGenerationResult:
        """
        Generate links for one analyzed opportunity.

        Args:
            opportunity: The opportunity to link
            analysis: Its value analysis

        Returns:
            LinkGenerationResult; unsuccessful with no links when the analysis
            is not a value bet or recommends avoiding it
        """
        start = time.monotonic()

        if not analysis.is_value_bet or analysis.recommendation == Recommendation.AVOID:
            logger.debug(f"Skipping links for {opportunity.match}: no value")
            return LinkGenerationResult(
                success=False,
                error=NO_VALUE_ERROR,
                execution_time_ms=_elapsed_ms(start),
            )

        try:
            links = self.build_links(opportunity, analysis)
        except Exception as e:
            logger.error(f"Link generation failed for {opportunity.match}: {e}")
            return LinkGenerationResult(success=False, error=str(e), execution_time_ms=_elapsed_ms(start))

        logger.info(f"Generated {len(links)} links for {opportunity.match}")
        return LinkGenerationResult(
            success=True,
            generated_links=links,
            execution_time_ms=_elapsed_ms(start),
        )

    async def generate_batch(self, items: Sequence[AnalyzedOpportunity]) -> List[LinkGenerationResult]:
        """Generate links for many opportunities concurrently."""
        results = await asyncio.gather(
            *(self.generate(item.opportunity, item.analysis) for item in items)
        )
        successes = sum(1 for result in results if result.success)
        logger.info(f"Link batch complete: {successes}/{len(results)} succeeded")
        return list(results)
