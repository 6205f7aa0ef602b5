"""
Value-bet discovery pipeline.

A discovery run moves through these phases:
1. Selecting sources: pick catalog sources for the query
2. Extracting: pull odds records from every source concurrently
3. Fallback: substitute demonstration data when extraction yields nothing
4. Scoring: analyze every opportunity, keep value bets
5. Linking: build bookmaker links for the survivors
6. Ranking: order for presentation
"""
import asyncio
import logging
import time
from typing import Callable, Dict, List, Optional, Sequence

from .browser_client import BrowserClient
from .config import Settings
from .errors import ConfigurationError, PipelineError, QuotaExceededError
from .extractor import Extractor
from .historical import HistoricalDataProvider
from .link_generator import LinkGenerator
from .models import (
    AnalyzedOpportunity,
    ConfidenceTier,
    DataSource,
    DiscoveryPhase,
    DiscoveryResult,
    LinkGenerationResult,
    Opportunity,
)
from .ranker import rank
from .sources import SourceSelector, build_default_catalog
from .value_scorer import ValueScorer, insufficient_data_analysis, split_value_bets

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_MATCH = "Flamengo vs Palmeiras"

FallbackFactory = Callable[[Optional[str]], List[Opportunity]]


def build_fallback_opportunities(query: Optional[str] = None) -> List[Opportunity]:
    """
    Deterministic demonstration opportunities for a query.

    The match is the query text itself, or a default fixture when the query
    is empty. The two records use different markets and bookmakers.
    """
    match = (query or "").strip() or DEFAULT_FALLBACK_MATCH
    common = {
        "match": match,
        "league": "Brasileirão Série A",
        "country": "Brasil",
    }
    return [
        Opportunity(
            market="Match Winner",
            best_odd=2.15,
            average_odd=2.00,
            value_percent=7.5,
            bookmaker="Bet365",
            confidence_tier=ConfidenceTier.HIGH,
            source_link="https://www.bet365.com",
            **common,
        ),
        Opportunity(
            market="Under 2.5 Goals",
            best_odd=2.10,
            average_odd=1.95,
            value_percent=5.7,
            bookmaker="William Hill",
            confidence_tier=ConfidenceTier.MEDIUM,
            source_link="https://www.williamhill.com",
            **common,
        ),
    ]


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class DiscoveryOrchestrator:
    """
    Runs the discovery pipeline over injected collaborators.

    ``discover`` never raises. Every failure short of the fallback data
    itself failing ends in a successful result built from fallback data.
    """

    def __init__(
        self,
        selector: SourceSelector,
        scorer: ValueScorer,
        link_generator: LinkGenerator,
        extraction_client: Optional[BrowserClient] = None,
        extraction_timeout: float = 45.0,
        fallback_factory: FallbackFactory = build_fallback_opportunities,
    ):
        """
        Initialize the orchestrator.

        Args:
            selector: Source selector over the catalog
            scorer: Value scorer (owns the historical data provider)
            link_generator: Bookmaker link generator
            extraction_client: Extraction service client; None when not configured
            extraction_timeout: Per-source extraction timeout in seconds
            fallback_factory: Builds demonstration opportunities from the query
        """
        self.selector = selector
        self.scorer = scorer
        self.link_generator = link_generator
        self.extraction_client = extraction_client
        self.extraction_timeout = extraction_timeout
        self.fallback_factory = fallback_factory

    async def close(self):
        if self.extraction_client is not None:
            await self.extraction_client.close()

    def extraction_available(self) -> bool:
        return self.extraction_client is not None and self.extraction_client.is_available()

    def service_status(self) -> Dict[str, object]:
        """Report which collaborators are usable."""
        if self.extraction_client is None:
            extraction = "unavailable"
        elif self.extraction_client.plan_limit_reached:
            extraction = "plan_limited"
        else:
            extraction = "available"

        return {
            "extraction": extraction,
            "historical_data": self.scorer.provider.fetcher is not None,
            "catalog_sources": len(self.selector.catalog),
            "min_source_reliability": self.selector.min_reliability,
            "max_sources": self.selector.max_sources,
        }

    async def _extract(self, sources: Sequence[DataSource], query: Optional[str]) -> List[Opportunity]:
        async with self.extraction_client.session() as session:
            extractor = Extractor(session, timeout=self.extraction_timeout)
            return await extractor.extract_all(sources, query)

    def _fallback(self, query: Optional[str]) -> List[Opportunity]:
        """
        Build fallback opportunities.

        Raises:
            PipelineError: If the fallback data cannot be built
        """
        try:
            opportunities = self.fallback_factory(query)
        except Exception as e:
            raise PipelineError(f"Fallback data could not be built: {e}") from e
        if not opportunities:
            raise PipelineError("Fallback data is empty")
        logger.info(f"Using {len(opportunities)} fallback opportunities")
        return opportunities

    async def _score(self, opportunities: Sequence[Opportunity]) -> List[AnalyzedOpportunity]:
        async def score_one(opportunity: Opportunity) -> AnalyzedOpportunity:
            try:
                analysis = await self.scorer.analyze(opportunity)
            except Exception as e:
                logger.error(f"Scoring failed for {opportunity.match}: {e}")
                analysis = insufficient_data_analysis(opportunity, str(e))
            return AnalyzedOpportunity(opportunity=opportunity, analysis=analysis)

        return list(await asyncio.gather(*(score_one(opp) for opp in opportunities)))

    async def _link(self, items: Sequence[AnalyzedOpportunity]) -> List[AnalyzedOpportunity]:
        async def link_one(item: AnalyzedOpportunity) -> AnalyzedOpportunity:
            try:
                links = await self.link_generator.generate(item.opportunity, item.analysis)
            except Exception as e:
                logger.error(f"Link generation failed for {item.opportunity.match}: {e}")
                links = LinkGenerationResult(success=False, error=str(e))
            return AnalyzedOpportunity(opportunity=item.opportunity, analysis=item.analysis, links=links)

        return list(await asyncio.gather(*(link_one(item) for item in items)))

    async def _finish(
        self,
        opportunities: Sequence[Opportunity],
        sources: List[DataSource],
        phases: List[DiscoveryPhase],
        fallback_used: bool,
        start: float,
    ) -> DiscoveryResult:
        phases.append(DiscoveryPhase.SCORING)
        analyzed = await self._score(opportunities)
        value_bets, _ = split_value_bets(analyzed)
        logger.info(f"{len(value_bets)} value bets out of {len(analyzed)} opportunities")

        phases.append(DiscoveryPhase.LINKING)
        linked = await self._link(value_bets)

        phases.append(DiscoveryPhase.RANKING)
        ranked = rank(linked)

        phases.append(DiscoveryPhase.DONE)
        best = ranked[0].opportunity if ranked else None
        if best is not None:
            message = f"Best value bet: {best.match} [{best.market}] at {best.best_odd} ({best.bookmaker})"
            if fallback_used:
                message += " (fallback data)"
        else:
            message = f"No value bets found among {len(analyzed)} opportunities"

        return DiscoveryResult(
            success=True,
            opportunities=ranked,
            execution_time_ms=_elapsed_ms(start),
            sources_used=sources,
            best_opportunity=best,
            fallback_used=fallback_used,
            message=message,
            phases=phases,
        )

    def _failure(self, error: Exception, sources: List[DataSource], phases: List[DiscoveryPhase], start: float):
        logger.error(f"Discovery failed: {error}")
        return DiscoveryResult(
            success=False,
            execution_time_ms=_elapsed_ms(start),
            sources_used=sources,
            message="Discovery failed",
            error=str(error),
            phases=phases,
        )

    async def discover(self, query: Optional[str] = None) -> DiscoveryResult:
        """
        Discover value bets for a query.

        Args:
            query: Free-text query ("Flamengo vs Palmeiras value bets"); may be empty

        Returns:
            DiscoveryResult; ``success`` is False only when fallback data
            could not be built. Fallback records are scored like any other,
            so with a real stats provider they may all be filtered out and
            the result carries no opportunities
        """
        start = time.monotonic()
        phases: List[DiscoveryPhase] = []
        sources: List[DataSource] = []

        try:
            phases.append(DiscoveryPhase.SELECTING_SOURCES)
            sources = self.selector.select(query)

            opportunities: List[Opportunity] = []
            if not self.extraction_available():
                logger.info("Extraction unavailable, using fallback data")
            elif not sources:
                logger.info("No sources selected, using fallback data")
            else:
                phases.append(DiscoveryPhase.EXTRACTING)
                try:
                    opportunities = await self._extract(sources, query)
                except QuotaExceededError as e:
                    logger.warning(f"Extraction quota exceeded, using fallback data: {e}")
                except Exception as e:
                    logger.error(f"Extraction failed, using fallback data: {e}")

            fallback_used = False
            if not opportunities:
                phases.append(DiscoveryPhase.FALLBACK)
                opportunities = self._fallback(query)
                fallback_used = True

            return await self._finish(opportunities, sources, phases, fallback_used, start)

        except PipelineError as e:
            return self._failure(e, sources, phases, start)
        except Exception as e:
            logger.exception(f"Unhandled error during discovery: {e}")
            phases.append(DiscoveryPhase.ERROR_FALLBACK)

        try:
            opportunities = self._fallback(query)
            return await self._finish(opportunities, sources, phases, True, start)
        except PipelineError as e:
            return self._failure(e, sources, phases, start)
        except Exception as e:
            return self._failure(PipelineError(f"Fallback processing failed: {e}"), sources, phases, start)


def build_orchestrator(settings: Settings) -> DiscoveryOrchestrator:
    """
    Build an orchestrator from settings.

    A missing extraction configuration leaves the extraction service
    unavailable instead of failing.
    """
    selector = SourceSelector(
        build_default_catalog(),
        min_reliability=settings.min_source_reliability,
        max_sources=settings.max_sources,
    )
    scorer = ValueScorer(HistoricalDataProvider(timeout=settings.historical_timeout_seconds))

    extraction_client = None
    try:
        extraction_client = BrowserClient.from_settings(settings)
    except ConfigurationError as e:
        logger.warning(f"Extraction service unavailable: {e} (missing: {', '.join(e.missing)})")

    return DiscoveryOrchestrator(
        selector=selector,
        scorer=scorer,
        link_generator=LinkGenerator(),
        extraction_client=extraction_client,
        extraction_timeout=settings.extraction_timeout_seconds,
    )


async def discover_value_bets(query: Optional[str] = None, settings: Optional[Settings] = None) -> DiscoveryResult:
    """
    Convenience function to run one discovery.

    Args:
        query: Free-text query
        settings: Settings to use (loaded from the environment when None)

    Returns:
        DiscoveryResult
    """
    orchestrator = build_orchestrator(settings or Settings())
    try:
        return await orchestrator.discover(query)
    finally:
        await orchestrator.close()
