"""
Concurrent per-source extraction and normalization to Opportunity records.

Each source category maps to an ExtractionStrategy: the instruction and
JSON schema sent to the extraction service plus a pure normalizer that turns
the returned payload into Opportunity objects.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from .errors import ExtractionError
from .models import ConfidenceTier, DataSource, Opportunity, SourceCategory

logger = logging.getLogger(__name__)

# Placeholder value percent attached to odds-comparison records
ODDS_COMPARISON_VALUE_PERCENT = 5.0

Normalizer = Callable[[Dict[str, Any], DataSource], List[Opportunity]]


class ExtractionSession(Protocol):
    """An open extraction-service session."""

    async def extract(self, url: str, instruction: str, schema: Dict[str, Any]) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class ExtractionStrategy:
    instruction: str
    schema: Dict[str, Any]
    normalizer: Normalizer


def parse_odd(value: Any, default: float = 0.0) -> float:
    """
    Parse a scraped numeric string ("2.15", "2,15", "7.5%").

    Missing or unparseable values return ``default``.
    """
    if value is None:
        return default
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().replace("%", "").replace(",", ".")
    if not text:
        return default
    try:
        return float(text)
    except ValueError:
        return default


def _array_schema(key: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            key: {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": fields,
                },
            },
        },
    }


def _strings(*names: str) -> Dict[str, Any]:
    return {name: {"type": "string"} for name in names}


def _records(payload: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    records = payload.get(key) if isinstance(payload, dict) else None
    if not isinstance(records, list):
        return []
    return [record for record in records if isinstance(record, dict) and record.get("match")]


# Normalizers

def normalize_arbitrage(payload: Dict[str, Any], source: DataSource) -> List[Opportunity]:
    opportunities = []
    for record in _records(payload, "matches"):
        odds = [parse_odd(record.get(k)) for k in ("homeOdd", "drawOdd", "awayOdd")]
        opportunities.append(Opportunity(
            match=record["match"],
            market="1X2",
            best_odd=max(odds),
            average_odd=sum(odds) / 3,
            value_percent=parse_odd(record.get("profit")),
            bookmaker=record.get("bookmaker") or source.name,
            confidence_tier=ConfidenceTier.HIGH,
            source_link=source.url,
        ))
    return opportunities


def normalize_odds_comparison(payload: Dict[str, Any], source: DataSource) -> List[Opportunity]:
    opportunities = []
    for record in _records(payload, "matches"):
        best_odd = 0.0
        best_bookmaker = ""
        for bookmaker in record.get("bookmakers") or []:
            if not isinstance(bookmaker, dict):
                continue
            top = max(parse_odd(bookmaker.get(k)) for k in ("homeOdd", "drawOdd", "awayOdd"))
            if top > best_odd:
                best_odd = top
                best_bookmaker = bookmaker.get("name") or source.name

        if best_odd <= 0:
            continue
        opportunities.append(Opportunity(
            match=record["match"],
            market="1X2",
            best_odd=best_odd,
            average_odd=best_odd * 0.9,
            value_percent=ODDS_COMPARISON_VALUE_PERCENT,
            bookmaker=best_bookmaker,
            confidence_tier=ConfidenceTier.MEDIUM,
            source_link=source.url,
        ))
    return opportunities


def normalize_value_betting(payload: Dict[str, Any], source: DataSource) -> List[Opportunity]:
    opportunities = []
    for record in _records(payload, "opportunities"):
        odds = parse_odd(record.get("odds"))
        probability = parse_odd(record.get("probability"))
        value = parse_odd(record.get("value"))
        if odds <= 0 or probability <= 0:
            continue

        if value > 10:
            tier = ConfidenceTier.HIGH
        elif value > 5:
            tier = ConfidenceTier.MEDIUM
        else:
            tier = ConfidenceTier.LOW

        opportunities.append(Opportunity(
            match=record["match"],
            market=record.get("market") or "Unknown",
            best_odd=odds,
            average_odd=odds * 0.95,
            value_percent=value,
            bookmaker=record.get("bookmaker") or source.name,
            confidence_tier=tier,
            source_link=source.url,
        ))
    return opportunities


def normalize_statistics(payload: Dict[str, Any], source: DataSource) -> List[Opportunity]:
    # Statistics pages carry no prices; odds are fixed placeholders
    return [
        Opportunity(
            match=record["match"],
            market="1X2",
            best_odd=2.0,
            average_odd=1.8,
            value_percent=3.0,
            bookmaker=source.name,
            confidence_tier=ConfidenceTier.from_text(record.get("confidence")),
            source_link=source.url,
        )
        for record in _records(payload, "matches")
    ]


def normalize_ai_ml(payload: Dict[str, Any], source: DataSource) -> List[Opportunity]:
    opportunities = []
    for record in _records(payload, "predictions"):
        odds = parse_odd(record.get("odds"), default=2.0)
        opportunities.append(Opportunity(
            match=record["match"],
            market="1X2",
            best_odd=odds,
            average_odd=odds * 0.95,
            value_percent=5.0,
            bookmaker=source.name,
            confidence_tier=ConfidenceTier.from_text(record.get("confidence")),
            source_link=source.url,
        ))
    return opportunities


def normalize_xg(payload: Dict[str, Any], source: DataSource) -> List[Opportunity]:
    opportunities = []
    for record in _records(payload, "matches"):
        if parse_odd(record.get("totalXG")) <= 0:
            continue
        opportunities.append(Opportunity(
            match=record["match"],
            market="Over/Under",
            best_odd=1.8,
            average_odd=1.7,
            value_percent=4.0,
            bookmaker=source.name,
            confidence_tier=ConfidenceTier.from_text(record.get("confidence")),
            source_link=source.url,
        ))
    return opportunities


def normalize_generic(payload: Dict[str, Any], source: DataSource) -> List[Opportunity]:
    opportunities = []
    for record in _records(payload, "opportunities"):
        odds = parse_odd(record.get("odds"), default=2.0)
        opportunities.append(Opportunity(
            match=record["match"],
            market=record.get("market") or "1X2",
            best_odd=odds,
            average_odd=odds * 0.95,
            value_percent=3.0,
            bookmaker=record.get("bookmaker") or source.name,
            confidence_tier=ConfidenceTier.MEDIUM,
            source_link=source.url,
        ))
    return opportunities


GENERIC_STRATEGY = ExtractionStrategy(
    instruction=(
        "Extract any betting opportunities, odds, or predictions from this page. "
        "Look for match names, odds, and betting recommendations."
    ),
    schema=_array_schema("opportunities", _strings("match", "odds", "market", "prediction", "bookmaker")),
    normalizer=normalize_generic,
)

EXTRACTION_STRATEGIES: Dict[SourceCategory, ExtractionStrategy] = {
    SourceCategory.ARBITRAGE: ExtractionStrategy(
        instruction=(
            "Find arbitrage opportunities and sure bets. "
            "Extract match names, odds, and profit percentages."
        ),
        schema=_array_schema(
            "matches", _strings("match", "homeOdd", "drawOdd", "awayOdd", "profit", "bookmaker")
        ),
        normalizer=normalize_arbitrage,
    ),
    SourceCategory.ODDS_COMPARISON: ExtractionStrategy(
        instruction=(
            "Find the best odds for different matches. Extract match names, odds from "
            "different bookmakers, and identify the best odds."
        ),
        schema=_array_schema("matches", {
            "match": {"type": "string"},
            "bookmakers": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": _strings("name", "homeOdd", "drawOdd", "awayOdd"),
                },
            },
        }),
        normalizer=normalize_odds_comparison,
    ),
    SourceCategory.VALUE_BETTING: ExtractionStrategy(
        instruction=(
            "Find value betting opportunities. Extract matches with odds that are higher "
            "than the true probability suggests."
        ),
        schema=_array_schema(
            "opportunities", _strings("match", "market", "odds", "probability", "value", "bookmaker")
        ),
        normalizer=normalize_value_betting,
    ),
    SourceCategory.STATISTICS: ExtractionStrategy(
        instruction=(
            "Extract statistical data that could indicate betting opportunities. Look for "
            "form data, head-to-head records, and performance statistics."
        ),
        schema=_array_schema(
            "matches", _strings("match", "homeForm", "awayForm", "h2h", "prediction", "confidence")
        ),
        normalizer=normalize_statistics,
    ),
    SourceCategory.AI_ML: ExtractionStrategy(
        instruction=(
            "Extract AI/ML predictions and betting recommendations. Look for predicted "
            "outcomes, confidence levels, and recommended bets."
        ),
        schema=_array_schema(
            "predictions", _strings("match", "prediction", "confidence", "odds", "reasoning")
        ),
        normalizer=normalize_ai_ml,
    ),
    SourceCategory.XG_METRICS: ExtractionStrategy(
        instruction=(
            "Extract Expected Goals (xG) data and related betting opportunities. Look for "
            "xG statistics, over/under predictions, and goal-scoring patterns."
        ),
        schema=_array_schema(
            "matches", _strings("match", "homeXG", "awayXG", "totalXG", "prediction", "confidence")
        ),
        normalizer=normalize_xg,
    ),
}


def strategy_for(category: SourceCategory) -> ExtractionStrategy:
    return EXTRACTION_STRATEGIES.get(category, GENERIC_STRATEGY)


class Extractor:
    """Runs one extraction task per source and merges the results."""

    def __init__(self, session: ExtractionSession, timeout: float = 45.0):
        """
        Initialize the extractor.

        Args:
            session: Open extraction session shared by all tasks of one run
            timeout: Per-source timeout in seconds
        """
        self.session = session
        self.timeout = timeout

    async def extract_source(self, source: DataSource) -> List[Opportunity]:
        """
        Extract and normalize one source. Raises on any failure.

        Raises:
            ExtractionError: If the payload cannot be normalized
        """
        strategy = strategy_for(source.category)
        payload = await self.session.extract(source.url, strategy.instruction, strategy.schema)

        if not isinstance(payload, dict):
            raise ExtractionError(f"Unexpected payload type {type(payload).__name__}", source=source.name)

        try:
            opportunities = strategy.normalizer(payload, source)
        except (TypeError, ValueError, KeyError, AttributeError) as e:
            raise ExtractionError(f"Malformed payload: {e}", source=source.name) from e

        return [opp for opp in opportunities if opp.best_odd > 1]

    async def extract_all(
        self,
        sources: Sequence[DataSource],
        query_hint: Optional[str] = None,
    ) -> List[Opportunity]:
        """
        Extract every source concurrently.

        A failing or timed-out source contributes no records; the batch itself
        never raises.

        Args:
            sources: Sources to extract
            query_hint: Original query, used for logging

        Returns:
            Concatenation of every source's opportunities, in source order
        """
        if not sources:
            return []

        logger.info(f"Extracting {len(sources)} sources for query: {query_hint!r}")

        async def run(source: DataSource) -> List[Opportunity]:
            try:
                opportunities = await asyncio.wait_for(self.extract_source(source), timeout=self.timeout)
                logger.info(f"{source.name}: {len(opportunities)} opportunities")
                return opportunities
            except asyncio.TimeoutError:
                logger.warning(f"Extraction timed out for {source.name} after {self.timeout}s")
            except Exception as e:
                logger.warning(f"Extraction failed for {source.name}: {e}")
            return []

        results = await asyncio.gather(*(run(source) for source in sources))

        opportunities = [opp for batch in results for opp in batch]
        logger.info(f"Extracted {len(opportunities)} opportunities from {len(sources)} sources")
        return opportunities
