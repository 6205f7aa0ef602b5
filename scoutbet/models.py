"""Value objects shared by the discovery pipeline."""
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple


class SourceCategory(str, Enum):
    """Closed set of data-source categories."""
    ARBITRAGE = "arbitrage"
    ODDS_COMPARISON = "odds_comparison"
    VALUE_BETTING = "value_betting"
    STATISTICS = "statistics"
    AI_ML = "ai_ml"
    XG_METRICS = "xg_metrics"
    PREDICTIONS = "predictions"
    LIVE_SCORES = "live_scores"
    TIPSTERS = "tipsters"
    SPECIFIC_STATS = "specific_stats"


class SourceFeature(str, Enum):
    """Feature tags a source can advertise."""
    ODDS_COMPARISON = "odds_comparison"
    VALUE_BET_FINDER = "value_bet_finder"
    ARBITRAGE_DETECTION = "arbitrage_detection"
    LIVE_SCORES = "live_scores"
    XG_ANALYSIS = "xg_analysis"
    AI_PREDICTIONS = "ai_predictions"
    STATISTICS = "statistics"
    TIPSTER_RANKINGS = "tipster_rankings"
    CORNER_STATS = "corner_stats"
    BTTS_ANALYSIS = "btts_analysis"
    OVER_UNDER = "over_under"
    CLEAN_SHEETS = "clean_sheets"
    INJURY_DATA = "injury_data"
    GOAL_TIMING = "goal_timing"
    HEAT_MAPS = "heat_maps"


class ConfidenceTier(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Ordinal used for sorting (high > medium > low)."""
        return {"high": 3, "medium": 2, "low": 1}[self.value]

    @classmethod
    def from_text(cls, text: Optional[str], default: "ConfidenceTier" = None) -> "ConfidenceTier":
        """
        Parse a free-text confidence label ("High", "medium-high", "70% low"...).

        Falls back to ``default`` (medium when not given) for empty text and to
        ``LOW`` for anything that names neither high nor medium.
        """
        if not text:
            return default or cls.MEDIUM
        lowered = text.lower()
        if "high" in lowered:
            return cls.HIGH
        if "medium" in lowered:
            return cls.MEDIUM
        return cls.LOW


class Recommendation(str, Enum):
    STRONG_BET = "strong_bet"
    MODERATE_BET = "moderate_bet"
    AVOID = "avoid"
    INSUFFICIENT_DATA = "insufficient_data"


class DiscoveryPhase(str, Enum):
    """States of a discovery run, in the order they are normally visited."""
    SELECTING_SOURCES = "selecting_sources"
    EXTRACTING = "extracting"
    FALLBACK = "fallback"
    SCORING = "scoring"
    LINKING = "linking"
    RANKING = "ranking"
    DONE = "done"
    ERROR_FALLBACK = "error_fallback"


@dataclass(frozen=True)
class DataSource:
    """A catalog entry. Loaded once at start-up and never mutated."""
    name: str
    url: str
    category: SourceCategory
    region: str
    reliability: float
    features: FrozenSet[SourceFeature]
    pricing: str = "free"

    def has_any(self, features) -> bool:
        return any(feature in self.features for feature in features)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "url": self.url,
            "category": self.category.value,
            "region": self.region,
            "reliability": self.reliability,
            "features": sorted(feature.value for feature in self.features),
            "pricing": self.pricing,
        }


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Opportunity:
    """A single odds record normalized from any extraction schema."""
    match: str
    market: str
    best_odd: float
    bookmaker: str
    league: str = "Unknown"
    country: str = "Unknown"
    average_odd: float = 0.0
    value_percent: float = 0.0
    confidence_tier: ConfidenceTier = ConfidenceTier.MEDIUM
    match_time: str = field(default_factory=_utc_now_iso)
    source_link: Optional[str] = None

    @property
    def implied_probability(self) -> float:
        """Market-implied probability, ``1 / best_odd``."""
        if self.best_odd <= 0:
            return 0.0
        return 1 / self.best_odd

    def teams(self) -> Tuple[str, str]:
        """Split ``"Home vs Away"`` into its two sides."""
        home, sep, away = self.match.partition(" vs ")
        if not sep:
            return self.match.strip(), ""
        return home.strip(), away.strip()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["confidence_tier"] = self.confidence_tier.value
        data["implied_probability"] = round(self.implied_probability, 4)
        return data


@dataclass(frozen=True)
class ValueAnalysis:
    """Scoring result derived 1:1 from an Opportunity."""
    is_value_bet: bool
    confidence: float
    expected_probability: float
    market_probability: float
    value_score: float
    reasoning: Tuple[str, ...]
    risks: Tuple[str, ...]
    recommendation: Recommendation

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_value_bet": self.is_value_bet,
            "confidence": round(self.confidence, 4),
            "expected_probability": round(self.expected_probability, 4),
            "market_probability": round(self.market_probability, 4),
            "value_score": round(self.value_score, 4),
            "reasoning": list(self.reasoning),
            "risks": list(self.risks),
            "recommendation": self.recommendation.value,
        }


@dataclass
class TeamRecord:
    wins: int = 0
    draws: int = 0
    losses: int = 0

    @property
    def total(self) -> int:
        return self.wins + self.draws + self.losses

    @property
    def win_rate(self) -> float:
        if self.total == 0:
            return 0.0
        return self.wins / self.total


@dataclass
class HeadToHead:
    total_matches: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    average_goals: float = 0.0


@dataclass
class HistoricalStats:
    """Per-team statistics consumed by the scorer."""
    team: str
    recent_form: List[str] = field(default_factory=list)  # oldest first
    goals_for: float = 0.0
    goals_against: float = 0.0
    home_record: TeamRecord = field(default_factory=TeamRecord)
    away_record: TeamRecord = field(default_factory=TeamRecord)
    head_to_head: HeadToHead = field(default_factory=HeadToHead)

    @classmethod
    def empty(cls, team: str) -> "HistoricalStats":
        return cls(team=team)

    @property
    def matches_played(self) -> int:
        return self.home_record.total + self.away_record.total

    def recent_wins(self, window: int = 5) -> int:
        return sum(1 for result in self.recent_form[-window:] if result == "W")


@dataclass
class MatchStats:
    """Historical stats for both sides of a fixture."""
    home: HistoricalStats
    away: HistoricalStats
    data_confidence: float = 0.5
    data_quality: str = "low"


@dataclass(frozen=True)
class GeneratedLink:
    bookmaker: str
    direct_url: str
    odds: float
    market: str
    confidence_tier: ConfidenceTier

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bookmaker": self.bookmaker,
            "direct_url": self.direct_url,
            "odds": self.odds,
            "market": self.market,
            "confidence_tier": self.confidence_tier.value,
        }


@dataclass
class LinkGenerationResult:
    success: bool
    generated_links: List[GeneratedLink] = field(default_factory=list)
    error: Optional[str] = None
    execution_time_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "generated_links": [link.to_dict() for link in self.generated_links],
            "error": self.error,
            "execution_time_ms": self.execution_time_ms,
        }


@dataclass
class AnalyzedOpportunity:
    opportunity: Opportunity
    analysis: ValueAnalysis
    links: Optional[LinkGenerationResult] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "opportunity": self.opportunity.to_dict(),
            "analysis": self.analysis.to_dict(),
            "links": self.links.to_dict() if self.links else None,
        }


@dataclass
class DiscoveryResult:
    """Envelope returned by every discovery run."""
    success: bool
    opportunities: List[AnalyzedOpportunity] = field(default_factory=list)
    execution_time_ms: int = 0
    sources_used: List[DataSource] = field(default_factory=list)
    best_opportunity: Optional[Opportunity] = None
    fallback_used: bool = False
    message: str = ""
    error: Optional[str] = None
    phases: List[DiscoveryPhase] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "opportunities": [item.to_dict() for item in self.opportunities],
            "execution_time_ms": self.execution_time_ms,
            "sources_used": [source.to_dict() for source in self.sources_used],
            "best_opportunity": self.best_opportunity.to_dict() if self.best_opportunity else None,
            "fallback_used": self.fallback_used,
            "message": self.message,
            "error": self.error,
            "phases": [phase.value for phase in self.phases],
        }


@dataclass
class Intent:
    """Classified user query."""
    query_type: str
    normalized_query: str
    explanation: str = ""
    confidence: float = 0.5
