"""Data-source catalog and query-driven source selection."""
import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import DataSource, SourceCategory, SourceFeature

logger = logging.getLogger(__name__)

C = SourceCategory
F = SourceFeature

# (name, url, category, reliability, features, pricing)
# All entries are global-region sources.
CATALOG_ENTRIES = [
    # Predictions and general statistics
    ("Forebet.com", "https://forebet.com", C.PREDICTIONS, 0.95,
     (F.ODDS_COMPARISON, F.VALUE_BET_FINDER, F.STATISTICS, F.BTTS_ANALYSIS, F.OVER_UNDER), "free"),
    ("StatArea.com", "https://statarea.com", C.PREDICTIONS, 0.90,
     (F.STATISTICS, F.TIPSTER_RANKINGS, F.LIVE_SCORES), "free"),
    ("SoccerSite.com", "https://soccersite.com", C.PREDICTIONS, 0.88,
     (F.STATISTICS, F.AI_PREDICTIONS), "freemium"),
    ("StatsChecker.com", "https://statschecker.com", C.STATISTICS, 0.92,
     (F.STATISTICS, F.CORNER_STATS, F.CLEAN_SHEETS), "free"),
    ("ScoutingStats.ai", "https://scoutingstats.ai", C.AI_ML, 0.94,
     (F.AI_PREDICTIONS, F.VALUE_BET_FINDER, F.XG_ANALYSIS), "freemium"),

    # Arbitrage and odds comparison
    ("OddsJam.com", "https://oddsjam.com", C.ARBITRAGE, 0.96,
     (F.ODDS_COMPARISON, F.ARBITRAGE_DETECTION, F.VALUE_BET_FINDER), "paid"),
    ("Oddspedia.com", "https://oddspedia.com", C.ARBITRAGE, 0.93,
     (F.ODDS_COMPARISON, F.ARBITRAGE_DETECTION, F.VALUE_BET_FINDER), "freemium"),
    ("BetBurger.com", "https://betburger.com", C.ARBITRAGE, 0.95,
     (F.ARBITRAGE_DETECTION, F.ODDS_COMPARISON), "paid"),
    ("RebelBetting.com", "https://rebelbetting.com", C.ARBITRAGE, 0.94,
     (F.ARBITRAGE_DETECTION, F.VALUE_BET_FINDER), "paid"),

    # Statistical analysis
    ("Driblab.com", "https://driblab.com", C.STATISTICS, 0.97,
     (F.STATISTICS, F.XG_ANALYSIS, F.HEAT_MAPS), "enterprise"),
    ("Soccerment.com", "https://soccerment.com", C.AI_ML, 0.95,
     (F.AI_PREDICTIONS, F.STATISTICS, F.XG_ANALYSIS), "enterprise"),
    ("Hudl Statsbomb", "https://statsbomb.com", C.STATISTICS, 0.98,
     (F.STATISTICS, F.XG_ANALYSIS, F.HEAT_MAPS), "enterprise"),
    ("KoraStats.com", "https://korastats.com", C.STATISTICS, 0.92,
     (F.STATISTICS, F.LIVE_SCORES), "freemium"),

    # Expected goals
    ("Understat.com", "https://understat.com", C.XG_METRICS, 0.96,
     (F.XG_ANALYSIS, F.STATISTICS), "free"),
    ("xGScore.io", "https://xgscore.io", C.XG_METRICS, 0.94,
     (F.XG_ANALYSIS, F.VALUE_BET_FINDER), "freemium"),
    ("FootyStats.org", "https://footystats.org", C.STATISTICS, 0.93,
     (F.STATISTICS, F.XG_ANALYSIS, F.CORNER_STATS), "freemium"),
    ("FootballxG.com", "https://footballxg.com", C.XG_METRICS, 0.91,
     (F.XG_ANALYSIS, F.AI_PREDICTIONS), "free"),

    # AI / machine learning
    ("NerdyTips.com", "https://nerdytips.com", C.AI_ML, 0.89,
     (F.AI_PREDICTIONS, F.VALUE_BET_FINDER), "free"),
    ("Kickoff.ai", "https://kickoff.ai", C.AI_ML, 0.87,
     (F.AI_PREDICTIONS,), "freemium"),
    ("SportsPrediction.ai", "https://sportsprediction.ai", C.AI_ML, 0.85,
     (F.AI_PREDICTIONS,), "free"),
    ("DeepBetting.io", "https://deepbetting.io", C.AI_ML, 0.90,
     (F.AI_PREDICTIONS, F.VALUE_BET_FINDER), "paid"),

    # Bet-type specialists
    ("Forebet.com/predictions-both-to-score", "https://forebet.com/predictions-both-to-score",
     C.PREDICTIONS, 0.95, (F.BTTS_ANALYSIS, F.STATISTICS), "free"),
    ("OneMillionPredictions.com", "https://onemillionpredictions.com", C.PREDICTIONS, 0.88,
     (F.BTTS_ANALYSIS, F.OVER_UNDER), "free"),
    ("TotalCorner.com", "https://totalcorner.com", C.STATISTICS, 0.91,
     (F.CORNER_STATS, F.OVER_UNDER), "free"),
    ("FootyStats.org/stats/corner-stats", "https://footystats.org/stats/corner-stats",
     C.STATISTICS, 0.93, (F.CORNER_STATS, F.STATISTICS), "freemium"),

    # Live scores
    ("LiveScore.com", "https://livescore.com", C.LIVE_SCORES, 0.98, (F.LIVE_SCORES,), "free"),
    ("FlashScore.com", "https://flashscore.com", C.LIVE_SCORES, 0.97,
     (F.LIVE_SCORES, F.STATISTICS), "free"),
    ("SofaScore.com", "https://sofascore.com", C.LIVE_SCORES, 0.96,
     (F.LIVE_SCORES, F.STATISTICS), "free"),

    # Tipsters
    ("SoccerTipsters.com", "https://soccertipsters.com", C.TIPSTERS, 0.85,
     (F.TIPSTER_RANKINGS,), "freemium"),
    ("Oddspedia.com/tips/tipsters-ranking", "https://oddspedia.com/tips/tipsters-ranking",
     C.TIPSTERS, 0.90, (F.TIPSTER_RANKINGS, F.ODDS_COMPARISON), "freemium"),

    # Specific statistics
    ("ScoreRoom.com/stats-clean-sheets", "https://scoreroom.com/stats-clean-sheets",
     C.SPECIFIC_STATS, 0.89, (F.CLEAN_SHEETS, F.STATISTICS), "free"),
    ("TheStatsDontLie.com/average-1st-goal-time", "https://thestatsdontlie.com/average-1st-goal-time",
     C.SPECIFIC_STATS, 0.87, (F.GOAL_TIMING, F.STATISTICS), "free"),

    # Alerts and real-time monitoring
    ("OddAlerts.com", "https://oddalerts.com", C.VALUE_BETTING, 0.92,
     (F.VALUE_BET_FINDER, F.LIVE_SCORES), "paid"),
    ("Sharp.app", "https://sharp.app", C.ARBITRAGE, 0.95,
     (F.ARBITRAGE_DETECTION, F.ODDS_COMPARISON), "paid"),
    ("OpticOdds.com", "https://opticodds.com", C.ODDS_COMPARISON, 0.96,
     (F.ODDS_COMPARISON, F.LIVE_SCORES), "enterprise"),
]

# Intent query type -> features used to recommend sources
RECOMMENDED_FEATURES = {
    "odds_lookup": (F.ODDS_COMPARISON, F.LIVE_SCORES),
    "arbitrage_search": (F.ARBITRAGE_DETECTION, F.ODDS_COMPARISON),
    "team_analysis": (F.STATISTICS, F.XG_ANALYSIS),
    "predictions": (F.AI_PREDICTIONS, F.VALUE_BET_FINDER),
    "value_betting": (F.VALUE_BET_FINDER, F.ODDS_COMPARISON),
    "statistical_analysis": (F.STATISTICS, F.XG_ANALYSIS),
    "btts_analysis": (F.BTTS_ANALYSIS, F.STATISTICS),
    "corner_betting": (F.CORNER_STATS, F.STATISTICS),
    "over_under": (F.OVER_UNDER, F.STATISTICS),
    "clean_sheets": (F.CLEAN_SHEETS, F.STATISTICS),
    "goal_timing": (F.GOAL_TIMING, F.STATISTICS),
    "injury_analysis": (F.INJURY_DATA, F.STATISTICS),
    "tipster_analysis": (F.TIPSTER_RANKINGS, F.STATISTICS),
    "live_scores": (F.LIVE_SCORES,),
    "xg_analysis": (F.XG_ANALYSIS, F.STATISTICS),
    "heat_maps": (F.HEAT_MAPS, F.STATISTICS),
}

DEFAULT_MIN_RELIABILITY = 0.85
DEFAULT_MAX_SOURCES = 10


def build_default_catalog() -> "SourceCatalog":
    """Build the built-in catalog from CATALOG_ENTRIES."""
    sources = [
        DataSource(
            name=name,
            url=url,
            category=category,
            region="global",
            reliability=reliability,
            features=frozenset(features),
            pricing=pricing,
        )
        for name, url, category, reliability, features, pricing in CATALOG_ENTRIES
    ]
    return SourceCatalog(sources)


class SourceCatalog:
    """
    Read-only registry of data sources.

    Every query preserves catalog order so that selections are stable.
    """

    def __init__(self, sources: Sequence[DataSource]):
        self._sources: Tuple[DataSource, ...] = tuple(sources)

    def __len__(self) -> int:
        return len(self._sources)

    def all(self) -> List[DataSource]:
        return list(self._sources)

    def by_category(self, category: SourceCategory) -> List[DataSource]:
        return [s for s in self._sources if s.category == category]

    def by_features(self, features: Iterable[SourceFeature]) -> List[DataSource]:
        features = tuple(features)
        return [s for s in self._sources if s.has_any(features)]

    def by_reliability(self, min_reliability: float) -> List[DataSource]:
        return [s for s in self._sources if s.reliability >= min_reliability]

    def by_region(self, region: str) -> List[DataSource]:
        return [s for s in self._sources if s.region == region]

    def by_pricing(self, pricing: str) -> List[DataSource]:
        return [s for s in self._sources if s.pricing == pricing]

    def category_or_feature(
        self,
        category: Optional[SourceCategory],
        feature: SourceFeature,
    ) -> List[DataSource]:
        """Sources in ``category`` or advertising ``feature``."""
        return [
            s for s in self._sources
            if (category is not None and s.category == category) or feature in s.features
        ]

    def filter(
        self,
        category: Optional[SourceCategory] = None,
        region: Optional[str] = None,
        features: Optional[Iterable[SourceFeature]] = None,
        min_reliability: Optional[float] = None,
        pricing: Optional[str] = None,
    ) -> List[DataSource]:
        """
        Filter by several criteria at once; omitted criteria match everything.

        Args:
            category: Exact category
            region: Exact region
            features: Match sources advertising at least one of these
            min_reliability: Inclusive lower bound on reliability
            pricing: Exact pricing tier

        Returns:
            Matching sources in catalog order
        """
        features = tuple(features) if features else None
        result = []
        for source in self._sources:
            if category and source.category != category:
                continue
            if region and source.region != region:
                continue
            if min_reliability is not None and source.reliability < min_reliability:
                continue
            if pricing and source.pricing != pricing:
                continue
            if features and not source.has_any(features):
                continue
            result.append(source)
        return result

    def recommended_for(self, query_type: str) -> List[DataSource]:
        """Sources recommended for an intent query type (statistics when unknown)."""
        features = RECOMMENDED_FEATURES.get(query_type, (F.STATISTICS,))
        return self.filter(features=features, min_reliability=DEFAULT_MIN_RELIABILITY)

    def stats(self) -> Dict[str, object]:
        """Counts by category, region, pricing, reliability band and feature."""
        bands = {"high": 0, "medium": 0, "low": 0}
        features: Counter = Counter()
        for source in self._sources:
            if source.reliability >= 0.95:
                bands["high"] += 1
            elif source.reliability >= 0.85:
                bands["medium"] += 1
            else:
                bands["low"] += 1
            features.update(feature.value for feature in source.features)

        return {
            "total": len(self._sources),
            "by_category": dict(Counter(s.category.value for s in self._sources)),
            "by_region": dict(Counter(s.region for s in self._sources)),
            "by_pricing": dict(Counter(s.pricing for s in self._sources)),
            "by_reliability": bands,
            "by_features": dict(features),
        }

    # Analysis subsets used by the selector

    def comprehensive_sources(self) -> List[DataSource]:
        return self.filter(
            features=(F.STATISTICS, F.ODDS_COMPARISON, F.VALUE_BET_FINDER),
            min_reliability=0.90,
        )

    def arbitrage_sources(self) -> List[DataSource]:
        return self.filter(
            features=(F.ARBITRAGE_DETECTION, F.ODDS_COMPARISON),
            min_reliability=0.92,
        )

    def value_bet_sources(self) -> List[DataSource]:
        return self.filter(
            features=(F.VALUE_BET_FINDER, F.ODDS_COMPARISON),
            min_reliability=0.88,
        )


# Ordered topic triggers: (topic, keywords, subset builder). First match wins.
TOPIC_TRIGGERS = [
    ("arbitrage", ("arbitragem", "arbitrage"),
     lambda c: c.arbitrage_sources()),
    ("value", ("value", "valor"),
     lambda c: c.value_bet_sources()),
    ("xg", ("xg", "expected goals"),
     lambda c: c.category_or_feature(C.XG_METRICS, F.XG_ANALYSIS)),
    ("ai_ml", ("ia", "ai", "machine learning"),
     lambda c: c.category_or_feature(C.AI_ML, F.AI_PREDICTIONS)),
    ("btts", ("btts", "both teams to score", "ambas marcam"),
     lambda c: c.by_features((F.BTTS_ANALYSIS,))),
    ("corners", ("corner", "canto", "escanteio"),
     lambda c: c.by_features((F.CORNER_STATS,))),
    ("clean_sheets", ("clean sheet", "sem sofrer gols"),
     lambda c: c.by_features((F.CLEAN_SHEETS,))),
    ("goal_timing", ("timing", "tempo do gol"),
     lambda c: c.by_features((F.GOAL_TIMING,))),
    ("tipster", ("tipster", "especialista"),
     lambda c: c.category_or_feature(C.TIPSTERS, F.TIPSTER_RANKINGS)),
    ("live", ("live", "ao vivo"),
     lambda c: c.category_or_feature(C.LIVE_SCORES, F.LIVE_SCORES)),
]


class SourceSelector:
    """Maps free-text query hints to a filtered, capped list of sources."""

    def __init__(
        self,
        catalog: SourceCatalog,
        min_reliability: float = DEFAULT_MIN_RELIABILITY,
        max_sources: int = DEFAULT_MAX_SOURCES,
    ):
        self.catalog = catalog
        self.min_reliability = min_reliability
        self.max_sources = max_sources

    def match_topic(self, query_hint: Optional[str]) -> str:
        """Return the first topic whose keyword appears in the hint."""
        if not query_hint:
            return "default"
        lowered = query_hint.lower()
        for topic, keywords, _ in TOPIC_TRIGGERS:
            if any(keyword in lowered for keyword in keywords):
                return topic
        return "comprehensive"

    def select(self, query_hint: Optional[str] = None) -> List[DataSource]:
        """
        Select candidate sources for a query.

        Args:
            query_hint: Free-text query; None or empty uses value-bet sources

        Returns:
            At most ``max_sources`` sources with reliability at or above the
            threshold, in catalog order. May be empty.
        """
        topic = self.match_topic(query_hint)

        if topic == "default":
            sources = self.catalog.value_bet_sources()
        elif topic == "comprehensive":
            sources = self.catalog.comprehensive_sources()
        else:
            builder = next(b for t, _, b in TOPIC_TRIGGERS if t == topic)
            sources = builder(self.catalog)

        sources = [s for s in sources if s.reliability >= self.min_reliability]
        selected = sources[:self.max_sources]

        logger.info(f"Selected {len(selected)} sources for topic '{topic}'")
        return selected
