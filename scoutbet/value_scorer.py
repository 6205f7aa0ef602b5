"""
Value scoring: expected vs market probability for a single opportunity.

The market models and thresholds below are heuristic defaults, not a
calibrated model. They are kept in tables so they can be replaced.
"""
import asyncio
import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .errors import ScoringError
from .historical import HistoricalDataProvider
from .models import (
    AnalyzedOpportunity,
    ConfidenceTier,
    HistoricalStats,
    MatchStats,
    Opportunity,
    Recommendation,
    ValueAnalysis,
)

logger = logging.getLogger(__name__)

VALUE_THRESHOLD = 0.05
STRONG_VALUE_THRESHOLD = 0.15
STRONG_CONFIDENCE = 0.7
MODERATE_CONFIDENCE = 0.5
MIN_CONFIDENCE = 0.3

TIER_CONFIDENCE_BONUS = {
    ConfidenceTier.HIGH: 0.3,
    ConfidenceTier.MEDIUM: 0.2,
    ConfidenceTier.LOW: 0.1,
}

WELL_COVERED_LEAGUES = {"Premier League", "Brasileirão", "La Liga", "Bundesliga"}

WINNER_MARKETS = {"casa vence", "home win", "match winner", "1x2", "home"}
BTTS_MARKETS = {"ambas marcam", "btts", "both teams to score"}

HIGH_ODD_RISK = 3.0


def _ratio(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return 0.0
    return numerator / denominator


def combined_goals(home: HistoricalStats, away: HistoricalStats) -> float:
    return (home.goals_for + home.goals_against + away.goals_for + away.goals_against) / 2


def winner_probability(home: HistoricalStats, away: HistoricalStats) -> float:
    home_strength = _ratio(home.goals_for, home.goals_against) * home.home_record.win_rate
    away_strength = _ratio(away.goals_for, away.goals_against) * away.away_record.win_rate
    total = home_strength + away_strength
    if total == 0:
        return 0.5
    return home_strength / total


def over_probability(home: HistoricalStats, away: HistoricalStats) -> float:
    return 0.65 if combined_goals(home, away) > 2.5 else 0.35


def under_probability(home: HistoricalStats, away: HistoricalStats) -> float:
    return 0.55 if combined_goals(home, away) < 2.5 else 0.45


def btts_probability(home: HistoricalStats, away: HistoricalStats) -> float:
    home_rate = 0.7 if home.goals_for > 1.0 else 0.4
    away_rate = 0.7 if away.goals_for > 1.0 else 0.4
    return home_rate * away_rate


def market_family(market: str) -> str:
    """
    Classify a market string into winner, over, under, btts or other.

    A market naming both sides ("Over/Under 2.5") is two-sided and
    classifies as other.
    """
    name = " ".join(market.lower().split())
    if name in WINNER_MARKETS:
        return "winner"
    if name in BTTS_MARKETS:
        return "btts"
    has_over = "over" in name
    has_under = "under" in name
    if "2.5" in name and has_over != has_under:
        return "over" if has_over else "under"
    return "other"


MarketModel = Callable[[HistoricalStats, HistoricalStats], float]

MARKET_MODELS: Dict[str, MarketModel] = {
    "winner": winner_probability,
    "over": over_probability,
    "under": under_probability,
    "btts": btts_probability,
}
NEUTRAL_PROBABILITY = 0.5


def is_value(value_score: float) -> bool:
    return value_score > VALUE_THRESHOLD


def recommend(value_score: float, confidence: float) -> Recommendation:
    """
    Map value score and confidence to a recommendation.

    All comparisons are strict except the insufficient-data floor.
    """
    if confidence < MIN_CONFIDENCE:
        return Recommendation.INSUFFICIENT_DATA
    if value_score > STRONG_VALUE_THRESHOLD and confidence > STRONG_CONFIDENCE:
        return Recommendation.STRONG_BET
    if value_score > VALUE_THRESHOLD and confidence > MODERATE_CONFIDENCE:
        return Recommendation.MODERATE_BET
    return Recommendation.AVOID


def insufficient_data_analysis(opportunity: Opportunity, reason: str) -> ValueAnalysis:
    """Analysis returned when scoring fails."""
    market_probability = 1 / opportunity.best_odd if opportunity.best_odd > 0 else 0.0
    return ValueAnalysis(
        is_value_bet=False,
        confidence=0.0,
        expected_probability=0.0,
        market_probability=market_probability,
        value_score=0.0,
        reasoning=(f"Analysis failed: {reason}",),
        risks=("Insufficient data for analysis",),
        recommendation=Recommendation.INSUFFICIENT_DATA,
    )


class ValueScorer:
    """Scores opportunities against historical team statistics."""

    def __init__(
        self,
        provider: Optional[HistoricalDataProvider] = None,
        market_models: Optional[Dict[str, MarketModel]] = None,
    ):
        """
        Initialize the scorer.

        Args:
            provider: Source of historical stats for analyze(); zeroed stats when None
            market_models: Overrides for the market family -> probability table
        """
        self.provider = provider or HistoricalDataProvider()
        self.market_models = dict(MARKET_MODELS)
        if market_models:
            self.market_models.update(market_models)

    def expected_probability(self, opportunity: Opportunity, stats: MatchStats) -> float:
        model = self.market_models.get(market_family(opportunity.market))
        if model is None:
            return NEUTRAL_PROBABILITY
        probability = model(stats.home, stats.away)
        return max(0.0, min(1.0, probability))

    def confidence(self, opportunity: Opportunity, stats: MatchStats) -> float:
        confidence = 0.5 + TIER_CONFIDENCE_BONUS.get(opportunity.confidence_tier, 0.0)
        home_consistency = stats.home.recent_wins() / 5
        away_consistency = stats.away.recent_wins() / 5
        confidence += abs(home_consistency - away_consistency) * 0.2
        return min(1.0, confidence)

    def reasoning(
        self,
        opportunity: Opportunity,
        stats: MatchStats,
        expected: float,
        market: float,
    ) -> List[str]:
        lines = [
            f"Market implies {market * 100:.1f}% probability",
            f"Historical analysis suggests {expected * 100:.1f}% probability",
        ]
        if expected > market:
            lines.append(f"Difference of {(expected - market) * 100:.1f}% indicates a value bet")

        family = market_family(opportunity.market)
        if family == "over":
            goals = (stats.home.goals_for + stats.away.goals_for) / 2
            lines.append(f"Teams score {goals:.1f} goals per game on average")
        elif family == "winner":
            lines.append(
                f"Home side wins {stats.home.home_record.win_rate * 100:.1f}% of home matches"
            )
        return lines

    def risks(self, opportunity: Opportunity, stats: MatchStats) -> List[str]:
        risks = []

        def mixed(form: List[str]) -> bool:
            return "W" in form and "L" in form

        if mixed(stats.home.recent_form) or mixed(stats.away.recent_form):
            risks.append("Inconsistent recent form")
        if opportunity.best_odd > HIGH_ODD_RISK:
            risks.append("High odds imply low market probability")
        if opportunity.league not in WELL_COVERED_LEAGUES:
            risks.append("League has limited data coverage")
        return risks

    def score(self, opportunity: Opportunity, stats: MatchStats) -> ValueAnalysis:
        """
        Score one opportunity. Deterministic for the same inputs.

        Raises:
            ScoringError: If the opportunity has no usable odds
        """
        if opportunity.best_odd <= 0:
            raise ScoringError(f"Invalid odds {opportunity.best_odd} for {opportunity.match}")

        market = 1 / opportunity.best_odd
        expected = self.expected_probability(opportunity, stats)
        value_score = max(0.0, expected - market)
        confidence = self.confidence(opportunity, stats)

        return ValueAnalysis(
            is_value_bet=is_value(value_score),
            confidence=confidence,
            expected_probability=expected,
            market_probability=market,
            value_score=value_score,
            reasoning=tuple(self.reasoning(opportunity, stats, expected, market)),
            risks=tuple(self.risks(opportunity, stats)),
            recommendation=recommend(value_score, confidence),
        )

    def safe_score(self, opportunity: Opportunity, stats: MatchStats) -> ValueAnalysis:
        """Score, turning any failure into an insufficient-data analysis."""
        try:
            return self.score(opportunity, stats)
        except Exception as e:
            logger.error(f"Scoring failed for {opportunity.match}: {e}")
            return insufficient_data_analysis(opportunity, str(e))

    async def analyze(self, opportunity: Opportunity) -> ValueAnalysis:
        """Fetch historical stats for the fixture and score it. Never raises."""
        try:
            home, away = opportunity.teams()
            stats = await self.provider.get_stats(home or "Home", away or "Away")
        except Exception as e:
            logger.error(f"Stats lookup failed for {opportunity.match}: {e}")
            return insufficient_data_analysis(opportunity, str(e))

        analysis = self.safe_score(opportunity, stats)
        logger.info(
            f"Analyzed {opportunity.match} [{opportunity.market}]: "
            f"{analysis.recommendation.value} ({analysis.value_score * 100:.1f}% value)"
        )
        return analysis

    async def analyze_many(self, opportunities: Sequence[Opportunity]) -> List[AnalyzedOpportunity]:
        """
        Analyze opportunities concurrently.

        Returns:
            Every opportunity with its analysis, sorted by value score times
            confidence, highest first
        """
        analyses = await asyncio.gather(*(self.analyze(opp) for opp in opportunities))
        results = [
            AnalyzedOpportunity(opportunity=opp, analysis=analysis)
            for opp, analysis in zip(opportunities, analyses)
        ]
        results.sort(key=lambda item: item.analysis.value_score * item.analysis.confidence, reverse=True)
        return results


def split_value_bets(
    items: Sequence[AnalyzedOpportunity],
) -> Tuple[List[AnalyzedOpportunity], List[AnalyzedOpportunity]]:
    """Partition analyzed opportunities into (value bets, the rest)."""
    value_bets = [item for item in items if item.analysis.is_value_bet]
    rest = [item for item in items if not item.analysis.is_value_bet]
    return value_bets, rest
