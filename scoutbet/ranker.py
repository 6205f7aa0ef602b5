"""Presentation ordering and odds comparison."""
from typing import Dict, List, Sequence, Tuple

from .models import AnalyzedOpportunity, ConfidenceTier, Opportunity

TIER_SCORE = {
    ConfidenceTier.HIGH: 1.0,
    ConfidenceTier.MEDIUM: 0.6,
    ConfidenceTier.LOW: 0.3,
}

BOOKMAKER_RELIABILITY = {
    "bet365": 0.95,
    "betfair": 0.93,
    "williamhill": 0.92,
    "pinnacle": 0.94,
}
DEFAULT_BOOKMAKER_RELIABILITY = 0.85

VALUE_WEIGHT = 0.4
TIER_WEIGHT = 0.3
RELIABILITY_WEIGHT = 0.3


def rank(items: Sequence[AnalyzedOpportunity]) -> List[AnalyzedOpportunity]:
    """
    Order analyzed opportunities for presentation.

    Sorts by value score, then confidence tier, then implied probability,
    all descending. Ties keep their input order.
    """
    return sorted(
        items,
        key=lambda item: (
            item.analysis.value_score,
            item.opportunity.confidence_tier.rank,
            item.opportunity.implied_probability,
        ),
        reverse=True,
    )


def bookmaker_reliability(bookmaker: str) -> float:
    key = bookmaker.lower().replace(" ", "")
    return BOOKMAKER_RELIABILITY.get(key, DEFAULT_BOOKMAKER_RELIABILITY)


def comparison_score(opportunity: Opportunity) -> float:
    return (
        opportunity.value_percent / 100 * VALUE_WEIGHT
        + TIER_SCORE[opportunity.confidence_tier] * TIER_WEIGHT
        + bookmaker_reliability(opportunity.bookmaker) * RELIABILITY_WEIGHT
    )


def compare(opportunities: Sequence[Opportunity]) -> List[Tuple[Opportunity, float]]:
    """Score raw opportunities by value, tier and bookmaker reliability, highest first."""
    scored = [(opp, comparison_score(opp)) for opp in opportunities]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored


def best_odds_by_outcome(opportunities: Sequence[Opportunity]) -> Dict[Tuple[str, str], Opportunity]:
    """Highest-odd record per (match, market); the first seen wins ties."""
    best: Dict[Tuple[str, str], Opportunity] = {}
    for opp in opportunities:
        key = (opp.match, opp.market)
        if key not in best or opp.best_odd > best[key].best_odd:
            best[key] = opp
    return best
