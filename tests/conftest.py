"""
ScoutBet test configuration.

Shared fixtures:
- catalog / selector over the built-in source catalog
- FakeExtractionClient: in-memory stand-in for the extraction service with
  per-URL payloads, failures and a session log
- make_opportunity / make_stats builders

Run specific test categories:
    pytest -m unit          # Fast, isolated tests
    pytest -m e2e           # End-to-end discovery scenarios
"""
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import pytest

from scoutbet.errors import QuotaExceededError
from scoutbet.models import (
    ConfidenceTier,
    HeadToHead,
    HistoricalStats,
    AnalyzedOpportunity,
    MatchStats,
    Opportunity,
    Recommendation,
    TeamRecord,
    ValueAnalysis,
)
from scoutbet.sources import SourceSelector, build_default_catalog


# ============================================
# PYTEST MARKERS
# ============================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests across modules")
    config.addinivalue_line("markers", "slow: Slow tests")
    config.addinivalue_line("markers", "regression: Regression tests for bug fixes")
    config.addinivalue_line("markers", "e2e: End-to-end tests")


# ============================================
# FAKE EXTRACTION SERVICE
# ============================================

class FakeSession:
    """Extraction session answering from a URL -> payload (or exception) map."""

    def __init__(self, client: "FakeExtractionClient"):
        self.client = client

    async def extract(self, url: str, instruction: str, schema: Dict[str, Any]) -> Dict[str, Any]:
        self.client.extract_calls.append(url)
        outcome = self.client.payloads.get(url, self.client.default_payload)
        if isinstance(outcome, BaseException):
            if isinstance(outcome, QuotaExceededError):
                self.client.plan_limit_reached = True
            raise outcome
        return outcome


class FakeExtractionClient:
    """Mimics BrowserClient's session lifecycle without HTTP."""

    def __init__(
        self,
        payloads: Optional[Dict[str, Any]] = None,
        default_payload: Any = None,
        session_error: Optional[BaseException] = None,
    ):
        self.payloads = payloads or {}
        self.default_payload = default_payload if default_payload is not None else {}
        self.session_error = session_error
        self.plan_limit_reached = False
        self.sessions_opened = 0
        self.sessions_released = 0
        self.extract_calls: List[str] = []
        self.closed = False

    def is_available(self) -> bool:
        return not self.plan_limit_reached

    @asynccontextmanager
    async def session(self):
        if self.session_error is not None:
            if isinstance(self.session_error, QuotaExceededError):
                self.plan_limit_reached = True
            raise self.session_error
        self.sessions_opened += 1
        try:
            yield FakeSession(self)
        finally:
            self.sessions_released += 1

    async def close(self):
        self.closed = True


# ============================================
# BUILDERS
# ============================================

def make_opportunity(
    match: str = "Flamengo vs Palmeiras",
    market: str = "Casa Vence",
    best_odd: float = 2.15,
    bookmaker: str = "Bet365",
    league: str = "Brasileirão",
    tier: ConfidenceTier = ConfidenceTier.MEDIUM,
    value_percent: float = 5.0,
) -> Opportunity:
    return Opportunity(
        match=match,
        market=market,
        best_odd=best_odd,
        bookmaker=bookmaker,
        league=league,
        average_odd=best_odd * 0.95,
        value_percent=value_percent,
        confidence_tier=tier,
        match_time="2026-01-01T18:00:00+00:00",
    )


def make_stats(
    team: str = "Team",
    goals_for: float = 0.0,
    goals_against: float = 0.0,
    home: tuple = (0, 0, 0),
    away: tuple = (0, 0, 0),
    form: Optional[List[str]] = None,
    h2h_matches: int = 0,
) -> HistoricalStats:
    return HistoricalStats(
        team=team,
        recent_form=list(form or []),
        goals_for=goals_for,
        goals_against=goals_against,
        home_record=TeamRecord(*home),
        away_record=TeamRecord(*away),
        head_to_head=HeadToHead(total_matches=h2h_matches),
    )


def make_match_stats(home: Optional[HistoricalStats] = None, away: Optional[HistoricalStats] = None) -> MatchStats:
    return MatchStats(home=home or make_stats("Home"), away=away or make_stats("Away"))


def make_analysis(
    value_score: float = 0.1,
    confidence: float = 0.7,
    is_value_bet: Optional[bool] = None,
    recommendation: Recommendation = Recommendation.MODERATE_BET,
) -> ValueAnalysis:
    return ValueAnalysis(
        is_value_bet=value_score > 0.05 if is_value_bet is None else is_value_bet,
        confidence=confidence,
        expected_probability=0.5 + value_score,
        market_probability=0.5,
        value_score=value_score,
        reasoning=(),
        risks=(),
        recommendation=recommendation,
    )


def make_analyzed(opportunity: Optional[Opportunity] = None, **analysis_fields) -> AnalyzedOpportunity:
    return AnalyzedOpportunity(
        opportunity=opportunity or make_opportunity(),
        analysis=make_analysis(**analysis_fields),
    )


# ============================================
# FIXTURES
# ============================================

@pytest.fixture
def catalog():
    return build_default_catalog()


@pytest.fixture
def selector(catalog):
    return SourceSelector(catalog)


@pytest.fixture
def zero_stats():
    return make_match_stats()
