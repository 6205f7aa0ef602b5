"""Tests for HistoricalDataProvider and the data-confidence helpers."""
import asyncio

import pytest

from conftest import make_stats
from scoutbet.historical import (
    DEFAULT_LEAGUE_QUALITY,
    HistoricalDataProvider,
    data_confidence,
    data_quality,
    detect_league,
    league_quality,
    stats_from_dict,
)
from scoutbet.models import HeadToHead, HistoricalStats


@pytest.mark.unit
@pytest.mark.parametrize("team,league", [
    ("Flamengo", "Brasileirão"),
    ("São Paulo FC", "Brasileirão"),
    ("Real Madrid", "La Liga"),
    ("Manchester City", "Premier League"),
    ("Ajax", "Unknown"),
])
def test_detect_league(team, league):
    assert detect_league(team) == league


@pytest.mark.unit
def test_league_quality_default():
    assert league_quality("Premier League") == 0.95
    assert league_quality("Unknown") == DEFAULT_LEAGUE_QUALITY


@pytest.mark.unit
def test_data_confidence_components():
    seasoned = make_stats(home=(10, 5, 5), h2h_matches=6)
    rookie = make_stats(home=(1, 0, 0))

    assert data_confidence(rookie, rookie, "Unknown") == pytest.approx(0.5 + 0.06)
    assert data_confidence(seasoned, rookie, "La Liga") == pytest.approx(0.5 + 0.2 + 0.1 + 0.09)
    assert data_confidence(seasoned, seasoned, "Premier League") == 1.0


@pytest.mark.unit
@pytest.mark.parametrize("confidence,quality", [
    (0.8, "high"),
    (0.79, "medium"),
    (0.6, "medium"),
    (0.59, "low"),
])
def test_data_quality(confidence, quality):
    assert data_quality(confidence) == quality


@pytest.mark.unit
def test_stats_from_dict():
    stats = stats_from_dict("Flamengo", {
        "recent_form": ["w", "D", "l"],
        "goals_for": "1.8",
        "goals_against": 0.9,
        "home_record": {"wins": 8, "draws": 2, "losses": 1},
        "head_to_head": {"total_matches": 7, "average_goals": 2.4},
    })
    assert stats.team == "Flamengo"
    assert stats.recent_form == ["W", "D", "L"]
    assert stats.goals_for == 1.8
    assert stats.home_record.win_rate == pytest.approx(8 / 11)
    assert stats.away_record.total == 0
    assert stats.head_to_head.total_matches == 7


@pytest.mark.unit
def test_stats_from_dict_rejects_bad_form():
    with pytest.raises(TypeError):
        stats_from_dict("X", {"recent_form": "WWD"})


# ============================================
# PROVIDER
# ============================================

@pytest.mark.unit
@pytest.mark.asyncio
async def test_provider_without_fetcher_returns_zeroed_stats():
    stats = await HistoricalDataProvider().get_stats("Flamengo", "Palmeiras")
    assert stats.home == HistoricalStats.empty("Flamengo")
    assert stats.away == HistoricalStats.empty("Palmeiras")
    assert stats.data_quality == "low"
    assert stats.data_confidence == pytest.approx(0.58)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_failing_fetcher_degrades_per_team():
    async def fetcher(team):
        if team == "Broken":
            raise RuntimeError("upstream down")
        return {"goals_for": 2.0}

    stats = await HistoricalDataProvider(fetcher=fetcher).get_stats("Arsenal", "Broken")
    assert stats.home.goals_for == 2.0
    assert stats.away == HistoricalStats.empty("Broken")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_slow_fetcher_times_out():
    async def fetcher(team):
        await asyncio.sleep(5)
        return {"goals_for": 3.0}

    provider = HistoricalDataProvider(fetcher=fetcher, timeout=0.05)
    stats = await provider.get_stats("A", "B")
    assert stats.home.goals_for == 0.0
    assert stats.away.goals_for == 0.0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unexpected_payload_type_is_zeroed():
    async def fetcher(team):
        return ["not", "stats"]

    stats = await HistoricalDataProvider(fetcher=fetcher).get_stats("A", "B")
    assert stats.home == HistoricalStats.empty("A")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_head_to_head_attached_to_home_side():
    async def fetcher(team):
        return make_stats(team, home=(15, 3, 2), away=(12, 4, 4))

    async def h2h(home, away):
        return {"total_matches": 6, "wins": 3}

    provider = HistoricalDataProvider(fetcher=fetcher, head_to_head_fetcher=h2h)
    stats = await provider.get_stats("Real Madrid", "Barcelona")

    assert stats.home.head_to_head == HeadToHead(total_matches=6, wins=3)
    assert stats.data_confidence == 1.0
    assert stats.data_quality == "high"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_failing_head_to_head_is_ignored():
    async def h2h(home, away):
        raise ValueError("bad")

    stats = await HistoricalDataProvider(head_to_head_fetcher=h2h).get_stats("A", "B")
    assert stats.home.head_to_head.total_matches == 0


@pytest.mark.regression
@pytest.mark.asyncio
async def test_head_to_head_does_not_mutate_fetched_stats():
    cached = make_stats("Flamengo", home=(5, 0, 0))
    h2h_counts = {"Palmeiras": 7, "Santos": 1}

    async def fetcher(team):
        return cached

    async def h2h(home, away):
        return {"total_matches": h2h_counts[away]}

    provider = HistoricalDataProvider(fetcher=fetcher, head_to_head_fetcher=h2h)
    first = await provider.get_stats("Flamengo", "Palmeiras")
    second = await provider.get_stats("Flamengo", "Santos")

    assert first.home.head_to_head.total_matches == 7
    assert second.home.head_to_head.total_matches == 1
    assert cached.head_to_head.total_matches == 0
