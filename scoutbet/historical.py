"""Historical team statistics used by the value scorer."""
import asyncio
import logging
from dataclasses import replace
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from .models import HeadToHead, HistoricalStats, MatchStats, TeamRecord

logger = logging.getLogger(__name__)

StatsFetcher = Callable[[str], Awaitable[Union[HistoricalStats, Dict[str, Any]]]]
HeadToHeadFetcher = Callable[[str, str], Awaitable[Union[HeadToHead, Dict[str, Any]]]]

LEAGUE_QUALITY = {
    "Premier League": 0.95,
    "La Liga": 0.90,
    "Bundesliga": 0.88,
    "Ligue 1": 0.85,
    "Serie A": 0.82,
    "Brasileirão": 0.80,
    "Eredivisie": 0.75,
    "Primeira Liga": 0.70,
}
DEFAULT_LEAGUE_QUALITY = 0.60

# Team-name fragments used to guess the league of a fixture
LEAGUE_TEAMS = {
    "Brasileirão": ("Flamengo", "Palmeiras", "São Paulo"),
    "La Liga": ("Real Madrid", "Barcelona"),
    "Premier League": ("Manchester", "Arsenal"),
}
UNKNOWN_LEAGUE = "Unknown"


def detect_league(team: str) -> str:
    """Guess a team's league from its name."""
    for league, fragments in LEAGUE_TEAMS.items():
        if any(fragment in team for fragment in fragments):
            return league
    return UNKNOWN_LEAGUE


def league_quality(league: str) -> float:
    return LEAGUE_QUALITY.get(league, DEFAULT_LEAGUE_QUALITY)


def data_confidence(home: HistoricalStats, away: HistoricalStats, league: str) -> float:
    """
    Confidence in the historical sample for a fixture.

    Starts at 0.5; each team with at least 20 recorded matches adds 0.2, five
    or more head-to-head meetings add 0.1, and league quality adds up to 0.1.
    """
    confidence = 0.5
    if home.matches_played >= 20:
        confidence += 0.2
    if away.matches_played >= 20:
        confidence += 0.2
    if home.head_to_head.total_matches >= 5:
        confidence += 0.1
    confidence += league_quality(league) * 0.1
    return min(1.0, confidence)


def data_quality(confidence: float) -> str:
    if confidence >= 0.8:
        return "high"
    if confidence >= 0.6:
        return "medium"
    return "low"


def _record(data: Any) -> TeamRecord:
    if isinstance(data, TeamRecord):
        return data
    if not isinstance(data, dict):
        return TeamRecord()
    return TeamRecord(
        wins=int(data.get("wins", 0)),
        draws=int(data.get("draws", 0)),
        losses=int(data.get("losses", 0)),
    )


def _head_to_head(data: Any) -> HeadToHead:
    if isinstance(data, HeadToHead):
        return data
    if not isinstance(data, dict):
        return HeadToHead()
    return HeadToHead(
        total_matches=int(data.get("total_matches", 0)),
        wins=int(data.get("wins", 0)),
        draws=int(data.get("draws", 0)),
        losses=int(data.get("losses", 0)),
        average_goals=float(data.get("average_goals", 0.0)),
    )


def stats_from_dict(team: str, data: Dict[str, Any]) -> HistoricalStats:
    """
    Build HistoricalStats from a plain mapping.

    Raises:
        TypeError, ValueError: If a field has the wrong shape
    """
    form = data.get("recent_form") or []
    if not isinstance(form, (list, tuple)):
        raise TypeError("recent_form must be a list")
    return HistoricalStats(
        team=data.get("team") or team,
        recent_form=[str(result).upper() for result in form],
        goals_for=float(data.get("goals_for", 0.0)),
        goals_against=float(data.get("goals_against", 0.0)),
        home_record=_record(data.get("home_record")),
        away_record=_record(data.get("away_record")),
        head_to_head=_head_to_head(data.get("head_to_head")),
    )


class HistoricalDataProvider:
    """
    Fetches per-team statistics through pluggable async fetchers.

    Without a fetcher, or when a fetch fails, the affected team gets zeroed
    statistics. ``get_stats`` never raises.
    """

    def __init__(
        self,
        fetcher: Optional[StatsFetcher] = None,
        head_to_head_fetcher: Optional[HeadToHeadFetcher] = None,
        timeout: float = 10.0,
    ):
        self.fetcher = fetcher
        self.head_to_head_fetcher = head_to_head_fetcher
        self.timeout = timeout

    async def _team_stats(self, team: str) -> HistoricalStats:
        if self.fetcher is None:
            return HistoricalStats.empty(team)
        try:
            data = await asyncio.wait_for(self.fetcher(team), timeout=self.timeout)
            if isinstance(data, HistoricalStats):
                return data
            if isinstance(data, dict):
                return stats_from_dict(team, data)
            logger.warning(f"Unexpected stats payload for {team}: {type(data).__name__}")
        except asyncio.TimeoutError:
            logger.warning(f"Stats fetch timed out for {team}")
        except Exception as e:
            logger.warning(f"Stats fetch failed for {team}: {e}")
        return HistoricalStats.empty(team)

    async def _head_to_head(self, home_team: str, away_team: str) -> Optional[HeadToHead]:
        if self.head_to_head_fetcher is None:
            return None
        try:
            data = await asyncio.wait_for(
                self.head_to_head_fetcher(home_team, away_team), timeout=self.timeout
            )
            return _head_to_head(data)
        except asyncio.TimeoutError:
            logger.warning(f"Head-to-head fetch timed out for {home_team} vs {away_team}")
        except Exception as e:
            logger.warning(f"Head-to-head fetch failed for {home_team} vs {away_team}: {e}")
        return None

    async def get_stats(self, home_team: str, away_team: str) -> MatchStats:
        """
        Get statistics for both sides of a fixture.

        Args:
            home_team: Home side name
            away_team: Away side name

        Returns:
            MatchStats with data confidence and quality filled in
        """
        home, away, h2h = await asyncio.gather(
            self._team_stats(home_team),
            self._team_stats(away_team),
            self._head_to_head(home_team, away_team),
        )
        if h2h is not None:
            home = replace(home, head_to_head=h2h)

        league = detect_league(home_team)
        confidence = data_confidence(home, away, league)
        quality = data_quality(confidence)

        logger.debug(
            f"Stats for {home_team} vs {away_team}: confidence {confidence:.2f} ({quality})"
        )
        return MatchStats(home=home, away=away, data_confidence=confidence, data_quality=quality)
