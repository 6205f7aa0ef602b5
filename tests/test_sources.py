"""
Tests for the source catalog and SourceSelector.

Property-based tests check the selection invariants for arbitrary text;
unit tests pin the topic trigger table.
"""
import pytest
from hypothesis import given, settings, strategies as st

from scoutbet.models import SourceCategory, SourceFeature
from scoutbet.sources import (
    CATALOG_ENTRIES,
    SourceSelector,
    build_default_catalog,
)


# ============================================
# CATALOG
# ============================================

@pytest.mark.unit
def test_catalog_loads_every_entry(catalog):
    assert len(catalog) == len(CATALOG_ENTRIES)
    for source in catalog.all():
        assert 0.0 <= source.reliability <= 1.0
        assert source.url.startswith("https://")
        assert source.features


@pytest.mark.unit
def test_by_category_and_features(catalog):
    arbitrage = catalog.by_category(SourceCategory.ARBITRAGE)
    assert {s.name for s in arbitrage} >= {"OddsJam.com", "BetBurger.com", "Sharp.app"}
    assert all(s.category == SourceCategory.ARBITRAGE for s in arbitrage)

    corners = catalog.by_features([SourceFeature.CORNER_STATS])
    assert {s.name for s in corners} == {
        "StatsChecker.com",
        "FootyStats.org",
        "TotalCorner.com",
        "FootyStats.org/stats/corner-stats",
    }


@pytest.mark.unit
def test_filter_combines_criteria(catalog):
    result = catalog.filter(pricing="paid", min_reliability=0.95)
    assert {s.name for s in result} == {"OddsJam.com", "BetBurger.com", "Sharp.app"}


@pytest.mark.unit
def test_recommended_for_unknown_type_uses_statistics(catalog):
    result = catalog.recommended_for("something_else")
    assert result
    assert all(SourceFeature.STATISTICS in s.features for s in result)
    assert all(s.reliability >= 0.85 for s in result)


@pytest.mark.unit
def test_stats_counts_add_up(catalog):
    stats = catalog.stats()
    assert stats["total"] == len(catalog)
    assert sum(stats["by_category"].values()) == len(catalog)
    assert sum(stats["by_reliability"].values()) == len(catalog)
    assert stats["by_region"] == {"global": len(catalog)}


# ============================================
# SELECTOR
# ============================================

@pytest.mark.unit
@pytest.mark.parametrize("hint,topic", [
    ("arbitragem odds", "arbitrage"),
    ("Find ARBITRAGE now", "arbitrage"),
    ("Flamengo vs Palmeiras value bets", "value"),
    ("apostas de valor", "value"),
    ("xG numbers for the derby", "xg"),
    ("machine learning tips", "ai_ml"),
    ("btts tonight", "btts"),
    ("ambas marcam", "btts"),
    ("escanteio", "corners"),
    ("sem sofrer gols", "clean_sheets"),
    ("tempo do gol", "goal_timing"),
    ("tipster ranking", "tipster"),
    ("ao vivo", "live"),
    ("Real Madrid x Barcelona", "comprehensive"),
    ("", "default"),
    (None, "default"),
])
def test_match_topic(selector, hint, topic):
    assert selector.match_topic(hint) == topic


@pytest.mark.unit
def test_first_matching_trigger_wins(selector):
    # Mentions both arbitrage and value; arbitrage comes first in the table
    assert selector.match_topic("arbitrage value") == "arbitrage"


@pytest.mark.unit
def test_arbitrage_selection_uses_stricter_reliability(selector):
    selected = selector.select("arbitragem odds")
    assert selected
    assert all(s.reliability >= 0.92 for s in selected)
    assert all(
        s.has_any([SourceFeature.ARBITRAGE_DETECTION, SourceFeature.ODDS_COMPARISON])
        for s in selected
    )


@pytest.mark.unit
def test_selection_is_idempotent(selector):
    first = selector.select("arbitragem odds")
    second = selector.select("arbitragem odds")
    assert first == second
    assert len(first) <= 10
    assert all(s.reliability >= 0.85 for s in first)


@pytest.mark.unit
def test_no_hint_selects_value_sources(selector, catalog):
    selected = selector.select(None)
    assert selected == catalog.value_bet_sources()[:10]


@pytest.mark.unit
def test_selection_preserves_catalog_order(selector, catalog):
    order = {s.name: i for i, s in enumerate(catalog.all())}
    selected = selector.select("live scores")
    positions = [order[s.name] for s in selected]
    assert positions == sorted(positions)


@pytest.mark.unit
def test_cap_and_threshold_are_configurable(catalog):
    selector = SourceSelector(catalog, min_reliability=0.96, max_sources=2)
    selected = selector.select("comprehensive analysis")
    assert len(selected) <= 2
    assert all(s.reliability >= 0.96 for s in selected)


@pytest.mark.unit
def test_empty_selection_is_valid():
    selector = SourceSelector(build_default_catalog(), min_reliability=0.99)
    assert selector.select("tipster") == []


@given(hint=st.one_of(st.none(), st.text(max_size=60)))
@settings(max_examples=100)
def test_selection_invariants_hold_for_any_text(hint):
    selector = SourceSelector(build_default_catalog())
    selected = selector.select(hint)
    assert len(selected) <= 10
    assert all(s.reliability >= 0.85 for s in selected)
    assert selected == selector.select(hint)
