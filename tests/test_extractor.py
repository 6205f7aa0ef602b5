"""Tests for extraction normalizers and concurrent per-source extraction."""
import asyncio

import pytest

from conftest import FakeExtractionClient, FakeSession
from scoutbet.errors import ExtractionError
from scoutbet.extractor import (
    EXTRACTION_STRATEGIES,
    GENERIC_STRATEGY,
    ODDS_COMPARISON_VALUE_PERCENT,
    Extractor,
    normalize_ai_ml,
    normalize_arbitrage,
    normalize_generic,
    normalize_odds_comparison,
    normalize_statistics,
    normalize_value_betting,
    normalize_xg,
    parse_odd,
    strategy_for,
)
from scoutbet.models import ConfidenceTier, DataSource, SourceCategory, SourceFeature


def make_source(name="Src", category=SourceCategory.ARBITRAGE, url=None):
    return DataSource(
        name=name,
        url=url or f"https://{name.lower()}.example",
        category=category,
        region="global",
        reliability=0.9,
        features=frozenset({SourceFeature.STATISTICS}),
    )


# ============================================
# PARSING
# ============================================

@pytest.mark.unit
@pytest.mark.parametrize("raw,expected", [
    ("2.15", 2.15),
    ("2,15", 2.15),
    ("7.5%", 7.5),
    (" 3 ", 3.0),
    ("", 0.0),
    (None, 0.0),
    ("n/a", 0.0),
    (1.9, 1.9),
])
def test_parse_odd(raw, expected):
    assert parse_odd(raw) == pytest.approx(expected)


@pytest.mark.unit
def test_parse_odd_default():
    assert parse_odd(None, default=2.0) == 2.0
    assert parse_odd("", default=2.0) == 2.0


# ============================================
# NORMALIZERS
# ============================================

@pytest.mark.unit
def test_arbitrage_normalizer():
    source = make_source("OddsJam.com")
    payload = {"matches": [{
        "match": "Arsenal vs Chelsea", "homeOdd": "2.10", "drawOdd": "3.40",
        "awayOdd": "3.60", "profit": "2.3", "bookmaker": "Betfair",
    }]}
    [opp] = normalize_arbitrage(payload, source)
    assert opp.best_odd == pytest.approx(3.60)
    assert opp.average_odd == pytest.approx((2.10 + 3.40 + 3.60) / 3)
    assert opp.value_percent == pytest.approx(2.3)
    assert opp.market == "1X2"
    assert opp.bookmaker == "Betfair"
    assert opp.confidence_tier == ConfidenceTier.HIGH
    assert opp.source_link == source.url


@pytest.mark.unit
def test_odds_comparison_picks_best_bookmaker():
    source = make_source("OpticOdds.com", SourceCategory.ODDS_COMPARISON)
    payload = {"matches": [{
        "match": "Flamengo vs Palmeiras",
        "bookmakers": [
            {"name": "Bet365", "homeOdd": "2.10", "drawOdd": "3.20", "awayOdd": "3.50"},
            {"name": "Betano", "homeOdd": "2.20", "drawOdd": "3.10", "awayOdd": "3.75"},
        ],
    }]}
    [opp] = normalize_odds_comparison(payload, source)
    assert opp.bookmaker == "Betano"
    assert opp.best_odd == pytest.approx(3.75)
    assert opp.average_odd == pytest.approx(3.75 * 0.9)
    assert opp.value_percent == ODDS_COMPARISON_VALUE_PERCENT
    assert opp.confidence_tier == ConfidenceTier.MEDIUM


@pytest.mark.unit
def test_odds_comparison_skips_matches_without_prices():
    source = make_source(category=SourceCategory.ODDS_COMPARISON)
    payload = {"matches": [{"match": "A vs B", "bookmakers": []}]}
    assert normalize_odds_comparison(payload, source) == []


@pytest.mark.unit
@pytest.mark.parametrize("value,tier", [
    ("12", ConfidenceTier.HIGH),
    ("7", ConfidenceTier.MEDIUM),
    ("5", ConfidenceTier.LOW),
])
def test_value_betting_tier_from_value(value, tier):
    source = make_source(category=SourceCategory.VALUE_BETTING)
    payload = {"opportunities": [{
        "match": "A vs B", "market": "Over 2.5 Goals", "odds": "2.0",
        "probability": "0.55", "value": value, "bookmaker": "",
    }]}
    [opp] = normalize_value_betting(payload, source)
    assert opp.confidence_tier == tier
    assert opp.average_odd == pytest.approx(1.9)
    assert opp.bookmaker == source.name
    assert opp.market == "Over 2.5 Goals"


@pytest.mark.unit
def test_value_betting_skips_missing_odds_or_probability():
    source = make_source(category=SourceCategory.VALUE_BETTING)
    payload = {"opportunities": [
        {"match": "A vs B", "odds": "", "probability": "0.5", "value": "8"},
        {"match": "C vs D", "odds": "2.0", "probability": "", "value": "8"},
    ]}
    assert normalize_value_betting(payload, source) == []


@pytest.mark.unit
def test_statistics_uses_placeholders_and_parses_tier():
    source = make_source(category=SourceCategory.STATISTICS)
    payload = {"matches": [
        {"match": "A vs B", "confidence": "High"},
        {"match": "C vs D", "confidence": ""},
        {"match": "E vs F", "confidence": "so-so"},
    ]}
    opps = normalize_statistics(payload, source)
    assert [o.confidence_tier for o in opps] == [
        ConfidenceTier.HIGH, ConfidenceTier.MEDIUM, ConfidenceTier.LOW,
    ]
    assert all(o.best_odd == 2.0 and o.average_odd == 1.8 and o.value_percent == 3 for o in opps)


@pytest.mark.unit
def test_ai_ml_defaults_odds():
    source = make_source(category=SourceCategory.AI_ML)
    payload = {"predictions": [{"match": "A vs B", "confidence": "medium", "odds": ""}]}
    [opp] = normalize_ai_ml(payload, source)
    assert opp.best_odd == 2.0
    assert opp.average_odd == pytest.approx(1.9)
    assert opp.value_percent == 5


@pytest.mark.unit
def test_xg_requires_positive_total():
    source = make_source(category=SourceCategory.XG_METRICS)
    payload = {"matches": [
        {"match": "A vs B", "totalXG": "2.8", "confidence": "high"},
        {"match": "C vs D", "totalXG": "0"},
    ]}
    [opp] = normalize_xg(payload, source)
    assert opp.market == "Over/Under"
    assert (opp.best_odd, opp.average_odd, opp.value_percent) == (1.8, 1.7, 4.0)


@pytest.mark.unit
def test_generic_normalizer():
    source = make_source(category=SourceCategory.LIVE_SCORES)
    payload = {"opportunities": [{"match": "A vs B", "odds": "1.75", "market": ""}]}
    [opp] = normalize_generic(payload, source)
    assert opp.market == "1X2"
    assert opp.best_odd == 1.75
    assert opp.confidence_tier == ConfidenceTier.MEDIUM


@pytest.mark.unit
def test_normalizers_ignore_missing_arrays_and_records_without_match():
    source = make_source()
    assert normalize_arbitrage({}, source) == []
    assert normalize_arbitrage({"matches": "nope"}, source) == []
    assert normalize_arbitrage({"matches": [{"homeOdd": "2"}]}, source) == []


@pytest.mark.unit
def test_strategy_table_falls_back_to_generic():
    assert strategy_for(SourceCategory.ARBITRAGE) is EXTRACTION_STRATEGIES[SourceCategory.ARBITRAGE]
    assert strategy_for(SourceCategory.TIPSTERS) is GENERIC_STRATEGY
    assert strategy_for(SourceCategory.PREDICTIONS) is GENERIC_STRATEGY


# ============================================
# EXTRACTOR
# ============================================

ARBITRAGE_PAYLOAD = {"matches": [{
    "match": "A vs B", "homeOdd": "2.0", "drawOdd": "3.0", "awayOdd": "4.0", "profit": "2",
}]}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_extract_all_isolates_failing_source():
    good_1 = make_source("One")
    bad = make_source("Two")
    good_2 = make_source("Three")
    client = FakeExtractionClient(payloads={
        good_1.url: ARBITRAGE_PAYLOAD,
        bad.url: ExtractionError("navigation failed", source="Two"),
        good_2.url: ARBITRAGE_PAYLOAD,
    })
    extractor = Extractor(FakeSession(client))

    opportunities = await extractor.extract_all([good_1, bad, good_2])

    assert len(opportunities) == 2
    assert [o.source_link for o in opportunities] == [good_1.url, good_2.url]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_extract_all_times_out_slow_source():
    class SlowSession:
        async def extract(self, url, instruction, schema):
            if "slow" in url:
                await asyncio.sleep(5)
            return ARBITRAGE_PAYLOAD

    extractor = Extractor(SlowSession(), timeout=0.05)
    opportunities = await extractor.extract_all([make_source("Slow"), make_source("Fast")])

    assert len(opportunities) == 1
    assert opportunities[0].source_link == "https://fast.example"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_extract_all_drops_records_with_odds_not_above_one():
    source = make_source(category=SourceCategory.LIVE_SCORES)
    payload = {"opportunities": [
        {"match": "A vs B", "odds": "1.0"},
        {"match": "C vs D", "odds": "0.5"},
        {"match": "E vs F", "odds": "1.01"},
    ]}
    extractor = Extractor(FakeSession(FakeExtractionClient(payloads={source.url: payload})))
    opportunities = await extractor.extract_all([source])
    assert [o.match for o in opportunities] == ["E vs F"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_extract_source_rejects_non_object_payload():
    source = make_source()
    extractor = Extractor(FakeSession(FakeExtractionClient(payloads={source.url: ["not", "a", "dict"]})))
    with pytest.raises(ExtractionError):
        await extractor.extract_source(source)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_extract_all_with_no_sources():
    extractor = Extractor(FakeSession(FakeExtractionClient()))
    assert await extractor.extract_all([]) == []
