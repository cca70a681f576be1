"""Tests for number, unit and currency extraction and the activity calorie estimate."""

from __future__ import annotations

import pytest

from src.intent.dictionaries import ACTIVITY_PROFILES
from src.intent.quantities import (
    estimate_activity_calories,
    extract_currency,
    extract_first_number,
    extract_grams,
    extract_money,
    normalize_currency_code,
    parse_distance,
    parse_duration,
    parse_height,
    parse_weight,
)

RUN, WALK, _CYCLE = ACTIVITY_PROFILES


def test_extract_money_variants() -> None:
    assert extract_money("lunch 12 euro") == (12.0, "EUR")
    assert extract_money("$4.50 coffee") == (4.5, "USD")
    assert extract_money("taksi 12,5 tl") == (12.5, "TRY")
    assert extract_money("paid 30 usd at 15:00") == (30.0, "USD")
    assert extract_money("lunch at 12:30") is None


def test_currency_words_need_an_adjacent_number() -> None:
    assert extract_currency("I'll try that") is None
    assert extract_currency("200 try") == "TRY"
    assert extract_currency("£3 tea") == "GBP"


def test_normalize_currency_code() -> None:
    assert normalize_currency_code("$") == "USD"
    assert normalize_currency_code("tl") == "TRY"
    assert normalize_currency_code("cad") == "CAD"
    assert normalize_currency_code("xyz") is None
    assert normalize_currency_code("") is None


def test_numbers_and_mass() -> None:
    assert extract_first_number("-12,5 EUR") == -12.5
    assert extract_first_number("none") is None
    assert extract_grams("200g rice") == 200
    assert extract_grams("1.5 kg potatoes") == 1500
    assert extract_grams("8 oz steak") == pytest.approx(226.796)


def test_distance_and_duration() -> None:
    assert parse_distance("ran 5km") == 5
    assert parse_distance("3 miles") == pytest.approx(4.828, rel=1e-3)
    assert parse_distance("800 meters") == pytest.approx(0.8)
    assert parse_duration("1h 30min") == 90
    assert parse_duration("45 dakika") == 45
    assert parse_duration("no time here") is None


def test_body_measurements() -> None:
    assert parse_weight("70") == 70
    assert parse_weight("154 lbs") == pytest.approx(69.85, rel=1e-3)
    assert parse_height("5'11\"") == pytest.approx(180.34)
    assert parse_height("1.8 m") == pytest.approx(180)
    assert parse_height("175 cm") == 175


def test_activity_calories_prefer_distance() -> None:
    assert estimate_activity_calories(weight_kg=70, distance_km=5, activity=RUN) == pytest.approx(360.5)
    assert estimate_activity_calories(weight_kg=70, duration_minutes=60, activity=WALK) == pytest.approx(245)
    assert estimate_activity_calories(weight_kg=70, distance_km=2) == pytest.approx(112)


def test_activity_calories_need_weight_and_quantity() -> None:
    assert estimate_activity_calories(weight_kg=None, distance_km=5, activity=RUN) is None
    assert estimate_activity_calories(weight_kg=70, activity=RUN) is None
