"""Tests for activity text extraction."""

import re

import pytest

from ecotrack.config import EcoTrackConfig
from ecotrack.models import ActivityCategory, ParseSource
from ecotrack.parser import GENERIC_SUGGESTIONS, ExtractionRule, TextPatternMatcher


class TestMatch:
    """Rule matching on free-text messages."""

    def test_driving_with_unit(self, matcher):
        parsed = matcher.match("I drove 10 km to work")

        assert parsed.category == ActivityCategory.TRANSPORTATION
        assert parsed.activity == "driving"
        assert parsed.amount == 10.0
        assert parsed.unit == "km"
        assert parsed.confidence >= 0.7
        assert parsed.rule_name == "driving_distance"
        assert parsed.source == ParseSource.RULES

    def test_walking(self, matcher):
        parsed = matcher.match("I walked 3 km")

        assert parsed.activity == "walking"
        assert parsed.amount == 3.0

    @pytest.mark.parametrize("text,activity,amount,unit", [
        ("We took the bus for 8 km", "bus", 8.0, "km"),
        ("I rode the train 12 miles", "train", 12.0, "miles"),
        ("I cycled about 5.5 km", "cycling", 5.5, "km"),
        ("I flew 800 km", "flying", 800.0, "km"),
        ("I rode my motorcycle 20 km", "motorcycle", 20.0, "km"),
        ("We carpooled 30 km", "carpool", 30.0, "km"),
        ("I drove my electric car 40 km", "electric_car", 40.0, "km"),
        ("I used 12 kWh of electricity", "electricity", 12.0, "kwh"),
        ("We used 3 cubic meters of natural gas", "natural_gas", 3.0, "cubic meters"),
        ("I ate 0.5 kg of beef", "beef", 0.5, "kg"),
        ("I had 2 lbs of chicken", "chicken", 2.0, "lbs"),
        ("I ate 1 kg of pork", "pork", 1.0, "kg"),
        ("We had 0.4 kg of salmon", "fish", 0.4, "kg"),
        ("I recycled 3 kg of plastic", "recycling", 3.0, "kg"),
        ("We composted 2 kg", "composting", 2.0, "kg"),
    ])
    def test_rules(self, matcher, text, activity, amount, unit):
        parsed = matcher.match(text)

        assert parsed is not None
        assert parsed.activity == activity
        assert parsed.amount == amount
        assert parsed.unit == unit

    def test_unitless_drive_defaults_to_km(self, matcher):
        parsed = matcher.match("I drove 15 today")

        assert parsed.rule_name == "driving_default_km"
        assert parsed.unit == "km"
        assert parsed.amount == 15.0

    def test_unitless_walk_defaults_to_km(self, matcher):
        parsed = matcher.match("we walked 2 yesterday")

        assert parsed.activity == "walking"
        assert parsed.unit == "km"

    def test_unit_rule_wins_over_fallback(self, matcher):
        parsed = matcher.match("I drove 20 miles")

        assert parsed.unit == "miles"

    def test_case_insensitive(self, matcher):
        assert matcher.match("  I DROVE 10 KM  ").activity == "driving"

    @pytest.mark.parametrize("text", [
        "",
        "   ",
        None,
        "hello there",
        "I love trees",
        "drove somewhere",
    ])
    def test_no_match(self, matcher, text):
        assert matcher.match(text) is None

    def test_overflowing_amount_is_unusable(self, matcher):
        """A digit run too long for a float is not a usable amount."""
        assert matcher.match("I drove " + "9" * 400 + " km to work") is None

    def test_rules_sorted_by_priority(self, config):
        late = ExtractionRule(
            priority=1000, name="late", pattern=re.compile(r"(\d+) things"),
            category=ActivityCategory.WASTE, activity="general_waste", unit_group=None,
            default_unit="kg",
        )
        early = ExtractionRule(
            priority=1, name="early", pattern=re.compile(r"(\d+) things"),
            category=ActivityCategory.WASTE, activity="recycling", unit_group=None,
            default_unit="kg",
        )
        matcher = TextPatternMatcher(rules=[late, early], config=config)

        assert matcher.match("5 things").rule_name == "early"


class TestConfidence:
    """Confidence scoring."""

    def test_full_sentence_scores_maximum(self, matcher):
        assert matcher.match("I drove 10 km").confidence == 1.0

    def test_short_span_in_long_message(self, matcher):
        text = "so this morning after a long breakfast with friends I drove 10 km"
        parsed = matcher.match(text)

        assert parsed.confidence == pytest.approx(0.8)

    def test_weights_come_from_config(self):
        config = EcoTrackConfig(base_confidence=0.5, enable_metrics=False)
        matcher = TextPatternMatcher(config=config)

        assert matcher.match("I drove 10 km").confidence == pytest.approx(0.8)

    def test_confidence_is_capped(self):
        config = EcoTrackConfig(base_confidence=0.95, enable_metrics=False)
        matcher = TextPatternMatcher(config=config)

        assert matcher.match("I drove 10 km").confidence == 1.0


class TestSuggestions:
    """Example phrasings for unparsed messages."""

    def test_generic(self, matcher):
        assert matcher.suggestions("something happened") == list(GENERIC_SUGGESTIONS)

    def test_car_keyword(self, matcher):
        suggestions = matcher.suggestions("took my car somewhere")

        assert len(suggestions) == 1
        assert "I drove 15 km" in suggestions[0]

    def test_transit_keyword(self, matcher):
        assert "bus" in matcher.suggestions("the train was late")[0]

    def test_walk_keyword(self, matcher):
        assert "walked" in matcher.suggestions("went for a walk")[0]

    def test_none(self, matcher):
        assert matcher.suggestions(None) == list(GENERIC_SUGGESTIONS)


class TestIsActivityRelated:
    """Detection of messages that are meant to log an activity."""

    @pytest.mark.parametrize("text", [
        "hi",
        "Hello, how are you?",
        "thanks!",
        "what can you do",
        "who are you",
        "",
        None,
    ])
    def test_conversational(self, matcher, text):
        assert not matcher.is_activity_related(text)

    @pytest.mark.parametrize("text", [
        "I drove to the shop",
        "we recycled the bottles",
        "15 km by bus",
        "2 kg of beef",
    ])
    def test_activity_messages(self, matcher, text):
        assert matcher.is_activity_related(text)

    def test_keyword_without_number(self, matcher):
        assert not matcher.is_activity_related("the bus is nice")
