# -*- coding: utf-8 -*-
"""
Activity Text Extraction

Rule-based extraction of a single activity from a free-text message such
as "I drove 10 km to work" or "we recycled 3 kg of plastic".

Rules are plain data (``ExtractionRule``) carrying an explicit priority;
the matcher evaluates them in ascending priority order and the first match
wins. Specific rules (with a unit) therefore always precede the unit-less
fallbacks that assume kilometres.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Sequence

from ecotrack import metrics
from ecotrack.config import EcoTrackConfig, get_config
from ecotrack.models import ActivityCategory, ParsedActivity, ParseSource

logger = logging.getLogger(__name__)

_SUBJECT = r"\b(?:i|we)\s+"
_APPROX = r"(?:about\s+|around\s+)?"
_NUMBER = r"(\d+(?:\.\d+)?)"
_DISTANCE = r"\s*(km|kilometers?|kilometres?|miles?|mi)\b"
_MASS = r"\s*(kg|kilograms?|lbs?|pounds?)\b"


@dataclass(frozen=True)
class ExtractionRule:
    """
    One extraction pattern.

    Attributes:
        priority: Lower values are tried first
        name: Stable rule identifier, recorded on the parse result
        pattern: Compiled pattern applied to the lowercased message
        category: Category of the extracted activity
        activity: Activity key in the factor table
        amount_group: Capture group holding the amount
        unit_group: Capture group holding the unit, if the rule captures one
        default_unit: Unit reported when the rule captures none
    """
    priority: int
    name: str
    pattern: Pattern[str]
    category: ActivityCategory
    activity: str
    amount_group: int = 1
    unit_group: Optional[int] = 2
    default_unit: Optional[str] = None

    def unit_from(self, match: "re.Match[str]") -> Optional[str]:
        if self.unit_group is not None:
            raw = match.group(self.unit_group)
            if raw:
                return raw.strip()
        return self.default_unit


def _rule(
    priority: int,
    name: str,
    pattern: str,
    category: ActivityCategory,
    activity: str,
    default_unit: Optional[str] = None,
) -> ExtractionRule:
    return ExtractionRule(
        priority=priority,
        name=name,
        pattern=re.compile(pattern, re.IGNORECASE),
        category=category,
        activity=activity,
        unit_group=None if default_unit else 2,
        default_unit=default_unit,
    )


_T = ActivityCategory.TRANSPORTATION

DEFAULT_RULES: Sequence[ExtractionRule] = (
    # Transportation with an explicit distance unit
    _rule(10, "driving_distance",
          _SUBJECT + r"(?:drove|drive|driving)\s+" + _APPROX + _NUMBER + _DISTANCE
          + r"\s*(?:to|for|in)?", _T, "driving"),
    _rule(20, "bus_distance",
          _SUBJECT + r"(?:took|take|taking|rode|ride|riding)\s+(?:the\s+|a\s+)?"
          r"(?:bus|public\s+transport|transit)\s+(?:for\s+)?" + _APPROX + _NUMBER + _DISTANCE,
          _T, "bus"),
    _rule(30, "train_distance",
          _SUBJECT + r"(?:took|take|taking|rode|ride|riding)\s+(?:the\s+|a\s+)?"
          r"(?:train|subway|metro|rail)\s+(?:for\s+)?" + _APPROX + _NUMBER + _DISTANCE,
          _T, "train"),
    _rule(40, "walking_distance",
          _SUBJECT + r"(?:walked|walk|walking)\s+" + _APPROX + _NUMBER + _DISTANCE,
          _T, "walking"),
    _rule(50, "cycling_distance",
          _SUBJECT + r"(?:cycled|biked|bike|biking|cycling)\s+" + _APPROX + _NUMBER + _DISTANCE,
          _T, "cycling"),
    _rule(60, "flying_distance",
          _SUBJECT + r"(?:flew|fly|flying|took\s+(?:a\s+)?flight)\s+" + _APPROX + _NUMBER + _DISTANCE,
          _T, "flying"),
    _rule(70, "motorcycle_distance",
          _SUBJECT + r"(?:rode|ride|riding|took)\s+(?:my\s+|a\s+|the\s+)?"
          r"(?:motorcycle|motorbike|scooter)\s+(?:for\s+)?" + _APPROX + _NUMBER + _DISTANCE,
          _T, "motorcycle"),
    _rule(80, "carpool_distance",
          _SUBJECT + r"(?:carpooled|carpool|carpooling|shared\s+a\s+ride)\s+(?:for\s+)?"
          + _APPROX + _NUMBER + _DISTANCE,
          _T, "carpool"),
    _rule(90, "electric_car_distance",
          _SUBJECT + r"(?:drove|drive|driving)\s+(?:(?:my|an|the)\s+)?"
          r"(?:electric\s+car|ev|tesla)\s+(?:for\s+)?" + _APPROX + _NUMBER + _DISTANCE,
          _T, "electric_car"),

    # Energy
    _rule(100, "electricity_usage",
          _SUBJECT + r"(?:used|consumed|spent)\s+" + _APPROX + _NUMBER
          + r"\s*(kwh|kilowatt\s+hours?)\s+(?:of\s+)?(?:electricity|power|energy)",
          ActivityCategory.ENERGY, "electricity"),
    _rule(110, "natural_gas_usage",
          _SUBJECT + r"(?:used|consumed|spent)\s+" + _APPROX + _NUMBER
          + r"\s*(cubic\s+meters?|m3|liters?|litres?|gallons?)\s+(?:of\s+)?(?:gas|natural\s+gas)",
          ActivityCategory.ENERGY, "natural_gas"),

    # Food
    _rule(120, "beef_eaten",
          _SUBJECT + r"(?:ate|consumed|had)\s+" + _APPROX + _NUMBER + _MASS
          + r"\s+(?:of\s+)?(?:beef|red\s+meat|steak)",
          ActivityCategory.FOOD, "beef"),
    _rule(130, "pork_eaten",
          _SUBJECT + r"(?:ate|consumed|had)\s+" + _APPROX + _NUMBER + _MASS
          + r"\s+(?:of\s+)?(?:pork|bacon|ham)",
          ActivityCategory.FOOD, "pork"),
    _rule(140, "chicken_eaten",
          _SUBJECT + r"(?:ate|consumed|had)\s+" + _APPROX + _NUMBER + _MASS
          + r"\s+(?:of\s+)?(?:chicken|poultry|white\s+meat)",
          ActivityCategory.FOOD, "chicken"),
    _rule(150, "fish_eaten",
          _SUBJECT + r"(?:ate|consumed|had)\s+" + _APPROX + _NUMBER + _MASS
          + r"\s+(?:of\s+)?(?:fish|salmon|tuna|seafood)",
          ActivityCategory.FOOD, "fish"),

    # Waste
    _rule(160, "recycling_mass",
          _SUBJECT + r"(?:recycled|recycle|recycling)\s+" + _APPROX + _NUMBER + _MASS,
          ActivityCategory.WASTE, "recycling"),
    _rule(170, "composting_mass",
          _SUBJECT + r"(?:composted|compost|composting)\s+" + _APPROX + _NUMBER + _MASS,
          ActivityCategory.WASTE, "composting"),

    # Unit-less fallbacks, distance assumed in km
    _rule(900, "driving_default_km",
          _SUBJECT + r"(?:drove|drive|driving)\s+" + _APPROX + _NUMBER
          + r"\s*(?:to|for|today|yesterday)?",
          _T, "driving", default_unit="km"),
    _rule(910, "walking_default_km",
          _SUBJECT + r"(?:walked|walk|walking)\s+" + _APPROX + _NUMBER
          + r"\s*(?:today|yesterday)?",
          _T, "walking", default_unit="km"),
)


GENERIC_SUGGESTIONS = (
    "Try being more specific about the activity and distance, like 'I drove 10 km to work'",
    "Include the transportation method and distance: 'I took the bus for 5 miles'",
    "Mention both the activity and amount: 'I walked 3 km today'",
    "Use clear units like km, miles, kWh, or kg in your message",
)

_TARGETED_SUGGESTIONS = (
    (("drove", "car"), "Try: 'I drove 15 km to the store' or 'I drove 20 miles today'"),
    (("bus", "train"), "Try: 'I took the bus for 8 km' or 'I rode the train 12 miles'"),
    (("walk",), "Try: 'I walked 2 km today' or 'I walked 1.5 miles'"),
)

_CONVERSATIONAL = tuple(re.compile(p) for p in (
    r"^(hi|hello|hey|good morning|good afternoon|good evening|howdy)\b",
    r"^(how are you|how's it going|what's up|whats up)",
    r"^(thanks|thank you|bye|goodbye|see you)",
    r"^(help|what can you do|what do you do)",
    r"^(yes|no|ok|okay|sure|maybe|i don't know)\b",
    r"(who are you|what are you|tell me about yourself)",
    r"(introduce yourself|what is your name)",
))

ACTIVITY_KEYWORDS = (
    # transportation
    "drove", "drive", "driving", "car", "vehicle", "bus", "train", "subway",
    "metro", "transit", "public transport", "walk", "bike", "cycling",
    "cycled", "flight", "flew", "plane", "taxi", "motorcycle", "carpool",
    # energy
    "electricity", "power", "energy", "kwh", "kilowatt", "heating", "gas",
    # waste
    "recycle", "recycled", "trash", "garbage", "waste", "compost",
    "bottles", "plastic",
    # food
    "meal", "food", "ate", "eating", "meat", "beef", "chicken", "fish",
    "vegetarian", "vegan",
    # units
    "km", "miles", "kg", "pounds", "lbs",
    # logging cues
    "today", "yesterday", "logged", "track", "record",
)

_FIRST_PERSON_ACTIVITY = re.compile(
    r"\b(i|we)\s+(drove|walked|cycled|biked|took|rode|flew|used|recycled|composted|ate|had)\b"
)
_HAS_NUMBER = re.compile(r"\d")


class TextPatternMatcher:
    """
    Extracts one activity from a free-text message.

    Matching is deterministic: the message is trimmed and lowercased, then
    the rules are tried in ascending priority until one matches.

    Example:
        >>> matcher = TextPatternMatcher()
        >>> parsed = matcher.match("I drove 10 km to work")
        >>> parsed.activity, parsed.amount, parsed.unit
        ('driving', 10.0, 'km')
    """

    def __init__(
        self,
        rules: Optional[Sequence[ExtractionRule]] = None,
        config: Optional[EcoTrackConfig] = None,
    ):
        self.config = config or get_config()
        self.rules: List[ExtractionRule] = sorted(
            rules if rules is not None else DEFAULT_RULES,
            key=lambda rule: rule.priority,
        )
        logger.info("Initialized TextPatternMatcher with %d rules", len(self.rules))

    def match(self, text: Optional[str]) -> Optional[ParsedActivity]:
        """
        Extract an activity from ``text``.

        Args:
            text: Free-text message

        Returns:
            ParsedActivity in the unit as written, or None when no rule matches
        """
        if not text or not isinstance(text, str):
            return None
        clean = text.strip().lower()
        if not clean:
            return None

        for rule in self.rules:
            found = rule.pattern.search(clean)
            if found is None:
                continue
            try:
                amount = float(found.group(rule.amount_group))
                numeric = True
            except (TypeError, ValueError):
                logger.debug("Rule %s matched without a usable amount", rule.name)
                continue
            if not math.isfinite(amount):
                logger.debug("Rule %s captured a non-finite amount", rule.name)
                continue

            parsed = ParsedActivity(
                category=rule.category,
                activity=rule.activity,
                amount=amount,
                unit=rule.unit_from(found),
                confidence=self._confidence(found.group(0), clean, numeric),
                matched_span=found.group(0),
                rule_name=rule.name,
                source=ParseSource.RULES,
            )
            logger.debug(
                "Rule %s matched %r -> %s %s %s (confidence %.2f)",
                rule.name, parsed.matched_span, parsed.activity,
                parsed.amount, parsed.unit, parsed.confidence,
            )
            if self.config.enable_metrics:
                metrics.record_parse("matched")
            return parsed

        logger.debug("No extraction rule matched %r", clean)
        if self.config.enable_metrics:
            metrics.record_parse("unmatched")
        return None

    def _confidence(self, span: str, message: str, numeric: bool) -> float:
        confidence = self.config.base_confidence
        if len(span) / len(message) > self.config.span_ratio_threshold:
            confidence += self.config.span_confidence_bonus
        if numeric:
            confidence += self.config.numeric_confidence_bonus
        return round(min(max(confidence, 0.0), 1.0), 2)

    def suggestions(self, text: Optional[str]) -> List[str]:
        """Example phrasings for a message that could not be parsed."""
        lowered = (text or "").lower()
        for keywords, suggestion in _TARGETED_SUGGESTIONS:
            if any(keyword in lowered for keyword in keywords):
                return [suggestion]
        return list(GENERIC_SUGGESTIONS)

    def is_activity_related(self, text: Optional[str]) -> bool:
        """
        Whether a message looks like an attempt to log an activity.

        Greetings and other conversational openers never are. Otherwise the
        message must contain a number and an activity keyword, or a
        first-person activity verb such as "I drove".
        """
        if not text or not isinstance(text, str):
            return False
        lowered = text.strip().lower()
        if any(pattern.search(lowered) for pattern in _CONVERSATIONAL):
            return False
        if _FIRST_PERSON_ACTIVITY.search(lowered):
            return True
        has_keyword = any(keyword in lowered for keyword in ACTIVITY_KEYWORDS)
        return bool(_HAS_NUMBER.search(lowered)) and has_keyword


__all__ = [
    "ExtractionRule",
    "DEFAULT_RULES",
    "GENERIC_SUGGESTIONS",
    "ACTIVITY_KEYWORDS",
    "TextPatternMatcher",
]
