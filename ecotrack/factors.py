# -*- coding: utf-8 -*-
"""
Emission Factor Table

Static lookup data for the EcoTrack core, loaded once from a YAML document
and shared read-only by every component:

- Signed emission factors per (category, activity)
- Unit synonyms and their multipliers to canonical units
- Alternative-activity preference lists
- Impact tier sets and tier encouragement messages
- Activity tips and icons
- Constants used for equivalence comparisons

The table is immutable after construction. Lookups are pure functions with
no side effects.
"""

import functools
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple, Union

import yaml

from ecotrack.exceptions import FactorTableError, UnknownActivityError
from ecotrack.models import ActivityCategory, EmissionFactor, ImpactTier

logger = logging.getLogger(__name__)

DEFAULT_TABLE_PATH = Path(__file__).parent / "data" / "emission_factors.yaml"


@dataclass(frozen=True)
class ActivityTip:
    """Tip shown after a calculation, optionally split on the amount."""
    text: str
    threshold: Optional[float] = None
    above_text: Optional[str] = None

    def for_amount(self, amount: float) -> str:
        if self.threshold is not None and self.above_text and amount > self.threshold:
            return self.above_text
        return self.text


@dataclass(frozen=True)
class CategoryUnits:
    """Canonical units accepted by a category and its fallback unit."""
    default_unit: str
    canonical_units: FrozenSet[str]


@dataclass(frozen=True)
class ComparisonConstants:
    """Constants behind the human-readable equivalence strings."""
    car_activity: str = "driving"
    tree_kg_per_year: float = 22.0
    phone_charge_kg: float = 0.005
    phone_charge_min: float = 1.0
    phone_charge_max: float = 1000.0


@dataclass(frozen=True)
class EmissionFactorTable:
    """
    Immutable lookup table for emission factors and related static data.

    Build it with ``EmissionFactorTable.from_yaml`` (or ``load_default_table``)
    and inject the same instance into the normalizer, matcher and calculator.
    """

    factors: Mapping[Tuple[ActivityCategory, str], EmissionFactor]
    category_units: Mapping[ActivityCategory, CategoryUnits]
    unit_conversions: Mapping[str, Tuple[float, str]]
    alternatives: Mapping[str, Tuple[str, ...]]
    impact_tiers: Mapping[ImpactTier, FrozenSet[str]]
    tier_messages: Mapping[ImpactTier, str]
    tips: Mapping[str, ActivityTip]
    icons: Mapping[str, str]
    green_transport: FrozenSet[str]
    comparisons: ComparisonConstants = field(default_factory=ComparisonConstants)
    version: str = "unversioned"

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "EmissionFactorTable":
        """Load and validate a factor table document.

        Raises:
            FactorTableError: If the file is missing or malformed
        """
        path = Path(path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except FileNotFoundError as e:
            raise FactorTableError("Emission factor table not found", path=str(path)) from e
        except yaml.YAMLError as e:
            raise FactorTableError(
                f"Failed to parse emission factor table: {e}", path=str(path),
            ) from e

        table = cls.from_dict(data, source=str(path))
        logger.info(
            "Loaded %d emission factors (table version %s) from %s",
            len(table.factors), table.version, path,
        )
        return table

    @classmethod
    def from_dict(cls, data: Any, source: str = "<dict>") -> "EmissionFactorTable":
        """Build a table from an already-parsed document."""
        if not isinstance(data, dict) or "categories" not in data:
            raise FactorTableError(
                "Emission factor table must be a mapping with a 'categories' section",
                path=source,
            )

        try:
            factors: Dict[Tuple[ActivityCategory, str], EmissionFactor] = {}
            category_units: Dict[ActivityCategory, CategoryUnits] = {}

            for category_name, section in data["categories"].items():
                category = ActivityCategory(category_name)
                default_unit = section["default_unit"]
                canonical = frozenset(section.get("canonical_units") or [default_unit])
                category_units[category] = CategoryUnits(default_unit, canonical)

                for activity, entry in (section.get("factors") or {}).items():
                    if isinstance(entry, dict):
                        value, unit = entry["factor"], entry.get("unit", default_unit)
                    else:
                        value, unit = entry, default_unit
                    if unit not in canonical:
                        raise FactorTableError(
                            f"Factor {category.value}/{activity} uses unit {unit!r} "
                            f"outside {sorted(canonical)}",
                            path=source,
                        )
                    factors[(category, activity)] = EmissionFactor(
                        category=category,
                        activity=activity,
                        factor_per_unit=float(value),
                        canonical_unit=unit,
                    )

            unit_conversions = {
                str(synonym).lower(): (float(conversion[0]), str(conversion[1]))
                for synonym, conversion in (data.get("units") or {}).items()
            }
            impact_tiers = {
                ImpactTier(tier): frozenset(activities)
                for tier, activities in (data.get("impact_tiers") or {}).items()
            }
            tier_messages = {
                ImpactTier(tier): message
                for tier, message in (data.get("tier_messages") or {}).items()
            }
            comparisons_data = data.get("comparisons") or {}
            phone_range = comparisons_data.get("phone_charge_range", [1, 1000])
            comparisons = ComparisonConstants(
                car_activity=comparisons_data.get("car_activity", "driving"),
                tree_kg_per_year=float(comparisons_data.get("tree_kg_per_year", 22)),
                phone_charge_kg=float(comparisons_data.get("phone_charge_kg", 0.005)),
                phone_charge_min=float(phone_range[0]),
                phone_charge_max=float(phone_range[1]),
            )
            tips = _parse_tips(data.get("tips") or {})
        except (KeyError, TypeError, ValueError, IndexError) as e:
            raise FactorTableError(
                f"Malformed emission factor table: {e}", path=source,
            ) from e

        return cls(
            factors=MappingProxyType(factors),
            category_units=MappingProxyType(category_units),
            unit_conversions=MappingProxyType(unit_conversions),
            alternatives=MappingProxyType({
                activity: tuple(options)
                for activity, options in (data.get("alternatives") or {}).items()
            }),
            impact_tiers=MappingProxyType(impact_tiers),
            tier_messages=MappingProxyType(tier_messages),
            tips=MappingProxyType(tips),
            icons=MappingProxyType(dict(data.get("icons") or {})),
            green_transport=frozenset(data.get("green_transport") or ()),
            comparisons=comparisons,
            version=str(data.get("version", "unversioned")),
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_factor(
        self, category: Union[ActivityCategory, str], activity: str,
    ) -> Optional[EmissionFactor]:
        """Return the factor for a pair, or None when it is unknown."""
        try:
            category = ActivityCategory(category)
        except ValueError:
            return None
        return self.factors.get((category, activity))

    def get_factor(
        self, category: Union[ActivityCategory, str], activity: str,
    ) -> EmissionFactor:
        """Return the factor for a pair.

        Raises:
            UnknownActivityError: If no factor exists for the pair
        """
        factor = self.find_factor(category, activity)
        if factor is None:
            raise UnknownActivityError(getattr(category, "value", str(category)), activity)
        return factor

    def impact_tier(self, activity: str) -> ImpactTier:
        """Tier of an activity; activities in no tier set are medium."""
        for tier in (ImpactTier.LOW, ImpactTier.MEDIUM, ImpactTier.HIGH, ImpactTier.VERY_HIGH):
            if activity in self.impact_tiers.get(tier, frozenset()):
                return tier
        return ImpactTier.MEDIUM

    def alternatives_for(self, activity: str) -> Tuple[str, ...]:
        return self.alternatives.get(activity, ())

    def tip_for(self, activity: str, amount: float) -> Optional[str]:
        tip = self.tips.get(activity)
        return tip.for_amount(amount) if tip else None

    def icon_for(self, activity: str) -> str:
        return self.icons.get(activity, "📊")

    def default_unit(self, category: Union[ActivityCategory, str]) -> str:
        try:
            return self.category_units[ActivityCategory(category)].default_unit
        except (KeyError, ValueError):
            return "unit"

    def activities(self, category: Optional[ActivityCategory] = None) -> Tuple[EmissionFactor, ...]:
        """All factors, optionally restricted to one category, in table order."""
        return tuple(
            factor for (cat, _), factor in self.factors.items()
            if category is None or cat == category
        )


def _parse_tips(raw: Mapping[str, Any]) -> Dict[str, ActivityTip]:
    tips: Dict[str, ActivityTip] = {}
    for activity, tip in raw.items():
        if isinstance(tip, dict):
            tips[activity] = ActivityTip(
                text=tip["otherwise"],
                threshold=float(tip["threshold"]),
                above_text=tip["above"],
            )
        else:
            tips[activity] = ActivityTip(text=str(tip))
    return tips


@functools.lru_cache(maxsize=8)
def _load_cached(path: str) -> EmissionFactorTable:
    return EmissionFactorTable.from_yaml(path)


def load_default_table(path: Optional[Union[str, Path]] = None) -> EmissionFactorTable:
    """Load a factor table once per path and reuse it for the process.

    Args:
        path: Table location; the bundled table when None
    """
    return _load_cached(str(Path(path) if path else DEFAULT_TABLE_PATH))


__all__ = [
    "ActivityTip",
    "CategoryUnits",
    "ComparisonConstants",
    "EmissionFactorTable",
    "DEFAULT_TABLE_PATH",
    "load_default_table",
]
