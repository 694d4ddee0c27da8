# -*- coding: utf-8 -*-
"""
Unit Normalization

Converts the unit a user wrote ("miles", "lbs", "gallons") into the
canonical unit of the activity category (km, kg, L, kWh) so that emission
factors can be applied directly.

Supports:
- Distance: km, miles -> km
- Energy: kWh -> kWh
- Volume: liters, gallons, m3 -> L
- Mass: kg, lbs -> kg

Unknown or missing units are not an error: the amount is assumed to be in
the category's default unit already and is returned unscaled.
"""

import logging
import re
from typing import Optional, Tuple, Union

from ecotrack.factors import EmissionFactorTable
from ecotrack.models import ActivityCategory

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def _clean_unit(unit: Optional[str]) -> Optional[str]:
    if unit is None:
        return None
    cleaned = _WHITESPACE.sub(" ", unit.strip().lower())
    return cleaned or None


class UnitNormalizer:
    """
    Stateless unit normalizer backed by the factor table's synonym list.

    GUARANTEES:
    - Same input -> same output, no state kept between calls
    - Recognised units are scaled by their multiplier exactly once
    - Unrecognised units fall back to the category default unscaled
    """

    def __init__(self, table: EmissionFactorTable):
        """
        Initialize unit normalizer.

        Args:
            table: Factor table providing unit synonyms and category units
        """
        self.table = table

    def lookup(self, unit: Optional[str]) -> Optional[Tuple[float, str]]:
        """Return (multiplier, canonical unit) for a synonym, or None."""
        cleaned = _clean_unit(unit)
        if cleaned is None:
            return None
        return self.table.unit_conversions.get(cleaned)

    def is_recognized(self, unit: Optional[str]) -> bool:
        return self.lookup(unit) is not None

    def normalize(
        self,
        amount: float,
        raw_unit: Optional[str],
        category: Union[ActivityCategory, str],
    ) -> Tuple[float, str]:
        """
        Convert an amount to the canonical unit of its category.

        A recognised unit whose canonical unit does not belong to the
        category (e.g. "kg" for a transportation activity) is treated as
        unrecognised.

        Args:
            amount: Amount in ``raw_unit``
            raw_unit: Unit as written, or None
            category: Activity category

        Returns:
            Tuple of (canonical amount, canonical unit)
        """
        category = ActivityCategory(category)
        default_unit = self.table.default_unit(category)
        conversion = self.lookup(raw_unit)

        if conversion is None:
            if raw_unit:
                logger.warning(
                    "Unrecognised unit %r for %s, assuming %s",
                    raw_unit, category.value, default_unit,
                )
            return amount, default_unit

        multiplier, canonical_unit = conversion
        units = self.table.category_units.get(category)
        if units is None or canonical_unit not in units.canonical_units:
            logger.warning(
                "Unit %r (%s) does not apply to %s, assuming %s",
                raw_unit, canonical_unit, category.value, default_unit,
            )
            return amount, default_unit

        converted = amount * multiplier
        logger.debug("Normalized %s %s -> %s %s", amount, raw_unit, converted, canonical_unit)
        return converted, canonical_unit

    def denormalize(self, canonical_amount: float, raw_unit: str) -> float:
        """
        Convert a canonical amount back into ``raw_unit``.

        Raises:
            ValueError: If ``raw_unit`` is not a recognised synonym
        """
        conversion = self.lookup(raw_unit)
        if conversion is None:
            raise ValueError(f"Unknown unit: {raw_unit}")
        return canonical_amount / conversion[0]


__all__ = ["UnitNormalizer"]
