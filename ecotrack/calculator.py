# -*- coding: utf-8 -*-
"""
Emission Calculator

Turns a (category, activity, canonical amount) triple into an
EmissionResult:

- Signed emission = amount x factor (negative means CO2 saved)
- Impact tier of the activity
- Up to two everyday equivalences ("10.0 km of car driving")
- A short suggestion built from the best alternative, the tier
  encouragement and an activity tip
- A SHA-256 provenance hash over the inputs and the factor used

The calculator is pure: the same inputs and table always give the same
result and hash.
"""

import hashlib
import json
import logging
import math
from typing import List, Optional, Union

from ecotrack import metrics
from ecotrack.config import EcoTrackConfig, get_config
from ecotrack.exceptions import InvalidAmountError, UnknownActivityError
from ecotrack.factors import EmissionFactorTable
from ecotrack.models import ActivityCategory, EmissionFactor, EmissionResult

logger = logging.getLogger(__name__)


def humanize(activity: str) -> str:
    """'electric_car' -> 'electric car'."""
    return activity.replace("_", " ")


def _format_amount(amount: float) -> str:
    return f"{amount:g}"


class EmissionCalculator:
    """
    Emission calculator backed by an EmissionFactorTable.

    GUARANTEES:
    - absolute_emission == abs(amount x factor)
    - is_saving is True exactly when the signed emission is negative
    - At most ``config.max_comparisons`` comparisons
    - At most ``config.max_suggestion_sentences`` suggestion sentences

    Example:
        >>> calc = EmissionCalculator(load_default_table())
        >>> result = calc.calculate("transportation", "driving", 10)
        >>> result.total_emission
        2.1
    """

    def __init__(self, table: EmissionFactorTable, config: Optional[EcoTrackConfig] = None):
        self.table = table
        self.config = config or get_config()
        logger.info(
            "Initialized EmissionCalculator with %d factors (table version %s)",
            len(table.factors), table.version,
        )

    def calculate(
        self,
        category: Union[ActivityCategory, str],
        activity: str,
        amount: float,
        unit: Optional[str] = None,
    ) -> EmissionResult:
        """
        Calculate the emission of one activity.

        Args:
            category: Activity category
            activity: Activity key
            amount: Amount in the factor's canonical unit
            unit: Canonical unit of ``amount``; the factor's unit when None

        Returns:
            EmissionResult

        Raises:
            UnknownActivityError: If the table has no factor for the pair
            InvalidAmountError: If ``amount`` is negative or not finite, or the
                emission overflows
        """
        if amount is None or not math.isfinite(amount) or amount < 0:
            raise InvalidAmountError(amount)

        try:
            factor = self.table.get_factor(category, activity)
        except UnknownActivityError:
            if self.config.enable_metrics:
                metrics.record_calculation(str(getattr(category, "value", category)),
                                           "unknown_activity")
            raise

        if unit is not None and unit != factor.canonical_unit:
            logger.warning(
                "Amount for %s given in %s, factor expects %s",
                activity, unit, factor.canonical_unit,
            )

        total = _round(amount * factor.factor_per_unit)
        if not math.isfinite(total):
            raise InvalidAmountError(amount)
        absolute = abs(total)
        is_saving = total < 0
        tier = self.table.impact_tier(activity)

        result = EmissionResult(
            category=factor.category,
            activity=activity,
            amount=amount,
            unit=factor.canonical_unit,
            emission_factor=factor.factor_per_unit,
            total_emission=total,
            absolute_emission=absolute,
            is_saving=is_saving,
            impact_tier=tier,
            comparisons=self.comparisons(absolute),
            suggestion_text=self.suggestion(factor, amount, total),
            formatted_text=self.format_emission_text(
                activity, amount, factor.canonical_unit, absolute, is_saving,
            ),
            provenance_hash=self._provenance_hash(factor, amount),
        )

        logger.debug(
            "Calculated %s/%s: %s %s x %s = %s kg CO2e",
            factor.category.value, activity, amount, factor.canonical_unit,
            factor.factor_per_unit, total,
        )
        if self.config.enable_metrics:
            metrics.record_calculation(factor.category.value, "success", absolute)
        return result

    # ------------------------------------------------------------------
    # Presentation helpers
    # ------------------------------------------------------------------

    def comparisons(self, absolute_emission: float) -> List[str]:
        """Everyday equivalences for an emission size, most tangible first."""
        constants = self.table.comparisons
        found: List[str] = []

        car = self.table.find_factor(ActivityCategory.TRANSPORTATION, constants.car_activity)
        if car is not None and car.factor_per_unit > 0:
            car_km = absolute_emission / car.factor_per_unit
            if car_km >= 1:
                found.append(f"{car_km:.1f} km of car driving")

        if constants.tree_kg_per_year > 0:
            tree_days = absolute_emission / (constants.tree_kg_per_year / 365)
            if tree_days >= 1:
                found.append(f"{tree_days:.0f} days of tree CO2 absorption")

        if constants.phone_charge_kg > 0:
            charges = absolute_emission / constants.phone_charge_kg
            if constants.phone_charge_min <= charges <= constants.phone_charge_max:
                found.append(f"{charges:.0f} smartphone charges")

        return found[:self.config.max_comparisons]

    def suggestion(self, factor: EmissionFactor, amount: float, total_emission: float) -> str:
        """
        Combined suggestion text.

        Sentences, in order: the saving from the first listed alternative
        (only when it emits less), the impact-tier encouragement, and the
        activity tip. Only the first ``max_suggestion_sentences`` are kept.
        """
        sentences: List[str] = []

        options = self.table.alternatives_for(factor.activity)
        if options:
            best = options[0]
            alternative = self.table.find_factor(factor.category, best)
            if alternative is not None:
                alternative_total = amount * alternative.factor_per_unit
                if alternative_total < total_emission:
                    savings = total_emission - alternative_total
                    sentences.append(
                        f"💡 Try {humanize(best)} instead! You could save {savings:.1f} kg CO₂"
                    )
            else:
                logger.debug("Alternative %s for %s has no factor", best, factor.activity)

        tier_message = self.table.tier_messages.get(self.table.impact_tier(factor.activity))
        if tier_message:
            sentences.append(tier_message)

        tip = self.table.tip_for(factor.activity, amount)
        if tip:
            sentences.append(tip)

        return " ".join(sentences[:self.config.max_suggestion_sentences])

    def format_emission_text(
        self,
        activity: str,
        amount: float,
        unit: str,
        absolute_emission: float,
        is_saving: bool,
    ) -> str:
        """One-line display text, e.g. '🚗 Driving 10km = 2.1 kg CO₂ emitted 💨'."""
        label = humanize(activity)
        label = label[:1].upper() + label[1:]
        verb, marker = ("saved", "🌱") if is_saving else ("emitted", "💨")
        return (
            f"{self.table.icon_for(activity)} {label} {_format_amount(amount)}{unit} = "
            f"{absolute_emission:.1f} kg CO₂ {verb} {marker}"
        )

    # ------------------------------------------------------------------
    # Provenance
    # ------------------------------------------------------------------

    def _provenance_hash(self, factor: EmissionFactor, amount: float) -> str:
        provenance_data = {
            "category": factor.category.value,
            "activity": factor.activity,
            "amount": repr(float(amount)),
            "unit": factor.canonical_unit,
            "factor_per_unit": repr(factor.factor_per_unit),
            "table_version": self.table.version,
        }
        provenance_str = json.dumps(provenance_data, sort_keys=True)
        return hashlib.sha256(provenance_str.encode()).hexdigest()

    def verify_provenance(self, result: EmissionResult) -> bool:
        """
        Recompute a result's provenance hash against this calculator's table.

        Returns:
            True if the hash matches, False if the result or table changed
        """
        factor = self.table.find_factor(result.category, result.activity)
        if factor is None:
            return False
        return result.provenance_hash == self._provenance_hash(factor, result.amount)


def _round(value: float) -> float:
    # Strip float noise such as 2.1000000000000001 without losing precision
    return round(value, 9)


__all__ = ["EmissionCalculator", "humanize"]
