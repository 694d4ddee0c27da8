# -*- coding: utf-8 -*-
"""
Period summary of logged activities: emission and saving totals, a
per-category breakdown, the top emitting activities and the informal
achievements noticed along the way.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List

from ecotrack.factors import EmissionFactorTable
from ecotrack.models import ActivityLogEntry, PeriodSummary, SummaryAchievement

logger = logging.getLogger(__name__)

GREEN_COMMUTER_MIN_TRIPS = 5
LOW_CARBON_LIMIT_KG = 10.0
TOP_EMITTER_COUNT = 3


def summarize_period(
    entries: Iterable[ActivityLogEntry],
    table: EmissionFactorTable,
) -> PeriodSummary:
    """
    Summarise a list of log entries, typically one week of one user.

    Args:
        entries: Log entries of the period
        table: Factor table (for the green-transport set)

    Returns:
        PeriodSummary
    """
    entries = list(entries)
    total_emissions = 0.0
    total_savings = 0.0
    breakdown: Dict[str, float] = defaultdict(float)
    by_activity: Dict[str, float] = defaultdict(float)

    for entry in entries:
        total_emissions += entry.emitted
        total_savings += entry.saved
        breakdown[entry.category.value] += abs(entry.signed_emission)
        if entry.emitted > 0:
            by_activity[entry.activity] += entry.emitted

    top_emitters = [
        activity for activity, _ in
        sorted(by_activity.items(), key=lambda item: item[1], reverse=True)[:TOP_EMITTER_COUNT]
    ]

    summary = PeriodSummary(
        total_emissions=round(total_emissions, 6),
        total_savings=round(total_savings, 6),
        entry_count=len(entries),
        category_breakdown={k: round(v, 6) for k, v in breakdown.items()},
        top_emitters=top_emitters,
        achievements=_achievements(entries, total_emissions, table),
    )
    logger.debug(
        "Summarised %d entries: %.2f kg emitted, %.2f kg saved",
        summary.entry_count, summary.total_emissions, summary.total_savings,
    )
    return summary


def _achievements(
    entries: List[ActivityLogEntry],
    total_emissions: float,
    table: EmissionFactorTable,
) -> List[SummaryAchievement]:
    achievements = []

    green_trips = sum(1 for e in entries if e.activity in table.green_transport)
    if green_trips >= GREEN_COMMUTER_MIN_TRIPS:
        achievements.append(SummaryAchievement(
            name="Green Commuter",
            description=f"Used eco-friendly transport {GREEN_COMMUTER_MIN_TRIPS}+ times",
            icon="🌱",
        ))

    if total_emissions < LOW_CARBON_LIMIT_KG:
        achievements.append(SummaryAchievement(
            name="Low Carbon Week",
            description="Kept weekly emissions under 10kg CO₂",
            icon="🌍",
        ))

    return achievements


__all__ = ["summarize_period"]
