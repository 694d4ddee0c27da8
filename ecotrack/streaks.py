# -*- coding: utf-8 -*-
"""
Streak Calculation

Counts consecutive calendar days that satisfy a filter, ending today or
yesterday. Streaks are always recomputed from the full log rather than
incremented, so late or out-of-order entries are handled for free.

Activity filters:
    None             any logged entry qualifies the day
    "no_<activity>"  the day qualifies unless <activity> was logged on it
    "<activity>"     the day qualifies only if <activity> was logged on it
"""

import logging
from datetime import date, datetime, tzinfo
from typing import AbstractSet, Callable, Iterable, Optional, Set, Tuple

from ecotrack.clock import as_aware
from ecotrack.models import ActivityLogEntry

logger = logging.getLogger(__name__)

EntryPredicate = Callable[[ActivityLogEntry], bool]

EXCLUSION_PREFIX = "no_"
GREEN_TRANSPORT = "green_transport"


def activity_predicate(activity: str, green_transport: AbstractSet[str] = frozenset()) -> EntryPredicate:
    """Predicate matching entries of one activity, or any green-transport activity."""
    if activity == GREEN_TRANSPORT:
        return lambda entry: entry.activity in green_transport
    return lambda entry: entry.activity == activity


def streak_filter(
    activity: Optional[str],
    green_transport: AbstractSet[str] = frozenset(),
) -> Tuple[Optional[EntryPredicate], Optional[EntryPredicate]]:
    """
    Translate an activity filter into (exclusion, requirement) predicates.

    Returns:
        Tuple of (exclusion, requirement); either may be None
    """
    if not activity:
        return None, None
    if activity.startswith(EXCLUSION_PREFIX):
        return activity_predicate(activity[len(EXCLUSION_PREFIX):], green_transport), None
    return None, activity_predicate(activity, green_transport)


class StreakCalculator:
    """
    Consecutive-day streak counter.

    Timestamps are converted to calendar dates in ``tz`` before any
    comparison, so a late-evening entry counts for the local day.
    """

    def __init__(self, tz: Optional[tzinfo] = None):
        self.tz = tz

    def local_date(self, timestamp: datetime) -> date:
        return as_aware(timestamp, self.tz).date()

    def qualifying_dates(
        self,
        entries: Iterable[ActivityLogEntry],
        exclusion: Optional[EntryPredicate] = None,
        requirement: Optional[EntryPredicate] = None,
    ) -> Set[date]:
        """
        Distinct calendar dates that qualify for a streak.

        A date qualifies when at least one entry was logged on it (one
        satisfying ``requirement``, if given) and no entry on it satisfies
        ``exclusion``.
        """
        satisfied: Set[date] = set()
        disqualified: Set[date] = set()
        for entry in entries:
            day = self.local_date(entry.timestamp)
            if exclusion is not None and exclusion(entry):
                disqualified.add(day)
            if requirement is None or requirement(entry):
                satisfied.add(day)
        return satisfied - disqualified

    @staticmethod
    def current_streak(dates: Iterable[date], today: date) -> int:
        """
        Length of the run of consecutive dates ending at the latest date.

        Returns 0 unless the latest date is ``today`` or yesterday. Dates
        after ``today`` are ignored.
        """
        ordered = sorted({d for d in dates if d <= today}, reverse=True)
        if not ordered:
            return 0
        if (today - ordered[0]).days > 1:
            return 0

        streak = 1
        for newer, older in zip(ordered, ordered[1:]):
            if (newer - older).days != 1:
                break
            streak += 1
        return streak

    def streak_for(
        self,
        entries: Iterable[ActivityLogEntry],
        today: date,
        activity: Optional[str] = None,
        green_transport: AbstractSet[str] = frozenset(),
    ) -> int:
        """Current streak for an activity filter (see module docstring)."""
        exclusion, requirement = streak_filter(activity, green_transport)
        dates = self.qualifying_dates(entries, exclusion=exclusion, requirement=requirement)
        streak = self.current_streak(dates, today)
        logger.debug(
            "Streak for filter %r: %d (%d qualifying dates, today %s)",
            activity, streak, len(dates), today,
        )
        return streak


__all__ = [
    "EntryPredicate",
    "StreakCalculator",
    "activity_predicate",
    "streak_filter",
]
