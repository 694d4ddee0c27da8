# -*- coding: utf-8 -*-
"""
Achievement Progress

Pure evaluation of badge progress from a user's activity log, plus the
badge catalogue and the engine that turns progress into unlocks.

Criteria types:
- count: number of log entries matching an activity filter
- total: cumulative saved CO2 (``co2_saved``) or quantity of one activity
- streak: consecutive qualifying days ending today or yesterday
- reduction: week-over-week percentage decrease in emitted CO2

Progress is always recomputed from the full history supplied by the
caller; nothing is cached between calls. Persisting BadgeProgress records
is the caller's job.
"""

import logging
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

import yaml
from pydantic import ValidationError

from ecotrack import metrics
from ecotrack.clock import Clock, as_aware
from ecotrack.config import EcoTrackConfig, get_config
from ecotrack.exceptions import ConfigurationError, InvalidCriteriaError
from ecotrack.factors import EmissionFactorTable
from ecotrack.models import (
    ActivityLogEntry,
    BadgeCheckResult,
    BadgeCriteria,
    BadgeDefinition,
    BadgeProgress,
    CountCriteria,
    CriteriaType,
    EarnedBadge,
    Period,
    ReductionCriteria,
    StreakCriteria,
    TotalCriteria,
)
from ecotrack.streaks import StreakCalculator, activity_predicate

logger = logging.getLogger(__name__)

DEFAULT_BADGES_PATH = Path(__file__).parent / "data" / "badges.yaml"

CO2_SAVED = "co2_saved"

# Handler signature: (criteria, entries, now) -> progress value
CriteriaHandler = Callable[[BadgeCriteria, Sequence[ActivityLogEntry], datetime], float]


# =============================================================================
# Progress evaluation
# =============================================================================


class AchievementProgressEvaluator:
    """
    Computes the current progress value of a badge criterion.

    PURITY CONTRACT:
    - All data comes in through ``history``; no repository access
    - No mutation of the supplied entries
    - Same history, criteria and ``now`` always give the same value

    Failures inside a handler are logged and reported as 0 progress so a
    single bad entry never blocks the rest of a badge check.
    """

    def __init__(self, table: EmissionFactorTable, config: Optional[EcoTrackConfig] = None):
        self.table = table
        self.config = config or get_config()
        self.tz = self.config.tzinfo
        self.streaks = StreakCalculator(self.tz)
        self._handlers: Dict[CriteriaType, CriteriaHandler] = {
            CriteriaType.COUNT: self._evaluate_count,
            CriteriaType.TOTAL: self._evaluate_total,
            CriteriaType.STREAK: self._evaluate_streak,
            CriteriaType.REDUCTION: self._evaluate_reduction,
        }
        logger.info(
            "Initialized AchievementProgressEvaluator (timezone=%s, week_start=%s)",
            self.config.timezone, self.config.week_start,
        )

    def evaluate_progress(
        self,
        user_id: Optional[str],
        criteria: BadgeCriteria,
        history: Iterable[ActivityLogEntry],
        now: Optional[datetime] = None,
    ) -> float:
        """
        Current progress value for one criterion.

        Args:
            user_id: Only entries of this user are considered; all when None
            criteria: Badge criterion
            history: Activity log snapshot
            now: Evaluation time; the clock's current time when None

        Returns:
            Progress value, never negative
        """
        now = as_aware(now, self.tz) if now is not None else Clock.now(self.tz)
        entries = [e for e in history if user_id is None or e.user_id == user_id]
        criteria_type = CriteriaType(criteria.type)

        handler = self._handlers.get(criteria_type)
        if handler is None:
            logger.warning("No handler for criteria type %s", criteria_type.value)
            return 0.0

        start = time.perf_counter()
        try:
            value = handler(criteria, entries, now)
            outcome = "success"
        except (ArithmeticError, ValueError, TypeError):
            logger.exception(
                "Failed to evaluate %s progress for user %s", criteria_type.value, user_id,
            )
            value = 0.0
            outcome = "error"

        if self.config.enable_metrics:
            metrics.record_badge_evaluation(
                criteria_type.value, outcome, time.perf_counter() - start,
            )
        return max(0.0, float(value))

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _evaluate_count(
        self, criteria: CountCriteria, entries: Sequence[ActivityLogEntry], now: datetime,
    ) -> float:
        windowed = self._in_period(entries, criteria.period, now)
        if criteria.activity:
            matches = activity_predicate(criteria.activity, self.table.green_transport)
            windowed = [e for e in windowed if matches(e)]
        return float(len(windowed))

    def _evaluate_total(
        self, criteria: TotalCriteria, entries: Sequence[ActivityLogEntry], now: datetime,
    ) -> float:
        windowed = self._in_period(entries, criteria.period, now)
        if criteria.activity == CO2_SAVED:
            return sum(e.saved for e in windowed)
        matches = activity_predicate(criteria.activity, self.table.green_transport)
        return sum(e.quantity for e in windowed if matches(e))

    def _evaluate_streak(
        self, criteria: StreakCriteria, entries: Sequence[ActivityLogEntry], now: datetime,
    ) -> float:
        return float(self.streaks.streak_for(
            entries, now.date(), criteria.activity, self.table.green_transport,
        ))

    def _evaluate_reduction(
        self, criteria: ReductionCriteria, entries: Sequence[ActivityLogEntry], now: datetime,
    ) -> float:
        current_start = self.period_start(Period.WEEK, now)
        previous_start = current_start - timedelta(days=7)

        current = 0.0
        previous = 0.0
        for entry in entries:
            logged_at = as_aware(entry.timestamp, self.tz)
            if current_start <= logged_at <= now:
                current += entry.emitted
            elif previous_start <= logged_at < current_start:
                previous += entry.emitted

        if previous == 0:
            logger.debug("No emissions in the previous week, reduction is 0")
            return 0.0
        return max(0.0, (previous - current) / previous * 100)

    # ------------------------------------------------------------------
    # Period windows
    # ------------------------------------------------------------------

    def period_start(self, period: Period, now: datetime) -> Optional[datetime]:
        """Start of the period containing ``now``; None for all_time."""
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        if period == Period.DAY:
            return midnight
        if period == Period.WEEK:
            if self.config.week_start == "monday":
                offset = now.weekday()
            else:
                offset = (now.weekday() + 1) % 7
            return midnight - timedelta(days=offset)
        if period == Period.MONTH:
            return midnight.replace(day=1)
        if period == Period.YEAR:
            return midnight.replace(month=1, day=1)
        return None

    def _in_period(
        self, entries: Sequence[ActivityLogEntry], period: Period, now: datetime,
    ) -> List[ActivityLogEntry]:
        start = self.period_start(period, now)
        if start is None:
            return list(entries)
        return [e for e in entries if start <= as_aware(e.timestamp, self.tz) <= now]


# =============================================================================
# Badge catalogue
# =============================================================================


class BadgeCatalogue:
    """
    Validated, ordered collection of badge definitions.

    Definitions are validated when the catalogue is built; an invalid
    criterion fails the load with InvalidCriteriaError instead of producing
    a badge that can never be earned.
    """

    def __init__(self, badges: Iterable[BadgeDefinition]):
        self._badges: Dict[str, BadgeDefinition] = {}
        for badge in badges:
            if badge.badge_id in self._badges:
                raise InvalidCriteriaError(
                    f"Duplicate badge id: {badge.badge_id}", badge_id=badge.badge_id,
                )
            self._badges[badge.badge_id] = badge

    @classmethod
    def from_yaml(cls, path: Union[str, Path, None] = None) -> "BadgeCatalogue":
        """Load a catalogue document; the bundled catalogue when ``path`` is None."""
        path = Path(path) if path else DEFAULT_BADGES_PATH
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(
                f"Badge catalogue not found: {path}", context={"path": str(path)},
            ) from e
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Failed to parse badge catalogue: {e}", context={"path": str(path)},
            ) from e

        catalogue = cls.from_dict(data)
        logger.info("Loaded %d badges from %s", len(catalogue), path)
        return catalogue

    @classmethod
    def from_dict(cls, data: Dict) -> "BadgeCatalogue":
        if not isinstance(data, dict) or not isinstance(data.get("badges"), list):
            raise ConfigurationError("Badge catalogue must contain a 'badges' list")

        badges = []
        for raw in data["badges"]:
            badge_id = raw.get("badge_id") if isinstance(raw, dict) else None
            try:
                badges.append(BadgeDefinition.model_validate(raw))
            except ValidationError as e:
                raise InvalidCriteriaError(
                    f"Invalid badge definition: {e.errors()[0]['msg']}",
                    badge_id=badge_id,
                    context={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
                ) from e
        return cls(badges)

    def get(self, badge_id: str) -> Optional[BadgeDefinition]:
        return self._badges.get(badge_id)

    def active(self) -> List[BadgeDefinition]:
        return [b for b in self._badges.values() if b.is_active]

    def __iter__(self) -> Iterator[BadgeDefinition]:
        return iter(self._badges.values())

    def __len__(self) -> int:
        return len(self._badges)


# =============================================================================
# Badge engine
# =============================================================================


class BadgeEngine:
    """
    Recomputes every active badge for a user and reports new unlocks.

    Unlocks are monotonic: a badge stays unlocked even if later history
    (for example a worse week) would no longer satisfy its criterion.
    """

    def __init__(self, catalogue: BadgeCatalogue, evaluator: AchievementProgressEvaluator):
        self.catalogue = catalogue
        self.evaluator = evaluator

    def check_badges(
        self,
        user_id: str,
        history: Iterable[ActivityLogEntry],
        progress: Optional[Dict[str, BadgeProgress]] = None,
        now: Optional[datetime] = None,
    ) -> BadgeCheckResult:
        """
        Recompute progress for every active badge.

        Args:
            user_id: User whose badges are checked
            history: The user's activity log
            progress: Existing progress records keyed by badge id. Updated in
                place; records are created on first evaluation.
            now: Evaluation time; the clock's current time when None

        Returns:
            BadgeCheckResult with all progress records and the badges
            unlocked by this check
        """
        progress = progress if progress is not None else {}
        now = as_aware(now, self.evaluator.tz) if now is not None else Clock.now(self.evaluator.tz)
        entries = [e for e in history if e.user_id == user_id]
        newly_earned: List[EarnedBadge] = []

        for badge in self.catalogue.active():
            criteria = badge.criteria
            current = self.evaluator.evaluate_progress(user_id, criteria, entries, now)

            record = progress.get(badge.badge_id)
            if record is None:
                record = BadgeProgress(badge_id=badge.badge_id, target=criteria.target)
                progress[badge.badge_id] = record
            elif record.target != criteria.target:
                record.target = criteria.target

            if record.update(current, criteria.comparison, now):
                newly_earned.append(EarnedBadge(
                    badge_id=badge.badge_id,
                    name=badge.name,
                    icon=badge.icon,
                    points=badge.points,
                    earned_at=now,
                ))
                logger.info("User %s unlocked badge %s", user_id, badge.badge_id)
                if self.evaluator.config.enable_metrics:
                    metrics.record_badge_unlock(badge.badge_id)

        return BadgeCheckResult(user_id=user_id, progress=progress, newly_earned=newly_earned)

    def total_points(self, progress: Dict[str, BadgeProgress]) -> int:
        """Sum of points over unlocked badges still in the catalogue."""
        total = 0
        for badge_id, record in progress.items():
            badge = self.catalogue.get(badge_id)
            if record.unlocked and badge is not None:
                total += badge.points
        return total

    def user_badges(
        self, progress: Dict[str, BadgeProgress],
    ) -> List[Tuple[BadgeDefinition, BadgeProgress]]:
        """Badges with progress, most recently earned first, locked ones last."""
        rows = [
            (self.catalogue.get(badge_id), record)
            for badge_id, record in progress.items()
            if self.catalogue.get(badge_id) is not None
        ]
        unlocked = sorted(
            (row for row in rows if row[1].unlocked),
            key=lambda row: _earned_sort_key(row[1]),
            reverse=True,
        )
        locked = [row for row in rows if not row[1].unlocked]
        return unlocked + locked


_NEVER = datetime.min.replace(tzinfo=timezone.utc)


def _earned_sort_key(record: BadgeProgress) -> datetime:
    # stored records may carry naive timestamps or none at all
    if record.earned_at is None:
        return _NEVER
    return as_aware(record.earned_at)


__all__ = [
    "AchievementProgressEvaluator",
    "BadgeCatalogue",
    "BadgeEngine",
    "DEFAULT_BADGES_PATH",
    "CO2_SAVED",
]
