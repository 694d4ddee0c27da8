# -*- coding: utf-8 -*-
"""
EcoTrack Service

``EcoTrackService`` wires the factor table, unit normalizer, text matcher,
emission calculator and badge engine behind one entry point:

    text -> TextPatternMatcher -> ParsedActivity -> UnitNormalizer
         -> EmissionCalculator -> ActivityAnalysis

and, after an activity has been logged, recomputes the user's badges from
the log repository.

Collaborators are described by protocols so callers can plug in their own
storage (``LogRepository``) and an optional second-opinion parser
(``ParseEnhancer``, e.g. an LLM-backed one).

Usage:
    >>> from ecotrack.service import get_service
    >>> result = get_service().analyze("I drove 10 km to work")
    >>> result.analysis.total_emission
    2.1
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Union, runtime_checkable

import yaml
from pydantic import ValidationError

from ecotrack import metrics
from ecotrack.achievements import AchievementProgressEvaluator, BadgeCatalogue, BadgeEngine
from ecotrack.calculator import EmissionCalculator
from ecotrack.clock import Clock, as_aware
from ecotrack.config import EcoTrackConfig, get_config
from ecotrack.exceptions import ConfigurationError, InvalidAmountError, UnknownActivityError
from ecotrack.factors import EmissionFactorTable, load_default_table
from ecotrack.models import (
    ActivityAnalysis,
    ActivityLogEntry,
    AnalysisResult,
    AnalysisStatus,
    BadgeCheckResult,
    BadgeProgress,
    ParsedActivity,
    ParseSource,
    PeriodSummary,
)
from ecotrack.parser import TextPatternMatcher
from ecotrack.summary import summarize_period
from ecotrack.units import UnitNormalizer

logger = logging.getLogger(__name__)

NO_MATCH_MESSAGE = "I couldn't find an activity with an amount in that message."
UNKNOWN_ACTIVITY_MESSAGE = "Sorry, I couldn't calculate emissions for that activity."
INVALID_AMOUNT_MESSAGE = "Sorry, that amount is too large to calculate emissions for."


# ===================================================================
# Collaborator protocols
# ===================================================================


@runtime_checkable
class LogRepository(Protocol):
    """Source of a user's logged activities."""

    def entries_for(
        self, user_id: str, since: Optional[datetime] = None,
    ) -> Iterable[ActivityLogEntry]:
        """Entries of ``user_id``, optionally only those at or after ``since``."""
        ...


@runtime_checkable
class ParseEnhancer(Protocol):
    """Optional second parser consulted after the rules.

    A non-None result supersedes the rule-based parse.
    """

    def enhance(
        self, text: str, parsed: Optional[ParsedActivity],
    ) -> Optional[ParsedActivity]:
        ...


class InMemoryLogRepository:
    """List-backed LogRepository for scripts, the CLI and tests."""

    def __init__(self, entries: Optional[Iterable[ActivityLogEntry]] = None):
        self._entries: List[ActivityLogEntry] = list(entries or [])
        self._lock = threading.Lock()

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "InMemoryLogRepository":
        """Load entries from a YAML or JSON list of log entry mappings.

        Raises:
            ConfigurationError: If the file is missing or malformed
        """
        path = Path(path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or []
        except FileNotFoundError as e:
            raise ConfigurationError(
                f"Activity log not found: {path}", context={"path": str(path)},
            ) from e
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Failed to parse activity log: {e}", context={"path": str(path)},
            ) from e

        if isinstance(data, dict):
            data = data.get("entries", [])
        try:
            entries = [ActivityLogEntry.model_validate(item) for item in data]
        except (ValidationError, TypeError) as e:
            raise ConfigurationError(
                f"Invalid activity log entry in {path}: {e}", context={"path": str(path)},
            ) from e

        logger.info("Loaded %d log entries from %s", len(entries), path)
        return cls(entries)

    def add(self, entry: ActivityLogEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def entries_for(
        self, user_id: str, since: Optional[datetime] = None,
    ) -> List[ActivityLogEntry]:
        with self._lock:
            entries = list(self._entries)
        return [
            e for e in entries
            if e.user_id == user_id
            and (since is None or as_aware(e.timestamp) >= as_aware(since))
        ]

    def user_ids(self) -> List[str]:
        with self._lock:
            return sorted({e.user_id for e in self._entries})

    def __len__(self) -> int:
        return len(self._entries)


# ===================================================================
# EcoTrackService facade
# ===================================================================

_singleton_lock = threading.Lock()
_singleton_instance: Optional["EcoTrackService"] = None


class EcoTrackService:
    """Unified facade over the EcoTrack core.

    Attributes:
        config: EcoTrackConfig instance.
        table: Shared EmissionFactorTable.
        normalizer: UnitNormalizer instance.
        matcher: TextPatternMatcher instance.
        calculator: EmissionCalculator instance.
        evaluator: AchievementProgressEvaluator instance.
        badges: BadgeEngine instance.
        enhancer: Optional ParseEnhancer.

    Example:
        >>> service = EcoTrackService()
        >>> result = service.analyze("I walked 3 km")
        >>> result.analysis.impact_tier
        <ImpactTier.LOW: 'low'>
    """

    def __init__(
        self,
        config: Optional[EcoTrackConfig] = None,
        table: Optional[EmissionFactorTable] = None,
        catalogue: Optional[BadgeCatalogue] = None,
        enhancer: Optional[ParseEnhancer] = None,
    ) -> None:
        """Initialize the service.

        Args:
            config: Optional config. Uses the global config if None.
            table: Optional factor table. Loaded from ``config.factors_path``
                (or the bundled table) if None.
            catalogue: Optional badge catalogue. Loaded from
                ``config.badges_path`` (or the bundled catalogue) if None.
            enhancer: Optional parser consulted after the rules.
        """
        self.config = config or get_config()
        self.table = table or load_default_table(self.config.factors_path)
        self.normalizer = UnitNormalizer(self.table)
        self.matcher = TextPatternMatcher(config=self.config)
        self.calculator = EmissionCalculator(self.table, self.config)
        self.evaluator = AchievementProgressEvaluator(self.table, self.config)
        self.badges = BadgeEngine(
            catalogue or BadgeCatalogue.from_yaml(self.config.badges_path),
            self.evaluator,
        )
        self.enhancer = enhancer

        logger.info("EcoTrackService facade created")

    # ------------------------------------------------------------------
    # Parse -> calculate
    # ------------------------------------------------------------------

    def parse(self, text: str) -> Optional[ParsedActivity]:
        """Rule-based parse, superseded by the enhancer when it answers."""
        parsed = self.matcher.match(text)
        if self.enhancer is None:
            return parsed

        try:
            enhanced = self.enhancer.enhance(text, parsed)
        except Exception:
            logger.exception("Parse enhancer failed, using rule-based result")
            return parsed

        if enhanced is None:
            return parsed
        if not isinstance(enhanced, ParsedActivity):
            logger.warning(
                "Parse enhancer returned %s instead of ParsedActivity, ignoring it",
                type(enhanced).__name__,
            )
            return parsed

        if self.config.enable_metrics:
            metrics.record_parse("matched", source=ParseSource.ENHANCER.value)
        return enhanced.model_copy(update={"source": ParseSource.ENHANCER})

    def analyze(self, text: str) -> AnalysisResult:
        """Extract an activity from ``text`` and calculate its emission.

        Args:
            text: Free-text message.

        Returns:
            AnalysisResult; ``status`` tells whether ``analysis`` is set.
        """
        parsed = self.parse(text)
        if parsed is None:
            return AnalysisResult(
                status=AnalysisStatus.NO_MATCH,
                message=NO_MATCH_MESSAGE,
                suggestions=self.matcher.suggestions(text),
            )

        amount, unit = self.normalizer.normalize(parsed.amount, parsed.unit, parsed.category)
        try:
            result = self.calculator.calculate(parsed.category, parsed.activity, amount, unit)
        except UnknownActivityError as e:
            logger.warning("Cannot calculate parsed activity: %s", e.message)
            return AnalysisResult(
                status=AnalysisStatus.UNKNOWN_ACTIVITY,
                parsed=parsed,
                message=UNKNOWN_ACTIVITY_MESSAGE,
            )
        except InvalidAmountError as e:
            logger.warning("Cannot calculate parsed activity: %s", e.message)
            return AnalysisResult(
                status=AnalysisStatus.INVALID_AMOUNT,
                parsed=parsed,
                message=INVALID_AMOUNT_MESSAGE,
            )

        analysis = ActivityAnalysis(
            category=result.category,
            activity=result.activity,
            amount=result.amount,
            unit=result.unit,
            original_amount=parsed.amount,
            original_unit=parsed.unit,
            total_emission=result.total_emission,
            absolute_emission=result.absolute_emission,
            is_saving=result.is_saving,
            impact_tier=result.impact_tier,
            comparisons=result.comparisons,
            suggestion_text=result.suggestion_text,
            formatted_text=result.formatted_text,
            confidence=parsed.confidence,
            source=parsed.source,
        )
        return AnalysisResult(
            status=AnalysisStatus.CALCULATED,
            analysis=analysis,
            parsed=parsed,
            message=result.formatted_text,
        )

    @staticmethod
    def to_log_entry(
        user_id: str,
        analysis: ActivityAnalysis,
        timestamp: Optional[datetime] = None,
    ) -> ActivityLogEntry:
        """Build the log entry a caller would persist for an analysis."""
        return ActivityLogEntry(
            user_id=user_id,
            category=analysis.category,
            activity=analysis.activity,
            quantity=analysis.amount,
            signed_emission=analysis.total_emission,
            timestamp=timestamp or Clock.now(),
        )

    # ------------------------------------------------------------------
    # Badges and summaries
    # ------------------------------------------------------------------

    def check_badges(
        self,
        user_id: str,
        repository: LogRepository,
        progress: Optional[Dict[str, BadgeProgress]] = None,
        now: Optional[datetime] = None,
    ) -> BadgeCheckResult:
        """Recompute all badges of ``user_id`` from the repository's log."""
        history = list(repository.entries_for(user_id))
        logger.debug("Checking badges for %s over %d entries", user_id, len(history))
        return self.badges.check_badges(user_id, history, progress, now)

    def summarize(
        self,
        user_id: str,
        repository: LogRepository,
        since: Optional[datetime] = None,
    ) -> PeriodSummary:
        """Summary of the user's entries logged at or after ``since``."""
        return summarize_period(repository.entries_for(user_id, since), self.table)

    def get_metrics(self) -> Dict[str, Any]:
        """Service metrics summary."""
        return {
            "prometheus_available": metrics.PROMETHEUS_AVAILABLE,
            "metrics_enabled": self.config.enable_metrics,
            "factor_count": len(self.table.factors),
            "table_version": self.table.version,
            "badge_count": len(self.badges.catalogue),
            "rule_count": len(self.matcher.rules),
            "enhancer": type(self.enhancer).__name__ if self.enhancer else None,
        }


# ===================================================================
# Thread-safe singleton access
# ===================================================================


def get_service() -> EcoTrackService:
    """Get or create the singleton EcoTrackService instance."""
    global _singleton_instance
    if _singleton_instance is None:
        with _singleton_lock:
            if _singleton_instance is None:
                _singleton_instance = EcoTrackService()
    return _singleton_instance


def reset_service() -> None:
    """Drop the singleton (primarily for test teardown)."""
    global _singleton_instance
    with _singleton_lock:
        _singleton_instance = None


__all__ = [
    "LogRepository",
    "ParseEnhancer",
    "InMemoryLogRepository",
    "EcoTrackService",
    "NO_MATCH_MESSAGE",
    "UNKNOWN_ACTIVITY_MESSAGE",
    "INVALID_AMOUNT_MESSAGE",
    "get_service",
    "reset_service",
]
