# -*- coding: utf-8 -*-
"""
Prometheus Metrics - EcoTrack core

Prometheus metrics for the extraction, calculation and achievement
components, with graceful fallback when prometheus_client is not
installed.

Metrics:
    1. ecotrack_parses_total (Counter)
    2. ecotrack_calculations_total (Counter)
    3. ecotrack_emission_kg (Histogram)
    4. ecotrack_badge_evaluations_total (Counter)
    5. ecotrack_badge_evaluation_duration_seconds (Histogram)
    6. ecotrack_badge_unlocks_total (Counter)
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Graceful prometheus_client import
# ---------------------------------------------------------------------------

try:
    from prometheus_client import Counter, Histogram
    PROMETHEUS_AVAILABLE = True
except ImportError:
    PROMETHEUS_AVAILABLE = False
    logger.info("prometheus_client not installed; ecotrack metrics disabled")


# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

if PROMETHEUS_AVAILABLE:
    # 1. Parse outcomes
    parses_total = Counter(
        "ecotrack_parses_total",
        "Free-text messages run through the pattern matcher",
        labelnames=["result", "source"],
    )

    # 2. Calculations
    calculations_total = Counter(
        "ecotrack_calculations_total",
        "Emission calculations performed",
        labelnames=["category", "result"],
    )

    # 3. Emission sizes
    emission_kg = Histogram(
        "ecotrack_emission_kg",
        "Absolute emission per calculation in kg CO2e",
        labelnames=["category"],
        buckets=(0.1, 0.5, 1, 2, 5, 10, 25, 50, 100, 500),
    )

    # 4. Badge evaluations
    badge_evaluations_total = Counter(
        "ecotrack_badge_evaluations_total",
        "Badge progress evaluations by criteria type",
        labelnames=["criteria_type", "result"],
    )

    # 5. Badge evaluation duration
    badge_evaluation_duration_seconds = Histogram(
        "ecotrack_badge_evaluation_duration_seconds",
        "Time spent evaluating one badge's progress",
        labelnames=["criteria_type"],
        buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5),
    )

    # 6. Unlocks
    badge_unlocks_total = Counter(
        "ecotrack_badge_unlocks_total",
        "Badges unlocked",
        labelnames=["badge_id"],
    )

else:
    parses_total = None  # type: ignore[assignment]
    calculations_total = None  # type: ignore[assignment]
    emission_kg = None  # type: ignore[assignment]
    badge_evaluations_total = None  # type: ignore[assignment]
    badge_evaluation_duration_seconds = None  # type: ignore[assignment]
    badge_unlocks_total = None  # type: ignore[assignment]


# ---------------------------------------------------------------------------
# Helper functions (safe to call even without prometheus_client)
# ---------------------------------------------------------------------------


def record_parse(result: str, source: str = "rules") -> None:
    """Record a parse outcome.

    Args:
        result: "matched" or "unmatched".
        source: "rules" or "enhancer".
    """
    if not PROMETHEUS_AVAILABLE:
        return
    parses_total.labels(result=result, source=source).inc()


def record_calculation(category: str, result: str, absolute_emission: float = 0.0) -> None:
    """Record an emission calculation.

    Args:
        category: Activity category.
        result: "success" or "unknown_activity".
        absolute_emission: Size of the emission for successful calculations.
    """
    if not PROMETHEUS_AVAILABLE:
        return
    calculations_total.labels(category=category, result=result).inc()
    if result == "success":
        emission_kg.labels(category=category).observe(absolute_emission)


def record_badge_evaluation(criteria_type: str, result: str, duration_seconds: float) -> None:
    """Record one badge progress evaluation.

    Args:
        criteria_type: count, total, streak or reduction.
        result: "success" or "error".
        duration_seconds: Evaluation duration in seconds.
    """
    if not PROMETHEUS_AVAILABLE:
        return
    badge_evaluations_total.labels(criteria_type=criteria_type, result=result).inc()
    badge_evaluation_duration_seconds.labels(criteria_type=criteria_type).observe(
        duration_seconds,
    )


def record_badge_unlock(badge_id: str) -> None:
    """Record a badge unlock."""
    if not PROMETHEUS_AVAILABLE:
        return
    badge_unlocks_total.labels(badge_id=badge_id).inc()


__all__ = [
    "PROMETHEUS_AVAILABLE",
    "parses_total",
    "calculations_total",
    "emission_kg",
    "badge_evaluations_total",
    "badge_evaluation_duration_seconds",
    "badge_unlocks_total",
    "record_parse",
    "record_calculation",
    "record_badge_evaluation",
    "record_badge_unlock",
]
