# -*- coding: utf-8 -*-
"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from ecotrack.achievements import AchievementProgressEvaluator, BadgeCatalogue, BadgeEngine
from ecotrack.calculator import EmissionCalculator
from ecotrack.clock import Clock
from ecotrack.config import EcoTrackConfig, reset_config, set_config
from ecotrack.factors import load_default_table
from ecotrack.models import ActivityLogEntry
from ecotrack.parser import TextPatternMatcher
from ecotrack.service import reset_service
from ecotrack.units import UnitNormalizer

# Wednesday; the surrounding Sunday-based week starts 2025-03-09
FROZEN_NOW = datetime(2025, 3, 12, 15, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _isolate_globals():
    """Reset process-wide state between tests."""
    yield
    Clock.unfreeze()
    reset_config()
    reset_service()


@pytest.fixture(scope="session")
def table():
    """The bundled emission factor table."""
    return load_default_table()


@pytest.fixture
def config():
    """Default configuration with metrics disabled."""
    cfg = EcoTrackConfig(enable_metrics=False)
    set_config(cfg)
    return cfg


@pytest.fixture
def now():
    """Freeze the clock at FROZEN_NOW."""
    with Clock.frozen(FROZEN_NOW):
        yield FROZEN_NOW


@pytest.fixture
def normalizer(table):
    return UnitNormalizer(table)


@pytest.fixture
def matcher(config):
    return TextPatternMatcher(config=config)


@pytest.fixture
def calculator(table, config):
    return EmissionCalculator(table, config)


@pytest.fixture
def evaluator(table, config):
    return AchievementProgressEvaluator(table, config)


@pytest.fixture
def catalogue():
    """The bundled badge catalogue."""
    return BadgeCatalogue.from_yaml()


@pytest.fixture
def engine(catalogue, evaluator):
    return BadgeEngine(catalogue, evaluator)


@pytest.fixture
def make_entry(table):
    """Factory for log entries relative to FROZEN_NOW.

    The signed emission defaults to quantity x the table factor.
    """
    def _make(
        activity: str = "driving",
        days_ago: int = 0,
        quantity: float = 1.0,
        signed_emission: Optional[float] = None,
        user_id: str = "user-1",
        hour: int = 12,
    ) -> ActivityLogEntry:
        factor = next(f for f in table.activities() if f.activity == activity)
        if signed_emission is None:
            signed_emission = quantity * factor.factor_per_unit
        timestamp = (FROZEN_NOW - timedelta(days=days_ago)).replace(hour=hour, minute=0)
        return ActivityLogEntry(
            user_id=user_id,
            category=factor.category,
            activity=activity,
            quantity=quantity,
            signed_emission=signed_emission,
            timestamp=timestamp,
        )

    return _make
