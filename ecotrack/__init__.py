# -*- coding: utf-8 -*-
"""
EcoTrack - carbon footprint tracking core

Turns free-text activity messages into emission records and tracks badge
progress from the resulting activity log.

Quick start:
    >>> from ecotrack import EcoTrackService
    >>> service = EcoTrackService()
    >>> service.analyze("I took the bus for 8 km").analysis.total_emission
    0.712
"""

__version__ = "1.0.0"

from ecotrack.achievements import AchievementProgressEvaluator, BadgeCatalogue, BadgeEngine
from ecotrack.calculator import EmissionCalculator
from ecotrack.clock import Clock
from ecotrack.config import EcoTrackConfig, get_config, reset_config, set_config
from ecotrack.exceptions import (
    CalculationError,
    ConfigurationError,
    EcoTrackException,
    FactorTableError,
    InvalidAmountError,
    InvalidCriteriaError,
    UnknownActivityError,
)
from ecotrack.factors import EmissionFactorTable, load_default_table
from ecotrack.parser import TextPatternMatcher
from ecotrack.service import (
    EcoTrackService,
    InMemoryLogRepository,
    LogRepository,
    ParseEnhancer,
    get_service,
)
from ecotrack.streaks import StreakCalculator
from ecotrack.summary import summarize_period
from ecotrack.units import UnitNormalizer

__all__ = [
    "__version__",
    # Components
    "EmissionFactorTable",
    "load_default_table",
    "UnitNormalizer",
    "TextPatternMatcher",
    "EmissionCalculator",
    "AchievementProgressEvaluator",
    "StreakCalculator",
    "BadgeCatalogue",
    "BadgeEngine",
    "summarize_period",
    # Service
    "EcoTrackService",
    "InMemoryLogRepository",
    "LogRepository",
    "ParseEnhancer",
    "get_service",
    # Config and clock
    "EcoTrackConfig",
    "get_config",
    "set_config",
    "reset_config",
    "Clock",
    # Exceptions
    "EcoTrackException",
    "ConfigurationError",
    "FactorTableError",
    "InvalidCriteriaError",
    "CalculationError",
    "UnknownActivityError",
    "InvalidAmountError",
]
