# -*- coding: utf-8 -*-
"""
EcoTrack Configuration

Centralized configuration for the EcoTrack core covering:
- Location of the emission factor table and badge catalogue
- Calendar settings for streak and period evaluation (timezone, week start)
- Confidence scoring weights for text extraction
- Output limits for comparisons and suggestion sentences
- Metrics toggle

All settings can be overridden via environment variables with the
``ECOTRACK_`` prefix (e.g. ``ECOTRACK_TIMEZONE=Europe/Berlin``).

Example:
    >>> from ecotrack.config import get_config
    >>> cfg = get_config()
    >>> print(cfg.timezone, cfg.week_start)
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from datetime import timezone, tzinfo
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Environment variable prefix
# ---------------------------------------------------------------------------

_ENV_PREFIX = "ECOTRACK_"

_WEEK_STARTS = ("sunday", "monday")


# ---------------------------------------------------------------------------
# EcoTrackConfig
# ---------------------------------------------------------------------------


@dataclass
class EcoTrackConfig:
    """Complete configuration for the EcoTrack core.

    Attributes:
        factors_path: Optional path to an emission factor YAML document.
            ``None`` uses the table bundled with the package.
        badges_path: Optional path to a badge catalogue YAML document.
        timezone: IANA timezone used to turn timestamps into calendar dates.
        week_start: First day of the week for period windows.
        base_confidence: Confidence given to any rule match.
        span_confidence_bonus: Added when the match covers most of the input.
        numeric_confidence_bonus: Added when the amount parses cleanly.
        span_ratio_threshold: Fraction of the input the match must exceed.
        max_comparisons: Maximum equivalence strings per emission result.
        max_suggestion_sentences: Maximum sentences joined into a suggestion.
        enable_metrics: Whether components record Prometheus metrics.
    """

    # -- Data sources --------------------------------------------------------
    factors_path: Optional[str] = None
    badges_path: Optional[str] = None

    # -- Calendar ------------------------------------------------------------
    timezone: str = "UTC"
    week_start: str = "sunday"

    # -- Extraction confidence -----------------------------------------------
    base_confidence: float = 0.7
    span_confidence_bonus: float = 0.2
    numeric_confidence_bonus: float = 0.1
    span_ratio_threshold: float = 0.5

    # -- Output limits -------------------------------------------------------
    max_comparisons: int = 2
    max_suggestion_sentences: int = 2

    # -- Metrics -------------------------------------------------------------
    enable_metrics: bool = True

    def __post_init__(self) -> None:
        if self.week_start not in _WEEK_STARTS:
            raise ValueError(
                f"week_start must be one of {_WEEK_STARTS}, got {self.week_start!r}"
            )

    @property
    def tzinfo(self) -> tzinfo:
        """Resolve ``timezone`` to a tzinfo, falling back to UTC."""
        if self.timezone.upper() == "UTC":
            return timezone.utc
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r, using UTC", self.timezone)
            return timezone.utc

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> EcoTrackConfig:
        """Build an EcoTrackConfig from environment variables.

        Every field can be overridden via ``ECOTRACK_<FIELD_UPPER>``.
        Boolean values accept ``true/1/yes`` (case-insensitive).
        Invalid numbers are logged and replaced by the default.

        Returns:
            Populated EcoTrackConfig instance.
        """
        prefix = _ENV_PREFIX

        def _env(name: str, default: Any = None) -> Optional[str]:
            return os.environ.get(f"{prefix}{name}", default)

        def _bool(name: str, default: bool) -> bool:
            val = _env(name)
            if val is None:
                return default
            return val.lower() in ("true", "1", "yes")

        def _int(name: str, default: int) -> int:
            val = _env(name)
            if val is None:
                return default
            try:
                return int(val)
            except ValueError:
                logger.warning(
                    "Invalid integer for %s%s=%s, using default %d",
                    prefix, name, val, default,
                )
                return default

        def _float(name: str, default: float) -> float:
            val = _env(name)
            if val is None:
                return default
            try:
                return float(val)
            except ValueError:
                logger.warning(
                    "Invalid float for %s%s=%s, using default %.2f",
                    prefix, name, val, default,
                )
                return default

        def _str(name: str, default: Optional[str]) -> Optional[str]:
            val = _env(name)
            if val is None or val == "":
                return default
            return val

        week_start = (_str("WEEK_START", cls.week_start) or cls.week_start).lower()
        if week_start not in _WEEK_STARTS:
            logger.warning(
                "Invalid week start %s%s=%s, using default %s",
                prefix, "WEEK_START", week_start, cls.week_start,
            )
            week_start = cls.week_start

        config = cls(
            factors_path=_str("FACTORS_PATH", cls.factors_path),
            badges_path=_str("BADGES_PATH", cls.badges_path),
            timezone=_str("TIMEZONE", cls.timezone) or cls.timezone,
            week_start=week_start,
            base_confidence=_float("BASE_CONFIDENCE", cls.base_confidence),
            span_confidence_bonus=_float(
                "SPAN_CONFIDENCE_BONUS", cls.span_confidence_bonus,
            ),
            numeric_confidence_bonus=_float(
                "NUMERIC_CONFIDENCE_BONUS", cls.numeric_confidence_bonus,
            ),
            span_ratio_threshold=_float(
                "SPAN_RATIO_THRESHOLD", cls.span_ratio_threshold,
            ),
            max_comparisons=_int("MAX_COMPARISONS", cls.max_comparisons),
            max_suggestion_sentences=_int(
                "MAX_SUGGESTION_SENTENCES", cls.max_suggestion_sentences,
            ),
            enable_metrics=_bool("ENABLE_METRICS", cls.enable_metrics),
        )

        logger.info(
            "EcoTrackConfig loaded: timezone=%s, week_start=%s, "
            "factors=%s, badges=%s, metrics=%s",
            config.timezone,
            config.week_start,
            config.factors_path or "<bundled>",
            config.badges_path or "<bundled>",
            config.enable_metrics,
        )
        return config


# ---------------------------------------------------------------------------
# Thread-safe singleton accessor
# ---------------------------------------------------------------------------

_config_instance: Optional[EcoTrackConfig] = None
_config_lock = threading.Lock()


def get_config() -> EcoTrackConfig:
    """Return the singleton EcoTrackConfig, creating from env if needed."""
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = EcoTrackConfig.from_env()
    return _config_instance


def set_config(config: EcoTrackConfig) -> None:
    """Replace the singleton EcoTrackConfig (useful for testing).

    Args:
        config: New configuration to install.
    """
    global _config_instance
    with _config_lock:
        _config_instance = config
    logger.info("EcoTrackConfig replaced programmatically")


def reset_config() -> None:
    """Reset the singleton (primarily for test teardown)."""
    global _config_instance
    with _config_lock:
        _config_instance = None


__all__ = [
    "EcoTrackConfig",
    "get_config",
    "set_config",
    "reset_config",
]
