"""EcoTrack Exception Hierarchy.

Exceptions raised by the EcoTrack core carry a stable error code and a
context dictionary so that the collaborator layer can turn them into
user-facing messages without parsing strings.

Exception Hierarchy:
    EcoTrackException (base)
    ├── ConfigurationError
    │   ├── FactorTableError
    │   └── InvalidCriteriaError
    └── CalculationError
        ├── UnknownActivityError
        └── InvalidAmountError

Only ``UnknownActivityError`` is expected to reach a caller at runtime.
Configuration errors are raised while loading the factor table or the
badge catalogue and should stop startup.

Example:
    >>> from ecotrack.exceptions import UnknownActivityError
    >>> raise UnknownActivityError("transportation", "teleporting")
"""

import json
import re
from datetime import datetime
from typing import Any, Dict, Optional


# ==============================================================================
# Base Exception
# ==============================================================================

class EcoTrackException(Exception):
    """Base exception for all EcoTrack errors.

    Attributes:
        message: Human-readable error message
        error_code: Unique error identifier (e.g., "ECO_UNKNOWN_ACTIVITY_ERROR")
        context: Dictionary with error-specific details
        timestamp: When the error occurred
    """

    ERROR_PREFIX = "ECO"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Initialize exception with context.

        Args:
            message: Human-readable error message
            error_code: Unique error identifier (auto-generated if not provided)
            context: Dictionary with error-specific details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self._generate_error_code()
        self.context = context or {}
        self.timestamp = datetime.now()

    def _generate_error_code(self) -> str:
        """Generate error code from the class name.

        Returns:
            Error code like "ECO_INVALID_CRITERIA_ERROR"
        """
        error_type = re.sub(r'(?<!^)(?=[A-Z])', '_', self.__class__.__name__).upper()
        return f"{self.ERROR_PREFIX}_{error_type}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_json(self) -> str:
        """Convert exception to JSON string."""
        return json.dumps(self.to_dict(), indent=2, default=str)

    def __str__(self) -> str:
        return f"[{self.error_code}] - {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}')"
        )


# ==============================================================================
# Configuration Exceptions
# ==============================================================================

class ConfigurationError(EcoTrackException):
    """Static configuration (factor table, badge catalogue) is invalid."""


class FactorTableError(ConfigurationError):
    """The emission factor table could not be loaded.

    Example:
        >>> raise FactorTableError(
        ...     "Emission factor table not found",
        ...     path="/etc/ecotrack/factors.yaml",
        ... )
    """

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        context = context or {}
        if path:
            context["path"] = path
        super().__init__(message, context=context)


class InvalidCriteriaError(ConfigurationError):
    """A badge definition carries criteria that can never be evaluated.

    Raised at catalogue load time, never during progress evaluation.
    """

    def __init__(
        self,
        message: str,
        badge_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        context = context or {}
        if badge_id:
            context["badge_id"] = badge_id
        super().__init__(message, context=context)


# ==============================================================================
# Calculation Exceptions
# ==============================================================================

class CalculationError(EcoTrackException):
    """Base exception for emission calculation errors."""


class UnknownActivityError(CalculationError):
    """No emission factor exists for a (category, activity) pair.

    The caller is expected to show a "could not calculate emissions"
    message instead of failing.
    """

    def __init__(
        self,
        category: str,
        activity: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        context = context or {}
        context.update({"category": category, "activity": activity})
        self.category = category
        self.activity = activity
        super().__init__(f"Unknown activity: {category}/{activity}", context=context)


class InvalidAmountError(CalculationError, ValueError):
    """Activity amount is negative, infinite or not a number."""

    def __init__(self, amount: Any, context: Optional[Dict[str, Any]] = None):
        context = context or {}
        context["amount"] = amount
        self.amount = amount
        super().__init__(
            f"Activity amount must be a finite, non-negative number: {amount}",
            context=context,
        )


__all__ = [
    "EcoTrackException",
    "ConfigurationError",
    "FactorTableError",
    "InvalidCriteriaError",
    "CalculationError",
    "UnknownActivityError",
    "InvalidAmountError",
]
