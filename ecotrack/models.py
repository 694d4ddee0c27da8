# -*- coding: utf-8 -*-
"""
EcoTrack Data Models

Pydantic v2 data models shared by the extraction, calculation and
achievement components.

Models:
    - Enums: ActivityCategory, ImpactTier, CriteriaType, Period,
             Comparison, BadgeCategory, BadgeRarity, ParseSource,
             AnalysisStatus
    - Factors: EmissionFactor
    - Extraction: ParsedActivity
    - Calculation: EmissionResult, ActivityAnalysis, AnalysisResult
    - Log: ActivityLogEntry
    - Badges: CountCriteria, TotalCriteria, StreakCriteria,
              ReductionCriteria, BadgeCriteria, BadgeDefinition,
              BadgeProgress, EarnedBadge, BadgeCheckResult
    - Summary: SummaryAchievement, PeriodSummary
"""

from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# Enumerations
# =============================================================================


class ActivityCategory(str, Enum):
    """Top-level activity categories with their own canonical units."""
    TRANSPORTATION = "transportation"
    ENERGY = "energy"
    FOOD = "food"
    WASTE = "waste"


class ImpactTier(str, Enum):
    """Coarse per-unit severity of an activity."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


class CriteriaType(str, Enum):
    """Progress algorithms a badge can use."""
    COUNT = "count"
    TOTAL = "total"
    STREAK = "streak"
    REDUCTION = "reduction"


class Period(str, Enum):
    """Time windows a badge criterion can be restricted to."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    ALL_TIME = "all_time"


class Comparison(str, Enum):
    """How current progress is compared with the target."""
    GTE = "gte"
    LTE = "lte"
    EQ = "eq"


class BadgeCategory(str, Enum):
    """Display grouping for badges."""
    TRANSPORT = "transport"
    ENERGY = "energy"
    FOOD = "food"
    WASTE = "waste"
    OVERALL = "overall"
    STREAK = "streak"
    SOCIAL = "social"


class BadgeRarity(str, Enum):
    """Badge rarity levels."""
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class ParseSource(str, Enum):
    """Where a ParsedActivity came from."""
    RULES = "rules"
    ENHANCER = "enhancer"


class AnalysisStatus(str, Enum):
    """Outcome of analysing one free-text message."""
    CALCULATED = "calculated"
    NO_MATCH = "no_match"
    UNKNOWN_ACTIVITY = "unknown_activity"
    INVALID_AMOUNT = "invalid_amount"


# =============================================================================
# Factors and extraction
# =============================================================================


class EmissionFactor(BaseModel):
    """Signed emission coefficient for one (category, activity) pair.

    A negative ``factor_per_unit`` marks a net reduction (recycling,
    composting).
    """
    category: ActivityCategory = Field(..., description="Activity category")
    activity: str = Field(..., min_length=1, description="Activity key")
    factor_per_unit: float = Field(
        ..., description="kg CO2e per canonical unit (signed)",
    )
    canonical_unit: str = Field(..., description="Unit the factor applies to")

    model_config = {"extra": "forbid", "frozen": True}


class ParsedActivity(BaseModel):
    """Activity extracted from free text, in the unit it was written in."""
    category: ActivityCategory = Field(..., description="Activity category")
    activity: str = Field(..., description="Activity key")
    amount: float = Field(..., ge=0, description="Amount as captured")
    unit: Optional[str] = Field(None, description="Raw unit string, if any")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Match confidence")
    matched_span: str = Field(default="", description="Matched substring")
    rule_name: Optional[str] = Field(None, description="Extraction rule that matched")
    source: ParseSource = Field(default=ParseSource.RULES, description="Producer")

    model_config = {"extra": "forbid"}


# =============================================================================
# Calculation
# =============================================================================


class EmissionResult(BaseModel):
    """Emission of one activity with comparisons and a suggestion."""
    category: ActivityCategory = Field(..., description="Activity category")
    activity: str = Field(..., description="Activity key")
    amount: float = Field(..., ge=0, description="Canonical amount")
    unit: str = Field(..., description="Canonical unit")
    emission_factor: float = Field(..., description="Factor used (signed)")
    total_emission: float = Field(..., description="Signed kg CO2e")
    absolute_emission: float = Field(..., ge=0, description="abs(total_emission)")
    is_saving: bool = Field(..., description="True when total_emission < 0")
    impact_tier: ImpactTier = Field(..., description="Activity impact tier")
    comparisons: List[str] = Field(
        default_factory=list, description="Equivalence strings, at most two",
    )
    suggestion_text: str = Field(default="", description="Combined suggestion")
    formatted_text: str = Field(default="", description="One-line display text")
    provenance_hash: str = Field(default="", description="SHA-256 of inputs")

    model_config = {"extra": "forbid"}


class ActivityAnalysis(BaseModel):
    """Structured output of the parse -> normalize -> calculate pipeline."""
    category: ActivityCategory
    activity: str
    amount: float = Field(..., description="Canonical amount")
    unit: str = Field(..., description="Canonical unit")
    original_amount: float = Field(..., description="Amount as written")
    original_unit: Optional[str] = Field(None, description="Unit as written")
    total_emission: float
    absolute_emission: float
    is_saving: bool
    impact_tier: ImpactTier
    comparisons: List[str] = Field(default_factory=list)
    suggestion_text: str = ""
    formatted_text: str = ""
    confidence: float = Field(..., ge=0.0, le=1.0)
    source: ParseSource = ParseSource.RULES

    model_config = {"extra": "forbid"}


class AnalysisResult(BaseModel):
    """Outcome of analysing a message, successful or not."""
    status: AnalysisStatus
    analysis: Optional[ActivityAnalysis] = None
    parsed: Optional[ParsedActivity] = None
    message: str = ""
    suggestions: List[str] = Field(default_factory=list)

    model_config = {"extra": "forbid"}


# =============================================================================
# Activity log
# =============================================================================


class ActivityLogEntry(BaseModel):
    """One logged activity, owned by the log repository."""
    user_id: str = Field(..., description="Owner of the entry")
    category: ActivityCategory = Field(..., description="Activity category")
    activity: str = Field(..., description="Activity key")
    quantity: float = Field(..., ge=0, description="Canonical amount logged")
    signed_emission: float = Field(..., description="Signed kg CO2e")
    timestamp: datetime = Field(..., description="When the activity was logged")

    model_config = {"extra": "forbid"}

    @property
    def emitted(self) -> float:
        """Positive portion of the signed emission."""
        return max(self.signed_emission, 0.0)

    @property
    def saved(self) -> float:
        """Saved portion of the signed emission, as a positive number."""
        return max(-self.signed_emission, 0.0)


# =============================================================================
# Badge criteria (tagged union)
# =============================================================================


class _CriteriaBase(BaseModel):
    target: float = Field(..., gt=0, description="Value that unlocks the badge")
    period: Period = Field(default=Period.ALL_TIME, description="Time window")
    activity: Optional[str] = Field(None, description="Activity filter")
    comparison: Comparison = Field(default=Comparison.GTE)

    model_config = {"extra": "forbid", "frozen": True}


class CountCriteria(_CriteriaBase):
    """Number of log entries matching an activity filter."""
    type: Literal["count"] = "count"


class TotalCriteria(_CriteriaBase):
    """Sum of saved emission (``co2_saved``) or quantity of one activity."""
    type: Literal["total"] = "total"
    activity: str = Field(..., min_length=1, description="Activity or co2_saved")


class StreakCriteria(_CriteriaBase):
    """Consecutive qualifying days ending today or yesterday."""
    type: Literal["streak"] = "streak"
    period: Period = Field(default=Period.DAY)


class ReductionCriteria(_CriteriaBase):
    """Percentage decrease versus the preceding period."""
    type: Literal["reduction"] = "reduction"
    period: Period = Field(default=Period.WEEK)

    @field_validator("period")
    @classmethod
    def validate_period(cls, v: Period) -> Period:
        """Only week-over-week reduction is supported."""
        if v != Period.WEEK:
            raise ValueError("reduction criteria support only the 'week' period")
        return v


BadgeCriteria = Annotated[
    Union[CountCriteria, TotalCriteria, StreakCriteria, ReductionCriteria],
    Field(discriminator="type"),
]


# =============================================================================
# Badges
# =============================================================================


class BadgeDefinition(BaseModel):
    """A badge in the catalogue."""
    badge_id: str = Field(..., description="Stable badge identifier")
    name: str = Field(..., description="Display name")
    description: str = Field(..., description="What the badge rewards")
    icon: str = Field(default="🏅")
    category: BadgeCategory = Field(default=BadgeCategory.OVERALL)
    criteria: BadgeCriteria
    points: int = Field(default=10, ge=0)
    rarity: BadgeRarity = Field(default=BadgeRarity.COMMON)
    is_active: bool = Field(default=True)

    model_config = {"extra": "forbid"}

    @field_validator("badge_id")
    @classmethod
    def validate_badge_id(cls, v: str) -> str:
        """Validate badge ID format."""
        if not v or not v.replace("_", "").replace("-", "").isalnum():
            raise ValueError(
                "badge_id must be alphanumeric with underscores or hyphens"
            )
        return v


class BadgeProgress(BaseModel):
    """A user's progress toward one badge."""
    badge_id: str
    current: float = Field(default=0.0, ge=0)
    target: float = Field(..., gt=0)
    percentage: float = Field(default=0.0, ge=0, le=100)
    unlocked: bool = False
    earned_at: Optional[datetime] = None

    model_config = {"extra": "forbid", "validate_assignment": True}

    def update(
        self,
        current: float,
        comparison: Comparison,
        now: datetime,
    ) -> bool:
        """Apply a recomputed progress value.

        ``unlocked`` never reverts to False once set.

        Returns:
            True when this update unlocked the badge.
        """
        current = max(current, 0.0)
        self.current = current
        self.percentage = _percentage(current, self.target, comparison)
        if self.unlocked:
            return False
        if _criteria_met(current, self.target, comparison):
            self.unlocked = True
            self.earned_at = now
            return True
        return False


def _percentage(current: float, target: float, comparison: Comparison) -> float:
    if comparison == Comparison.LTE:
        if current <= target:
            return 100.0
        return max(0.0, min(target / current * 100, 100.0))
    return max(0.0, min(current / target * 100, 100.0))


def _criteria_met(current: float, target: float, comparison: Comparison) -> bool:
    if comparison == Comparison.LTE:
        return current <= target
    if comparison == Comparison.EQ:
        return math.isclose(current, target, rel_tol=1e-9, abs_tol=1e-9)
    return current >= target


class EarnedBadge(BaseModel):
    """A badge unlocked during a badge check."""
    badge_id: str
    name: str
    icon: str
    points: int
    earned_at: datetime


class BadgeCheckResult(BaseModel):
    """Result of recomputing every badge for one user."""
    user_id: str
    progress: Dict[str, BadgeProgress] = Field(default_factory=dict)
    newly_earned: List[EarnedBadge] = Field(default_factory=list)


# =============================================================================
# Period summary
# =============================================================================


class SummaryAchievement(BaseModel):
    """Informal achievement noticed while summarising a period."""
    name: str
    description: str
    icon: str


class PeriodSummary(BaseModel):
    """Aggregate of a list of log entries."""
    total_emissions: float = 0.0
    total_savings: float = 0.0
    entry_count: int = 0
    category_breakdown: Dict[str, float] = Field(default_factory=dict)
    top_emitters: List[str] = Field(default_factory=list)
    achievements: List[SummaryAchievement] = Field(default_factory=list)


__all__ = [
    # Enumerations
    "ActivityCategory",
    "ImpactTier",
    "CriteriaType",
    "Period",
    "Comparison",
    "BadgeCategory",
    "BadgeRarity",
    "ParseSource",
    "AnalysisStatus",
    # Factors and extraction
    "EmissionFactor",
    "ParsedActivity",
    # Calculation
    "EmissionResult",
    "ActivityAnalysis",
    "AnalysisResult",
    # Log
    "ActivityLogEntry",
    # Criteria
    "CountCriteria",
    "TotalCriteria",
    "StreakCriteria",
    "ReductionCriteria",
    "BadgeCriteria",
    # Badges
    "BadgeDefinition",
    "BadgeProgress",
    "EarnedBadge",
    "BadgeCheckResult",
    # Summary
    "SummaryAchievement",
    "PeriodSummary",
]
