"""Lookup tables and time helpers shared by the scoring and matching engines.

Each table covers every member of its enum; an unset value takes the
explicit default branch of the accessor rather than a silent dictionary miss.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Dict

from ..models.enums import BloodType, FunctionalStatus, MedicalUrgency, PrognosisRating

SECONDS_PER_DAY = 86400

URGENCY_BASE: Dict[MedicalUrgency, float] = {
    MedicalUrgency.CRITICAL: 100,
    MedicalUrgency.HIGH: 75,
    MedicalUrgency.MEDIUM: 50,
    MedicalUrgency.LOW: 25,
}
DEFAULT_URGENCY_BASE = 50.0

FUNCTIONAL_MULTIPLIER: Dict[FunctionalStatus, float] = {
    FunctionalStatus.CRITICAL: 1.2,
    FunctionalStatus.FULLY_DEPENDENT: 1.1,
    FunctionalStatus.PARTIALLY_DEPENDENT: 1.0,
    FunctionalStatus.INDEPENDENT: 0.95,
}
DEFAULT_FUNCTIONAL_MULTIPLIER = 1.0

PROGNOSIS_MULTIPLIER: Dict[PrognosisRating, float] = {
    PrognosisRating.CRITICAL: 1.3,
    PrognosisRating.POOR: 1.15,
    PrognosisRating.FAIR: 1.0,
    PrognosisRating.GOOD: 0.95,
    PrognosisRating.EXCELLENT: 0.9,
}
DEFAULT_PROGNOSIS_MULTIPLIER = 1.0

BLOOD_TYPE_RARITY: Dict[BloodType, float] = {
    BloodType.AB_NEG: 100,
    BloodType.B_NEG: 85,
    BloodType.A_NEG: 70,
    BloodType.O_NEG: 60,
    BloodType.AB_POS: 50,
    BloodType.B_POS: 40,
    BloodType.A_POS: 30,
    BloodType.O_POS: 20,
}
DEFAULT_BLOOD_TYPE_RARITY = 40.0


def urgency_base(urgency: MedicalUrgency | None) -> float:
    if urgency is None:
        return DEFAULT_URGENCY_BASE
    return URGENCY_BASE[urgency]


def functional_multiplier(status: FunctionalStatus | None) -> float:
    if status is None:
        return DEFAULT_FUNCTIONAL_MULTIPLIER
    return FUNCTIONAL_MULTIPLIER[status]


def prognosis_multiplier(rating: PrognosisRating | None) -> float:
    if rating is None:
        return DEFAULT_PROGNOSIS_MULTIPLIER
    return PROGNOSIS_MULTIPLIER[rating]


def blood_type_rarity(blood_type: BloodType | None) -> float:
    if blood_type is None:
        return DEFAULT_BLOOD_TYPE_RARITY
    return BLOOD_TYPE_RARITY[blood_type]


def _as_utc(value: datetime) -> datetime:
    # Mongo hands back naive datetimes that are already UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def days_elapsed(since: datetime, now: datetime) -> int:
    """Whole days between two instants, floored (negative for future dates)."""
    delta = _as_utc(now) - _as_utc(since)
    return math.floor(delta.total_seconds() / SECONDS_PER_DAY)


def decayed_score(days: int, decay_rate: float, period_days: int = 90) -> float:
    """100 within the first period, then ``(1 - decay_rate)`` per full elapsed period."""
    if days <= period_days:
        return 100.0
    periods = days // period_days
    return 100.0 * (1 - decay_rate) ** periods


def clamp(value: float, lower: float = 0.0, upper: float = 100.0) -> float:
    return min(upper, max(lower, value))
