"""Coarse single-pass priority formula used for basic recalculation.

Points are hard-coded (urgency 30, waitlist 25, organ 25, evaluation 10,
rarity 10), there are no functional/prognosis multipliers and no breakdown.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Dict

from ..models.enums import BloodType, MedicalUrgency, OrganType
from ..models.patient import Patient
from .policy import clamp, days_elapsed

LEGACY_URGENCY_POINTS: Dict[MedicalUrgency, float] = {
    MedicalUrgency.CRITICAL: 30,
    MedicalUrgency.HIGH: 20,
    MedicalUrgency.MEDIUM: 10,
    MedicalUrgency.LOW: 5,
}
LEGACY_DEFAULT_URGENCY_POINTS = 10.0

LEGACY_RARITY_POINTS: Dict[BloodType, float] = {
    BloodType.AB_NEG: 10,
    BloodType.B_NEG: 8,
    BloodType.A_NEG: 6,
    BloodType.O_NEG: 5,
    BloodType.AB_POS: 4,
    BloodType.B_POS: 3,
    BloodType.A_POS: 2,
    BloodType.O_POS: 1,
}
LEGACY_DEFAULT_RARITY_POINTS = 0.0

# 365 days / 25 points
DAYS_PER_WAITLIST_POINT = 14.6


def _urgency_points(urgency: MedicalUrgency | None) -> float:
    if urgency is None:
        return LEGACY_DEFAULT_URGENCY_POINTS
    return LEGACY_URGENCY_POINTS[urgency]


def _rarity_points(blood_type: BloodType | None) -> float:
    if blood_type is None:
        return LEGACY_DEFAULT_RARITY_POINTS
    return LEGACY_RARITY_POINTS[blood_type]


def _organ_points(patient: Patient) -> float:
    organ = patient.organ_needed
    if organ == OrganType.LIVER and patient.meld_score:
        return min(25.0, (patient.meld_score - 6) / 34 * 25)
    if organ == OrganType.LUNG and patient.las_score:
        return min(25.0, patient.las_score / 100 * 25)
    if organ == OrganType.KIDNEY:
        points = 0.0
        if patient.pra_percentage:
            points += min(15.0, patient.pra_percentage / 100 * 15)
        if patient.cpra_percentage:
            points += min(10.0, patient.cpra_percentage / 100 * 10)
        return points
    return 10.0


def _evaluation_points(patient: Patient, now: datetime) -> float:
    if patient.last_evaluation_date is None:
        return 0.0
    days = days_elapsed(patient.last_evaluation_date, now)
    if days <= 90:
        return 10.0
    if days <= 180:
        return 5.0
    return 0.0


def calculate_legacy_priority(patient: Patient, now: datetime | None = None) -> float:
    now = now or datetime.now(timezone.utc)
    score = _urgency_points(patient.medical_urgency)
    if patient.date_added_to_waitlist is not None:
        days = days_elapsed(patient.date_added_to_waitlist, now)
        score += clamp(math.floor(days / DAYS_PER_WAITLIST_POINT), 0, 25)
    score += _organ_points(patient)
    score += _evaluation_points(patient, now)
    score += _rarity_points(patient.blood_type)
    return clamp(score)
