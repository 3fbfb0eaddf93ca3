from __future__ import annotations

from enum import Enum


class BloodType(str, Enum):
    O_NEG = "O-"
    O_POS = "O+"
    A_NEG = "A-"
    A_POS = "A+"
    B_NEG = "B-"
    B_POS = "B+"
    AB_NEG = "AB-"
    AB_POS = "AB+"


class OrganType(str, Enum):
    KIDNEY = "kidney"
    LIVER = "liver"
    HEART = "heart"
    LUNG = "lung"
    PANCREAS = "pancreas"
    KIDNEY_PANCREAS = "kidney_pancreas"
    INTESTINE = "intestine"


class WaitlistStatus(str, Enum):
    ACTIVE = "active"
    TEMPORARILY_INACTIVE = "temporarily_inactive"
    TRANSPLANTED = "transplanted"
    REMOVED = "removed"
    DECEASED = "deceased"


class MedicalUrgency(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class FunctionalStatus(str, Enum):
    INDEPENDENT = "independent"
    PARTIALLY_DEPENDENT = "partially_dependent"
    FULLY_DEPENDENT = "fully_dependent"
    CRITICAL = "critical"


class PrognosisRating(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    CRITICAL = "critical"


class PriorityLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"
