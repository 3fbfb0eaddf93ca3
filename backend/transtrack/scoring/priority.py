"""Weighted multi-factor priority scoring.

``calculate_priority`` is a pure function of a patient snapshot, a weight
configuration and the current instant. Five components are each normalized
to a 0-100 raw score, scaled by their weight, summed, then shifted by the
comorbidity, re-transplant and compliance adjustments and clamped to 0-100.

Two properties of the formula are easy to miss:

* the medical-urgency raw score is the product of the base level and both
  multipliers and is not capped, so it can exceed 100 before weighting;
* the organ-specific fallback uses the *base* urgency level (before the
  functional and prognosis multipliers), not the adjusted urgency score.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Tuple

from ..models.enums import OrganType
from ..models.patient import Patient
from ..models.weights import PriorityWeights
from .policy import (
    blood_type_rarity,
    clamp,
    days_elapsed,
    decayed_score,
    functional_multiplier,
    prognosis_multiplier,
    urgency_base,
)

DEFAULT_WEIGHTS = PriorityWeights(
    weight_name="Default",
    medical_urgency_weight=30,
    time_on_waitlist_weight=25,
    organ_specific_score_weight=25,
    evaluation_recency_weight=10,
    blood_type_rarity_weight=10,
    evaluation_decay_rate=0.5,
    is_active=True,
)

WAITLIST_FULL_SCORE_DAYS = 730
LONG_WAIT_DAYS = 1095
LONG_WAIT_BONUS = 10
EVALUATION_PERIOD_DAYS = 90

COMPONENT_LABELS = {
    "medical_urgency": "Medical",
    "time_on_waitlist": "Time",
    "organ_specific": "Organ",
    "evaluation_recency": "Evaluation",
    "blood_type_rarity": "Blood type",
}

_COMPONENT_WEIGHTS = {
    "medical_urgency": "medical_urgency_weight",
    "time_on_waitlist": "time_on_waitlist_weight",
    "organ_specific": "organ_specific_score_weight",
    "evaluation_recency": "evaluation_recency_weight",
    "blood_type_rarity": "blood_type_rarity_weight",
}


@dataclass
class PriorityResult:
    priority_score: float
    breakdown: Dict[str, Any]


def resolve_weights(active: Mapping[str, Any] | None) -> PriorityWeights:
    """Build the configuration for a run from the active record, if any."""
    if not active:
        return DEFAULT_WEIGHTS
    return PriorityWeights.model_validate(dict(active))


def _medical_urgency(patient: Patient) -> Tuple[float, float, Dict[str, Any]]:
    base = urgency_base(patient.medical_urgency)
    functional = functional_multiplier(patient.functional_status)
    prognosis = prognosis_multiplier(patient.prognosis_rating)
    score = base * functional * prognosis
    return score, base, {
        "base": base,
        "functional_adjustment": functional,
        "prognosis_adjustment": prognosis,
        "final": score,
    }


def _time_on_waitlist(patient: Patient, now: datetime) -> Tuple[float, Dict[str, Any]]:
    if patient.date_added_to_waitlist is None:
        return 0.0, {"days": None, "base_score": 0.0, "long_wait_bonus": 0}
    days = days_elapsed(patient.date_added_to_waitlist, now)
    # A future listing date scores zero rather than negative.
    score = clamp(days / WAITLIST_FULL_SCORE_DAYS * 100)
    long_wait = days > LONG_WAIT_DAYS
    if long_wait:
        score = min(100.0, score + LONG_WAIT_BONUS)
    return score, {
        "days": days,
        "base_score": score,
        "long_wait_bonus": LONG_WAIT_BONUS if long_wait else 0,
    }


def _organ_specific(patient: Patient, urgency_base_score: float) -> Tuple[float, Dict[str, Any]]:
    organ = patient.organ_needed
    # A zero MELD/LAS counts as "not recorded".
    if organ == OrganType.LIVER and patient.meld_score:
        score = (patient.meld_score - 6) / 34 * 100
        return score, {"type": "MELD", "score": patient.meld_score, "normalized": score}
    if organ == OrganType.LUNG and patient.las_score:
        score = patient.las_score
        return score, {"type": "LAS", "score": patient.las_score, "normalized": score}
    if organ == OrganType.KIDNEY:
        score = 50.0
        if patient.pra_percentage:
            score += patient.pra_percentage / 100 * 30
        if patient.cpra_percentage:
            score += patient.cpra_percentage / 100 * 20
        score = min(100.0, score)
        return score, {
            "type": "Kidney (PRA/CPRA)",
            "pra": patient.pra_percentage,
            "cpra": patient.cpra_percentage,
            "normalized": score,
        }
    score = urgency_base_score * 0.6
    return score, {"type": "Default (based on urgency)", "normalized": score}


def _evaluation_recency(patient: Patient, decay_rate: float, now: datetime) -> Tuple[float, Dict[str, Any]]:
    if patient.last_evaluation_date is None:
        return 0.0, {"status": "No evaluation on record", "score": 0.0}
    days = days_elapsed(patient.last_evaluation_date, now)
    score = decayed_score(days, decay_rate, EVALUATION_PERIOD_DAYS)
    return score, {
        "days_since_eval": days,
        "decay_periods": days // EVALUATION_PERIOD_DAYS,
        "decay_rate": decay_rate,
        "score": score,
    }


def _adjustments(patient: Patient) -> Dict[str, float]:
    comorbidity_penalty = 0.0
    if patient.comorbidity_score:
        comorbidity_penalty = patient.comorbidity_score / 10 * 10
    previous_transplant_adjustment = 0.0
    if (patient.previous_transplants or 0) > 0:
        previous_transplant_adjustment = -5.0 * patient.previous_transplants
    compliance_bonus = 0.0
    if patient.compliance_score:
        compliance_bonus = patient.compliance_score / 10 * 5
    return {
        "comorbidity_penalty": -comorbidity_penalty,
        "previous_transplant_adjustment": previous_transplant_adjustment,
        "compliance_bonus": compliance_bonus,
    }


def calculate_priority(
    patient: Patient,
    weights: PriorityWeights = DEFAULT_WEIGHTS,
    now: datetime | None = None,
) -> PriorityResult:
    now = now or datetime.now(timezone.utc)

    urgency_score, urgency_raw, urgency_detail = _medical_urgency(patient)
    time_score, time_detail = _time_on_waitlist(patient, now)
    organ_score, organ_detail = _organ_specific(patient, urgency_raw)
    evaluation_score, evaluation_detail = _evaluation_recency(patient, weights.evaluation_decay_rate, now)
    rarity_score = blood_type_rarity(patient.blood_type)

    raw_scores = {
        "medical_urgency": urgency_score,
        "time_on_waitlist": time_score,
        "organ_specific": organ_score,
        "evaluation_recency": evaluation_score,
        "blood_type_rarity": rarity_score,
    }
    weighted_scores = {
        name: raw_scores[name] / 100 * getattr(weights, field)
        for name, field in _COMPONENT_WEIGHTS.items()
    }
    adjustments = _adjustments(patient)

    total = sum(weighted_scores.values()) + sum(adjustments.values())
    total = clamp(total)

    blood_type = patient.blood_type.value if patient.blood_type else None
    breakdown = {
        "components": {
            "medical_urgency": urgency_detail,
            "time_on_waitlist": time_detail,
            "organ_specific": organ_detail,
            "evaluation_recency": evaluation_detail,
            "blood_type_rarity": {"blood_type": blood_type, "rarity_score": rarity_score},
        },
        "raw_scores": raw_scores,
        "weighted_scores": weighted_scores,
        "adjustments": adjustments,
        "weights_used": weights.model_dump(mode="json", exclude={"created_at"}),
        "total": total,
    }
    return PriorityResult(priority_score=total, breakdown=breakdown)


def top_components(breakdown: Mapping[str, Any], count: int = 3) -> List[Tuple[str, float]]:
    weighted = breakdown.get("weighted_scores", {})
    ordered = sorted(weighted.items(), key=lambda item: item[1], reverse=True)
    return ordered[:count]


def describe_top_components(breakdown: Mapping[str, Any], count: int = 3) -> str:
    return ", ".join(
        f"{COMPONENT_LABELS.get(name, name)}: {value:.1f}" for name, value in top_components(breakdown, count)
    )
