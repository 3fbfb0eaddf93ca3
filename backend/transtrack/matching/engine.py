"""Donor-to-candidate filtering and ranking.

Both rankers take an already-fetched candidate list, so the priority scores
used for a batch are the ones read at the start of the run. The blood-type
check is a hard filter; every other factor only contributes to the
composite score. A candidate whose factors cannot be computed is scored with
the neutral defaults rather than dropped.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List

from loguru import logger

from ..models.donor import DonorOrgan
from ..models.enums import WaitlistStatus
from ..models.patient import Patient
from ..scoring.policy import clamp, days_elapsed
from .compatibility import is_blood_compatible, is_size_compatible
from .hla import DEFAULT_HLA_SCORE, HLAProfile, hla_match_score, locus_match_score

_SCORING_ERRORS = (TypeError, ValueError, AttributeError, ZeroDivisionError, OverflowError)


@dataclass
class CandidateMatch:
    patient: Patient
    compatibility_score: float
    hla_match_score: float
    size_compatible: bool
    days_on_waitlist: int
    blood_type_compatible: bool = True
    priority_rank: int = 0

    def to_summary(self) -> Dict[str, Any]:
        patient = self.patient
        return {
            "patient_id": patient.id,
            "patient_name": patient.full_name,
            "patient_id_mrn": patient.patient_id,
            "blood_type": patient.blood_type.value if patient.blood_type else None,
            "organ_needed": patient.organ_needed.value if patient.organ_needed else None,
            "priority_score": patient.priority_score,
            "compatibility_score": self.compatibility_score,
            "blood_type_compatible": self.blood_type_compatible,
            "hla_match_score": self.hla_match_score,
            "size_compatible": self.size_compatible,
            "priority_rank": self.priority_rank,
            "medical_urgency": patient.medical_urgency.value if patient.medical_urgency else None,
            "days_on_waitlist": self.days_on_waitlist,
        }

    def to_record(self, donor_organ_id: str) -> Dict[str, Any]:
        return {
            "donor_organ_id": donor_organ_id,
            "patient_id": self.patient.id,
            "patient_name": self.patient.full_name,
            "compatibility_score": self.compatibility_score,
            "blood_type_compatible": self.blood_type_compatible,
            "hla_match_score": self.hla_match_score,
            "size_compatible": self.size_compatible,
            "match_status": "potential",
            "priority_rank": self.priority_rank,
        }


@dataclass
class AdvancedCandidateMatch(CandidateMatch):
    hla_matches: Dict[str, int] = field(default_factory=dict)
    virtual_crossmatch: str = "pending"
    predicted_graft_survival: float = 0.0

    @property
    def total_hla_matches(self) -> int:
        return self.hla_matches.get("A", 0) + self.hla_matches.get("B", 0) + self.hla_matches.get("DR", 0)

    def to_summary(self) -> Dict[str, Any]:
        summary = super().to_summary()
        summary.update(
            {
                "abo_compatible": self.blood_type_compatible,
                "hla_matches": self.hla_matches,
                "total_hla_matches": self.total_hla_matches,
                "virtual_crossmatch": self.virtual_crossmatch,
                "predicted_graft_survival": self.predicted_graft_survival,
            }
        )
        return summary

    def to_record(self, donor_organ_id: str) -> Dict[str, Any]:
        record = super().to_record(donor_organ_id)
        record.update(
            {
                "abo_compatible": self.blood_type_compatible,
                "hla_a_match": self.hla_matches.get("A", 0),
                "hla_b_match": self.hla_matches.get("B", 0),
                "hla_dr_match": self.hla_matches.get("DR", 0),
                "hla_dq_match": self.hla_matches.get("DQ", 0),
                "virtual_crossmatch_result": self.virtual_crossmatch,
                "physical_crossmatch_result": "not_performed",
                "predicted_graft_survival": self.predicted_graft_survival,
            }
        )
        return record


def candidate_pool(donor: DonorOrgan, patients: Iterable[Patient]) -> List[Patient]:
    """Active patients waiting for the donor's organ type, in store order."""
    return [
        patient
        for patient in patients
        if patient.waitlist_status == WaitlistStatus.ACTIVE
        and donor.organ_type is not None
        and patient.organ_needed == donor.organ_type
    ]


def _waitlist_days(patient: Patient, now: datetime) -> int | None:
    if patient.date_added_to_waitlist is None:
        return None
    return days_elapsed(patient.date_added_to_waitlist, now)


def _waitlist_points(days: int | None) -> float:
    if days is None:
        return 0.0
    return clamp(days / 365 * 10, 0.0, 10.0)


def composite_score(
    priority_score: float | None,
    hla_score: float,
    exact_blood_match: bool,
    size_compatible: bool,
    days_on_waitlist: int | None,
) -> float:
    score = (priority_score or 0) * 0.4 + hla_score * 0.25
    if exact_blood_match:
        score += 15
    if size_compatible:
        score += 10
    score += _waitlist_points(days_on_waitlist)
    return min(100.0, score)


def assign_ranks(matches: List[CandidateMatch]) -> List[CandidateMatch]:
    # sorted() is stable with reverse=True, so ties keep filter order.
    ranked = sorted(matches, key=lambda match: match.compatibility_score, reverse=True)
    for index, match in enumerate(ranked, start=1):
        match.priority_rank = index
    return ranked


def rank_candidates(donor: DonorOrgan, patients: Iterable[Patient], now: datetime | None = None) -> List[CandidateMatch]:
    now = now or datetime.now(timezone.utc)
    matches: List[CandidateMatch] = []
    for patient in candidate_pool(donor, patients):
        if not is_blood_compatible(donor.blood_type, patient.blood_type):
            continue
        try:
            hla_score = hla_match_score(donor.hla_typing, patient.hla_typing)
        except _SCORING_ERRORS as exc:
            logger.warning("HLA scoring failed for patient {}: {}. Using default.", patient.id, exc)
            hla_score = DEFAULT_HLA_SCORE
        try:
            size_ok = is_size_compatible(donor.donor_weight_kg, patient.weight_kg)
        except _SCORING_ERRORS as exc:
            logger.warning("Size check failed for patient {}: {}. Treating as compatible.", patient.id, exc)
            size_ok = True
        days = _waitlist_days(patient, now)
        score = composite_score(
            patient.priority_score,
            hla_score,
            donor.blood_type == patient.blood_type,
            size_ok,
            days,
        )
        matches.append(
            CandidateMatch(
                patient=patient,
                compatibility_score=score,
                hla_match_score=hla_score,
                size_compatible=size_ok,
                days_on_waitlist=days or 0,
            )
        )
    return assign_ranks(matches)


def virtual_crossmatch(patient: Patient, total_hla_matches: int) -> str:
    if (patient.pra_percentage or 0) > 80 or (patient.cpra_percentage or 0) > 80:
        return "positive" if total_hla_matches < 4 else "pending"
    if total_hla_matches >= 5:
        return "negative"
    return "pending"


def _age_points(donor: DonorOrgan, patient: Patient, now: datetime) -> float:
    if not donor.donor_age or patient.date_of_birth is None:
        return 0.0
    patient_age = math.floor(days_elapsed(patient.date_of_birth, now) / 365.25)
    difference = abs(donor.donor_age - patient_age)
    if difference <= 10:
        return 5.0
    if difference <= 20:
        return 3.0
    return 0.0


def predicted_graft_survival(donor: DonorOrgan, patient: Patient, total_hla_matches: int) -> float:
    survival = 85 + total_hla_matches / 6 * 10
    if donor.blood_type == patient.blood_type:
        survival += 3
    if (patient.previous_transplants or 0) > 0:
        survival -= patient.previous_transplants * 5
    if patient.comorbidity_score:
        survival -= patient.comorbidity_score * 2
    return clamp(survival, 60, 98)


def rank_candidates_advanced(
    donor: DonorOrgan, patients: Iterable[Patient], now: datetime | None = None
) -> List[AdvancedCandidateMatch]:
    """Locus-aware ranking with a virtual crossmatch gate.

    Candidates with a positive virtual crossmatch are excluded alongside
    ABO-incompatible ones.
    """
    now = now or datetime.now(timezone.utc)
    donor_hla = HLAProfile.parse(donor.hla_typing)
    matches: List[AdvancedCandidateMatch] = []
    for patient in candidate_pool(donor, patients):
        if not is_blood_compatible(donor.blood_type, patient.blood_type):
            continue
        try:
            locus_matches = donor_hla.matches(HLAProfile.parse(patient.hla_typing))
        except _SCORING_ERRORS as exc:
            logger.warning("HLA parsing failed for patient {}: {}. Treating as no matches.", patient.id, exc)
            locus_matches = {"A": 0, "B": 0, "DR": 0, "DQ": 0}
        total_matches = locus_matches["A"] + locus_matches["B"] + locus_matches["DR"]
        hla_score = locus_match_score(locus_matches)

        crossmatch = virtual_crossmatch(patient, total_matches)
        if crossmatch == "positive":
            continue

        try:
            size_ok = is_size_compatible(donor.donor_weight_kg, patient.weight_kg)
        except _SCORING_ERRORS as exc:
            logger.warning("Size check failed for patient {}: {}. Treating as compatible.", patient.id, exc)
            size_ok = True
        days = _waitlist_days(patient, now)
        exact = donor.blood_type == patient.blood_type

        score = (patient.priority_score or 0) * 0.35 + hla_score * 0.30
        score += 10 if exact else 5
        score += 10 if size_ok else 3
        score += _waitlist_points(days)
        score += _age_points(donor, patient, now)

        matches.append(
            AdvancedCandidateMatch(
                patient=patient,
                compatibility_score=min(100.0, score),
                hla_match_score=hla_score,
                size_compatible=size_ok,
                days_on_waitlist=days or 0,
                hla_matches=locus_matches,
                virtual_crossmatch=crossmatch,
                predicted_graft_survival=predicted_graft_survival(donor, patient, total_matches),
            )
        )
    return assign_ranks(matches)
