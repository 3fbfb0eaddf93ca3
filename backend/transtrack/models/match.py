from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class MatchDonorRequest(BaseModel):
    donor_organ_id: str = Field(min_length=1)


class AdvancedMatchRequest(BaseModel):
    donor_organ_id: str | None = None
    simulation_mode: bool = False
    hypothetical_donor: Dict[str, Any] | None = None


class CalculatePriorityRequest(BaseModel):
    patient_id: str = Field(min_length=1)


class MatchRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    donor_organ_id: str
    patient_id: str
    patient_name: str | None = None
    compatibility_score: float
    blood_type_compatible: bool
    hla_match_score: float
    size_compatible: bool
    match_status: str = "potential"
    priority_rank: int
