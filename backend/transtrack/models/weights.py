from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


WEIGHT_FIELDS = (
    "medical_urgency_weight",
    "time_on_waitlist_weight",
    "organ_specific_score_weight",
    "evaluation_recency_weight",
    "blood_type_rarity_weight",
)


class PriorityWeights(BaseModel):
    """Weight configuration consumed by the scoring engine.

    The engine scales each component by whatever weight it is given and does
    not renormalize a total other than 100.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str | None = None
    weight_name: str = "Default"
    medical_urgency_weight: float = 30
    time_on_waitlist_weight: float = 25
    organ_specific_score_weight: float = 25
    evaluation_recency_weight: float = 10
    blood_type_rarity_weight: float = 10
    evaluation_decay_rate: float = 0.5
    is_active: bool = False
    created_at: datetime | None = None

    @property
    def total(self) -> float:
        return sum(getattr(self, name) for name in WEIGHT_FIELDS)


class PriorityWeightsCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    weight_name: str
    medical_urgency_weight: float = Field(ge=0, le=100)
    time_on_waitlist_weight: float = Field(ge=0, le=100)
    organ_specific_score_weight: float = Field(ge=0, le=100)
    evaluation_recency_weight: float = Field(ge=0, le=100)
    blood_type_rarity_weight: float = Field(ge=0, le=100)
    evaluation_decay_rate: float = Field(default=0.5, ge=0, le=1)
    is_active: bool = True

    @model_validator(mode="after")
    def _weights_sum_to_100(self) -> "PriorityWeightsCreate":
        total = sum(getattr(self, name) for name in WEIGHT_FIELDS)
        if abs(total - 100) > 1e-6:
            raise ValueError(f"Priority weights must sum to 100 (got {total:g})")
        return self
