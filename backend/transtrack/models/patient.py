from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from .enums import (
    BloodType,
    FunctionalStatus,
    MedicalUrgency,
    OrganType,
    PrognosisRating,
    WaitlistStatus,
)
from .fields import (
    coerce_datetime,
    coerce_enum,
    coerce_float,
    coerce_hla,
    coerce_int,
    coerce_mapping,
    coerce_text,
)

_ENUM_FIELDS = {
    "blood_type": BloodType,
    "organ_needed": OrganType,
    "waitlist_status": WaitlistStatus,
    "medical_urgency": MedicalUrgency,
    "functional_status": FunctionalStatus,
    "prognosis_rating": PrognosisRating,
}
_FLOAT_FIELDS = (
    "meld_score",
    "las_score",
    "pra_percentage",
    "cpra_percentage",
    "weight_kg",
    "comorbidity_score",
    "compliance_score",
    "priority_score",
)
_DATE_FIELDS = (
    "date_of_birth",
    "date_added_to_waitlist",
    "last_evaluation_date",
    "created_at",
    "updated_at",
)
_TEXT_FIELDS = ("patient_id", "first_name", "last_name")


class Patient(BaseModel):
    """A waitlist candidate as stored. Every clinical field is optional."""

    model_config = ConfigDict(extra="allow")

    id: str
    patient_id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    blood_type: BloodType | None = None
    organ_needed: OrganType | None = None
    waitlist_status: WaitlistStatus | None = None
    medical_urgency: MedicalUrgency | None = None
    functional_status: FunctionalStatus | None = None
    prognosis_rating: PrognosisRating | None = None
    meld_score: float | None = None
    las_score: float | None = None
    pra_percentage: float | None = None
    cpra_percentage: float | None = None
    weight_kg: float | None = None
    hla_typing: str | None = None
    date_of_birth: datetime | None = None
    date_added_to_waitlist: datetime | None = None
    last_evaluation_date: datetime | None = None
    comorbidity_score: float | None = None
    previous_transplants: int | None = None
    compliance_score: float | None = None
    priority_score: float | None = None
    priority_score_breakdown: Dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator(*_ENUM_FIELDS, mode="before")
    @classmethod
    def _lenient_enum(cls, value: Any, info: ValidationInfo) -> Any:
        return coerce_enum(_ENUM_FIELDS[info.field_name], value, info.field_name)

    @field_validator(*_FLOAT_FIELDS, mode="before")
    @classmethod
    def _lenient_float(cls, value: Any, info: ValidationInfo) -> Any:
        return coerce_float(value, info.field_name)

    @field_validator("previous_transplants", mode="before")
    @classmethod
    def _lenient_int(cls, value: Any, info: ValidationInfo) -> Any:
        return coerce_int(value, info.field_name)

    @field_validator(*_DATE_FIELDS, mode="before")
    @classmethod
    def _lenient_date(cls, value: Any, info: ValidationInfo) -> Any:
        return coerce_datetime(value, info.field_name)

    @field_validator(*_TEXT_FIELDS, mode="before")
    @classmethod
    def _lenient_text(cls, value: Any, info: ValidationInfo) -> Any:
        return coerce_text(value, info.field_name)

    @field_validator("priority_score_breakdown", mode="before")
    @classmethod
    def _lenient_breakdown(cls, value: Any) -> Any:
        return coerce_mapping(value, "priority_score_breakdown")

    @field_validator("hla_typing", mode="before")
    @classmethod
    def _lenient_hla(cls, value: Any) -> Any:
        return coerce_hla(value)

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class PatientCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    patient_id: str
    first_name: str
    last_name: str
    blood_type: BloodType
    organ_needed: OrganType
    waitlist_status: WaitlistStatus = WaitlistStatus.ACTIVE
    medical_urgency: MedicalUrgency = MedicalUrgency.MEDIUM
    functional_status: FunctionalStatus | None = None
    prognosis_rating: PrognosisRating | None = None
    meld_score: float | None = Field(default=None, ge=6, le=40)
    las_score: float | None = Field(default=None, ge=0, le=100)
    pra_percentage: float | None = Field(default=None, ge=0, le=100)
    cpra_percentage: float | None = Field(default=None, ge=0, le=100)
    weight_kg: float | None = Field(default=None, gt=0)
    hla_typing: str | None = None
    date_of_birth: datetime | None = None
    date_added_to_waitlist: datetime | None = None
    last_evaluation_date: datetime | None = None
    comorbidity_score: float | None = Field(default=None, ge=0, le=10)
    previous_transplants: int = Field(default=0, ge=0)
    compliance_score: float | None = Field(default=None, ge=0, le=10)


class PatientUpdate(BaseModel):
    """Partial clinical edit. Engine-owned fields are rejected as extras."""

    model_config = ConfigDict(extra="forbid")

    first_name: str | None = None
    last_name: str | None = None
    blood_type: BloodType | None = None
    organ_needed: OrganType | None = None
    waitlist_status: WaitlistStatus | None = None
    medical_urgency: MedicalUrgency | None = None
    functional_status: FunctionalStatus | None = None
    prognosis_rating: PrognosisRating | None = None
    meld_score: float | None = Field(default=None, ge=6, le=40)
    las_score: float | None = Field(default=None, ge=0, le=100)
    pra_percentage: float | None = Field(default=None, ge=0, le=100)
    cpra_percentage: float | None = Field(default=None, ge=0, le=100)
    weight_kg: float | None = Field(default=None, gt=0)
    hla_typing: str | None = None
    date_of_birth: datetime | None = None
    date_added_to_waitlist: datetime | None = None
    last_evaluation_date: datetime | None = None
    comorbidity_score: float | None = Field(default=None, ge=0, le=10)
    previous_transplants: int | None = Field(default=None, ge=0)
    compliance_score: float | None = Field(default=None, ge=0, le=10)


class PatientList(BaseModel):
    patients: List[Patient]
