from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from .enums import BloodType, OrganType
from .fields import coerce_enum, coerce_float, coerce_hla


class DonorOrgan(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    donor_id: str | None = None
    organ_type: OrganType | None = None
    blood_type: BloodType | None = None
    donor_weight_kg: float | None = None
    donor_age: float | None = None
    hla_typing: str | None = None
    created_at: datetime | None = None

    @field_validator("organ_type", "blood_type", mode="before")
    @classmethod
    def _lenient_enum(cls, value: Any, info: ValidationInfo) -> Any:
        enum_type = OrganType if info.field_name == "organ_type" else BloodType
        return coerce_enum(enum_type, value, info.field_name)

    @field_validator("donor_weight_kg", "donor_age", mode="before")
    @classmethod
    def _lenient_float(cls, value: Any, info: ValidationInfo) -> Any:
        return coerce_float(value, info.field_name)

    @field_validator("hla_typing", mode="before")
    @classmethod
    def _lenient_hla(cls, value: Any) -> Any:
        return coerce_hla(value)


class DonorOrganCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    donor_id: str
    organ_type: OrganType
    blood_type: BloodType
    donor_weight_kg: float | None = Field(default=None, gt=0)
    donor_age: float | None = Field(default=None, ge=0)
    hla_typing: str | None = None
