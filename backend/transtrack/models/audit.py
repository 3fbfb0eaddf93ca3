from __future__ import annotations

from datetime import datetime
from typing import List, Literal

from pydantic import BaseModel, ConfigDict


AuditAction = Literal["create", "update"]


class AuditLog(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    action: AuditAction
    entity_type: str
    entity_id: str
    patient_name: str | None = None
    details: str
    user_email: str | None = None
    user_role: str | None = None
    created_at: datetime | None = None


class AuditLogList(BaseModel):
    entries: List[AuditLog]
