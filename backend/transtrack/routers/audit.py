from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from ..models.audit import AuditLog, AuditLogList
from ..models.user import UserPublic
from ..services.audit import AuditTrail
from ..store import Stores, get_stores
from .auth import require_roles

router = APIRouter(prefix="/audit-logs", tags=["audit"])
AdminUser = Annotated[UserPublic, Depends(require_roles("admin"))]


@router.get("/", response_model=AuditLogList)
async def audit_history(_: AdminUser, limit: int = 50, stores: Stores = Depends(get_stores)) -> AuditLogList:
    entries = await AuditTrail(stores.audit_logs).history(limit)
    return AuditLogList(entries=[AuditLog(**entry) for entry in entries])
