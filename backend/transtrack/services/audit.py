from __future__ import annotations

from typing import Any, Dict, List

from ..models.user import UserPublic
from ..store import EntityStore


class AuditTrail:
    """Append-only log of mutating operations."""

    def __init__(self, store: EntityStore) -> None:
        self.store = store

    async def log(
        self,
        action: str,
        entity_type: str,
        entity_id: str,
        details: str,
        user: UserPublic | None = None,
        patient_name: str | None = None,
    ) -> Dict[str, Any]:
        entry = {
            "action": action,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "details": details,
            "user_email": user.email if user else None,
            "user_role": user.role if user else None,
        }
        if patient_name is not None:
            entry["patient_name"] = patient_name
        return await self.store.create(entry)

    async def history(self, limit: int = 20) -> List[Dict[str, Any]]:
        return await self.store.list(limit=limit, sort="-created_at")
