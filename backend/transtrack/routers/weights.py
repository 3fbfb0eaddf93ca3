from __future__ import annotations

from typing import Annotated, List

from fastapi import APIRouter, Depends, HTTPException, status

from ..models.user import UserPublic
from ..models.weights import PriorityWeights, PriorityWeightsCreate
from ..scoring.priority import DEFAULT_WEIGHTS
from ..services.audit import AuditTrail
from ..store import Stores, get_stores
from .auth import get_current_user, require_roles

router = APIRouter(prefix="/priority-weights", tags=["priority"])
AdminUser = Annotated[UserPublic, Depends(require_roles("admin"))]


async def _deactivate_all(stores: Stores, keep_id: str | None = None) -> None:
    for record in await stores.priority_weights.filter(is_active=True):
        if record["id"] != keep_id:
            await stores.priority_weights.update(record["id"], {"is_active": False})


@router.get("/", response_model=List[PriorityWeights])
async def list_weights(_: AdminUser, stores: Stores = Depends(get_stores)) -> List[PriorityWeights]:
    return [PriorityWeights.model_validate(doc) for doc in await stores.priority_weights.list(sort="-created_at")]


@router.get("/active", response_model=PriorityWeights)
async def get_active_weights(
    stores: Stores = Depends(get_stores),
    _: UserPublic = Depends(get_current_user),
) -> PriorityWeights:
    active = await stores.priority_weights.filter(is_active=True, limit=1)
    return PriorityWeights.model_validate(active[0]) if active else DEFAULT_WEIGHTS


@router.post("/", response_model=PriorityWeights, status_code=status.HTTP_201_CREATED)
async def create_weights(
    user: AdminUser,
    payload: PriorityWeightsCreate,
    stores: Stores = Depends(get_stores),
) -> PriorityWeights:
    if payload.is_active:
        await _deactivate_all(stores)
    stored = await stores.priority_weights.create(payload.model_dump())
    await AuditTrail(stores.audit_logs).log(
        "create",
        "PriorityWeights",
        stored["id"],
        f"Priority weights '{payload.weight_name}' created (active={payload.is_active})",
        user=user,
    )
    return PriorityWeights.model_validate(stored)


@router.post("/{weights_id}/activate", response_model=PriorityWeights)
async def activate_weights(
    weights_id: str,
    user: AdminUser,
    stores: Stores = Depends(get_stores),
) -> PriorityWeights:
    record = await stores.priority_weights.get(weights_id)
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Priority weights not found")
    await _deactivate_all(stores, keep_id=weights_id)
    updated = await stores.priority_weights.update(weights_id, {"is_active": True})
    await AuditTrail(stores.audit_logs).log(
        "update",
        "PriorityWeights",
        weights_id,
        f"Priority weights '{record.get('weight_name')}' activated",
        user=user,
    )
    return PriorityWeights.model_validate(updated)
