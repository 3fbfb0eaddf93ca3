from __future__ import annotations

from typing import Annotated, List

from fastapi import APIRouter, Depends, HTTPException, status

from ..models.donor import DonorOrgan, DonorOrganCreate
from ..models.match import MatchRecord
from ..models.user import UserPublic
from ..services.audit import AuditTrail
from ..store import Stores, get_stores
from .auth import get_current_user, require_roles

router = APIRouter(prefix="/donors", tags=["donors"])
CoordinatorUser = Annotated[UserPublic, Depends(require_roles("admin", "coordinator"))]


@router.post("/", response_model=DonorOrgan, status_code=status.HTTP_201_CREATED)
async def create_donor(
    user: CoordinatorUser,
    payload: DonorOrganCreate,
    stores: Stores = Depends(get_stores),
) -> DonorOrgan:
    existing = await stores.donors.filter(donor_id=payload.donor_id, organ_type=payload.organ_type.value, limit=1)
    if existing:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Donor organ already registered")
    stored = await stores.donors.create(payload.model_dump(mode="json"))
    await AuditTrail(stores.audit_logs).log(
        "create",
        "DonorOrgan",
        stored["id"],
        f"Donor {payload.donor_id} {payload.organ_type.value} ({payload.blood_type.value}) registered",
        user=user,
    )
    return DonorOrgan.model_validate(stored)


@router.get("/", response_model=List[DonorOrgan])
async def list_donors(
    stores: Stores = Depends(get_stores),
    _: UserPublic = Depends(get_current_user),
) -> List[DonorOrgan]:
    return [DonorOrgan.model_validate(doc) for doc in await stores.donors.list(limit=100, sort="-created_at")]


@router.get("/{donor_organ_id}", response_model=DonorOrgan)
async def get_donor(
    donor_organ_id: str,
    stores: Stores = Depends(get_stores),
    _: UserPublic = Depends(get_current_user),
) -> DonorOrgan:
    donor = await stores.donors.get(donor_organ_id)
    if not donor:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Donor organ not found")
    return DonorOrgan.model_validate(donor)


@router.get("/{donor_organ_id}/matches", response_model=List[MatchRecord])
async def list_donor_matches(
    donor_organ_id: str,
    stores: Stores = Depends(get_stores),
    _: UserPublic = Depends(get_current_user),
) -> List[MatchRecord]:
    documents = await stores.matches.filter(donor_organ_id=donor_organ_id, sort="priority_rank")
    return [MatchRecord(**doc) for doc in documents]
