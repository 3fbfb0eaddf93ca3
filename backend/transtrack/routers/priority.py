from __future__ import annotations

from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends

from ..database import settings
from ..live import EventSink, get_event_sink
from ..models.match import CalculatePriorityRequest
from ..models.user import UserPublic
from ..services.scoring import ScoringService
from ..store import Stores, get_stores
from .auth import get_current_user, require_roles

router = APIRouter(prefix="/priority", tags=["priority"])
AdminUser = Annotated[UserPublic, Depends(require_roles("admin"))]


def get_scoring_service(
    stores: Stores = Depends(get_stores),
    event_sink: EventSink = Depends(get_event_sink),
) -> ScoringService:
    return ScoringService(stores, event_sink)


@router.post("/calculate")
async def calculate_priority(
    payload: CalculatePriorityRequest,
    service: ScoringService = Depends(get_scoring_service),
    user: UserPublic = Depends(get_current_user),
) -> Dict[str, Any]:
    return await service.recalculate(payload.patient_id, user)


@router.post("/calculate-legacy")
async def calculate_priority_legacy(
    payload: CalculatePriorityRequest,
    service: ScoringService = Depends(get_scoring_service),
    user: UserPublic = Depends(get_current_user),
) -> Dict[str, Any]:
    return await service.recalculate_legacy(payload.patient_id, user)


@router.post("/recalculate-all")
async def recalculate_all(
    user: AdminUser,
    service: ScoringService = Depends(get_scoring_service),
) -> Dict[str, Any]:
    return await service.recalculate_all(user, limit=settings.candidate_pool_limit)
