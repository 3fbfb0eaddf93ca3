from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..database import settings
from ..live import EventSink, get_event_sink
from ..models.match import AdvancedMatchRequest, MatchDonorRequest
from ..models.user import UserPublic
from ..services.matching import MatchingService
from ..store import Stores, get_stores
from .auth import get_current_user

router = APIRouter(prefix="/matching", tags=["matching"])


def get_matching_service(
    stores: Stores = Depends(get_stores),
    event_sink: EventSink = Depends(get_event_sink),
) -> MatchingService:
    return MatchingService(stores, event_sink, pool_limit=settings.candidate_pool_limit)


@router.post("/donor")
async def match_donor(
    payload: MatchDonorRequest,
    service: MatchingService = Depends(get_matching_service),
    user: UserPublic = Depends(get_current_user),
) -> Dict[str, Any]:
    return await service.match_donor(payload.donor_organ_id, user)


@router.post("/donor/advanced")
async def match_donor_advanced(
    payload: AdvancedMatchRequest,
    service: MatchingService = Depends(get_matching_service),
    user: UserPublic = Depends(get_current_user),
) -> Dict[str, Any]:
    return await service.match_donor_advanced(
        user,
        donor_organ_id=payload.donor_organ_id,
        simulation_mode=payload.simulation_mode,
        hypothetical_donor=payload.hypothetical_donor,
    )
