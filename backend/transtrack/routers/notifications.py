from __future__ import annotations

from typing import Annotated, Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status

from ..models.notification import (
    CheckRulesRequest,
    Notification,
    NotificationList,
    NotificationRule,
    NotificationRuleCreate,
)
from ..models.user import UserPublic
from ..services.notification_rules import NotificationRuleService
from ..store import Stores, get_stores
from ..utils.notifications import SmsService, get_sms_service
from .auth import get_current_user, require_roles

router = APIRouter(prefix="/notifications", tags=["notifications"])
rules_router = APIRouter(prefix="/notification-rules", tags=["notifications"])
AdminUser = Annotated[UserPublic, Depends(require_roles("admin"))]


def get_rule_service(
    stores: Stores = Depends(get_stores),
    sms: SmsService = Depends(get_sms_service),
) -> NotificationRuleService:
    return NotificationRuleService(stores, sms)


@router.get("/", response_model=NotificationList)
async def list_notifications(
    unread_only: bool = False,
    limit: int = 50,
    stores: Stores = Depends(get_stores),
    user: UserPublic = Depends(get_current_user),
) -> NotificationList:
    filters: Dict[str, Any] = {"recipient_email": user.email}
    if unread_only:
        filters["is_read"] = False
    documents = await stores.notifications.filter(limit=limit, sort="-created_at", **filters)
    return NotificationList(notifications=[Notification(**doc) for doc in documents])


@router.post("/{notification_id}/read", response_model=Notification)
async def mark_read(
    notification_id: str,
    stores: Stores = Depends(get_stores),
    user: UserPublic = Depends(get_current_user),
) -> Notification:
    notification = await stores.notifications.get(notification_id)
    if not notification or notification.get("recipient_email") != user.email:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    updated = await stores.notifications.update(notification_id, {"is_read": True})
    return Notification(**updated)


@router.post("/check-rules")
async def check_rules(
    payload: CheckRulesRequest,
    service: NotificationRuleService = Depends(get_rule_service),
    _: UserPublic = Depends(get_current_user),
) -> Dict[str, Any]:
    return await service.check(payload.patient_id, payload.event_type, payload.old_data)


@rules_router.get("/", response_model=List[NotificationRule])
async def list_rules(_: AdminUser, stores: Stores = Depends(get_stores)) -> List[NotificationRule]:
    return [NotificationRule(**doc) for doc in await stores.notification_rules.list()]


@rules_router.post("/", response_model=NotificationRule, status_code=status.HTTP_201_CREATED)
async def create_rule(
    _: AdminUser,
    payload: NotificationRuleCreate,
    stores: Stores = Depends(get_stores),
) -> NotificationRule:
    stored = await stores.notification_rules.create(payload.model_dump())
    return NotificationRule(**stored)
