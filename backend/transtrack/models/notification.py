from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field

from .enums import PriorityLevel


RuleType = Literal[
    "priority_threshold",
    "status_change",
    "evaluation_overdue",
    "time_on_waitlist",
    "score_change",
    "new_patient",
]
Channel = Literal["in_app", "sms"]
EventType = Literal["create", "update"]


class Notification(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    recipient_email: str
    title: str
    message: str
    notification_type: str
    priority_level: PriorityLevel = PriorityLevel.MEDIUM
    is_read: bool = False
    related_patient_id: str | None = None
    related_patient_name: str | None = None
    action_url: str | None = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None


class NotificationList(BaseModel):
    notifications: List[Notification]


class NotificationRule(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    rule_name: str
    rule_type: RuleType
    trigger_conditions: Dict[str, Any] = Field(default_factory=dict)
    notify_roles: List[str] = Field(default_factory=lambda: ["admin"])
    notification_channels: List[Channel] = Field(default_factory=lambda: ["in_app"])
    message_template: str | None = None
    is_active: bool = True


class NotificationRuleCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    rule_name: str
    rule_type: RuleType
    trigger_conditions: Dict[str, Any] = Field(default_factory=dict)
    notify_roles: List[str] = Field(default_factory=lambda: ["admin"])
    notification_channels: List[Channel] = Field(default_factory=lambda: ["in_app"])
    message_template: str | None = None
    is_active: bool = True


class CheckRulesRequest(BaseModel):
    patient_id: str = Field(min_length=1)
    event_type: EventType = "update"
    old_data: Dict[str, Any] | None = None
