"""Rule-driven patient alerts.

Each active rule is evaluated against the patient's current record (and the
record before the edit, for update events). A triggered rule notifies every
user whose role the rule lists, through each of its channels. A failing rule
is logged and skipped; the remaining rules still run.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping

from loguru import logger
from pydantic import ValidationError as ModelValidationError
from pymongo.errors import PyMongoError

from ..errors import PatientNotFoundError
from ..models.enums import MedicalUrgency, PriorityLevel
from ..models.notification import NotificationRule
from ..models.patient import Patient
from ..models.user import UserPublic
from ..scoring.policy import days_elapsed
from ..store import Stores
from ..utils.logging import log_rule_failure
from ..utils.notifications import SmsNotification, SmsService

DEFAULT_PRIORITY_THRESHOLD = 80
DEFAULT_EVALUATION_OVERDUE_DAYS = 90
DEFAULT_WAITLIST_DAYS = 365
SCORE_CHANGE_THRESHOLD = 10

_NOTIFICATION_TYPES = {
    "priority_threshold": "priority_alert",
    "status_change": "status_change",
}


def evaluate_rule(
    rule: NotificationRule,
    patient: Patient,
    event_type: str,
    old_data: Mapping[str, Any] | None,
    now: datetime,
) -> str | None:
    """Return the alert message if the rule fires for this patient, else None."""
    conditions = rule.trigger_conditions
    name = patient.full_name

    if rule.rule_type == "priority_threshold":
        threshold = conditions.get("priority_score") or DEFAULT_PRIORITY_THRESHOLD
        organ = conditions.get("organ_type")
        if patient.priority_score is None or patient.priority_score < threshold:
            return None
        if organ and (patient.organ_needed is None or patient.organ_needed.value != organ):
            return None
        return f"{name} has reached critical priority score of {patient.priority_score:.0f}"

    if rule.rule_type == "status_change":
        if event_type != "update" or not old_data:
            return None
        old_status = old_data.get("waitlist_status")
        new_status = patient.waitlist_status.value if patient.waitlist_status else None
        if old_status == new_status:
            return None
        status_to = conditions.get("status_to")
        if status_to and new_status != status_to:
            return None
        return f"{name} status changed from {old_status} to {new_status}"

    if rule.rule_type == "evaluation_overdue":
        if patient.last_evaluation_date is None:
            return None
        days = days_elapsed(patient.last_evaluation_date, now)
        threshold = conditions.get("days_threshold") or DEFAULT_EVALUATION_OVERDUE_DAYS
        if days < threshold:
            return None
        return f"{name} evaluation is {days} days overdue (threshold: {threshold} days)"

    if rule.rule_type == "time_on_waitlist":
        if patient.date_added_to_waitlist is None:
            return None
        days = days_elapsed(patient.date_added_to_waitlist, now)
        threshold = conditions.get("days_threshold") or DEFAULT_WAITLIST_DAYS
        if days < threshold:
            return None
        return f"{name} has been on waitlist for {days} days"

    if rule.rule_type == "score_change":
        if event_type != "update" or not old_data or not old_data.get("priority_score"):
            return None
        if patient.priority_score is None:
            return None
        change = patient.priority_score - float(old_data["priority_score"])
        if abs(change) < SCORE_CHANGE_THRESHOLD:
            return None
        sign = "+" if change > 0 else ""
        return f"{name} priority score changed by {sign}{change:.0f} points"

    if rule.rule_type == "new_patient":
        if event_type != "create":
            return None
        organ = patient.organ_needed.value if patient.organ_needed else "unknown organ"
        return f"New patient added: {name} ({organ})"

    return None


def rule_priority_level(rule: NotificationRule, patient: Patient) -> PriorityLevel:
    if rule.rule_type == "priority_threshold" or patient.medical_urgency == MedicalUrgency.CRITICAL:
        return PriorityLevel.CRITICAL
    if patient.medical_urgency == MedicalUrgency.HIGH:
        return PriorityLevel.HIGH
    return PriorityLevel.MEDIUM


class NotificationRuleService:
    def __init__(self, stores: Stores, sms: SmsService) -> None:
        self.stores = stores
        self.sms = sms

    async def _apply_rule(
        self,
        rule: NotificationRule,
        patient: Patient,
        event_type: str,
        old_data: Mapping[str, Any] | None,
        now: datetime,
    ) -> List[Dict[str, Any]]:
        message = evaluate_rule(rule, patient, event_type, old_data, now)
        if message is None:
            return []
        final_message = rule.message_template or message
        priority_level = rule_priority_level(rule, patient)
        recipients = await self.stores.users.filter(role={"$in": rule.notify_roles})

        created = []
        for recipient in recipients:
            if "in_app" in rule.notification_channels:
                created.append(
                    await self.stores.notifications.create(
                        {
                            "recipient_email": recipient["email"],
                            "title": rule.rule_name,
                            "message": final_message,
                            "notification_type": _NOTIFICATION_TYPES.get(rule.rule_type, "system"),
                            "is_read": False,
                            "related_patient_id": patient.id,
                            "related_patient_name": patient.full_name,
                            "priority_level": priority_level.value,
                            "action_url": f"/PatientDetails?id={patient.id}",
                            "metadata": {"rule_id": rule.id, "patient_id": patient.id},
                        }
                    )
                )
            if "sms" in rule.notification_channels and recipient.get("phone_number"):
                await self.sms.send_sms(
                    SmsNotification(to=recipient["phone_number"], body=f"{rule.rule_name}: {final_message}")
                )
        logger.info("Rule {!r} fired for patient {} ({} notifications)", rule.rule_name, patient.id, len(created))
        return created

    async def check(
        self,
        patient_id: str,
        event_type: str,
        old_data: Mapping[str, Any] | None = None,
        now: datetime | None = None,
    ) -> Dict[str, Any]:
        document = await self.stores.patients.get(patient_id)
        if document is None:
            raise PatientNotFoundError(patient_id)
        patient = Patient.model_validate(document)
        now = now or datetime.now(timezone.utc)

        notifications: List[Dict[str, Any]] = []
        for raw_rule in await self.stores.notification_rules.filter(is_active=True):
            try:
                rule = NotificationRule.model_validate(raw_rule)
                notifications.extend(await self._apply_rule(rule, patient, event_type, old_data, now))
            except (ModelValidationError, PyMongoError, TypeError, ValueError, KeyError) as exc:
                log_rule_failure(raw_rule.get("rule_name", raw_rule.get("id")), patient.id, exc)
        return {
            "success": True,
            "notifications_created": len(notifications),
            "notifications": notifications,
        }
