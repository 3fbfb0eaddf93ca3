from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from loguru import logger
from pymongo.errors import PyMongoError

from ..errors import PatientNotFoundError
from ..live import EventSink, LiveEvent
from ..models.enums import WaitlistStatus
from ..models.patient import Patient
from ..models.user import UserPublic
from ..models.weights import PriorityWeights
from ..scoring.legacy import calculate_legacy_priority
from ..scoring.priority import calculate_priority, describe_top_components, resolve_weights
from ..store import Stores
from .audit import AuditTrail


class ScoringService:
    def __init__(self, stores: Stores, event_sink: EventSink | None = None) -> None:
        self.stores = stores
        self.audit = AuditTrail(stores.audit_logs)
        self.event_sink = event_sink

    async def active_weights(self) -> PriorityWeights:
        active = await self.stores.priority_weights.filter(is_active=True, limit=1)
        return resolve_weights(active[0] if active else None)

    async def _load_patient(self, patient_id: str) -> Patient:
        document = await self.stores.patients.get(patient_id)
        if document is None:
            raise PatientNotFoundError(patient_id)
        return Patient.model_validate(document)

    async def _emit(self, event: str, payload: Dict[str, Any]) -> None:
        if self.event_sink is not None:
            await self.event_sink(LiveEvent(event, payload))

    async def recalculate(
        self,
        patient_id: str,
        user: UserPublic,
        weights: PriorityWeights | None = None,
        now: datetime | None = None,
    ) -> Dict[str, Any]:
        patient = await self._load_patient(patient_id)
        weights = weights or await self.active_weights()
        result = calculate_priority(patient, weights, now or datetime.now(timezone.utc))

        await self.stores.patients.update(
            patient.id,
            {"priority_score": result.priority_score, "priority_score_breakdown": result.breakdown},
        )
        await self.audit.log(
            "update",
            "Patient",
            patient.id,
            f"Advanced priority score calculated: {result.priority_score:.1f} "
            f"({describe_top_components(result.breakdown)})",
            user=user,
            patient_name=patient.full_name,
        )
        logger.info("Patient {} priority recalculated: {:.1f}", patient.id, result.priority_score)
        await self._emit(
            "priority_recalculated",
            {"patient_id": patient.id, "priority_score": result.priority_score},
        )
        return {
            "success": True,
            "priority_score": result.priority_score,
            "breakdown": result.breakdown,
            "patient_id": patient.id,
        }

    async def recalculate_legacy(self, patient_id: str, user: UserPublic, now: datetime | None = None) -> Dict[str, Any]:
        patient = await self._load_patient(patient_id)
        score = calculate_legacy_priority(patient, now or datetime.now(timezone.utc))
        await self.stores.patients.update(patient.id, {"priority_score": score})
        await self.audit.log(
            "update",
            "Patient",
            patient.id,
            f"Priority score recalculated: {score:.1f}",
            user=user,
            patient_name=patient.full_name,
        )
        logger.info("Patient {} legacy priority recalculated: {:.1f}", patient.id, score)
        return {"success": True, "priority_score": score, "patient_id": patient.id}

    async def recalculate_all(self, user: UserPublic, limit: int = 0) -> Dict[str, Any]:
        """Rescore every active patient against one weight configuration."""
        weights = await self.active_weights()
        now = datetime.now(timezone.utc)
        patients = await self.stores.patients.filter(waitlist_status=WaitlistStatus.ACTIVE.value, limit=limit)
        recalculated = 0
        failed = []
        for document in patients:
            try:
                await self.recalculate(document["id"], user, weights=weights, now=now)
                recalculated += 1
            except (PatientNotFoundError, PyMongoError) as exc:
                logger.error("Recalculation failed for patient {}: {}", document["id"], exc)
                failed.append(document["id"])
        return {"success": True, "recalculated": recalculated, "failed": failed}
