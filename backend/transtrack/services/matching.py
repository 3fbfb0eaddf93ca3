from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Sequence

from loguru import logger
from pymongo.errors import PyMongoError

from ..errors import DonorNotFoundError, ValidationError
from ..live import EventSink, LiveEvent
from ..models.donor import DonorOrgan
from ..models.enums import PriorityLevel, WaitlistStatus
from ..models.patient import Patient
from ..models.user import UserPublic
from ..matching.engine import CandidateMatch, rank_candidates, rank_candidates_advanced
from ..store import Stores
from ..utils.logging import log_db_error
from .audit import AuditTrail

PERSISTED_MATCHES = 10
NOTIFIED_MATCHES = 3
SIMULATION_DONOR_ID = "simulation"


def match_priority_level(rank: int) -> PriorityLevel:
    return PriorityLevel.CRITICAL if rank == 1 else PriorityLevel.HIGH


class MatchingService:
    def __init__(self, stores: Stores, event_sink: EventSink | None = None, pool_limit: int = 0) -> None:
        self.stores = stores
        self.audit = AuditTrail(stores.audit_logs)
        self.event_sink = event_sink
        self.pool_limit = pool_limit

    async def _load_donor(self, donor_organ_id: str) -> DonorOrgan:
        document = await self.stores.donors.get(donor_organ_id)
        if document is None:
            raise DonorNotFoundError(donor_organ_id)
        return DonorOrgan.model_validate(document)

    async def _load_pool(self, donor: DonorOrgan) -> List[Patient]:
        # One read per run: every candidate is ranked on the priority score
        # persisted at this point.
        if donor.organ_type is None:
            return []
        documents = await self.stores.patients.filter(
            waitlist_status=WaitlistStatus.ACTIVE.value,
            organ_needed=donor.organ_type.value,
            limit=self.pool_limit,
        )
        return [Patient.model_validate(document) for document in documents]

    async def _persist_matches(self, donor: DonorOrgan, ranked: Sequence[CandidateMatch]) -> List[Dict[str, Any]]:
        created = []
        for match in ranked[:PERSISTED_MATCHES]:
            created.append(await self.stores.matches.create(match.to_record(donor.id)))
        return created

    async def _notify_admins(self, donor: DonorOrgan, ranked: Sequence[CandidateMatch], title: str, advanced: bool) -> int:
        top = ranked[:NOTIFIED_MATCHES]
        if not top:
            return 0
        admins = await self.stores.users.filter(role="admin")
        organ = donor.organ_type.value if donor.organ_type else "organ"
        sent = 0
        for match in top:
            patient = match.patient
            if advanced:
                message = (
                    f"Excellent match: {patient.full_name} ({match.compatibility_score:.0f}% compatible, "
                    f"{match.total_hla_matches}/6 HLA matches) for {organ} from donor {donor.donor_id}"
                )
            else:
                message = (
                    f"High-priority match found: {patient.full_name} ({match.compatibility_score:.0f}% compatible) "
                    f"for {organ} from donor {donor.donor_id}"
                )
            metadata = {
                "donor_id": donor.id,
                "patient_id": patient.id,
                "compatibility_score": match.compatibility_score,
            }
            if advanced:
                metadata["hla_matches"] = match.total_hla_matches
            for admin in admins:
                try:
                    await self.stores.notifications.create(
                        {
                            "recipient_email": admin["email"],
                            "title": title,
                            "message": message,
                            "notification_type": "donor_match",
                            "is_read": False,
                            "related_patient_id": patient.id,
                            "related_patient_name": patient.full_name,
                            "priority_level": match_priority_level(match.priority_rank).value,
                            "action_url": f"/DonorMatching?donor_id={donor.id}",
                            "metadata": metadata,
                        }
                    )
                    sent += 1
                except PyMongoError as exc:
                    log_db_error("notify_admins", exc)
        return sent

    async def _emit(self, event: str, payload: Dict[str, Any]) -> None:
        if self.event_sink is not None:
            await self.event_sink(LiveEvent(event, payload))

    async def match_donor(self, donor_organ_id: str, user: UserPublic, now: datetime | None = None) -> Dict[str, Any]:
        donor = await self._load_donor(donor_organ_id)
        pool = await self._load_pool(donor)
        ranked = rank_candidates(donor, pool, now or datetime.now(timezone.utc))
        logger.info("Donor {}: {} candidates, {} blood-compatible matches", donor.id, len(pool), len(ranked))

        created = await self._persist_matches(donor, ranked)
        await self._notify_admins(donor, ranked, "New Donor Match Available", advanced=False)
        top = f"{ranked[0].compatibility_score:.0f}% compatible" if ranked else "none"
        await self.audit.log(
            "create",
            "DonorOrgan",
            donor.id,
            f"Matched donor {donor.donor_id} with {len(ranked)} potential recipients. Top match: {top}",
            user=user,
        )
        await self._emit("donor_matched", {"donor_organ_id": donor.id, "total_matches": len(ranked)})
        return {
            "success": True,
            "donor": donor.model_dump(mode="json"),
            "matches": [match.to_summary() for match in ranked],
            "total_matches": len(ranked),
            "matches_created": len(created),
        }

    async def match_donor_advanced(
        self,
        user: UserPublic,
        donor_organ_id: str | None = None,
        simulation_mode: bool = False,
        hypothetical_donor: Dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> Dict[str, Any]:
        """Locus-aware matching; simulation mode scores a hypothetical donor and writes nothing."""
        simulate = simulation_mode and hypothetical_donor is not None
        if simulate:
            donor = DonorOrgan.model_validate({**hypothetical_donor, "id": SIMULATION_DONOR_ID})
        elif donor_organ_id:
            donor = await self._load_donor(donor_organ_id)
        else:
            raise ValidationError("donor_organ_id is required unless simulating a hypothetical donor")

        pool = await self._load_pool(donor)
        ranked = rank_candidates_advanced(donor, pool, now or datetime.now(timezone.utc))
        logger.info(
            "Advanced matching for donor {} (simulation={}): {} matches", donor.id, simulate, len(ranked)
        )

        created: List[Dict[str, Any]] = []
        if not simulate:
            created = await self._persist_matches(donor, ranked)
            await self._notify_admins(donor, ranked, "High-Compatibility Donor Match", advanced=True)
            if ranked:
                top = f"{ranked[0].compatibility_score:.0f}% ({ranked[0].total_hla_matches}/6 HLA)"
            else:
                top = "none"
            await self.audit.log(
                "create",
                "DonorOrgan",
                donor.id,
                f"Advanced matching for donor {donor.donor_id}: {len(ranked)} compatible recipients found. "
                f"Top match: {top}",
                user=user,
            )
            await self._emit("donor_matched", {"donor_organ_id": donor.id, "total_matches": len(ranked)})
        return {
            "success": True,
            "simulation_mode": simulate,
            "donor": donor.model_dump(mode="json"),
            "matches": [match.to_summary() for match in ranked],
            "total_matches": len(ranked),
            "matches_created": len(created),
        }
