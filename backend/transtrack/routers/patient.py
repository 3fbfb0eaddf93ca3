from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status

from ..database import settings
from ..models.patient import Patient, PatientCreate, PatientList, PatientUpdate
from ..models.user import UserPublic
from ..services.audit import AuditTrail
from ..services.notification_rules import NotificationRuleService
from ..services.scoring import ScoringService
from ..store import Stores, get_stores
from .auth import get_current_user
from .notifications import get_rule_service
from .priority import get_scoring_service

router = APIRouter(prefix="/patients", tags=["patients"])

# Edits to these fields do not change the score inputs.
NON_CLINICAL_FIELDS = {"first_name", "last_name"}


@router.get("/", response_model=PatientList)
async def list_patients(
    waitlist_status: str | None = None,
    organ_needed: str | None = None,
    stores: Stores = Depends(get_stores),
    _: UserPublic = Depends(get_current_user),
) -> PatientList:
    filters: Dict[str, Any] = {}
    if waitlist_status:
        filters["waitlist_status"] = waitlist_status
    if organ_needed:
        filters["organ_needed"] = organ_needed
    documents = await stores.patients.filter(limit=settings.candidate_pool_limit, **filters)
    items: List[Patient] = [Patient.model_validate(doc) for doc in documents]
    items.sort(key=lambda patient: patient.priority_score or 0, reverse=True)
    return PatientList(patients=items)


@router.get("/{patient_id}", response_model=Patient)
async def get_patient(
    patient_id: str,
    stores: Stores = Depends(get_stores),
    _: UserPublic = Depends(get_current_user),
) -> Patient:
    patient = await stores.patients.get(patient_id)
    if not patient:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")
    return Patient.model_validate(patient)


@router.post("/", response_model=Patient, status_code=status.HTTP_201_CREATED)
async def create_patient(
    payload: PatientCreate,
    stores: Stores = Depends(get_stores),
    scoring: ScoringService = Depends(get_scoring_service),
    rules: NotificationRuleService = Depends(get_rule_service),
    user: UserPublic = Depends(get_current_user),
) -> Patient:
    existing = await stores.patients.filter(patient_id=payload.patient_id, limit=1)
    if existing:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Patient MRN already registered")
    stored = await stores.patients.create(payload.model_dump(mode="json"))
    await AuditTrail(stores.audit_logs).log(
        "create",
        "Patient",
        stored["id"],
        f"Patient added to {payload.organ_needed.value} waitlist",
        user=user,
        patient_name=f"{payload.first_name} {payload.last_name}",
    )
    await scoring.recalculate(stored["id"], user)
    await rules.check(stored["id"], "create")
    return Patient.model_validate(await stores.patients.get(stored["id"]))


@router.put("/{patient_id}", response_model=Patient)
async def update_patient(
    patient_id: str,
    payload: PatientUpdate,
    stores: Stores = Depends(get_stores),
    scoring: ScoringService = Depends(get_scoring_service),
    rules: NotificationRuleService = Depends(get_rule_service),
    user: UserPublic = Depends(get_current_user),
) -> Patient:
    previous = await stores.patients.get(patient_id)
    if not previous:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")

    changes = payload.model_dump(mode="json", exclude_unset=True)
    if not changes:
        return Patient.model_validate(previous)
    await stores.patients.update(patient_id, changes)
    await AuditTrail(stores.audit_logs).log(
        "update",
        "Patient",
        patient_id,
        f"Updated fields: {', '.join(sorted(changes))}",
        user=user,
        patient_name=Patient.model_validate(previous).full_name,
    )
    if set(changes) - NON_CLINICAL_FIELDS:
        await scoring.recalculate(patient_id, user)
    await rules.check(patient_id, "update", old_data=previous)
    return Patient.model_validate(await stores.patients.get(patient_id))
