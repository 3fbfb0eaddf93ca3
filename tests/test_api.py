import pytest

PATIENT = {
    "patient_id": "MRN-1001",
    "first_name": "Ana",
    "last_name": "Ruiz",
    "blood_type": "O+",
    "organ_needed": "kidney",
    "medical_urgency": "high",
    "pra_percentage": 50,
    "cpra_percentage": 40,
    "date_added_to_waitlist": "2025-01-10T00:00:00Z",
}

WEIGHTS = {
    "weight_name": "Urgency heavy",
    "medical_urgency_weight": 40,
    "time_on_waitlist_weight": 20,
    "organ_specific_score_weight": 20,
    "evaluation_recency_weight": 10,
    "blood_type_rarity_weight": 10,
}


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_create_patient_scores_and_audits(client, live_events):
    response = await client.post("/patients/", json=PATIENT)
    assert response.status_code == 201
    body = response.json()
    assert 0 <= body["priority_score"] <= 100
    assert body["priority_score_breakdown"]["raw_scores"]["organ_specific"] == pytest.approx(73)
    assert any(event.type == "priority_recalculated" for event in live_events)

    logs = (await client.get("/audit-logs/")).json()["entries"]
    details = [entry["details"] for entry in logs]
    assert "Patient added to kidney waitlist" in details
    assert any(d.startswith("Advanced priority score calculated") for d in details)


async def test_duplicate_mrn_rejected(client):
    assert (await client.post("/patients/", json=PATIENT)).status_code == 201
    response = await client.post("/patients/", json=PATIENT)
    assert response.status_code == 400
    assert response.json() == {"error": "Patient MRN already registered"}


async def test_update_rejects_engine_owned_fields(client):
    created = (await client.post("/patients/", json=PATIENT)).json()
    response = await client.put(f"/patients/{created['id']}", json={"priority_score": 100})
    assert response.status_code == 400
    assert "priority_score" in response.json()["error"]


async def test_clinical_update_rescores(client):
    created = (await client.post("/patients/", json=PATIENT)).json()
    response = await client.put(f"/patients/{created['id']}", json={"medical_urgency": "critical"})
    assert response.status_code == 200
    assert response.json()["priority_score"] > created["priority_score"]


async def test_calculate_priority_errors(client):
    missing = await client.post("/priority/calculate", json={})
    assert missing.status_code == 400
    assert "patient_id" in missing.json()["error"]

    unknown = await client.post("/priority/calculate", json={"patient_id": "64b000000000000000000000"})
    assert unknown.status_code == 404
    assert unknown.json() == {"error": "Patient not found"}


async def test_calculate_priority_and_legacy(client):
    created = (await client.post("/patients/", json=PATIENT)).json()

    advanced = await client.post("/priority/calculate", json={"patient_id": created["id"]})
    assert advanced.status_code == 200
    assert advanced.json()["success"] is True
    assert set(advanced.json()["breakdown"]) >= {"components", "raw_scores", "weighted_scores", "adjustments"}

    legacy = await client.post("/priority/calculate-legacy", json={"patient_id": created["id"]})
    assert legacy.status_code == 200
    assert "breakdown" not in legacy.json()


async def test_recalculate_all(client):
    await client.post("/patients/", json=PATIENT)
    await client.post("/patients/", json={**PATIENT, "patient_id": "MRN-1002"})
    response = await client.post("/priority/recalculate-all")
    assert response.status_code == 200
    assert response.json()["recalculated"] == 2


async def test_weights_must_sum_to_100(client):
    response = await client.post("/priority-weights/", json={**WEIGHTS, "medical_urgency_weight": 30})
    assert response.status_code == 400
    assert "sum to 100" in response.json()["error"]


async def test_single_active_weight_configuration(client):
    default = await client.get("/priority-weights/active")
    assert default.json()["medical_urgency_weight"] == 30

    first = (await client.post("/priority-weights/", json=WEIGHTS)).json()
    second = (await client.post("/priority-weights/", json={**WEIGHTS, "weight_name": "Balanced"})).json()
    assert (await client.get("/priority-weights/active")).json()["weight_name"] == "Balanced"

    activated = await client.post(f"/priority-weights/{first['id']}/activate")
    assert activated.status_code == 200
    configs = {w["id"]: w["is_active"] for w in (await client.get("/priority-weights/")).json()}
    assert configs == {first["id"]: True, second["id"]: False}


async def test_donor_matching_flow(client):
    await client.post("/patients/", json={**PATIENT, "blood_type": "A+", "organ_needed": "liver", "meld_score": 35})
    await client.post(
        "/patients/",
        json={**PATIENT, "patient_id": "MRN-1002", "blood_type": "O+", "organ_needed": "liver", "meld_score": 10},
    )
    donor = await client.post("/donors/", json={"donor_id": "D-1", "organ_type": "liver", "blood_type": "O-"})
    assert donor.status_code == 201
    donor_id = donor.json()["id"]

    result = await client.post("/matching/donor", json={"donor_organ_id": donor_id})
    assert result.status_code == 200
    matches = result.json()["matches"]
    assert [m["patient_id_mrn"] for m in matches] == ["MRN-1001", "MRN-1002"]

    stored = (await client.get(f"/donors/{donor_id}/matches")).json()
    assert [m["priority_rank"] for m in stored] == [1, 2]

    inbox = (await client.get("/notifications/")).json()["notifications"]
    assert len(inbox) == 2
    assert {n["notification_type"] for n in inbox} == {"donor_match"}


async def test_matching_unknown_donor_and_missing_id(client):
    unknown = await client.post("/matching/donor", json={"donor_organ_id": "64b000000000000000000000"})
    assert unknown.status_code == 404
    assert unknown.json() == {"error": "Donor organ not found"}

    missing = await client.post("/matching/donor", json={})
    assert missing.status_code == 400

    advanced = await client.post("/matching/donor/advanced", json={})
    assert advanced.status_code == 400


async def test_simulation_endpoint(client):
    await client.post("/patients/", json={**PATIENT, "blood_type": "AB+"})
    response = await client.post(
        "/matching/donor/advanced",
        json={
            "simulation_mode": True,
            "hypothetical_donor": {"donor_id": "SIM", "organ_type": "kidney", "blood_type": "A+"},
        },
    )
    assert response.status_code == 200
    assert response.json()["total_matches"] == 1
    assert response.json()["matches_created"] == 0


async def test_notification_rules_and_read_flag(client):
    rule = await client.post(
        "/notification-rules/",
        json={"rule_name": "Intake", "rule_type": "new_patient", "notify_roles": ["admin"]},
    )
    assert rule.status_code == 201
    await client.post("/patients/", json=PATIENT)

    inbox = (await client.get("/notifications/", params={"unread_only": True})).json()["notifications"]
    assert [n["message"] for n in inbox] == ["New patient added: Ana Ruiz (kidney)"]

    read = await client.post(f"/notifications/{inbox[0]['id']}/read")
    assert read.json()["is_read"] is True
    assert (await client.get("/notifications/", params={"unread_only": True})).json()["notifications"] == []


async def test_register_login_and_role_checks(client):
    registered = await client.post(
        "/auth/register",
        json={"email": "coord@transtrack.org", "password": "s3cret-pass", "name": "Coord", "role": "coordinator"},
    )
    assert registered.status_code == 201

    duplicate = await client.post(
        "/auth/register",
        json={"email": "coord@transtrack.org", "password": "s3cret-pass", "name": "Coord"},
    )
    assert duplicate.status_code == 400

    bad_login = await client.post("/auth/login", data={"username": "coord@transtrack.org", "password": "wrong-pass"})
    assert bad_login.status_code == 401
    assert bad_login.json() == {"error": "Incorrect email or password"}

    login = await client.post("/auth/login", data={"username": "coord@transtrack.org", "password": "s3cret-pass"})
    assert login.status_code == 200
    headers = {"Authorization": f"Bearer {login.json()['access_token']}"}

    forbidden = await client.get("/audit-logs/", headers=headers)
    assert forbidden.status_code == 403
    assert forbidden.json() == {"error": "Insufficient permissions for this action"}

    invalid = await client.get("/patients/", headers={"Authorization": "Bearer not-a-token"})
    assert invalid.status_code == 401


async def test_missing_token_is_rejected_without_demo_mode(client, monkeypatch):
    from transtrack.database import settings

    monkeypatch.setattr(settings, "auto_authorize_demo", False)
    response = await client.post("/priority/recalculate-all")
    assert response.status_code == 401
    assert response.json() == {"error": "Missing authorization token"}


def test_demo_mode_is_off_by_default(monkeypatch):
    from transtrack.database import Settings

    monkeypatch.delenv("TRANSTRACK_AUTO_AUTHORIZE_DEMO", raising=False)
    monkeypatch.delenv("TRANSTRACK_DEMO_USER_ROLE", raising=False)
    defaults = Settings(_env_file=None)
    assert defaults.auto_authorize_demo is False
    assert defaults.demo_user_role != "admin"
