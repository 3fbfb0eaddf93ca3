import pytest

from transtrack.scoring.legacy import calculate_legacy_priority


def test_legacy_formula_literal(make_patient, days_ago, now):
    patient = make_patient(
        medical_urgency="critical",
        date_added_to_waitlist=days_ago(365),
        organ_needed="kidney",
        pra_percentage=50,
        cpra_percentage=40,
        blood_type="O+",
    )
    # 30 + 25 + 7.5 + 4 + 1
    assert calculate_legacy_priority(patient, now) == pytest.approx(67.5)


def test_legacy_waitlist_points_cap_at_25(make_patient, days_ago, now):
    veteran = make_patient(medical_urgency="low", date_added_to_waitlist=days_ago(2000))
    assert calculate_legacy_priority(veteran, now) == pytest.approx(5 + 25 + 10)


@pytest.mark.parametrize("days, bonus", [(30, 10), (150, 5), (400, 0)])
def test_legacy_evaluation_bands(make_patient, days_ago, now, days, bonus):
    patient = make_patient(last_evaluation_date=days_ago(days))
    # medium urgency default 10, non-kidney organ fallback 10, no blood type 0
    assert calculate_legacy_priority(patient, now) == pytest.approx(20 + bonus)


def test_legacy_liver_and_lung_points(make_patient, now):
    liver = make_patient(organ_needed="liver", meld_score=40, medical_urgency="high", blood_type="AB-")
    lung = make_patient(organ_needed="lung", las_score=60, medical_urgency="high", blood_type="AB-")
    assert calculate_legacy_priority(liver, now) == pytest.approx(20 + 25 + 10)
    assert calculate_legacy_priority(lung, now) == pytest.approx(20 + 15 + 10)


def test_legacy_future_listing_date_adds_nothing(make_patient, days_ago, now):
    patient = make_patient(date_added_to_waitlist=days_ago(-30))
    # medium urgency default 10, organ fallback 10
    assert calculate_legacy_priority(patient, now) == pytest.approx(20)
