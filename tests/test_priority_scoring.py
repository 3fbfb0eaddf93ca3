import pytest

from transtrack.models.weights import PriorityWeights
from transtrack.scoring.priority import (
    DEFAULT_WEIGHTS,
    calculate_priority,
    describe_top_components,
    resolve_weights,
    top_components,
)


def test_default_weights_constant():
    assert DEFAULT_WEIGHTS.medical_urgency_weight == 30
    assert DEFAULT_WEIGHTS.time_on_waitlist_weight == 25
    assert DEFAULT_WEIGHTS.organ_specific_score_weight == 25
    assert DEFAULT_WEIGHTS.evaluation_recency_weight == 10
    assert DEFAULT_WEIGHTS.blood_type_rarity_weight == 10
    assert DEFAULT_WEIGHTS.evaluation_decay_rate == 0.5
    assert DEFAULT_WEIGHTS.total == 100


def test_resolve_weights_falls_back_to_default():
    assert resolve_weights(None) is DEFAULT_WEIGHTS
    custom = resolve_weights({"id": "w1", "weight_name": "Urgent", "medical_urgency_weight": 50,
                              "time_on_waitlist_weight": 20, "organ_specific_score_weight": 20,
                              "evaluation_recency_weight": 5, "blood_type_rarity_weight": 5,
                              "evaluation_decay_rate": 0.25, "is_active": True})
    assert custom.medical_urgency_weight == 50
    assert custom.evaluation_decay_rate == 0.25


def test_minimal_patient_lands_on_default_baseline(make_patient, now):
    result = calculate_priority(make_patient(), DEFAULT_WEIGHTS, now)

    raw = result.breakdown["raw_scores"]
    assert raw["medical_urgency"] == 50
    assert raw["time_on_waitlist"] == 0
    assert raw["organ_specific"] == pytest.approx(30)
    assert raw["evaluation_recency"] == 0
    assert raw["blood_type_rarity"] == 40
    # 15 + 0 + 7.5 + 0 + 4
    assert result.priority_score == pytest.approx(26.5)


def test_extreme_patient_saturates_at_100(make_patient, days_ago, now):
    patient = make_patient(
        organ_needed="liver",
        meld_score=40,
        medical_urgency="critical",
        functional_status="fully_dependent",
        prognosis_rating="critical",
        blood_type="AB-",
        date_added_to_waitlist=days_ago(800),
        last_evaluation_date=days_ago(10),
        compliance_score=10,
        previous_transplants=0,
    )
    result = calculate_priority(patient, DEFAULT_WEIGHTS, now)
    assert result.priority_score == 100
    assert result.breakdown["total"] == 100


def test_heavy_penalties_never_go_below_zero(make_patient, now):
    patient = make_patient(
        medical_urgency="low",
        functional_status="independent",
        prognosis_rating="excellent",
        organ_needed="heart",
        blood_type="O+",
        comorbidity_score=10,
        previous_transplants=5,
    )
    result = calculate_priority(patient, DEFAULT_WEIGHTS, now)
    assert result.priority_score == 0
    assert result.breakdown["adjustments"]["comorbidity_penalty"] == -10
    assert result.breakdown["adjustments"]["previous_transplant_adjustment"] == -25


def test_medical_urgency_product_is_not_capped(make_patient, now):
    patient = make_patient(medical_urgency="critical", functional_status="critical", prognosis_rating="critical")
    result = calculate_priority(patient, DEFAULT_WEIGHTS, now)
    assert result.breakdown["raw_scores"]["medical_urgency"] == pytest.approx(156)
    assert result.breakdown["weighted_scores"]["medical_urgency"] == pytest.approx(46.8)


def test_organ_fallback_uses_unmultiplied_urgency(make_patient, now):
    # Adjusted urgency is 156 here, but the organ fallback still reads the base level of 100.
    patient = make_patient(
        organ_needed="heart",
        medical_urgency="critical",
        functional_status="critical",
        prognosis_rating="critical",
    )
    result = calculate_priority(patient, DEFAULT_WEIGHTS, now)
    assert result.breakdown["raw_scores"]["organ_specific"] == pytest.approx(60)
    assert result.breakdown["components"]["organ_specific"]["type"] == "Default (based on urgency)"


def test_liver_meld_normalization(make_patient, now):
    result = calculate_priority(make_patient(organ_needed="liver", meld_score=23), DEFAULT_WEIGHTS, now)
    assert result.breakdown["raw_scores"]["organ_specific"] == pytest.approx(50)


def test_liver_meld_below_domain_flows_through_negative(make_patient, now):
    result = calculate_priority(make_patient(organ_needed="liver", meld_score=3), DEFAULT_WEIGHTS, now)
    assert result.breakdown["raw_scores"]["organ_specific"] == pytest.approx(-3 / 34 * 100)


def test_liver_without_meld_uses_fallback(make_patient, now):
    result = calculate_priority(make_patient(organ_needed="liver", medical_urgency="high"), DEFAULT_WEIGHTS, now)
    assert result.breakdown["raw_scores"]["organ_specific"] == pytest.approx(45)


def test_lung_las_used_directly(make_patient, now):
    result = calculate_priority(make_patient(organ_needed="lung", las_score=72), DEFAULT_WEIGHTS, now)
    assert result.breakdown["raw_scores"]["organ_specific"] == 72


@pytest.mark.parametrize(
    "pra, cpra, expected",
    [(None, None, 50), (50, 40, 73), (100, 100, 100)],
)
def test_kidney_pra_cpra(make_patient, now, pra, cpra, expected):
    patient = make_patient(organ_needed="kidney", pra_percentage=pra, cpra_percentage=cpra)
    result = calculate_priority(patient, DEFAULT_WEIGHTS, now)
    assert result.breakdown["raw_scores"]["organ_specific"] == pytest.approx(expected)


def test_waitlist_time_scales_to_two_years(make_patient, days_ago, now):
    result = calculate_priority(make_patient(date_added_to_waitlist=days_ago(365)), DEFAULT_WEIGHTS, now)
    assert result.breakdown["raw_scores"]["time_on_waitlist"] == pytest.approx(50)
    assert result.breakdown["components"]["time_on_waitlist"]["days"] == 365


def test_long_wait_bonus_flagged_but_capped(make_patient, days_ago, now):
    result = calculate_priority(make_patient(date_added_to_waitlist=days_ago(1100)), DEFAULT_WEIGHTS, now)
    assert result.breakdown["raw_scores"]["time_on_waitlist"] == 100
    assert result.breakdown["components"]["time_on_waitlist"]["long_wait_bonus"] == 10


def test_evaluation_decay_two_periods(make_patient, days_ago, now):
    patient = make_patient(last_evaluation_date=days_ago(180))
    result = calculate_priority(patient, DEFAULT_WEIGHTS, now)
    assert result.breakdown["raw_scores"]["evaluation_recency"] == pytest.approx(25)
    assert result.breakdown["components"]["evaluation_recency"]["decay_periods"] == 2


def test_recent_evaluation_scores_full(make_patient, days_ago, now):
    result = calculate_priority(make_patient(last_evaluation_date=days_ago(90)), DEFAULT_WEIGHTS, now)
    assert result.breakdown["raw_scores"]["evaluation_recency"] == 100


def test_decay_rate_comes_from_weights(make_patient, days_ago, now):
    weights = PriorityWeights(evaluation_decay_rate=0.2)
    result = calculate_priority(make_patient(last_evaluation_date=days_ago(270)), weights, now)
    assert result.breakdown["raw_scores"]["evaluation_recency"] == pytest.approx(100 * 0.8 ** 3)


def test_unknown_blood_type_degrades_to_default(make_patient, now):
    patient = make_patient(blood_type="Z+")
    assert patient.blood_type is None
    result = calculate_priority(patient, DEFAULT_WEIGHTS, now)
    assert result.breakdown["raw_scores"]["blood_type_rarity"] == 40


def test_non_numeric_clinical_values_degrade(make_patient, now):
    patient = make_patient(organ_needed="liver", meld_score="pending", comorbidity_score="n/a")
    assert patient.meld_score is None
    result = calculate_priority(patient, DEFAULT_WEIGHTS, now)
    assert result.breakdown["adjustments"]["comorbidity_penalty"] == 0


def test_weights_are_not_renormalized(make_patient, days_ago, now):
    patient = make_patient(
        medical_urgency="high",
        organ_needed="kidney",
        blood_type="B-",
        last_evaluation_date=days_ago(30),
        date_added_to_waitlist=days_ago(100),
    )
    doubled = PriorityWeights(
        medical_urgency_weight=60,
        time_on_waitlist_weight=50,
        organ_specific_score_weight=50,
        evaluation_recency_weight=20,
        blood_type_rarity_weight=20,
    )
    base = calculate_priority(patient, DEFAULT_WEIGHTS, now).breakdown["weighted_scores"]
    scaled = calculate_priority(patient, doubled, now).breakdown["weighted_scores"]
    for name, value in base.items():
        assert scaled[name] == pytest.approx(value * 2)


def test_adjustments_are_applied_after_weighting(make_patient, now):
    patient = make_patient(comorbidity_score=4, previous_transplants=1, compliance_score=8)
    result = calculate_priority(patient, DEFAULT_WEIGHTS, now)
    assert result.breakdown["adjustments"] == {
        "comorbidity_penalty": -4.0,
        "previous_transplant_adjustment": -5.0,
        "compliance_bonus": 4.0,
    }
    assert result.priority_score == pytest.approx(26.5 - 4 - 5 + 4)


def test_scoring_is_deterministic(make_patient, days_ago, now):
    patient = make_patient(
        organ_needed="kidney",
        pra_percentage=35,
        medical_urgency="high",
        date_added_to_waitlist=days_ago(412),
        last_evaluation_date=days_ago(200),
    )
    first = calculate_priority(patient, DEFAULT_WEIGHTS, now)
    second = calculate_priority(patient, DEFAULT_WEIGHTS, now)
    assert first.breakdown == second.breakdown


def test_breakdown_records_weights_used(make_patient, now):
    breakdown = calculate_priority(make_patient(), DEFAULT_WEIGHTS, now).breakdown
    assert breakdown["weights_used"]["medical_urgency_weight"] == 30
    assert breakdown["weights_used"]["weight_name"] == "Default"


def test_top_components_ordering(make_patient, days_ago, now):
    patient = make_patient(
        organ_needed="liver",
        meld_score=40,
        medical_urgency="critical",
        date_added_to_waitlist=days_ago(30),
    )
    breakdown = calculate_priority(patient, DEFAULT_WEIGHTS, now).breakdown
    names = [name for name, _ in top_components(breakdown)]
    assert names == ["medical_urgency", "organ_specific", "blood_type_rarity"]
    assert describe_top_components(breakdown).startswith("Medical: 30.0, Organ: 25.0")


def test_future_listing_date_scores_zero_time(make_patient, days_ago, now):
    result = calculate_priority(make_patient(date_added_to_waitlist=days_ago(-30)), DEFAULT_WEIGHTS, now)
    assert result.breakdown["raw_scores"]["time_on_waitlist"] == 0
    assert result.breakdown["components"]["time_on_waitlist"]["days"] == -30
