import pytest

from transtrack.matching.compatibility import is_blood_compatible, is_size_compatible
from transtrack.matching.hla import HLAProfile, hla_match_score, hla_tokens, locus_match_score
from transtrack.models.enums import BloodType


def test_o_negative_donates_to_every_type():
    assert all(is_blood_compatible(BloodType.O_NEG, recipient) for recipient in BloodType)


def test_ab_positive_donates_only_to_ab_positive():
    compatible = [recipient for recipient in BloodType if is_blood_compatible(BloodType.AB_POS, recipient)]
    assert compatible == [BloodType.AB_POS]


def test_every_donor_can_give_to_its_own_type():
    assert all(is_blood_compatible(blood_type, blood_type) for blood_type in BloodType)


def test_unknown_blood_type_is_incompatible():
    assert not is_blood_compatible(None, BloodType.AB_POS)
    assert not is_blood_compatible(BloodType.O_NEG, None)


@pytest.mark.parametrize(
    "donor_kg, patient_kg, expected",
    [
        (70, 100, True),
        (150, 100, True),
        (69, 100, False),
        (151, 100, False),
        (None, 80, True),
        (80, None, True),
        (0, 80, True),
    ],
)
def test_size_ratio_window(donor_kg, patient_kg, expected):
    assert is_size_compatible(donor_kg, patient_kg) is expected


def test_hla_tokens_split_on_mixed_delimiters():
    assert hla_tokens("A1 A2, B8;B44  DR3") == {"A1", "A2", "B8", "B44", "DR3"}
    assert hla_tokens("") == set()
    assert hla_tokens(None) == set()


def test_hla_score_counts_shared_tokens_over_six():
    assert hla_match_score("A1 A2 B8 B44 DR3 DR4", "A1,A2;B7 B44") == pytest.approx(50)
    assert hla_match_score("A1 A2 B8 B44 DR3 DR4", "A1 A2 B8 B44 DR3 DR4") == pytest.approx(100)


def test_hla_score_neutral_when_missing():
    assert hla_match_score(None, "A1 A2") == 50
    assert hla_match_score("A1 A2", "") == 50


def test_hla_profile_sorts_tokens_by_locus():
    profile = HLAProfile.parse("A1 A2 B8 B44 DR3 DR4 DQ2 DQ8")
    assert profile.A == ["A1", "A2"]
    assert profile.B == ["B8", "B44"]
    assert profile.DR == ["DR3", "DR4"]
    assert profile.DQ == ["DQ2", "DQ8"]


def test_locus_matches_and_dq_bonus():
    donor = HLAProfile.parse("A1 A2 B8 B44 DR3 DR4 DQ2")
    patient = HLAProfile.parse("A1 A3 B8 B7 DR3 DR7 DQ2")
    matches = donor.matches(patient)
    assert matches == {"A": 1, "B": 1, "DR": 1, "DQ": 1}
    assert locus_match_score(matches) == pytest.approx(55)


def test_locus_score_capped_at_100():
    assert locus_match_score({"A": 2, "B": 2, "DR": 2, "DQ": 2}) == 100
