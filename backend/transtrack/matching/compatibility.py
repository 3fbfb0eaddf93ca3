from __future__ import annotations

from typing import Dict, FrozenSet

from ..models.enums import BloodType

O_NEG, O_POS = BloodType.O_NEG, BloodType.O_POS
A_NEG, A_POS = BloodType.A_NEG, BloodType.A_POS
B_NEG, B_POS = BloodType.B_NEG, BloodType.B_POS
AB_NEG, AB_POS = BloodType.AB_NEG, BloodType.AB_POS

# Donor type -> recipient types it may donate to.
BLOOD_COMPATIBILITY: Dict[BloodType, FrozenSet[BloodType]] = {
    O_NEG: frozenset({O_NEG, O_POS, A_NEG, A_POS, B_NEG, B_POS, AB_NEG, AB_POS}),
    O_POS: frozenset({O_POS, A_POS, B_POS, AB_POS}),
    A_NEG: frozenset({A_NEG, A_POS, AB_NEG, AB_POS}),
    A_POS: frozenset({A_POS, AB_POS}),
    B_NEG: frozenset({B_NEG, B_POS, AB_NEG, AB_POS}),
    B_POS: frozenset({B_POS, AB_POS}),
    AB_NEG: frozenset({AB_NEG, AB_POS}),
    AB_POS: frozenset({AB_POS}),
}

SIZE_RATIO_MIN = 0.7
SIZE_RATIO_MAX = 1.5


def is_blood_compatible(donor: BloodType | None, recipient: BloodType | None) -> bool:
    if donor is None or recipient is None:
        return False
    return recipient in BLOOD_COMPATIBILITY[donor]


def is_size_compatible(donor_weight_kg: float | None, patient_weight_kg: float | None) -> bool:
    """Donor/recipient weight ratio within [0.7, 1.5]; unknown weights pass."""
    if not donor_weight_kg or not patient_weight_kg:
        return True
    ratio = donor_weight_kg / patient_weight_kg
    return SIZE_RATIO_MIN <= ratio <= SIZE_RATIO_MAX
