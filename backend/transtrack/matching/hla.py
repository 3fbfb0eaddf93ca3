"""HLA typing comparison.

Typing strings are free text such as ``"A1 A2, B8;B44 DR3 DR4"``. The basic
score counts shared tokens against a fixed six-antigen panel; the locus-aware
score used by advanced matching counts A, B and DR matches the same way and
adds a small bonus per DQ match.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Set

HLA_DELIMITERS = re.compile(r"[\s,;]+")
ASSUMED_ANTIGEN_COUNT = 6
DEFAULT_HLA_SCORE = 50.0
DQ_MATCH_BONUS = 5.0


def hla_tokens(typing: str | None) -> Set[str]:
    if not typing:
        return set()
    return {token for token in HLA_DELIMITERS.split(typing.strip()) if token}


def hla_match_score(donor_typing: str | None, patient_typing: str | None) -> float:
    if not donor_typing or not patient_typing:
        return DEFAULT_HLA_SCORE
    shared = hla_tokens(donor_typing) & hla_tokens(patient_typing)
    return len(shared) / ASSUMED_ANTIGEN_COUNT * 100


@dataclass
class HLAProfile:
    A: List[str] = field(default_factory=list)
    B: List[str] = field(default_factory=list)
    DR: List[str] = field(default_factory=list)
    DQ: List[str] = field(default_factory=list)

    @classmethod
    def parse(cls, typing: str | None) -> "HLAProfile":
        profile = cls()
        if not typing:
            return profile
        for token in HLA_DELIMITERS.split(typing.strip()):
            if token.startswith("A"):
                profile.A.append(token)
            elif token.startswith("B"):
                profile.B.append(token)
            elif token.startswith("DR"):
                profile.DR.append(token)
            elif token.startswith("DQ"):
                profile.DQ.append(token)
        return profile

    def matches(self, other: "HLAProfile") -> Dict[str, int]:
        return {
            locus: sum(1 for antigen in getattr(self, locus) if antigen in getattr(other, locus))
            for locus in ("A", "B", "DR", "DQ")
        }


def locus_match_score(locus_matches: Dict[str, int]) -> float:
    total = locus_matches["A"] + locus_matches["B"] + locus_matches["DR"]
    score = total / ASSUMED_ANTIGEN_COUNT * 100
    if locus_matches["DQ"] > 0:
        score = min(100.0, score + locus_matches["DQ"] * DQ_MATCH_BONUS)
    return score
