from __future__ import annotations

from dataclasses import replace
from typing import Tuple

from models import Constraints, PreferenceProfile, PreferenceVector

# (upper bound inclusive, value); anything above the last bound gets the fallback
RADIUS_TIERS: Tuple[Tuple[int, int], ...] = ((60, 1200), (180, 3000), (300, 6000))
RADIUS_FALLBACK_M = 10000

BUDGET_TIERS: Tuple[Tuple[int, int], ...] = ((2000, 1), (5000, 2))
BUDGET_FALLBACK_LEVEL = 3


def _tier(value: float, tiers: Tuple[Tuple[int, int], ...], fallback: int) -> int:
    for upper, result in tiers:
        if value <= upper:
            return result
    return fallback


def compute_user_vector(profile: PreferenceProfile) -> PreferenceVector:
    return PreferenceVector(
        plan=profile.plan,
        social=profile.social,
        immersion=profile.immersion,
        nature=profile.nature,
        urban=1 - profile.nature,
        duration_minutes=profile.duration_minutes,
        budget_jpy=profile.budget_jpy,
    )


def normalize_vector(vector: PreferenceVector) -> PreferenceVector:
    """Return a copy with every scalar clamped to [0, 1]. Safe to apply repeatedly."""
    # construction clamps; replace() re-runs __post_init__
    return replace(vector)


def compute_constraints(profile: PreferenceProfile) -> Constraints:
    return Constraints(
        radius_meters=_tier(profile.duration_minutes, RADIUS_TIERS, RADIUS_FALLBACK_M),
        min_price_level=0,
        max_price_level=_tier(profile.budget_jpy, BUDGET_TIERS, BUDGET_FALLBACK_LEVEL),
        indoor_preferred=profile.indoor_preferred,
        location=profile.location,
    )
