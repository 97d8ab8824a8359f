from __future__ import annotations

import math
from dataclasses import replace
from functools import cmp_to_key
from typing import Dict, Iterable, List, Tuple

from models import Location, PlaceCandidate

EARTH_RADIUS_M = 6371e3
WALKING_SPEED_MPS = 1.4
SIGNIFICANT_DISTANCE_GAP_M = 500.0

DISTANCE_CATEGORIES: Tuple[Tuple[float, str], ...] = (
    (500.0, "very_close"),
    (1000.0, "close"),
    (2000.0, "nearby"),
    (5000.0, "within_area"),
)

DISTANCE_CATEGORY_LABELS: Dict[str, Dict[str, str]] = {
    "very_close": {"en": "Very close", "ja": "すぐ近く"},
    "close": {"en": "Close", "ja": "近く"},
    "nearby": {"en": "Nearby", "ja": "近辺"},
    "within_area": {"en": "Within the area", "ja": "エリア内"},
    "far": {"en": "A bit further away", "ja": "少し離れた場所"},
}


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in meters. Inputs are not range-checked."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def calculate_distance(a: Location, b: Location) -> float:
    return haversine_distance(a.lat, a.lng, b.lat, b.lng)


def format_distance(meters: float) -> str:
    if meters < 1000:
        return f"{round(meters)}m"
    return f"{meters / 1000:.1f}km"


def get_walking_time(meters: float) -> int:
    """Walking time in whole minutes at 1.4 m/s."""
    return round(meters / (WALKING_SPEED_MPS * 60))


def get_distance_category(meters: float) -> str:
    for upper, label in DISTANCE_CATEGORIES:
        if meters < upper:
            return label
    return "far"


def get_distance_category_text(meters: float, lang: str = "ja") -> str:
    labels = DISTANCE_CATEGORY_LABELS[get_distance_category(meters)]
    return labels.get(lang, labels["en"])


def add_distance_to_places(places: Iterable[PlaceCandidate], origin: Location) -> List[PlaceCandidate]:
    """Recompute ``distance_m`` from coordinates and sort nearest first.

    Places without coordinates keep whatever distance they carried.
    """
    annotated: list[PlaceCandidate] = []
    for place in places:
        if place.location is not None:
            place = replace(place, distance_m=calculate_distance(origin, place.location))
        annotated.append(place)
    annotated.sort(key=lambda p: p.distance_m or 0.0)
    return annotated


def filter_places_by_distance(places: Iterable[PlaceCandidate], max_distance: float) -> List[PlaceCandidate]:
    return [p for p in places if (p.distance_m or 0.0) <= max_distance]


def _distance_then_rating(a: PlaceCandidate, b: PlaceCandidate) -> int:
    gap = (a.distance_m or 0.0) - (b.distance_m or 0.0)
    if abs(gap) > SIGNIFICANT_DISTANCE_GAP_M:
        return -1 if gap < 0 else 1
    rating_gap = (b.rating or 0.0) - (a.rating or 0.0)
    if rating_gap == 0:
        return 0
    return -1 if rating_gap < 0 else 1


def get_distance_based_recommendations(
    places: Iterable[PlaceCandidate],
    origin: Location,
    max_results: int = 10,
    max_distance: float = 5000.0,
) -> List[PlaceCandidate]:
    nearby = filter_places_by_distance(add_distance_to_places(places, origin), max_distance)
    nearby.sort(key=cmp_to_key(_distance_then_rating))
    return nearby[: max(0, max_results)]
