"""Data models for the place recommender."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Literal, Optional, Tuple, cast

from utils import clamp, haversine_km

Category = Literal["eat", "feel", "make", "learn", "play"]
CATEGORIES: Tuple[str, ...] = ("eat", "feel", "make", "learn", "play")


def ensure_category(value: str) -> Category:
    if value not in CATEGORIES:
        raise ValueError(f"unknown category {value!r}, expected one of {', '.join(CATEGORIES)}")
    return cast(Category, value)


@dataclass(frozen=True)
class Location:
    lat: float
    lng: float


@dataclass(frozen=True)
class PreferenceProfile:
    """Quiz answers for a single recommendation request."""

    location: Location
    plan: float  # 0 = spontaneous, 1 = structured
    social: float
    immersion: float
    nature: float
    duration_minutes: int
    budget_jpy: int
    indoor_preferred: bool
    category: Category

    def __post_init__(self) -> None:
        ensure_category(self.category)


@dataclass(frozen=True)
class PreferenceVector:
    plan: float
    social: float
    immersion: float
    nature: float
    urban: float
    duration_minutes: Optional[int] = None
    budget_jpy: Optional[int] = None

    def __post_init__(self) -> None:
        for name in ("plan", "social", "immersion", "nature", "urban"):
            object.__setattr__(self, name, clamp(float(getattr(self, name))))


@dataclass(frozen=True)
class Constraints:
    radius_meters: int
    min_price_level: int
    max_price_level: int
    indoor_preferred: bool
    location: Location


@dataclass(frozen=True)
class CategoryMapping:
    types: Tuple[str, ...]
    keywords: Tuple[str, ...]
    base_weight: float


@dataclass(frozen=True)
class SearchStrategy:
    primary_types: Tuple[str, ...]
    fallback_types: Tuple[str, ...]
    keywords: Tuple[str, ...]
    search_radius: float


@dataclass(frozen=True)
class PlaceCandidate:
    place_id: str
    name: str
    vicinity: str = ""
    types: Tuple[str, ...] = ()
    rating: Optional[float] = None
    user_ratings_total: Optional[int] = None
    price_level: Optional[int] = None
    distance_m: Optional[float] = None
    open_now: Optional[bool] = None
    photo_url: Optional[str] = None
    photos: Tuple[Dict[str, Any], ...] = ()
    maps_url: Optional[str] = None
    location: Optional[Location] = None

    def text(self) -> str:
        """Lowercase blob of name, vicinity and types used by keyword matchers."""
        return " ".join(filter(None, [self.name, self.vicinity, " ".join(self.types)])).lower()

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], origin: Optional[Location] = None) -> "PlaceCandidate":
        """Build a candidate from a Places-style search result.

        Accepts both nearby-search (``vicinity``) and details
        (``formatted_address``) shapes. ``distance_m`` is taken from the
        payload when present, otherwise derived from ``origin``.
        """
        place_id = str(payload.get("place_id") or "").strip()
        name = str(payload.get("name") or "").strip()
        if not place_id or not name:
            raise ValueError("place payload requires place_id and name")

        location: Optional[Location] = None
        geo = (payload.get("geometry") or {}).get("location") or {}
        if geo.get("lat") is not None and geo.get("lng") is not None:
            location = Location(lat=float(geo["lat"]), lng=float(geo["lng"]))

        distance = payload.get("distance_m")
        if distance is None and origin is not None and location is not None:
            distance = haversine_km(origin.lat, origin.lng, location.lat, location.lng) * 1000.0

        open_now = payload.get("open_now")
        hours = payload.get("opening_hours")
        if open_now is None and isinstance(hours, dict):
            open_now = hours.get("open_now")

        return cls(
            place_id=place_id,
            name=name,
            vicinity=str(payload.get("vicinity") or payload.get("formatted_address") or ""),
            types=tuple(str(t) for t in (payload.get("types") or [])),
            rating=_opt_float(payload.get("rating")),
            user_ratings_total=_opt_int(payload.get("user_ratings_total")),
            price_level=_opt_int(payload.get("price_level")),
            distance_m=_opt_float(distance),
            open_now=bool(open_now) if open_now is not None else None,
            photo_url=payload.get("photo_url"),
            photos=tuple(p for p in (payload.get("photos") or []) if isinstance(p, dict)),
            maps_url=payload.get("maps_url"),
            location=location,
        )


@dataclass(frozen=True)
class ScoreBreakdown:
    category_match: float
    distance_score: float
    price_fit: float
    rating_norm: float
    open_now: float
    social_fit: float
    nature_fit: float
    immersion_fit: float
    budget_fit: float
    duration_fit: float
    diversity_bonus: float = 0.0
    time_bonus: float = 0.0
    random_factor: float = 1.0


@dataclass(frozen=True)
class ScoredPlace:
    place: PlaceCandidate
    score: float
    breakdown: ScoreBreakdown = field(repr=False)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self.place)
        data["types"] = list(self.place.types)
        data["photos"] = list(self.place.photos)
        data["score"] = self.score
        data["breakdown"] = asdict(self.breakdown)
        return data


def _opt_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _opt_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None
