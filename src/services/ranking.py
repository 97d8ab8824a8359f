from __future__ import annotations

import math
import random
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Protocol

from loguru import logger

from config import Configuration
from models import (
    CategoryMapping,
    Constraints,
    PlaceCandidate,
    PreferenceProfile,
    PreferenceVector,
    ScoreBreakdown,
    ScoredPlace,
)
from services.candidates import PlaceSearch, gather_candidates
from services.category import get_category_mapping, get_search_strategies
from services.scoring_tables import DEFAULT_TABLES, ScoringTables, bidirectional_fit, trait_score
from services.user_vector import compute_constraints, compute_user_vector, normalize_vector

REVIEW_SATURATION = 1000
UNKNOWN_RATING_SCORE = 0.3
NEUTRAL = 0.5
PRICE_TIER_PENALTY = 0.3


class RandomSource(Protocol):
    def random(self) -> float:
        """Return a float in [0, 1)."""
        ...


def _category_match(place: PlaceCandidate, mapping: CategoryMapping) -> float:
    score = 0.0
    hits = 0
    for t in place.types:
        if t in mapping.types:
            score += 1.0
            hits += 1

    text = f"{place.name} {place.vicinity}".lower()
    for keyword in mapping.keywords:
        if keyword.lower() in text:
            score += 0.5
            hits += 1

    if not hits:
        return 0.0
    return min(1.0, score / 3) * mapping.base_weight


def _distance_score(distance: Optional[float], radius: float) -> float:
    if distance is None:
        return NEUTRAL
    distance = max(0.0, distance)
    if radius <= 0:
        return 1.0 if distance <= 0 else 0.0
    if distance > radius:
        return 0.0
    return 1.0 - distance / radius


def _price_fit(price_level: Optional[int], constraints: Constraints) -> float:
    if price_level is None:
        return NEUTRAL
    if constraints.min_price_level <= price_level <= constraints.max_price_level:
        return 1.0
    tiers_off = min(
        abs(price_level - constraints.min_price_level),
        abs(price_level - constraints.max_price_level),
    )
    return max(0.0, 1.0 - tiers_off * PRICE_TIER_PENALTY)


def _rating_norm(rating: Optional[float], total: Optional[int]) -> float:
    if rating is None:
        return UNKNOWN_RATING_SCORE
    review_weight = math.log(1 + total) / math.log(1 + REVIEW_SATURATION) if total and total > 0 else NEUTRAL
    return (rating / 5.0) * review_weight


class RankingEngine:
    """Scores and orders candidate places against a preference vector.

    Build once and reuse across requests; the engine keeps no per-request
    state. ``rng`` supplies the score jitter and ``clock`` the hour used by
    the time-of-day bonus, so both can be pinned in tests.
    """

    def __init__(
        self,
        cfg: Optional[Configuration] = None,
        tables: Optional[ScoringTables] = None,
        rng: Optional[RandomSource] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.cfg = cfg or Configuration()
        self.tables = tables or DEFAULT_TABLES
        self.rng: RandomSource = rng or random.Random()
        self.clock = clock or datetime.now

    # --- per-factor scores -------------------------------------------------

    def _trait_fit(self, trait: str, place: PlaceCandidate, user_value: Optional[float]) -> float:
        if user_value is None:
            return NEUTRAL
        place_trait = trait_score(self.tables.traits[trait], place.types, place.text())
        return bidirectional_fit(place_trait, user_value)

    def _budget_fit(self, place: PlaceCandidate, vector: PreferenceVector) -> float:
        if vector.budget_jpy is None or place.price_level is None:
            return NEUTRAL
        budget = vector.budget_jpy
        cost = self.tables.estimate_cost_jpy(place.price_level)
        if cost <= budget * 0.5:
            return 1.0
        if cost <= budget:
            return 0.8
        if cost <= budget * 1.5:
            return 0.4
        return 0.1

    def _duration_fit(self, place: PlaceCandidate, vector: PreferenceVector) -> float:
        if vector.duration_minutes is None:
            return NEUTRAL
        target = vector.duration_minutes
        estimate = self.tables.estimate_duration(place.text())
        longest = max(target, estimate)
        if longest <= 0:
            return NEUTRAL
        return max(0.0, 1.0 - abs(estimate - target) / longest)

    def diversity_bonus(self, place: PlaceCandidate) -> float:
        cfg = self.cfg
        bonus = 0.0
        if any(t in self.tables.unique_types for t in place.types):
            bonus += cfg.unique_type_bonus

        rating = place.rating
        reviews = place.user_ratings_total
        if rating and reviews and reviews > 0:
            if rating >= cfg.underrated_min_rating and reviews < cfg.underrated_max_reviews:
                bonus += cfg.underrated_bonus
            # hidden gem: highly rated but barely reviewed
            if rating >= cfg.hidden_gem_min_rating and reviews < cfg.hidden_gem_max_reviews:
                bonus += cfg.hidden_gem_bonus
        return bonus

    def time_bonus(self, place: PlaceCandidate, hour: int) -> float:
        name = place.name.lower()
        bonus = 0.0
        for period in self.tables.meal_periods:
            if not period.contains(hour):
                continue
            if any(t in place.types for t in period.types) or any(k in name for k in period.name_keywords):
                bonus += self.cfg.time_bonus
        return bonus

    def _random_factor(self) -> float:
        if not self.cfg.random_enabled:
            return 1.0
        low, high = self.cfg.random_bounds()
        return low + self.rng.random() * (high - low)

    # --- scoring -----------------------------------------------------------

    def score_place(
        self,
        place: PlaceCandidate,
        vector: PreferenceVector,
        constraints: Constraints,
        mapping: CategoryMapping,
        *,
        hour: Optional[int] = None,
    ) -> ScoredPlace:
        if hour is None:
            hour = self.clock().hour

        factors = {
            "category_match": _category_match(place, mapping),
            "distance_score": _distance_score(place.distance_m, constraints.radius_meters),
            "price_fit": _price_fit(place.price_level, constraints),
            "rating_norm": _rating_norm(place.rating, place.user_ratings_total),
            "open_now": 1.0 if place.open_now else 0.0,
            "social_fit": self._trait_fit("social", place, vector.social),
            "nature_fit": self._trait_fit("nature", place, vector.nature),
            "immersion_fit": self._trait_fit("immersion", place, vector.immersion),
            "budget_fit": self._budget_fit(place, vector),
            "duration_fit": self._duration_fit(place, vector),
        }
        base_score = sum(self.tables.weights.get(name, 0.0) * value for name, value in factors.items())

        diversity = self.diversity_bonus(place)
        timely = self.time_bonus(place, hour)
        jitter = self._random_factor()

        breakdown = ScoreBreakdown(
            **factors,
            diversity_bonus=diversity,
            time_bonus=timely,
            random_factor=jitter,
        )
        return ScoredPlace(place=place, score=(base_score + diversity + timely) * jitter, breakdown=breakdown)

    def rank_places(
        self,
        candidates: Iterable[PlaceCandidate],
        vector: PreferenceVector,
        constraints: Constraints,
        mapping: CategoryMapping,
    ) -> List[ScoredPlace]:
        candidates = list(candidates)
        if not candidates:
            return []

        # one hour reading per call so every candidate sees the same period
        hour = self.clock().hour
        scored = [self.score_place(p, vector, constraints, mapping, hour=hour) for p in candidates]
        scored.sort(key=lambda s: s.score, reverse=True)
        top = scored[: max(0, self.cfg.max_results)]
        logger.debug(
            "ranked {} candidates, returning {} (top score={:.4f})",
            len(scored),
            len(top),
            top[0].score if top else 0.0,
        )
        return top

    def recommend(self, profile: PreferenceProfile, search: PlaceSearch) -> List[ScoredPlace]:
        """Run the full pipeline for one profile using ``search`` to fetch candidates."""
        vector = normalize_vector(compute_user_vector(profile))
        constraints = compute_constraints(profile)
        mapping = get_category_mapping(profile.category, vector, profile.indoor_preferred)
        strategies = get_search_strategies(profile.category, vector)

        candidates = gather_candidates(
            strategies,
            search,
            profile.location,
            min_candidates=self.cfg.min_candidates,
            widen_factor=self.cfg.widen_factor,
        )
        ranked = self.rank_places(candidates, vector, constraints, mapping)
        logger.info(
            "recommend category={} radius={}m candidates={} returned={}",
            profile.category,
            constraints.radius_meters,
            len(candidates),
            len(ranked),
        )
        return ranked


_default_engine: RankingEngine | None = None


def rank_places(
    candidates: Iterable[PlaceCandidate],
    vector: PreferenceVector,
    constraints: Constraints,
    mapping: CategoryMapping,
) -> List[ScoredPlace]:
    """Rank with a shared engine built from environment configuration."""
    global _default_engine
    if _default_engine is None:
        cfg = Configuration.from_env()
        logger.info("ranking cfg: {}", cfg.log_summary())
        _default_engine = RankingEngine(cfg)
    return _default_engine.rank_places(candidates, vector, constraints, mapping)
