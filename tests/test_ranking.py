from datetime import datetime
from typing import Iterable, List

import pytest

from config import Configuration
from models import CategoryMapping, Constraints, Location, PlaceCandidate, PreferenceProfile, SearchStrategy
from services import ranking
from services.category import get_category_mapping
from services.ranking import RankingEngine, _category_match, _distance_score, _price_fit, _rating_norm
from services.scoring_tables import IMMERSION_LEXICON, NATURE_LEXICON, SOCIAL_LEXICON, bidirectional_fit, trait_score
from services.user_vector import compute_constraints, compute_user_vector

SHIBUYA = Location(lat=35.6580, lng=139.7016)


class FixedRandom:
    def __init__(self, values: Iterable[float]):
        self._values = list(values)
        self._idx = 0

    def random(self):
        value = self._values[self._idx % len(self._values)]
        self._idx += 1
        return value


def _clock(hour: int):
    return lambda: datetime(2026, 10, 19, hour, 0)


def _engine(hour: int = 4, **cfg):
    settings = {"random_enabled": False}
    settings.update(cfg)
    return RankingEngine(Configuration(**settings), clock=_clock(hour))


def _profile(**overrides):
    data = dict(
        location=SHIBUYA,
        plan=0.2,
        social=0.8,
        immersion=0.5,
        nature=0.2,
        duration_minutes=90,
        budget_jpy=3000,
        indoor_preferred=False,
        category="eat",
    )
    data.update(overrides)
    return PreferenceProfile(**data)


def _inputs(profile: PreferenceProfile):
    vector = compute_user_vector(profile)
    return vector, compute_constraints(profile), get_category_mapping(profile.category, vector, profile.indoor_preferred)


def _constraints(max_level: int = 2):
    return Constraints(radius_meters=3000, min_price_level=0, max_price_level=max_level, indoor_preferred=False, location=SHIBUYA)


def test_price_fit():
    assert _price_fit(1, _constraints()) == 1.0
    assert _price_fit(None, _constraints()) == 0.5
    assert _price_fit(4, _constraints()) == pytest.approx(0.4)


def test_distance_score_bounds():
    assert _distance_score(0, 3000) == 1.0
    assert _distance_score(3000, 3000) == 0.0
    assert _distance_score(4500, 3000) == 0.0
    assert _distance_score(1500, 3000) == pytest.approx(0.5)
    assert _distance_score(None, 3000) == 0.5
    assert _distance_score(-500, 3000) == 1.0
    assert _distance_score(-1, 0) == 1.0


def test_rating_norm_defaults():
    assert _rating_norm(None, 50) == 0.3
    assert _rating_norm(5.0, 1000) == pytest.approx(1.0)
    assert _rating_norm(4.0, None) == pytest.approx(0.4)
    assert _rating_norm(4.0, 0) == pytest.approx(0.4)
    assert _rating_norm(4.0, -3) == pytest.approx(0.4)


def test_bidirectional_fit_bands():
    assert bidirectional_fit(0.8, 0.9) == pytest.approx(0.8)
    assert bidirectional_fit(0.8, 0.1) == pytest.approx(0.2)
    assert bidirectional_fit(0.8, 0.5) == pytest.approx(0.5)
    assert bidirectional_fit(1.0, 0.6) == pytest.approx(0.6)


def test_trait_score_matches_japanese_terms():
    assert trait_score(SOCIAL_LEXICON, [], "plain name") == 0.5
    assert trait_score(SOCIAL_LEXICON, ["bar"], "bar") == 1.0
    assert trait_score(SOCIAL_LEXICON, [], "静かな庭園") == 0.0
    assert trait_score(SOCIAL_LEXICON, [], "渋谷 居酒屋") == pytest.approx(0.5)


def test_category_match_counts_type_and_keyword_hits():
    mapping = CategoryMapping(types=("museum", "art_gallery", "store"), keywords=("workshop", "工房"), base_weight=1.2)

    type_only = PlaceCandidate(place_id="a", name="City Museum", types=("museum",))
    assert _category_match(type_only, mapping) == pytest.approx(1.0 / 3 * 1.2)

    type_and_keyword = PlaceCandidate(place_id="b", name="Glass WORKSHOP", types=("museum",))
    assert _category_match(type_and_keyword, mapping) == pytest.approx(1.5 / 3 * 1.2)

    keyword_in_vicinity = PlaceCandidate(place_id="c", name="Kiln", vicinity="Kappabashi workshop street")
    assert _category_match(keyword_in_vicinity, mapping) == pytest.approx(0.5 / 3 * 1.2)


def test_category_match_japanese_keyword_in_name():
    _, _, mapping = _inputs(_profile(category="make"))
    place = PlaceCandidate(place_id="a", name="工房こむら")
    assert mapping.base_weight == pytest.approx(1.2)
    assert _category_match(place, mapping) == pytest.approx(0.5 / 3 * 1.2)


def test_category_match_is_capped_then_weighted():
    mapping = CategoryMapping(types=("museum", "art_gallery", "store"), keywords=("workshop", "工房"), base_weight=1.2)
    place = PlaceCandidate(
        place_id="a",
        name="Workshop 工房",
        types=("museum", "art_gallery", "store"),
    )
    assert _category_match(place, mapping) == pytest.approx(1.2)


def test_category_match_without_hits_is_zero():
    mapping = CategoryMapping(types=("museum",), keywords=("workshop",), base_weight=1.2)
    place = PlaceCandidate(place_id="a", name="Plain Diner", types=("restaurant",))
    assert _category_match(place, mapping) == 0.0


def test_low_trait_preference_inverts_nature_and_immersion():
    park = PlaceCandidate(place_id="park", name="Yoyogi Park", vicinity="Shibuya", types=("park",))
    museum = PlaceCandidate(place_id="museum", name="Mori Art Museum", vicinity="Roppongi", types=("museum",))
    assert trait_score(NATURE_LEXICON, park.types, park.text()) == 1.0
    assert trait_score(NATURE_LEXICON, museum.types, museum.text()) == 0.0
    assert trait_score(IMMERSION_LEXICON, museum.types, museum.text()) == 1.0

    engine = _engine()
    vector, constraints, mapping = _inputs(_profile(category="feel", nature=0.2, immersion=0.1))
    park_scored = engine.score_place(park, vector, constraints, mapping, hour=4)
    museum_scored = engine.score_place(museum, vector, constraints, mapping, hour=4)
    assert park_scored.breakdown.nature_fit == pytest.approx(0.0)
    assert museum_scored.breakdown.nature_fit == pytest.approx(1.0)
    assert museum_scored.breakdown.immersion_fit == pytest.approx(0.0)

    vector, constraints, mapping = _inputs(_profile(category="feel", nature=0.9, immersion=0.9))
    assert engine.score_place(park, vector, constraints, mapping, hour=4).breakdown.nature_fit == pytest.approx(1.0)
    assert engine.score_place(museum, vector, constraints, mapping, hour=4).breakdown.immersion_fit == pytest.approx(1.0)


def test_negative_review_count_does_not_break_ranking():
    vector, constraints, mapping = _inputs(_profile())
    place = PlaceCandidate(place_id="x", name="X", types=("restaurant",), rating=4.5, user_ratings_total=-3, distance_m=300.0)
    ranked = _engine().rank_places([place], vector, constraints, mapping)
    assert len(ranked) == 1
    assert ranked[0].breakdown.rating_norm == pytest.approx(0.45)
    assert ranked[0].breakdown.diversity_bonus == 0.0


def test_empty_candidates_yield_empty_result():
    vector, constraints, mapping = _inputs(_profile())
    assert _engine().rank_places([], vector, constraints, mapping) == []


def test_top_ten_sorted_descending():
    vector, constraints, mapping = _inputs(_profile())
    places = [
        PlaceCandidate(
            place_id=f"p{i}",
            name=f"Place {i}",
            types=("restaurant",) if i % 2 else ("store",),
            rating=3.0 + (i % 5) * 0.4,
            user_ratings_total=10 * i,
            price_level=i % 5,
            distance_m=200.0 * i,
            open_now=bool(i % 3),
        )
        for i in range(15)
    ]
    ranked = RankingEngine(Configuration(), clock=_clock(12)).rank_places(places, vector, constraints, mapping)
    assert len(ranked) == 10
    scores = [s.score for s in ranked]
    assert scores == sorted(scores, reverse=True)


def test_identical_inputs_rank_identically_without_jitter():
    vector, constraints, mapping = _inputs(_profile())
    places = [
        PlaceCandidate(place_id="a", name="Cafe Alpha", types=("cafe",), rating=4.1, user_ratings_total=90, distance_m=300.0),
        PlaceCandidate(place_id="b", name="Bar Beta", types=("bar",), rating=3.9, user_ratings_total=400, distance_m=900.0),
        PlaceCandidate(place_id="c", name="Gamma", types=("store",), distance_m=1800.0),
    ]
    engine = _engine(hour=19)
    first = engine.rank_places(places, vector, constraints, mapping)
    second = engine.rank_places(places, vector, constraints, mapping)
    assert [s.place.place_id for s in first] == [s.place.place_id for s in second]
    assert [s.breakdown for s in first] == [s.breakdown for s in second]
    assert all(s.breakdown.random_factor == 1.0 for s in first)


def test_injected_random_source_scales_score():
    vector, constraints, mapping = _inputs(_profile())
    place = PlaceCandidate(place_id="a", name="Cafe Alpha", types=("cafe",), rating=4.1, distance_m=300.0)

    plain = _engine().score_place(place, vector, constraints, mapping)
    low = RankingEngine(Configuration(), rng=FixedRandom([0.0]), clock=_clock(4)).score_place(
        place, vector, constraints, mapping
    )
    assert low.breakdown.random_factor == pytest.approx(0.95)
    assert low.score == pytest.approx(plain.score * 0.95)


def test_hidden_gem_bonus():
    vector, constraints, mapping = _inputs(_profile())
    gem = PlaceCandidate(place_id="g", name="Tiny Counter", types=("restaurant",), rating=4.3, user_ratings_total=20)
    popular = PlaceCandidate(place_id="p", name="Big Hall", types=("restaurant",), rating=4.3, user_ratings_total=5000)

    engine = _engine()
    gem_scored = engine.score_place(gem, vector, constraints, mapping)
    # hidden gem (+0.08) stacks with the under-reviewed bonus (+0.03)
    assert gem_scored.breakdown.diversity_bonus == pytest.approx(0.11)
    assert engine.score_place(popular, vector, constraints, mapping).breakdown.diversity_bonus == 0.0


def test_unique_type_bonus():
    vector, constraints, mapping = _inputs(_profile(category="learn"))
    museum = PlaceCandidate(place_id="m", name="City Museum", types=("museum",))
    assert _engine().score_place(museum, vector, constraints, mapping).breakdown.diversity_bonus == pytest.approx(0.05)


@pytest.mark.parametrize(
    "hour, types, name, expected",
    [
        (8, ("cafe",), "Beans", 0.05),
        (8, ("restaurant",), "Morning Diner", 0.05),
        (13, ("restaurant",), "Lunch Spot", 0.05),
        (16, ("bakery",), "Crust", 0.05),
        (16, ("restaurant",), "Dinner Only", 0.0),
        (20, ("bar",), "Night Owl", 0.05),
        (23, ("bar",), "Late Bar", 0.0),
    ],
)
def test_time_of_day_bonus(hour: int, types: tuple, name: str, expected: float):
    place = PlaceCandidate(place_id="t", name=name, types=types)
    assert _engine().time_bonus(place, hour) == pytest.approx(expected)


def test_unknown_fields_degrade_to_neutral_defaults():
    vector, constraints, mapping = _inputs(_profile())
    bare = PlaceCandidate(place_id="x", name="Unnamed")
    scored = _engine().score_place(bare, vector, constraints, mapping)
    assert scored.breakdown.price_fit == 0.5
    assert scored.breakdown.rating_norm == 0.3
    assert scored.breakdown.distance_score == 0.5
    assert scored.breakdown.budget_fit == 0.5
    assert scored.breakdown.open_now == 0.0


def test_budget_and_duration_fit():
    vector, constraints, mapping = _inputs(_profile(budget_jpy=3000, duration_minutes=90))
    engine = _engine()
    cheap = engine.score_place(PlaceCandidate(place_id="c", name="c", price_level=0), vector, constraints, mapping)
    pricey = engine.score_place(PlaceCandidate(place_id="p", name="p", price_level=4), vector, constraints, mapping)
    assert cheap.breakdown.budget_fit == 1.0
    assert pricey.breakdown.budget_fit == 0.1

    restaurant = PlaceCandidate(place_id="r", name="Ramen Restaurant")
    assert engine.score_place(restaurant, vector, constraints, mapping).breakdown.duration_fit == pytest.approx(1.0)
    cafe = PlaceCandidate(place_id="k", name="Kissa Cafe")
    assert engine.score_place(cafe, vector, constraints, mapping).breakdown.duration_fit == pytest.approx(1 - 60 / 90)


def test_shibuya_social_eater_prefers_nearby_izakaya():
    profile = _profile()
    vector, constraints, mapping = _inputs(profile)
    places = [
        PlaceCandidate(
            place_id="far",
            name="Maison Lumiere",
            vicinity="Ginza, Chuo City",
            types=("store", "point_of_interest"),
            rating=4.0,
            user_ratings_total=800,
            price_level=4,
            distance_m=2900.0,
            open_now=True,
        ),
        PlaceCandidate(
            place_id="cafe",
            name="Sakura Coffee",
            vicinity="Jinnan, Shibuya",
            types=("cafe", "food"),
            rating=4.0,
            user_ratings_total=300,
            price_level=1,
            distance_m=1200.0,
            open_now=True,
        ),
        PlaceCandidate(
            place_id="near",
            name="Hachi Izakaya",
            vicinity="Dogenzaka, Shibuya",
            types=("restaurant", "bar", "food"),
            rating=4.1,
            user_ratings_total=350,
            price_level=2,
            distance_m=600.0,
            open_now=True,
        ),
        PlaceCandidate(
            place_id="bakery",
            name="Daily Bread",
            vicinity="Udagawacho",
            types=("bakery",),
            rating=3.8,
            user_ratings_total=120,
            price_level=1,
            distance_m=2500.0,
        ),
        PlaceCandidate(
            place_id="unknown",
            name="Corner Stand",
            vicinity="Shibuya",
            types=("meal_takeaway",),
            distance_m=1800.0,
        ),
    ]
    ranked = _engine(hour=19).rank_places(places, vector, constraints, mapping)
    order = [s.place.place_id for s in ranked]
    assert order.index("near") < order.index("far")
    assert order[0] == "near"


def test_module_level_rank_places(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(ranking, "_default_engine", None)
    vector, constraints, mapping = _inputs(_profile())
    places = [PlaceCandidate(place_id=str(i), name=f"Place {i}", distance_m=100.0 * i) for i in range(12)]
    ranked = ranking.rank_places(places, vector, constraints, mapping)
    assert len(ranked) == 10
    for scored in ranked:
        assert 0.95 <= scored.breakdown.random_factor <= 1.05


def test_recommend_runs_full_pipeline():
    calls: List[SearchStrategy] = []

    def search(strategy: SearchStrategy, location: Location):
        calls.append(strategy)
        return [
            {
                "place_id": f"{strategy.primary_types[0]}-{i}",
                "name": f"{strategy.primary_types[0].title()} {i}",
                "types": list(strategy.primary_types),
                "rating": 4.0,
                "user_ratings_total": 200,
                "price_level": 1,
                "geometry": {"location": {"lat": location.lat + 0.001 * (i + 1), "lng": location.lng}},
            }
            for i in range(2)
        ]

    engine = _engine(hour=13, min_candidates=3)
    ranked = engine.recommend(_profile(), search)
    assert len(calls) == 2
    assert len(ranked) == 4
    assert all(s.place.distance_m is not None and s.place.distance_m > 0 for s in ranked)
