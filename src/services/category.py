from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from loguru import logger

from models import Category, CategoryMapping, PreferenceVector, SearchStrategy
from utils import dedupe

HIGH_SIGNAL = 0.7
LOW_SIGNAL = 0.3

MAX_STRATEGY_RADIUS_M = 5000.0
SOCIAL_RADIUS_FACTOR = 1.5
NATURE_WEIGHT_BOOST = 0.2

BASE_CATEGORY_MAPPINGS: Dict[str, CategoryMapping] = {
    "eat": CategoryMapping(
        types=("restaurant", "food", "cafe", "bakery"),
        keywords=("food", "restaurant", "cafe", "dining"),
        base_weight=1.0,
    ),
    "feel": CategoryMapping(
        types=(
            "tourist_attraction",
            "park",
            "natural_feature",
            "point_of_interest",
            "spa",
            "beauty_salon",
            "health",
        ),
        keywords=(
            "view", "scenic", "attraction", "landmark", "relaxing", "peaceful",
            "zen", "meditation", "wellness", "spa", "massage", "healing",
            "tranquil", "serene", "calm", "experience", "feeling", "emotional",
            "sensory", "体験", "癒し", "リラックス", "瞑想", "スパ",
        ),
        base_weight=1.1,
    ),
    "make": CategoryMapping(
        types=(
            "tourist_attraction",
            "art_gallery",
            "museum",
            "point_of_interest",
            "establishment",
            "store",
            "shopping_mall",
        ),
        keywords=(
            "workshop", "craft", "experience", "hands-on", "art", "pottery",
            "ceramics", "painting", "sculpture", "class", "lesson", "studio",
            "atelier", "maker", "creative", "diy", "traditional", "cultural",
            "activity", "体験", "工房", "教室", "アトリエ",
        ),
        base_weight=1.2,
    ),
    "learn": CategoryMapping(
        types=("museum", "art_gallery", "library", "tourist_attraction"),
        keywords=("museum", "gallery", "educational", "cultural", "history"),
        base_weight=1.0,
    ),
    "play": CategoryMapping(
        types=("bowling_alley", "amusement_park", "night_club", "bar", "aquarium"),
        keywords=("entertainment", "fun", "game", "nightlife"),
        base_weight=1.0,
    ),
}

INDOOR_TYPES: Tuple[str, ...] = ("museum", "art_gallery", "shopping_mall", "aquarium", "library")
OUTDOOR_TYPES: Tuple[str, ...] = ("park", "natural_feature", "campground")


def _strategy(primary, fallback, keywords, radius) -> SearchStrategy:
    return SearchStrategy(
        primary_types=tuple(primary),
        fallback_types=tuple(fallback),
        keywords=tuple(keywords),
        search_radius=float(radius),
    )


# Ordered fallback chains: experiential categories have no direct place type,
# so later entries search wider with looser keywords.
SEARCH_STRATEGIES: Dict[str, Tuple[SearchStrategy, ...]] = {
    "make": (
        _strategy(
            ["tourist_attraction", "art_gallery"],
            ["store", "establishment"],
            ["workshop", "craft", "hands-on", "体験", "工房", "教室"],
            2000,
        ),
        _strategy(
            ["point_of_interest"],
            ["shopping_mall"],
            ["pottery", "ceramic", "cooking class", "陶芸", "料理教室"],
            3000,
        ),
        _strategy(
            ["establishment"],
            ["tourist_attraction"],
            ["experience", "activity", "体験", "アクティビティ"],
            5000,
        ),
    ),
    "feel": (
        _strategy(
            ["spa", "beauty_salon", "health"],
            ["tourist_attraction", "park"],
            ["spa", "massage", "healing", "relax", "スパ", "マッサージ", "癒し"],
            2000,
        ),
        _strategy(
            ["park", "natural_feature"],
            ["tourist_attraction"],
            ["zen", "meditation", "peaceful", "禅", "瞑想", "静寂"],
            3000,
        ),
    ),
    "eat": (
        _strategy(["restaurant"], ["food", "cafe"], ["restaurant", "dining", "レストラン", "食事"], 1500),
        _strategy(["cafe"], ["bakery", "meal_takeaway"], ["cafe", "coffee", "カフェ", "コーヒー"], 1200),
        _strategy(["meal_takeaway"], ["food"], ["quick", "fast", "casual", "手軽", "カジュアル"], 1000),
        _strategy(["bakery"], ["cafe"], ["bakery", "bread", "pastry", "パン", "ベーカリー"], 1000),
    ),
    "learn": (
        _strategy(
            ["museum", "art_gallery", "library"],
            ["tourist_attraction"],
            ["museum", "gallery", "cultural", "educational", "美術館", "ギャラリー", "文化"],
            2000,
        ),
    ),
    "play": (
        _strategy(
            ["bowling_alley", "amusement_park", "night_club", "bar"],
            ["movie_theater", "casino"],
            ["entertainment", "fun", "nightlife", "エンターテイメント", "楽しい", "ナイトライフ"],
            2000,
        ),
    ),
}

BASE_QUERIES: Dict[str, Tuple[str, ...]] = {
    "eat": ("restaurants", "cafes", "food", "dining"),
    "feel": ("spa", "wellness", "relaxing places", "meditation", "zen"),
    "make": ("workshop", "craft", "pottery", "art class", "creative experience", "atelier"),
    "learn": ("museum", "gallery", "cultural", "educational", "history"),
    "play": ("entertainment", "fun activities", "nightlife", "games", "amusement"),
}


def get_indoor_types() -> List[str]:
    return list(INDOOR_TYPES)


def get_outdoor_types() -> List[str]:
    return list(OUTDOOR_TYPES)


def get_category_mapping(
    category: Category,
    vector: PreferenceVector,
    indoor_preferred: bool,
) -> CategoryMapping:
    """Extend the base mapping for ``category`` with vector-driven types and keywords.

    Augmentation is additive only; the result is de-duplicated.
    """
    base = BASE_CATEGORY_MAPPINGS[category]
    types = list(base.types)
    keywords = list(base.keywords)
    weight = base.base_weight

    if vector.nature >= HIGH_SIGNAL:
        types += ["park", "natural_feature"]
        keywords += ["nature", "outdoor", "garden"]
        weight += NATURE_WEIGHT_BOOST

    if vector.social >= HIGH_SIGNAL:
        types += ["night_club", "amusement_park", "bar"]
        keywords += ["social", "lively", "group"]

    # spontaneous travellers lean to free-walking spots
    if vector.plan <= LOW_SIGNAL:
        types += ["park", "tourist_attraction"]
        keywords += ["walk", "explore", "free"]

    if vector.immersion >= HIGH_SIGNAL:
        types += ["museum", "art_gallery"]
        keywords += ["workshop", "experience", "cultural", "immersive"]

    if indoor_preferred:
        types += ["museum", "art_gallery", "shopping_mall", "aquarium"]
        keywords += ["indoor", "covered", "mall"]
    else:
        types += ["park", "natural_feature"]
        keywords += ["outdoor", "nature"]

    mapping = CategoryMapping(types=tuple(dedupe(types)), keywords=tuple(dedupe(keywords)), base_weight=weight)
    logger.debug(
        "category mapping {}: {} types, {} keywords, weight={:.2f}",
        category,
        len(mapping.types),
        len(mapping.keywords),
        mapping.base_weight,
    )
    return mapping


def get_search_strategies(category: Category, vector: PreferenceVector) -> List[SearchStrategy]:
    strategies: list[SearchStrategy] = []
    for strategy in SEARCH_STRATEGIES[category]:
        if vector.social >= HIGH_SIGNAL:
            strategy = replace(
                strategy,
                search_radius=min(strategy.search_radius * SOCIAL_RADIUS_FACTOR, MAX_STRATEGY_RADIUS_M),
            )
        if vector.nature >= HIGH_SIGNAL:
            strategy = replace(
                strategy,
                primary_types=("park", "natural_feature") + strategy.primary_types,
                keywords=("outdoor", "nature", "屋外", "自然") + strategy.keywords,
            )
        strategies.append(strategy)
    return strategies


def generate_search_queries(
    category: Category,
    vector: PreferenceVector,
    location: Optional[str] = None,
) -> List[str]:
    """Free-text query variants for providers without typed search."""
    queries = list(BASE_QUERIES[category])

    if vector.social >= HIGH_SIGNAL:
        queries = [f"{q} group social" for q in queries]
    if vector.nature >= HIGH_SIGNAL:
        queries = [f"{q} outdoor nature" for q in queries]
    if vector.immersion >= HIGH_SIGNAL:
        queries = [f"{q} immersive experience" for q in queries]
    if location:
        queries = [f"{q} in {location}" for q in queries]

    return queries
