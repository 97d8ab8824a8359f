"""Scoring tables shared by the ranking engine.

Trait lexicons (social, nature, immersion) hold English and Japanese terms
side by side; matching is a lowercase substring test so both scripts are
matched the same way. Everything here is immutable and owned by a
``ScoringTables`` instance, which lets callers swap in alternative tables
(another currency, another locale) without touching the ranking code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Tuple
from types import MappingProxyType


@dataclass(frozen=True)
class TraitLexicon:
    positive_keywords: Tuple[str, ...]
    negative_keywords: Tuple[str, ...]
    positive_types: Tuple[str, ...]
    negative_types: Tuple[str, ...]


SOCIAL_LEXICON = TraitLexicon(
    positive_keywords=(
        "bar", "restaurant", "cafe", "club", "pub", "izakaya", "karaoke",
        "entertainment", "nightlife", "social", "group", "party", "event",
        "lounge", "tavern", "bistro", "dining", "gathering", "meetup",
        "居酒屋", "バー", "カフェ", "レストラン", "クラブ", "パブ", "カラオケ",
        "飲み会", "宴会", "交流", "集まり", "パーティー", "社交", "にぎやか",
        "賑わい", "活気", "盛り上がり", "宴", "飲食", "食事会", "懇親会",
        "親睦会", "ダイニング", "ラウンジ",
    ),
    negative_keywords=(
        "library", "museum", "gallery", "temple", "shrine", "park", "garden",
        "quiet", "peaceful", "meditation", "zen", "solo", "alone", "tranquil",
        "serene", "calm", "silent", "contemplative",
        "図書館", "美術館", "ギャラリー", "寺", "神社", "公園", "庭園", "静か",
        "落ち着く", "瞑想", "禅", "一人", "独り", "ひとり", "穏やか", "平和",
        "静寂", "癒し", "リラックス", "安らぎ", "静粛", "閑静", "静謐",
        "のんびり", "ゆったり",
    ),
    positive_types=(
        "bar", "night_club", "restaurant", "cafe", "meal_takeaway",
        "bowling_alley", "amusement_park", "casino", "movie_theater",
    ),
    negative_types=(
        "library", "museum", "art_gallery", "park", "cemetery", "church",
        "hindu_temple", "mosque", "synagogue",
    ),
)

NATURE_LEXICON = TraitLexicon(
    positive_keywords=(
        "park", "garden", "forest", "mountain", "river", "lake", "beach",
        "outdoor", "nature", "green", "trees", "flowers", "hiking", "walking",
        "zen", "peaceful", "quiet", "natural", "botanical", "wildlife",
        "scenic", "landscape", "trail", "path", "meadow", "valley",
        "公園", "庭園", "森", "山", "川", "湖", "海", "ビーチ", "屋外", "自然",
        "緑", "木", "花", "ハイキング", "散歩", "禅", "平和", "静か", "植物園",
        "野生動物", "景色", "風景", "トレイル", "小道", "草原", "谷",
    ),
    negative_keywords=(
        "museum", "gallery", "shopping", "mall", "center", "building",
        "indoor", "air-conditioned", "covered", "roof", "store", "department",
        "complex", "plaza", "station", "terminal",
        "美術館", "ギャラリー", "ショッピング", "モール", "センター", "ビル",
        "屋内", "エアコン", "屋根", "店", "デパート", "複合施設", "プラザ",
        "駅", "ターミナル", "建物", "室内",
    ),
    positive_types=(
        "park", "natural_feature", "campground", "hiking_area", "zoo",
        "aquarium", "botanical_garden",
    ),
    negative_types=(
        "shopping_mall", "department_store", "electronics_store", "museum",
        "art_gallery", "movie_theater", "bowling_alley",
    ),
)

IMMERSION_LEXICON = TraitLexicon(
    positive_keywords=(
        "museum", "gallery", "exhibition", "cultural", "traditional",
        "historical", "experience", "workshop", "class", "tour", "guided",
        "interactive", "theater", "show", "performance", "art", "craft",
        "ceremony", "immersive", "authentic", "hands-on", "educational",
        "learning",
        "美術館", "ギャラリー", "展示", "文化", "伝統", "歴史", "体験",
        "ワークショップ", "教室", "ツアー", "ガイド", "参加型", "劇場", "ショー",
        "公演", "アート", "工芸", "儀式", "没入", "本格的", "手作り", "教育",
        "学習", "体験型",
    ),
    negative_keywords=(
        "cafe", "restaurant", "shopping", "mall", "street", "market", "casual",
        "quick", "grab", "fast", "simple", "easy", "convenient", "accessible",
        "relaxed", "informal",
        "カフェ", "レストラン", "ショッピング", "モール", "通り", "市場",
        "カジュアル", "手軽", "簡単", "早い", "シンプル", "気軽", "便利",
        "アクセス", "リラックス",
    ),
    positive_types=(
        "museum", "art_gallery", "aquarium", "zoo", "tourist_attraction",
        "amusement_park", "movie_theater", "bowling_alley",
    ),
    negative_types=(
        "cafe", "restaurant", "shopping_mall", "store", "meal_takeaway",
        "convenience_store", "gas_station",
    ),
)

TRAIT_LEXICONS: Mapping[str, TraitLexicon] = MappingProxyType(
    {
        "social": SOCIAL_LEXICON,
        "nature": NATURE_LEXICON,
        "immersion": IMMERSION_LEXICON,
    }
)

FACTOR_WEIGHTS: Mapping[str, float] = MappingProxyType(
    {
        "category_match": 0.25,
        "distance_score": 0.15,
        "price_fit": 0.10,
        "rating_norm": 0.10,
        "open_now": 0.05,
        "social_fit": 0.15,
        "nature_fit": 0.10,
        "immersion_fit": 0.05,
        "budget_fit": 0.03,
        "duration_fit": 0.02,
    }
)

PRICE_LEVEL_JPY: Mapping[int, int] = MappingProxyType({0: 500, 1: 1500, 2: 3000, 3: 5000, 4: 10000})
DEFAULT_PRICE_JPY = 1500

# first matching rule wins
DURATION_RULES: Tuple[Tuple[Tuple[str, ...], int], ...] = (
    (("cafe", "quick", "grab"), 30),
    (("restaurant", "shopping", "museum"), 90),
    (("tour", "experience", "workshop"), 180),
)
DEFAULT_DURATION_MINUTES = 60

UNIQUE_TYPES: Tuple[str, ...] = ("art_gallery", "museum", "cultural_center", "workshop", "spa", "onsen")


@dataclass(frozen=True)
class MealPeriod:
    start_hour: int  # inclusive
    end_hour: int  # exclusive
    types: Tuple[str, ...]
    name_keywords: Tuple[str, ...] = ()

    def contains(self, hour: int) -> bool:
        return self.start_hour <= hour < self.end_hour


MEAL_PERIODS: Tuple[MealPeriod, ...] = (
    MealPeriod(6, 11, ("cafe", "bakery"), ("breakfast", "morning")),
    MealPeriod(11, 15, ("restaurant", "food")),
    MealPeriod(15, 18, ("cafe", "bakery")),
    MealPeriod(18, 23, ("restaurant", "bar", "night_club")),
)


@dataclass(frozen=True)
class ScoringTables:
    weights: Mapping[str, float] = field(default_factory=lambda: FACTOR_WEIGHTS)
    traits: Mapping[str, TraitLexicon] = field(default_factory=lambda: TRAIT_LEXICONS)
    price_level_jpy: Mapping[int, int] = field(default_factory=lambda: PRICE_LEVEL_JPY)
    default_price_jpy: int = DEFAULT_PRICE_JPY
    duration_rules: Tuple[Tuple[Tuple[str, ...], int], ...] = DURATION_RULES
    default_duration_minutes: int = DEFAULT_DURATION_MINUTES
    unique_types: Tuple[str, ...] = UNIQUE_TYPES
    meal_periods: Tuple[MealPeriod, ...] = MEAL_PERIODS

    def estimate_duration(self, text: str) -> int:
        for keywords, minutes in self.duration_rules:
            if any(k in text for k in keywords):
                return minutes
        return self.default_duration_minutes

    def estimate_cost_jpy(self, price_level: int) -> int:
        return self.price_level_jpy.get(price_level, self.default_price_jpy)


DEFAULT_TABLES = ScoringTables()


def _count_keywords(keywords: Iterable[str], text: str) -> int:
    return sum(1 for k in keywords if k.lower() in text)


def trait_score(lexicon: TraitLexicon, types: Iterable[str], text: str) -> float:
    """How strongly a place expresses a trait, in [0, 1]; 0.5 when nothing matches.

    ``text`` must already be lowercased.
    """
    types = list(types)
    pos_types = sum(1 for t in types if t in lexicon.positive_types)
    neg_types = sum(1 for t in types if t in lexicon.negative_types)
    pos_kw = _count_keywords(lexicon.positive_keywords, text)
    neg_kw = _count_keywords(lexicon.negative_keywords, text)

    if pos_types == neg_types == pos_kw == neg_kw == 0:
        return 0.5

    type_ratio = pos_types / max(1, pos_types + neg_types)
    keyword_ratio = pos_kw / max(1, pos_kw + neg_kw)
    return (type_ratio + keyword_ratio) / 2


def bidirectional_fit(trait: float, user_value: float) -> float:
    """Match a place trait against a user preference scalar.

    Strong preference (>= 0.7) wants the trait, weak (<= 0.3) wants its
    absence, and the middle band blends toward 0.5.
    """
    if user_value >= 0.7:
        return trait
    if user_value <= 0.3:
        return 1 - trait
    return 0.5 + (trait - 0.5) * (user_value - 0.5) * 2
