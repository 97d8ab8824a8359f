from __future__ import annotations

import os
from typing import Any, Optional

from pydantic import BaseModel, Field


class Configuration(BaseModel):
    # Ranking
    max_results: int = Field(default=10)
    random_enabled: bool = Field(default=True)
    random_jitter: float = Field(default=0.05)

    # Diversity bonus
    unique_type_bonus: float = Field(default=0.05)
    underrated_bonus: float = Field(default=0.03)
    underrated_min_rating: float = Field(default=4.0)
    underrated_max_reviews: int = Field(default=100)
    hidden_gem_bonus: float = Field(default=0.08)
    hidden_gem_min_rating: float = Field(default=4.2)
    hidden_gem_max_reviews: int = Field(default=50)

    # Time-of-day bonus
    time_bonus: float = Field(default=0.05)

    # Candidate gathering
    min_candidates: int = Field(default=5)
    widen_factor: float = Field(default=1.5)

    @classmethod
    def from_env(cls, overrides: Optional[dict[str, Any]] = None) -> "Configuration":
        raw: dict[str, Any] = {}

        env_map = {
            "max_results": os.getenv("PLACE_MAX_RESULTS"),
            "random_enabled": os.getenv("PLACE_RANDOM_ENABLED"),
            "random_jitter": os.getenv("PLACE_RANDOM_JITTER"),
            "unique_type_bonus": os.getenv("PLACE_UNIQUE_TYPE_BONUS"),
            "underrated_bonus": os.getenv("PLACE_UNDERRATED_BONUS"),
            "underrated_min_rating": os.getenv("PLACE_UNDERRATED_MIN_RATING"),
            "underrated_max_reviews": os.getenv("PLACE_UNDERRATED_MAX_REVIEWS"),
            "hidden_gem_bonus": os.getenv("PLACE_HIDDEN_GEM_BONUS"),
            "hidden_gem_min_rating": os.getenv("PLACE_HIDDEN_GEM_MIN_RATING"),
            "hidden_gem_max_reviews": os.getenv("PLACE_HIDDEN_GEM_MAX_REVIEWS"),
            "time_bonus": os.getenv("PLACE_TIME_BONUS"),
            "min_candidates": os.getenv("PLACE_MIN_CANDIDATES"),
            "widen_factor": os.getenv("PLACE_WIDEN_FACTOR"),
        }

        bool_fields = {"random_enabled"}

        for k, v in env_map.items():
            if v is None:
                continue
            if k in bool_fields:
                raw[k] = str(v).lower() in {"1", "true", "yes", "on"}
            else:
                raw[k] = v

        if overrides:
            raw.update({k: v for k, v in overrides.items() if v is not None})

        return cls(**raw)

    def random_bounds(self) -> tuple[float, float]:
        jitter = max(0.0, min(self.random_jitter, 1.0))
        return 1.0 - jitter, 1.0 + jitter

    def log_summary(self) -> str:
        low, high = self.random_bounds()
        return (
            "max_results=%s random=%s factor=[%.2f, %.2f) hidden_gem=%.2f@%.1f/<%d time_bonus=%.2f min_candidates=%s"
            % (
                self.max_results,
                self.random_enabled,
                low,
                high,
                self.hidden_gem_bonus,
                self.hidden_gem_min_rating,
                self.hidden_gem_max_reviews,
                self.time_bonus,
                self.min_candidates,
            )
        )
