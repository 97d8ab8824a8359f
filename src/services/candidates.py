from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

from loguru import logger

from models import Location, PlaceCandidate, SearchStrategy


class PlaceSearch(Protocol):
    """External place-search collaborator.

    Receives one strategy and the search origin, returns raw Places-style
    result dicts. Network access, caching and retries live behind it.
    """

    def __call__(self, strategy: SearchStrategy, location: Location) -> Iterable[Dict[str, Any]]:
        ...


def parse_candidates(payloads: Iterable[Dict[str, Any]], origin: Optional[Location] = None) -> List[PlaceCandidate]:
    parsed: list[PlaceCandidate] = []
    for payload in payloads:
        try:
            parsed.append(PlaceCandidate.from_payload(payload, origin))
        except ValueError as exc:
            logger.warning("Skipping place payload: {}", exc)
    return parsed


def dedupe_candidates(items: Iterable[PlaceCandidate]) -> List[PlaceCandidate]:
    seen: set[str] = set()
    out: list[PlaceCandidate] = []
    for p in items:
        if p.place_id in seen:
            continue
        seen.add(p.place_id)
        out.append(p)
    return out


def gather_candidates(
    strategies: Sequence[SearchStrategy],
    search: PlaceSearch,
    origin: Location,
    *,
    min_candidates: int = 5,
    widen_factor: float = 1.5,
) -> List[PlaceCandidate]:
    """Walk the strategy chain until enough unique candidates are collected.

    If the whole chain returns nothing, the first strategy is retried once
    with its radius multiplied by ``widen_factor``.
    """
    collected: list[PlaceCandidate] = []
    for idx, strategy in enumerate(strategies):
        found = parse_candidates(search(strategy, origin), origin)
        collected = dedupe_candidates(collected + found)
        logger.debug(
            "strategy {} radius={}m types={} -> {} results ({} unique)",
            idx,
            strategy.search_radius,
            ",".join(strategy.primary_types),
            len(found),
            len(collected),
        )
        if len(collected) >= min_candidates:
            break

    if not collected and strategies:
        wider = replace(strategies[0], search_radius=strategies[0].search_radius * widen_factor)
        logger.info("No results, retrying with wider radius {}m", wider.search_radius)
        collected = dedupe_candidates(parse_candidates(search(wider, origin), origin))

    return collected
