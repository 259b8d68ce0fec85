from __future__ import annotations

from typing import Any, Optional

from bingo.requirements.types import Aggregation


def tiers_reached(
    thresholds: tuple[int, ...], value: Optional[int], aggregation: Optional[Aggregation]
) -> set[int]:
    '''1-based tier numbers whose threshold `value` satisfies.'''
    if value is None or aggregation is None:
        return set()
    if aggregation is Aggregation.MIN:
        return {n for n, t in enumerate(thresholds, start=1) if value <= t}
    return {n for n, t in enumerate(thresholds, start=1) if value >= t}


def apply_tiers(
    metadata: dict[str, Any],
    thresholds: tuple[int, ...],
    value: Optional[int],
    aggregation: Optional[Aggregation],
) -> tuple[int, ...]:
    '''Merge newly reached tiers into the metadata. Tiers are never removed.'''
    completed = set(metadata.get('completedTiers') or [])
    completed |= tiers_reached(thresholds, value, aggregation)
    ordered = sorted(completed)
    metadata['completedTiers'] = ordered
    metadata['currentTier'] = ordered[-1] if ordered else 0
    return tuple(ordered)


def new_tiers(before: tuple[int, ...], after: tuple[int, ...]) -> tuple[int, ...]:
    seen = set(before)
    return tuple(t for t in after if t not in seen)
