from __future__ import annotations

import copy
from datetime import datetime
from typing import Any, Optional

from bingo.calculators.tiers import apply_tiers
from bingo.requirements.metadata import ExistingProgress, ProgressResult


def iso(ts: datetime) -> str:
    return ts.isoformat()


def start_metadata(requirement: Any, existing: Optional[ExistingProgress]) -> dict[str, Any]:
    '''Deep copy of the existing metadata, or a fresh skeleton for this kind.'''
    previous = existing.progress_metadata if existing else None
    if previous and previous.get('requirementType') == requirement.type:
        metadata = copy.deepcopy(previous)
    else:
        metadata = {}
    metadata.setdefault('requirementType', requirement.type)
    metadata.setdefault('playerContributions', [])
    metadata.setdefault('completedTiers', [])
    metadata.setdefault('currentTier', 0)
    metadata.setdefault('completedAt', None)
    return metadata


def finish(
    event_timestamp: datetime,
    requirement: Any,
    metadata: dict[str, Any],
    progress_value: Optional[int],
    reached: bool,
) -> ProgressResult:
    '''Stamp the common fields and fold in completion and tiers.

    Completion is sticky: once `completedAt` is set it is never cleared.
    '''
    metadata['requirementType'] = requirement.type
    metadata['targetValue'] = requirement.target
    metadata['lastUpdateAt'] = iso(event_timestamp)
    if reached and not metadata.get('completedAt'):
        metadata['completedAt'] = iso(event_timestamp)

    completed_tiers = apply_tiers(
        metadata, requirement.tiers, progress_value, requirement.aggregation
    )
    return ProgressResult(
        progress_value=progress_value or 0,
        progress_metadata=metadata,
        is_completed=bool(metadata.get('completedAt')),
        completed_tiers=completed_tiers,
    )


def unchanged(requirement: Any, existing: Optional[ExistingProgress]) -> ProgressResult:
    '''The existing progress as a result, or a zero placeholder when there is none.'''
    if existing is None:
        metadata = start_metadata(requirement, None)
        metadata['targetValue'] = requirement.target
        metadata['lastUpdateAt'] = None
        return ProgressResult(progress_value=0, progress_metadata=metadata, is_completed=False)

    metadata = copy.deepcopy(existing.progress_metadata)
    return ProgressResult(
        progress_value=existing.progress_value,
        progress_metadata=metadata,
        is_completed=bool(metadata.get('completedAt')),
        completed_tiers=tuple(metadata.get('completedTiers') or ()),
    )
