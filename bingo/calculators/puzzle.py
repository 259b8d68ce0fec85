from __future__ import annotations

import logging
from typing import Optional

from bingo.calculators.interface import CalculatorContext
from bingo.calculators.progress import iso
from bingo.events.unified import UnifiedGameEvent
from bingo.requirements.metadata import ExistingProgress, ProgressResult, PuzzleProgressMetadata
from bingo.requirements.types import PuzzleRequirement, RequirementType

logger = logging.getLogger(__name__)


def _placeholder(puzzle: PuzzleRequirement) -> ProgressResult:
    hidden_type = getattr(puzzle.hidden_requirement, 'type', 'UNKNOWN')
    metadata: PuzzleProgressMetadata = {
        'requirementType': RequirementType.PUZZLE.value,
        'targetValue': 0,
        'lastUpdateAt': None,
        'playerContributions': [],
        'completedTiers': [],
        'currentTier': 0,
        'completedAt': None,
        'hiddenRequirementType': hidden_type,
        'hiddenProgressMetadata': {},
        'isSolved': False,
        'solvedAt': None,
        'puzzleCategory': puzzle.puzzle_category,
    }
    return ProgressResult(progress_value=0, progress_metadata=metadata, is_completed=False)


def calculate_puzzle(
    event: UnifiedGameEvent,
    puzzle: PuzzleRequirement,
    existing: Optional[ExistingProgress],
    context: CalculatorContext,
) -> ProgressResult:
    '''Track a hidden requirement behind its participant-facing disguise.

    The wrapped kind's calculator runs against the unwrapped hidden metadata
    and its result is wrapped back up. `solvedAt` records the first event
    that solved the puzzle and is kept from then on.
    '''
    # the table imports this module, so resolve it lazily
    from bingo.calculators.registry import registry

    hidden = puzzle.hidden_requirement
    calculator = registry.get(hidden.type)
    if hidden.type == RequirementType.PUZZLE or calculator is None:
        logger.warning(f'Puzzle "{puzzle.display_name}" wraps unsupported kind {hidden.type}')
        return _placeholder(puzzle)

    previous = existing.progress_metadata if existing else {}
    hidden_existing = None
    if previous.get('hiddenProgressMetadata'):
        hidden_existing = ExistingProgress(
            progress_value=existing.progress_value,
            progress_metadata=previous['hiddenProgressMetadata'],
        )

    inner = calculator(event, hidden, hidden_existing, context)
    inner_meta = inner.progress_metadata

    solved_at = previous.get('solvedAt')
    if inner.is_completed and not solved_at:
        solved_at = iso(event.timestamp)

    metadata: PuzzleProgressMetadata = {
        'requirementType': RequirementType.PUZZLE.value,
        'targetValue': inner_meta.get('targetValue', hidden.target),
        'lastUpdateAt': inner_meta.get('lastUpdateAt'),
        'playerContributions': [],
        'completedTiers': list(inner.completed_tiers),
        'currentTier': inner_meta.get('currentTier', 0),
        'completedAt': inner_meta.get('completedAt'),
        'hiddenRequirementType': hidden.type,
        'hiddenProgressMetadata': inner_meta,
        'isSolved': inner.is_completed,
        'solvedAt': solved_at,
        'puzzleCategory': puzzle.puzzle_category,
    }
    return ProgressResult(
        progress_value=inner.progress_value,
        progress_metadata=metadata,
        is_completed=inner.is_completed,
        completed_tiers=inner.completed_tiers,
    )
