from __future__ import annotations

from typing import Any, Optional

from bingo.requirements.types import (
    BaGamblesRequirement,
    ChatRequirement,
    ExperienceRequirement,
    ItemDropRequirement,
    PetRequirement,
    PuzzleRequirement,
    RequirementDef,
    SpeedrunRequirement,
    ValueDropRequirement,
)
from bingo.utils.helper import format_duration


def describe_requirement(req: RequirementDef) -> str:
    '''One-line participant-facing description of an unhidden requirement.'''
    if isinstance(req, ItemDropRequirement):
        if len(req.items) == 1:
            item = req.items[0]
            return f'Obtain {item.amount}x {item.item_name or f"item {item.item_id}"}'
        if req.total_amount is not None:
            return f'Obtain any {req.total_amount} of {len(req.items)} listed items'
        return f'Obtain {len(req.items)} different items'
    if isinstance(req, PetRequirement):
        return f'Obtain a pet: {req.pet_name}'
    if isinstance(req, ValueDropRequirement):
        return f'Get {req.value:,} gp worth of drops'
    if isinstance(req, SpeedrunRequirement):
        return f'Complete {req.location} in {format_duration(req.goal_seconds)} or less'
    if isinstance(req, ExperienceRequirement):
        return f'Gain {req.experience:,} {req.skill} XP'
    if isinstance(req, BaGamblesRequirement):
        return f'Complete {req.amount} BA gambles'
    if isinstance(req, ChatRequirement):
        return 'Receive a specific game message'
    return 'Complete the task'


def _is_solved(progress_metadata: Optional[dict[str, Any]]) -> bool:
    return bool(progress_metadata and progress_metadata.get('isSolved'))


def public_requirement_view(
    req: RequirementDef, progress_metadata: Optional[dict[str, Any]] = None
) -> dict[str, Any]:
    '''Requirement as shown to participants. Puzzles expose only their disguise.'''
    if isinstance(req, PuzzleRequirement):
        solved = _is_solved(progress_metadata)
        reveal = req.reveal_on_complete and solved
        view: dict[str, Any] = {
            'type': req.type,
            'puzzle': {
                'displayName': req.display_name,
                'displayDescription': req.display_description,
                'displayHint': req.display_hint,
                'displayIcon': req.display_icon,
                'puzzleCategory': req.puzzle_category,
                'isSolved': solved,
                'revealAnswer': reveal,
            },
        }
        if reveal:
            view['puzzle']['answer'] = describe_requirement(req.hidden_requirement)
        return view

    return {'type': req.type, 'description': describe_requirement(req)}


def public_progress_view(
    req: RequirementDef,
    progress_value: int,
    progress_metadata: Optional[dict[str, Any]],
) -> dict[str, Any]:
    '''Progress as shown to participants.

    Puzzles report only whether they are solved.
    '''
    metadata = progress_metadata or {}
    if isinstance(req, PuzzleRequirement):
        return {
            'type': req.type,
            'isSolved': _is_solved(metadata),
            'solvedAt': metadata.get('solvedAt'),
        }

    return {
        'type': req.type,
        'progressValue': progress_value,
        'targetValue': metadata.get('targetValue', req.target),
        'isCompleted': bool(metadata.get('completedAt')),
        'completedTiers': list(metadata.get('completedTiers') or []),
        'currentTier': metadata.get('currentTier', 0),
        'contributors': [
            {'nickname': c.get('nickname'), 'value': c.get('value', 0)}
            for c in metadata.get('playerContributions') or []
        ],
    }
