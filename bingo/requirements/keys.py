from __future__ import annotations

import json

from bingo.requirements.types import (
    BaGamblesRequirement,
    ChatRequirement,
    ExperienceRequirement,
    ItemDropRequirement,
    PetRequirement,
    PuzzleRequirement,
    RequirementDef,
    SpeedrunRequirement,
    UnknownRequirement,
    ValueDropRequirement,
)


def _base_key(req: RequirementDef) -> str:
    if isinstance(req, ItemDropRequirement):
        items = ','.join(
            f'{i.item_id}:{i.amount}' for i in sorted(req.items, key=lambda i: i.item_id)
        )
        if req.total_amount is not None:
            return f'ITEM_DROP:{items}:total={req.total_amount}'
        return f'ITEM_DROP:{items}'
    if isinstance(req, PetRequirement):
        return f'PET:{req.pet_name}:{req.amount}'
    if isinstance(req, ValueDropRequirement):
        return f'VALUE_DROP:{req.value}'
    if isinstance(req, SpeedrunRequirement):
        return f'SPEEDRUN:{req.location}:{req.goal_seconds}'
    if isinstance(req, ExperienceRequirement):
        return f'EXPERIENCE:{req.skill}:{req.experience}'
    if isinstance(req, BaGamblesRequirement):
        return f'BA_GAMBLES:{req.amount}'
    if isinstance(req, ChatRequirement):
        sources = ','.join(sorted(req.sources))
        exact = 'exact' if req.exact_match else 'contains'
        return f'CHAT:{sources}:{req.message}:{exact}:{req.count}'
    if isinstance(req, PuzzleRequirement):
        # display text can be reworded without losing progress
        return f'PUZZLE:{requirement_key_of(req.hidden_requirement)}'
    if isinstance(req, UnknownRequirement):
        return 'UNKNOWN:' + json.dumps(
            req.raw, sort_keys=True, separators=(',', ':'), default=str
        )
    raise TypeError(f'Not a requirement: {req!r}')


def requirement_key_of(req: RequirementDef) -> str:
    '''Deterministic identity for a requirement, independent of list order.

    Two requirements with the same identifying fields share a key, and
    therefore share a progress record on the same tile.
    '''
    key = _base_key(req)
    if req.tiers and not isinstance(req, PuzzleRequirement):
        key += ':tiers=' + ','.join(str(t) for t in req.tiers)
    return key
