from __future__ import annotations

from typing import Optional

from bingo.calculators.contributions import append_history, find_or_create, team_total
from bingo.calculators.interface import CalculatorContext
from bingo.calculators.progress import finish, iso, start_metadata
from bingo.events.unified import LootData, UnifiedGameEvent
from bingo.requirements.metadata import ExistingProgress, ProgressResult
from bingo.requirements.types import ItemDropRequirement


def calculate_item_drop(
    event: UnifiedGameEvent,
    requirement: ItemDropRequirement,
    existing: Optional[ExistingProgress],
    context: CalculatorContext,
) -> ProgressResult:
    '''Count drops of the listed items across the team.

    Progress is the total quantity of listed items. With `total_amount` set,
    completion needs that many different listed items at their own amount;
    otherwise every listed item must reach its own amount.
    '''
    metadata = start_metadata(requirement, existing)
    contributions = metadata['playerContributions']
    wanted = requirement.item_ids()

    loot = event.data if isinstance(event.data, LootData) else LootData()
    matched = [item for item in loot.items if item.id in wanted and item.quantity > 0]

    if matched:
        contribution = find_or_create(contributions, context.account_id, context.player_name)
        tracked = contribution.setdefault('items', [])
        for item in matched:
            entry = next((t for t in tracked if t['itemId'] == item.id), None)
            if entry is None:
                tracked.append({'itemId': item.id, 'itemName': item.name, 'quantity': item.quantity})
            else:
                entry['quantity'] += item.quantity
            contribution['value'] = int(contribution.get('value') or 0) + item.quantity
            append_history(
                contribution,
                {
                    'timestamp': iso(event.timestamp),
                    'itemId': item.id,
                    'itemName': item.name,
                    'quantity': item.quantity,
                },
            )

    per_item: dict[int, int] = {}
    for contribution in contributions:
        for t in contribution.get('items', []):
            per_item[t['itemId']] = per_item.get(t['itemId'], 0) + t['quantity']

    progress_value = team_total(contributions)
    satisfied = sum(1 for i in requirement.items if per_item.get(i.item_id, 0) >= i.amount)
    if requirement.total_amount is not None:
        reached = satisfied >= requirement.total_amount
    else:
        reached = satisfied == len(requirement.items)

    metadata['currentTotalCount'] = progress_value
    return finish(event.timestamp, requirement, metadata, progress_value, reached)
