from __future__ import annotations

from typing import Optional

from bingo.calculators.contributions import append_history, find_or_create, team_total
from bingo.calculators.interface import CalculatorContext
from bingo.calculators.progress import finish, iso, start_metadata
from bingo.events.unified import LootData, UnifiedGameEvent
from bingo.requirements.metadata import ExistingProgress, ProgressResult
from bingo.requirements.types import ValueDropRequirement


def calculate_value_drop(
    event: UnifiedGameEvent,
    requirement: ValueDropRequirement,
    existing: Optional[ExistingProgress],
    context: CalculatorContext,
) -> ProgressResult:
    '''Cumulative gp value of the team's drops against `requirement.value`.'''
    metadata = start_metadata(requirement, existing)
    contributions = metadata['playerContributions']

    loot = event.data if isinstance(event.data, LootData) else LootData()
    if loot.total_value > 0:
        contribution = find_or_create(contributions, context.account_id, context.player_name)
        contribution['value'] = int(contribution.get('value') or 0) + loot.total_value
        best_item = max(loot.items, key=lambda i: i.value, default=None)
        entry = {'timestamp': iso(event.timestamp), 'totalValue': loot.total_value}
        if best_item is not None:
            entry.update(itemId=best_item.id, itemName=best_item.name, value=best_item.value)
        append_history(contribution, entry)

        best_single = best_item.value if best_item is not None else loot.total_value
        metadata['currentBestValue'] = max(int(metadata.get('currentBestValue') or 0), best_single)

    progress_value = team_total(contributions)
    metadata['currentTotalValue'] = progress_value
    metadata.setdefault('currentBestValue', 0)
    return finish(
        event.timestamp, requirement, metadata, progress_value, progress_value >= requirement.value
    )
