from __future__ import annotations

from typing import Optional

from bingo.calculators.contributions import append_history, find_or_create, team_total
from bingo.calculators.interface import CalculatorContext
from bingo.calculators.progress import finish, iso, start_metadata
from bingo.events.unified import PetData, UnifiedGameEvent
from bingo.requirements.metadata import ExistingProgress, ProgressResult
from bingo.requirements.types import PetRequirement


def calculate_pet(
    event: UnifiedGameEvent,
    requirement: PetRequirement,
    existing: Optional[ExistingProgress],
    context: CalculatorContext,
) -> ProgressResult:
    metadata = start_metadata(requirement, existing)
    contributions = metadata['playerContributions']

    contribution = find_or_create(contributions, context.account_id, context.player_name)
    contribution['value'] = int(contribution.get('value') or 0) + 1
    pet_name = event.data.pet_name if isinstance(event.data, PetData) else requirement.pet_name
    append_history(contribution, {'timestamp': iso(event.timestamp), 'petName': pet_name})

    progress_value = team_total(contributions)
    metadata['currentTotalCount'] = progress_value
    return finish(
        event.timestamp, requirement, metadata, progress_value, progress_value >= requirement.amount
    )
