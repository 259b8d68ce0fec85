from __future__ import annotations

from typing import Optional

from bingo.calculators.contributions import append_history, find_or_create, team_total
from bingo.calculators.interface import CalculatorContext
from bingo.calculators.progress import finish, iso, start_metadata
from bingo.events.unified import GambleData, UnifiedGameEvent
from bingo.requirements.metadata import ExistingProgress, ProgressResult
from bingo.requirements.types import BaGamblesRequirement


def calculate_ba_gambles(
    event: UnifiedGameEvent,
    requirement: BaGamblesRequirement,
    existing: Optional[ExistingProgress],
    context: CalculatorContext,
) -> ProgressResult:
    metadata = start_metadata(requirement, existing)
    contributions = metadata['playerContributions']

    gambles = event.data.gamble_count if isinstance(event.data, GambleData) else 1
    contribution = find_or_create(contributions, context.account_id, context.player_name)
    contribution['value'] = int(contribution.get('value') or 0) + gambles
    append_history(contribution, {'timestamp': iso(event.timestamp), 'gambles': gambles})

    progress_value = team_total(contributions)
    metadata['currentTotalGambles'] = progress_value
    return finish(
        event.timestamp, requirement, metadata, progress_value, progress_value >= requirement.amount
    )
