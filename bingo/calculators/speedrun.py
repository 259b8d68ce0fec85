from __future__ import annotations

from typing import Optional

from bingo.calculators.contributions import append_history, find_or_create, team_best_min
from bingo.calculators.interface import CalculatorContext
from bingo.calculators.progress import finish, iso, start_metadata
from bingo.events.unified import SpeedrunData, UnifiedGameEvent
from bingo.requirements.metadata import ExistingProgress, ProgressResult
from bingo.requirements.types import SpeedrunRequirement


def calculate_speedrun(
    event: UnifiedGameEvent,
    requirement: SpeedrunRequirement,
    existing: Optional[ExistingProgress],
    context: CalculatorContext,
) -> ProgressResult:
    '''Team best time for a location; lower is better.

    Each contribution's value is that player's personal best. A slower run is
    still recorded in history but never raises the best.
    '''
    metadata = start_metadata(requirement, existing)
    contributions = metadata['playerContributions']

    if isinstance(event.data, SpeedrunData):
        seconds = event.data.time_seconds
        contribution = find_or_create(contributions, context.account_id, context.player_name)
        if contribution.get('history'):
            contribution['value'] = min(int(contribution['value']), seconds)
        else:
            contribution['value'] = seconds
        append_history(contribution, {'timestamp': iso(event.timestamp), 'timeSeconds': seconds})

    best = team_best_min([c for c in contributions if c.get('history')])
    metadata['currentBestTimeSeconds'] = best
    reached = best is not None and best <= requirement.goal_seconds
    return finish(event.timestamp, requirement, metadata, best, reached)
