from __future__ import annotations

import logging
from typing import Optional

from bingo.calculators.contributions import append_history, find_or_create, team_total
from bingo.calculators.interface import CalculatorContext
from bingo.calculators.progress import finish, iso, start_metadata, unchanged
from bingo.events.unified import UnifiedGameEvent
from bingo.requirements.metadata import ExistingProgress, ProgressResult
from bingo.requirements.types import ExperienceRequirement

logger = logging.getLogger(__name__)

# a failed lookup, as opposed to "no snapshot" (None)
_LOOKUP_FAILED = object()


def _lookup_current(context: CalculatorContext, skill: str) -> Optional[int]:
    try:
        return context.ranking.current_experience(context.player_name, skill)
    except Exception as e:
        logger.warning(f'Current {skill} XP lookup failed for "{context.player_name}": {e}')
        return None


def _lookup_baseline(context: CalculatorContext, skill: str) -> object:
    if context.event_start is None:
        return None
    try:
        return context.ranking.experience_at_or_before(
            context.player_name, skill, context.event_start
        )
    except Exception as e:
        logger.warning(f'Baseline {skill} XP lookup failed for "{context.player_name}": {e}')
        return _LOOKUP_FAILED


def calculate_experience(
    event: UnifiedGameEvent,
    requirement: ExperienceRequirement,
    existing: Optional[ExistingProgress],
    context: CalculatorContext,
) -> ProgressResult:
    '''XP gained by the team in a skill since the competition started.

    Each contributor's baseline is captured once, from the newest ranking
    snapshot at or before the start; a player with no such snapshot is
    baselined at their current XP. If either lookup fails the previous
    result is returned unchanged, and the baseline is captured on a later event.
    '''
    if context.ranking is None:
        return unchanged(requirement, existing)

    current = _lookup_current(context, requirement.skill)
    if current is None:
        return unchanged(requirement, existing)

    metadata = start_metadata(requirement, existing)
    contributions = metadata['playerContributions']
    contribution = find_or_create(contributions, context.account_id, context.player_name)

    if contribution.get('baselineXp') is None:
        baseline = _lookup_baseline(context, requirement.skill)
        if baseline is _LOOKUP_FAILED:
            return unchanged(requirement, existing)
        contribution['baselineXp'] = baseline if baseline is not None else current

    contribution['currentXp'] = current
    gained = max(0, current - int(contribution['baselineXp']))
    contribution['value'] = max(int(contribution.get('value') or 0), gained)
    append_history(contribution, {'timestamp': iso(event.timestamp), 'xp': current})

    previous_value = existing.progress_value if existing else 0
    progress_value = max(previous_value, team_total(contributions))

    metadata['skill'] = requirement.skill
    metadata['currentTotalXp'] = progress_value
    return finish(
        event.timestamp,
        requirement,
        metadata,
        progress_value,
        progress_value >= requirement.experience,
    )
