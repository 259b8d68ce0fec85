from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Protocol, runtime_checkable

from bingo.events.unified import UnifiedGameEvent
from bingo.interfaces import ExperienceRanking
from bingo.requirements.metadata import ExistingProgress, ProgressResult


@dataclass(frozen=True)
class CalculatorContext:
    '''Who produced the event, and what the calculators may consult about them.'''

    account_id: Optional[int]
    player_name: str
    event_start: Optional[datetime] = None
    ranking: Optional[ExperienceRanking] = None

    @classmethod
    def for_event(
        cls,
        event: UnifiedGameEvent,
        event_start: Optional[datetime] = None,
        ranking: Optional[ExperienceRanking] = None,
    ) -> 'CalculatorContext':
        return cls(
            account_id=event.account_id,
            player_name=event.player_name,
            event_start=event_start,
            ranking=ranking,
        )


@runtime_checkable
class ProgressCalculator(Protocol):
    def __call__(
        self,
        event: UnifiedGameEvent,
        requirement: Any,
        existing: Optional[ExistingProgress],
        context: CalculatorContext,
    ) -> ProgressResult:
        '''
        Fold one event into the existing progress for a requirement. Must not
        mutate `existing` and must not read the clock.
        '''
        pass
