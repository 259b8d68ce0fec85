from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from bingo.requirements.metadata import ProgressResult, StoredProgress
    from bingo.requirements.types import TileRequirements


class WriteOutcome(str, Enum):
    OK = 'ok'
    CONFLICT = 'conflict'


@dataclass(frozen=True)
class ActiveTile:
    '''A board tile a team is currently working on.'''

    team_id: str
    tile_id: str
    task: str
    requirements: 'TileRequirements'
    event_start: Optional[datetime] = None
    webhook_url: Optional[str] = None


@dataclass(frozen=True)
class Completion:
    '''A requirement reached its target or crossed a tier for the first time.'''

    team_id: str
    tile_id: str
    task: str
    requirement_key: str
    requirement: Any
    result: 'ProgressResult'
    new_tiers: tuple[int, ...] = ()
    requirement_completed: bool = False
    tile_completed: bool = False
    player_name: Optional[str] = None
    webhook_url: Optional[str] = None


@runtime_checkable
class AccountResolver(Protocol):
    def resolve_account_by_name(self, name: str) -> Optional[int]:
        pass


@runtime_checkable
class ExperienceRanking(Protocol):
    def current_experience(self, name: str, skill: str) -> Optional[int]:
        '''Latest known XP for a player's skill, or None if unavailable.'''
        pass

    def experience_at_or_before(
        self, name: str, skill: str, date: datetime
    ) -> Optional[int]:
        '''XP from the newest snapshot taken at or before `date`, or None.

        Raises when the ranking service cannot be reached, so a baseline is
        never taken from a failed lookup.
        '''
        pass


@runtime_checkable
class ProgressStore(Protocol):
    def read(
        self, team_id: str, tile_id: str, requirement_key: str
    ) -> Optional['StoredProgress']:
        pass

    def write_if_unchanged(
        self,
        team_id: str,
        tile_id: str,
        requirement_key: str,
        expected_version: Optional[int],
        result: 'ProgressResult',
    ) -> WriteOutcome:
        '''
        Persist `result` only if the stored version still equals `expected_version`
        (None meaning "no row yet"). Returns CONFLICT when someone else got there first.
        '''
        pass

    def completed_keys(self, team_id: str, tile_id: str) -> set[str]:
        pass


@runtime_checkable
class TileSource(Protocol):
    def active_tiles_for_account(
        self, account_id: Optional[int], player_name: str
    ) -> list[ActiveTile]:
        pass


@runtime_checkable
class EventLedger(Protocol):
    def claim(self, event_id: str) -> bool:
        '''Return True if this is the first time the event id is seen.'''
        pass

    def release(self, event_id: str) -> None:
        pass


@runtime_checkable
class CompletionNotifier(Protocol):
    def notify(self, completion: Completion) -> None:
        pass
