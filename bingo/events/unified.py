from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union


class EventType(str, Enum):
    LOOT = 'LOOT'
    PET = 'PET'
    SPEEDRUN = 'SPEEDRUN'
    BA_GAMBLE = 'BA_GAMBLE'
    LOGIN = 'LOGIN'
    LOGOUT = 'LOGOUT'
    EXPERIENCE = 'EXPERIENCE'
    CHAT = 'CHAT'


class EventSource(str, Enum):
    DINK = 'dink'
    RUNELITE = 'runelite'
    PLUGIN = 'plugin'


@dataclass(frozen=True)
class LootItem:
    id: int
    name: str
    quantity: int
    price_each: int = 0

    @property
    def value(self) -> int:
        return self.price_each * self.quantity


@dataclass(frozen=True)
class LootData:
    items: tuple[LootItem, ...] = ()
    source: Optional[str] = None
    total_value: int = 0


@dataclass(frozen=True)
class PetData:
    pet_name: str
    milestone: Optional[str] = None


@dataclass(frozen=True)
class SpeedrunData:
    location: str
    time_seconds: int
    is_personal_best: bool = False


@dataclass(frozen=True)
class GambleData:
    gamble_count: int = 1


@dataclass(frozen=True)
class SessionData:
    '''LOGIN/LOGOUT carry nothing; they only trigger an XP refresh.'''


@dataclass(frozen=True)
class ExperienceData:
    skill: str
    experience: int
    level: Optional[int] = None


@dataclass(frozen=True)
class ChatData:
    message: str
    message_type: str
    sender: Optional[str] = None


EventData = Union[
    LootData, PetData, SpeedrunData, GambleData, SessionData, ExperienceData, ChatData
]


@dataclass(frozen=True)
class UnifiedGameEvent:
    event_type: EventType
    player_name: str
    timestamp: datetime
    source: EventSource
    data: EventData = field(default_factory=SessionData)
    account_id: Optional[int] = None
    event_id: Optional[str] = None

    @property
    def type(self) -> EventType:
        return self.event_type
