from __future__ import annotations

from bingo.events.unified import (
    ChatData,
    EventType,
    LootData,
    PetData,
    SpeedrunData,
    UnifiedGameEvent,
)
from bingo.requirements.types import (
    BaGamblesRequirement,
    ChatRequirement,
    ExperienceRequirement,
    ItemDropRequirement,
    PetRequirement,
    PuzzleRequirement,
    RequirementDef,
    SpeedrunRequirement,
    ValueDropRequirement,
)
from bingo.utils.constants import ALLOWED_CHAT_SOURCES

# Event kinds that can ever move a requirement of each kind
_PLAUSIBLE_EVENTS = {
    'ITEM_DROP': {EventType.LOOT},
    'VALUE_DROP': {EventType.LOOT},
    'PET': {EventType.PET},
    'SPEEDRUN': {EventType.SPEEDRUN},
    'BA_GAMBLES': {EventType.BA_GAMBLE},
    'CHAT': {EventType.CHAT},
    'EXPERIENCE': {EventType.LOGIN, EventType.LOGOUT, EventType.EXPERIENCE},
}


def could_match(event: UnifiedGameEvent, requirement: RequirementDef) -> bool:
    '''Cheap pre-filter on event kind alone.'''
    if isinstance(requirement, PuzzleRequirement):
        return could_match(event, requirement.hidden_requirement)
    return event.event_type in _PLAUSIBLE_EVENTS.get(requirement.type, set())


def _chat_matches(data: ChatData, requirement: ChatRequirement) -> bool:
    sources = requirement.sources or ALLOWED_CHAT_SOURCES
    if data.message_type.upper() not in sources:
        return False
    text = data.message.strip().lower()
    wanted = requirement.message.strip().lower()
    if requirement.exact_match:
        return text == wanted
    return wanted in text


def matches(event: UnifiedGameEvent, requirement: RequirementDef) -> bool:
    '''Whether `event` should be folded into `requirement`'s progress.'''
    if not could_match(event, requirement):
        return False

    data = event.data
    if isinstance(requirement, PuzzleRequirement):
        return matches(event, requirement.hidden_requirement)
    if isinstance(requirement, ItemDropRequirement):
        wanted = requirement.item_ids()
        return isinstance(data, LootData) and any(
            i.id in wanted and i.quantity > 0 for i in data.items
        )
    if isinstance(requirement, ValueDropRequirement):
        return isinstance(data, LootData) and data.total_value > 0
    if isinstance(requirement, PetRequirement):
        return (
            isinstance(data, PetData)
            and data.pet_name.strip().lower() == requirement.pet_name.strip().lower()
        )
    if isinstance(requirement, SpeedrunRequirement):
        return (
            isinstance(data, SpeedrunData)
            and data.location.strip().lower() == requirement.location.strip().lower()
        )
    if isinstance(requirement, ChatRequirement):
        return isinstance(data, ChatData) and _chat_matches(data, requirement)
    if isinstance(requirement, (BaGamblesRequirement, ExperienceRequirement)):
        return True
    return False
