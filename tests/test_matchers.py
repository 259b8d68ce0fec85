import pytest

from bingo.events.unified import (
    ChatData,
    EventType,
    GambleData,
    LootData,
    LootItem,
    PetData,
    SessionData,
    SpeedrunData,
)
from bingo.matchers import could_match, matches
from bingo.requirements.types import requirement_from_dict
from tests.conftest import make_event


def _loot(item_id, quantity=1, price=0):
    item = LootItem(id=item_id, name='x', quantity=quantity, price_each=price)
    return make_event(EventType.LOOT, LootData(items=(item,), total_value=item.value))


@pytest.mark.parametrize(
    'requirement, event, expected',
    [
        ({'type': 'ITEM_DROP', 'items': [{'itemId': 526}]}, _loot(526), True),
        ({'type': 'ITEM_DROP', 'items': [{'itemId': 526}]}, _loot(527), False),
        ({'type': 'ITEM_DROP', 'items': [{'itemId': 526}]}, _loot(526, quantity=0), False),
        ({'type': 'VALUE_DROP', 'value': 100}, _loot(1, price=5), True),
        ({'type': 'VALUE_DROP', 'value': 100}, _loot(1, price=0), False),
        ({'type': 'PET', 'petName': 'Herbi'}, make_event(EventType.PET, PetData(' herbi ')), True),
        ({'type': 'PET', 'petName': 'Herbi'}, make_event(EventType.PET, PetData('Heron')), False),
        (
            {'type': 'SPEEDRUN', 'location': 'Inferno', 'goalSeconds': 1},
            make_event(EventType.SPEEDRUN, SpeedrunData('inferno', 5)),
            True,
        ),
        ({'type': 'BA_GAMBLES', 'amount': 1}, make_event(EventType.BA_GAMBLE, GambleData()), True),
        ({'type': 'BA_GAMBLES', 'amount': 1}, _loot(526), False),
        (
            {'type': 'EXPERIENCE', 'skill': 'fishing', 'experience': 1},
            make_event(EventType.LOGIN, SessionData()),
            True,
        ),
        ({'type': 'QUEST', 'name': 'Dragon Slayer'}, _loot(526), False),
    ],
)
def test_matches_by_kind(requirement, event, expected):
    assert matches(event, requirement_from_dict(requirement)) is expected


def _chat(message, message_type='GAMEMESSAGE'):
    return make_event(EventType.CHAT, ChatData(message, message_type))


def test_chat_contains_match_is_case_insensitive():
    req = requirement_from_dict({'type': 'CHAT', 'message': 'You feel a shift'})
    assert matches(_chat('Oh! you feel a SHIFT in the air'), req)
    assert not matches(_chat('Nothing interesting happens'), req)


def test_chat_exact_match():
    req = requirement_from_dict({'type': 'CHAT', 'message': 'Gz!', 'exactMatch': True})
    assert matches(_chat('gz!'), req)
    assert not matches(_chat('gz! on the pet'), req)


def test_chat_source_filter():
    req = requirement_from_dict({'type': 'CHAT', 'message': 'shift', 'sources': ['spam']})
    assert matches(_chat('shift', 'SPAM'), req)
    assert not matches(_chat('shift', 'GAMEMESSAGE'), req)

    default = requirement_from_dict({'type': 'CHAT', 'message': 'shift'})
    assert not matches(_chat('shift', 'PUBLICCHAT'), default)


def test_puzzle_matches_through_hidden_requirement():
    req = requirement_from_dict(
        {'type': 'PUZZLE', 'hiddenRequirement': {'type': 'PET', 'petName': 'Herbi'}}
    )
    assert could_match(make_event(EventType.PET, PetData('Anything')), req)
    assert matches(make_event(EventType.PET, PetData('Herbi')), req)
    assert not matches(make_event(EventType.PET, PetData('Heron')), req)
