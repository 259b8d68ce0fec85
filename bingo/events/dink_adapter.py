from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime
from typing import Any, Callable, Optional

import pendulum

from bingo.events.unified import (
    ChatData,
    EventSource,
    EventType,
    GambleData,
    LootData,
    LootItem,
    PetData,
    SessionData,
    SpeedrunData,
    UnifiedGameEvent,
)
from bingo.interfaces import AccountResolver
from bingo.utils.durations import parse_duration_seconds

logger = logging.getLogger(__name__)


def event_id_of(payload: dict[str, Any], delivery_id: Optional[str] = None) -> Optional[str]:
    '''Id of one delivery of a payload, or None when the delivery is unidentified.

    Identical payloads are distinct game events (two kills with the same drop,
    two logouts), so the content alone never identifies an event. The id
    hashes the delivery id (from the transport, or a `deliveryId` field)
    together with the payload; only a redelivery of the same delivery
    produces the same id.
    '''
    delivery = delivery_id or payload.get('deliveryId')
    if not delivery:
        return None
    canonical = json.dumps(payload, sort_keys=True, separators=(',', ':'), default=str)
    return hashlib.sha256(f'{delivery}\n{canonical}'.encode('utf-8')).hexdigest()


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _timestamp_of(payload: dict[str, Any], now: Optional[Callable[[], datetime]]) -> datetime:
    raw = payload.get('timestamp')
    if raw:
        try:
            parsed = pendulum.parse(str(raw), strict=False)
            if isinstance(parsed, datetime):
                return parsed
        except ValueError:
            logger.warning(f'Ignoring unparsable Dink timestamp "{raw}"')
    return now() if now else pendulum.now('UTC')


def _loot(extra: dict[str, Any]) -> LootData:
    items = tuple(
        LootItem(
            id=_int(item.get('id')),
            name=str(item.get('name') or ''),
            quantity=_int(item.get('quantity')),
            price_each=_int(item.get('priceEach')),
        )
        for item in extra.get('items') or []
    )
    return LootData(
        items=items,
        source=extra.get('source'),
        total_value=sum(i.value for i in items),
    )


def _speedrun(extra: dict[str, Any]) -> Optional[SpeedrunData]:
    seconds = parse_duration_seconds(extra.get('currentTime'))
    if seconds is None:
        seconds = parse_duration_seconds(extra.get('personalBest'))
    if seconds is None:
        return None
    return SpeedrunData(
        location=str(extra.get('questName') or ''),
        time_seconds=seconds,
        is_personal_best=bool(extra.get('isPersonalBest', False)),
    )


def _kill_time(extra: dict[str, Any]) -> Optional[SpeedrunData]:
    seconds = parse_duration_seconds(extra.get('time'))
    if seconds is None:
        return None
    return SpeedrunData(
        location=str(extra.get('boss') or ''),
        time_seconds=seconds,
        is_personal_best=bool(extra.get('isPersonalBest', False)),
    )


def _chat(extra: dict[str, Any]) -> Optional[ChatData]:
    message = extra.get('message')
    if not message:
        return None
    return ChatData(
        message=str(message),
        message_type=str(extra.get('type') or ''),
        sender=extra.get('source'),
    )


def _resolve(resolver: Optional[AccountResolver], player_name: str) -> Optional[int]:
    if resolver is None or not player_name:
        return None
    try:
        return resolver.resolve_account_by_name(player_name)
    except Exception as e:
        logger.warning(f'Account lookup failed for player "{player_name}": {e}')
        return None


def adapt_event(
    payload: dict[str, Any],
    resolver: Optional[AccountResolver] = None,
    now: Optional[Callable[[], datetime]] = None,
    delivery_id: Optional[str] = None,
) -> Optional[UnifiedGameEvent]:
    '''Convert a raw Dink webhook payload into a UnifiedGameEvent.

    Returns None for notification kinds that no requirement tracks, and for
    speedrun/kill-time payloads whose duration cannot be parsed.
    `delivery_id` identifies this delivery for redelivery detection.
    '''
    kind = str(payload.get('type') or '').upper()
    extra = payload.get('extra') or {}
    player_name = str(payload.get('playerName') or '')

    data: Any
    if kind == 'LOOT':
        event_type, data = EventType.LOOT, _loot(extra)
    elif kind == 'PET':
        event_type = EventType.PET
        data = PetData(pet_name=str(extra.get('petName') or ''), milestone=extra.get('milestone'))
    elif kind == 'SPEEDRUN':
        event_type, data = EventType.SPEEDRUN, _speedrun(extra)
    elif kind == 'KILL_COUNT':
        # only kills that carry a completion time are useful
        event_type, data = EventType.SPEEDRUN, _kill_time(extra)
    elif kind == 'BARBARIAN_ASSAULT_GAMBLE':
        event_type = EventType.BA_GAMBLE
        data = GambleData(gamble_count=_int(extra.get('gambleCount'), 1) or 1)
    elif kind == 'LOGIN':
        event_type, data = EventType.LOGIN, SessionData()
    elif kind == 'LOGOUT':
        event_type, data = EventType.LOGOUT, SessionData()
    elif kind == 'CHAT':
        event_type, data = EventType.CHAT, _chat(extra)
    else:
        logger.debug(f'Ignoring Dink {kind or "untyped"} notification')
        return None

    if data is None:
        logger.info(f'Dropping Dink {kind} from "{player_name}": no usable data')
        return None

    return UnifiedGameEvent(
        event_type=event_type,
        player_name=player_name,
        timestamp=_timestamp_of(payload, now),
        source=EventSource.DINK,
        data=data,
        account_id=_resolve(resolver, player_name),
        event_id=event_id_of(payload, delivery_id),
    )
