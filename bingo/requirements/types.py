from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Optional, Union

from bingo.utils.errors import RequirementParseError


class Aggregation(str, Enum):
    '''How successive contributions combine into the team's progress value.'''

    SUM = 'sum'
    MIN = 'min'  # lower is better (times)
    MAX = 'max'


class MatchType(str, Enum):
    ANY = 'any'
    ALL = 'all'


class RequirementType(str, Enum):
    ITEM_DROP = 'ITEM_DROP'
    PET = 'PET'
    VALUE_DROP = 'VALUE_DROP'
    SPEEDRUN = 'SPEEDRUN'
    EXPERIENCE = 'EXPERIENCE'
    BA_GAMBLES = 'BA_GAMBLES'
    CHAT = 'CHAT'
    PUZZLE = 'PUZZLE'


@dataclass(frozen=True)
class RequiredItem:
    item_id: int
    item_name: str = ''
    amount: int = 1


@dataclass(frozen=True)
class ItemDropRequirement:
    type: ClassVar[str] = RequirementType.ITEM_DROP.value
    aggregation: ClassVar[Aggregation] = Aggregation.SUM

    items: tuple[RequiredItem, ...]
    total_amount: Optional[int] = None
    tiers: tuple[int, ...] = ()

    @property
    def target(self) -> int:
        if self.total_amount is not None:
            return self.total_amount
        return sum(i.amount for i in self.items)

    def item_ids(self) -> set[int]:
        return {i.item_id for i in self.items}


@dataclass(frozen=True)
class PetRequirement:
    type: ClassVar[str] = RequirementType.PET.value
    aggregation: ClassVar[Aggregation] = Aggregation.SUM

    pet_name: str
    amount: int = 1
    tiers: tuple[int, ...] = ()

    @property
    def target(self) -> int:
        return self.amount


@dataclass(frozen=True)
class ValueDropRequirement:
    type: ClassVar[str] = RequirementType.VALUE_DROP.value
    aggregation: ClassVar[Aggregation] = Aggregation.SUM

    value: int
    tiers: tuple[int, ...] = ()

    @property
    def target(self) -> int:
        return self.value


@dataclass(frozen=True)
class SpeedrunRequirement:
    type: ClassVar[str] = RequirementType.SPEEDRUN.value
    aggregation: ClassVar[Aggregation] = Aggregation.MIN

    location: str
    goal_seconds: int
    tiers: tuple[int, ...] = ()

    @property
    def target(self) -> int:
        return self.goal_seconds


@dataclass(frozen=True)
class ExperienceRequirement:
    type: ClassVar[str] = RequirementType.EXPERIENCE.value
    aggregation: ClassVar[Aggregation] = Aggregation.MAX

    skill: str
    experience: int
    tiers: tuple[int, ...] = ()

    @property
    def target(self) -> int:
        return self.experience


@dataclass(frozen=True)
class BaGamblesRequirement:
    type: ClassVar[str] = RequirementType.BA_GAMBLES.value
    aggregation: ClassVar[Aggregation] = Aggregation.SUM

    amount: int
    tiers: tuple[int, ...] = ()

    @property
    def target(self) -> int:
        return self.amount


@dataclass(frozen=True)
class ChatRequirement:
    type: ClassVar[str] = RequirementType.CHAT.value
    aggregation: ClassVar[Aggregation] = Aggregation.SUM

    message: str
    sources: tuple[str, ...] = ()
    exact_match: bool = False
    count: int = 1
    tiers: tuple[int, ...] = ()

    @property
    def target(self) -> int:
        return self.count


@dataclass(frozen=True)
class UnknownRequirement:
    '''A kind this engine does not understand. Kept so its key stays stable.'''

    type: str
    raw: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    aggregation: ClassVar[Optional[Aggregation]] = None
    tiers: ClassVar[tuple[int, ...]] = ()
    target: ClassVar[int] = 0


@dataclass(frozen=True)
class PuzzleRequirement:
    '''A requirement whose real objective is hidden from participants.'''

    type: ClassVar[str] = RequirementType.PUZZLE.value

    hidden_requirement: 'RequirementDef'
    display_name: str
    display_description: str
    display_hint: Optional[str] = None
    display_icon: Optional[str] = None
    puzzle_category: Optional[str] = None
    reveal_on_complete: bool = False

    @property
    def aggregation(self) -> Optional[Aggregation]:
        return self.hidden_requirement.aggregation

    @property
    def tiers(self) -> tuple[int, ...]:
        return self.hidden_requirement.tiers

    @property
    def target(self) -> int:
        return self.hidden_requirement.target


RequirementDef = Union[
    ItemDropRequirement,
    PetRequirement,
    ValueDropRequirement,
    SpeedrunRequirement,
    ExperienceRequirement,
    BaGamblesRequirement,
    ChatRequirement,
    PuzzleRequirement,
    UnknownRequirement,
]


@dataclass(frozen=True)
class TileRequirements:
    match_type: MatchType
    requirements: tuple[RequirementDef, ...]

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> 'TileRequirements':
        match = str(raw.get('matchType') or raw.get('match_type') or 'any').lower()
        try:
            match_type = MatchType(match)
        except ValueError as e:
            raise RequirementParseError(f'Unknown match type "{match}"') from e
        return cls(
            match_type=match_type,
            requirements=tuple(
                requirement_from_dict(r) for r in raw.get('requirements') or []
            ),
        )


def _require(raw: dict[str, Any], name: str) -> Any:
    if raw.get(name) is None:
        raise RequirementParseError(f'{raw.get("type")} requirement is missing "{name}"')
    return raw[name]


def _as_int(raw: dict[str, Any], name: str, default: Optional[int] = None) -> int:
    if default is None:
        value = _require(raw, name)
    else:
        value = raw.get(name) if raw.get(name) is not None else default
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise RequirementParseError(
            f'{raw.get("type")} requirement has a non-numeric "{name}": {value!r}'
        ) from e


def _tiers(raw: dict[str, Any]) -> tuple[int, ...]:
    tiers = raw.get('tiers') or []
    try:
        return tuple(int(t) for t in tiers)
    except (TypeError, ValueError) as e:
        raise RequirementParseError(f'Tier thresholds must be numbers, got {tiers!r}') from e


def requirement_from_dict(raw: dict[str, Any]) -> RequirementDef:
    '''Build a RequirementDef from its stored camelCase JSON form.

    Unrecognized kinds become an inert UnknownRequirement; malformed
    recognized kinds raise RequirementParseError.
    '''
    kind = str(raw.get('type') or '').upper()

    if kind == RequirementType.ITEM_DROP:
        items = tuple(
            RequiredItem(
                item_id=_as_int(item, 'itemId'),
                item_name=str(item.get('itemName') or ''),
                amount=_as_int(item, 'itemAmount', 1),
            )
            for item in _require(raw, 'items')
        )
        if not items:
            raise RequirementParseError('ITEM_DROP requirement lists no items')
        total = raw.get('totalAmount')
        return ItemDropRequirement(
            items=items,
            total_amount=int(total) if total is not None else None,
            tiers=_tiers(raw),
        )
    if kind == RequirementType.PET:
        return PetRequirement(
            pet_name=str(_require(raw, 'petName')),
            amount=_as_int(raw, 'amount', 1),
            tiers=_tiers(raw),
        )
    if kind == RequirementType.VALUE_DROP:
        return ValueDropRequirement(value=_as_int(raw, 'value'), tiers=_tiers(raw))
    if kind == RequirementType.SPEEDRUN:
        return SpeedrunRequirement(
            location=str(_require(raw, 'location')),
            goal_seconds=_as_int(raw, 'goalSeconds'),
            tiers=_tiers(raw),
        )
    if kind == RequirementType.EXPERIENCE:
        return ExperienceRequirement(
            skill=str(_require(raw, 'skill')).lower(),
            experience=_as_int(raw, 'experience'),
            tiers=_tiers(raw),
        )
    if kind == RequirementType.BA_GAMBLES:
        return BaGamblesRequirement(amount=_as_int(raw, 'amount'), tiers=_tiers(raw))
    if kind == RequirementType.CHAT:
        source = raw.get('source')
        sources = raw.get('sources') or ([source] if source else [])
        return ChatRequirement(
            message=str(_require(raw, 'message')),
            sources=tuple(str(s).upper() for s in sources),
            exact_match=bool(raw.get('exactMatch', False)),
            count=_as_int(raw, 'count', 1),
            tiers=_tiers(raw),
        )
    if kind == RequirementType.PUZZLE:
        return PuzzleRequirement(
            hidden_requirement=requirement_from_dict(_require(raw, 'hiddenRequirement')),
            display_name=str(raw.get('displayName') or 'Mystery'),
            display_description=str(raw.get('displayDescription') or ''),
            display_hint=raw.get('displayHint'),
            display_icon=raw.get('displayIcon'),
            puzzle_category=raw.get('puzzleCategory'),
            reveal_on_complete=bool(raw.get('revealOnComplete', False)),
        )

    return UnknownRequirement(type=kind or 'UNKNOWN', raw=dict(raw))


def requirement_to_dict(req: RequirementDef) -> dict[str, Any]:
    '''Inverse of requirement_from_dict; UnknownRequirement round-trips its raw form.'''
    if isinstance(req, UnknownRequirement):
        return dict(req.raw)

    out: dict[str, Any] = {'type': req.type}
    if isinstance(req, ItemDropRequirement):
        out['items'] = [
            {'itemId': i.item_id, 'itemName': i.item_name, 'itemAmount': i.amount}
            for i in req.items
        ]
        if req.total_amount is not None:
            out['totalAmount'] = req.total_amount
    elif isinstance(req, PetRequirement):
        out.update(petName=req.pet_name, amount=req.amount)
    elif isinstance(req, ValueDropRequirement):
        out['value'] = req.value
    elif isinstance(req, SpeedrunRequirement):
        out.update(location=req.location, goalSeconds=req.goal_seconds)
    elif isinstance(req, ExperienceRequirement):
        out.update(skill=req.skill, experience=req.experience)
    elif isinstance(req, BaGamblesRequirement):
        out['amount'] = req.amount
    elif isinstance(req, ChatRequirement):
        out.update(
            message=req.message,
            sources=list(req.sources),
            exactMatch=req.exact_match,
            count=req.count,
        )
    elif isinstance(req, PuzzleRequirement):
        out.update(
            hiddenRequirement=requirement_to_dict(req.hidden_requirement),
            displayName=req.display_name,
            displayDescription=req.display_description,
            displayHint=req.display_hint,
            displayIcon=req.display_icon,
            puzzleCategory=req.puzzle_category,
            revealOnComplete=req.reveal_on_complete,
        )
        return out

    if req.tiers:
        out['tiers'] = list(req.tiers)
    return out
