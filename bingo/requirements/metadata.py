from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, TypedDict

# Metadata stays plain JSON-native dicts so it round-trips through JSONB untouched.


class HistoryEntry(TypedDict, total=False):
    timestamp: str
    value: int
    message: str
    messageType: str
    itemId: int
    itemName: str
    quantity: int
    timeSeconds: int
    petName: str
    gambles: int
    totalValue: int
    xp: int


class TrackedItem(TypedDict):
    itemId: int
    itemName: str
    quantity: int


class Contribution(TypedDict, total=False):
    accountId: Optional[int]
    nickname: str
    value: int
    history: list[HistoryEntry]
    # ITEM_DROP
    items: list[TrackedItem]
    # EXPERIENCE
    baselineXp: int
    currentXp: int


class ProgressMetadata(TypedDict, total=False):
    requirementType: str
    targetValue: int
    lastUpdateAt: Optional[str]
    playerContributions: list[Contribution]
    completedTiers: list[int]
    currentTier: int
    completedAt: Optional[str]
    # ITEM_DROP / PET / CHAT
    currentTotalCount: int
    # VALUE_DROP
    currentTotalValue: int
    currentBestValue: int
    # SPEEDRUN
    currentBestTimeSeconds: Optional[int]
    # EXPERIENCE
    skill: str
    currentTotalXp: int
    # BA_GAMBLES
    currentTotalGambles: int


class PuzzleProgressMetadata(ProgressMetadata, total=False):
    hiddenRequirementType: str
    hiddenProgressMetadata: ProgressMetadata
    isSolved: bool
    solvedAt: Optional[str]
    puzzleCategory: Optional[str]


@dataclass(frozen=True)
class ExistingProgress:
    progress_value: int
    progress_metadata: dict[str, Any]


@dataclass(frozen=True)
class ProgressResult:
    progress_value: int
    progress_metadata: dict[str, Any]
    is_completed: bool
    completed_tiers: tuple[int, ...] = ()

    def as_existing(self) -> ExistingProgress:
        return ExistingProgress(self.progress_value, self.progress_metadata)


@dataclass(frozen=True)
class StoredProgress(ExistingProgress):
    '''A persisted progress row, including the version used for compare-and-set.'''

    version: int = 0
    is_completed: bool = False
    completed_at: Optional[datetime] = None
