import contextlib
import copy
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterator, Optional

import pytest

from bingo.events.unified import EventSource, EventType, UnifiedGameEvent
from bingo.interfaces import ActiveTile, WriteOutcome
from bingo.requirements.metadata import ProgressResult, StoredProgress
from bingo.utils.errors import RankingUnavailableError

T0 = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


@dataclass
class FakeDB:
    fetchone_results: list[Any] = field(default_factory=list)
    fetchall_results: list[Any] = field(default_factory=list)
    executed: list[tuple[str, tuple[Any, ...]]] = field(default_factory=list)
    last_query: str | None = None
    last_params: tuple[Any, ...] | None = None
    rowcount: int = 0

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def fetchone(self, query: str, params=None):
        self.last_query = query
        self.last_params = tuple(params or ())
        if self.fetchone_results:
            return self.fetchone_results.pop(0)

    def fetchall(self, query: str, params=None):
        self.last_query = query
        self.last_params = tuple(params or ())
        if self.fetchall_results:
            return self.fetchall_results.pop(0)
        return []

    def execute(self, query: str, params=None) -> int:
        self.executed.append((query, tuple(params or ())))
        return self.rowcount


class FakeDBManager:
    def __init__(self, db: FakeDB):
        self._db = db

    def __call__(self):
        return self._db


@contextlib.contextmanager
def patched_dbmanager(monkeypatch, target_module, db: FakeDB) -> Iterator[FakeDB]:
    monkeypatch.setattr(target_module, 'DBManager', FakeDBManager(db))
    yield db


class InMemoryStore:
    '''ProgressStore keeping rows in a dict, with optional injected conflicts.'''

    def __init__(self) -> None:
        self.rows: dict[tuple[str, str, str], StoredProgress] = {}
        self.conflicts_to_inject = 0
        self.writes = 0
        self.before_write = None

    def read(self, team_id, tile_id, requirement_key) -> Optional[StoredProgress]:
        return self.rows.get((team_id, tile_id, requirement_key))

    def write_if_unchanged(
        self, team_id, tile_id, requirement_key, expected_version, result: ProgressResult
    ) -> WriteOutcome:
        if self.before_write is not None:
            self.before_write(team_id, tile_id, requirement_key)
        if self.conflicts_to_inject > 0:
            self.conflicts_to_inject -= 1
            return WriteOutcome.CONFLICT

        key = (team_id, tile_id, requirement_key)
        current = self.rows.get(key)
        current_version = current.version if current else None
        if current_version != expected_version:
            return WriteOutcome.CONFLICT

        self.rows[key] = StoredProgress(
            progress_value=result.progress_value,
            progress_metadata=copy.deepcopy(result.progress_metadata),
            version=(current_version or 0) + 1,
            is_completed=result.is_completed,
        )
        self.writes += 1
        return WriteOutcome.OK

    def completed_keys(self, team_id, tile_id) -> set[str]:
        return {
            k[2]
            for k, row in self.rows.items()
            if k[0] == team_id and k[1] == tile_id and row.is_completed
        }


class StaticTiles:
    def __init__(self, tiles: list[ActiveTile]) -> None:
        self.tiles = tiles
        self.calls: list[tuple[Optional[int], str]] = []

    def active_tiles_for_account(self, account_id, player_name) -> list[ActiveTile]:
        self.calls.append((account_id, player_name))
        return list(self.tiles)


class MemoryLedger:
    def __init__(self) -> None:
        self.seen: set[str] = set()
        self.released: list[str] = []

    def claim(self, event_id: str) -> bool:
        if event_id in self.seen:
            return False
        self.seen.add(event_id)
        return True

    def release(self, event_id: str) -> None:
        self.seen.discard(event_id)
        self.released.append(event_id)


class RecordingNotifier:
    def __init__(self, fail: bool = False) -> None:
        self.sent = []
        self.fail = fail

    def notify(self, completion) -> None:
        if self.fail:
            raise RuntimeError('webhook down')
        self.sent.append(completion)


class FakeRanking:
    '''ExperienceRanking backed by dicts; a missing entry means "unknown".'''

    def __init__(self, current=None, baseline=None, fail: bool = False, fail_baseline: bool = False) -> None:
        self.current = dict(current or {})
        self.baseline = dict(baseline or {})
        self.fail = fail
        self.fail_baseline = fail_baseline
        self.baseline_calls = 0

    def current_experience(self, name, skill):
        if self.fail:
            raise TimeoutError('ranking timed out')
        return self.current.get((name, skill))

    def experience_at_or_before(self, name, skill, date):
        self.baseline_calls += 1
        if self.fail_baseline:
            raise RankingUnavailableError('snapshots timed out')
        return self.baseline.get((name, skill))


def make_event(
    event_type: EventType,
    data,
    player: str = 'Zezima',
    account_id: Optional[int] = 1,
    minutes: int = 0,
    event_id: Optional[str] = None,
) -> UnifiedGameEvent:
    return UnifiedGameEvent(
        event_type=event_type,
        player_name=player,
        timestamp=T0 + timedelta(minutes=minutes),
        source=EventSource.DINK,
        data=data,
        account_id=account_id,
        event_id=event_id,
    )


@pytest.fixture()
def fake_db() -> FakeDB:
    return FakeDB()


@pytest.fixture()
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture()
def ledger() -> MemoryLedger:
    return MemoryLedger()


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
