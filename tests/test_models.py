from datetime import datetime, timezone

from psycopg.types.json import Jsonb

from bingo.interfaces import WriteOutcome
from bingo.models import base, board_tile, processed_event, requirement_progress
from bingo.models.board_tile import BoardTile
from bingo.models.osrs_account import OsrsAccount
from bingo.models.processed_event import ProcessedEvent
from bingo.models.requirement_progress import RequirementProgress
from bingo.requirements.metadata import ProgressResult
from bingo.requirements.types import MatchType
from tests.conftest import FakeDB, FakeDBManager, patched_dbmanager


def _patch(monkeypatch, db, *modules):
    for module in modules:
        monkeypatch.setattr(module, 'DBManager', FakeDBManager(db))


def _result(value=3, completed_at=None):
    return ProgressResult(
        progress_value=value,
        progress_metadata={'requirementType': 'BA_GAMBLES', 'completedAt': completed_at},
        is_completed=completed_at is not None,
    )


def test_first_write_inserts_row(monkeypatch):
    db = FakeDB(fetchone_results=[{'version': 1}])
    with patched_dbmanager(monkeypatch, requirement_progress, db):
        outcome = RequirementProgress.write_if_unchanged('team-a', 'tile-1', 'BA_GAMBLES:50', None, _result())

    assert outcome is WriteOutcome.OK
    assert db.last_query.startswith('INSERT INTO bingo_requirement_progress')
    assert 'ON CONFLICT (team_id, tile_id, requirement_key) DO NOTHING' in db.last_query
    assert db.last_params[:4] == ('team-a', 'tile-1', 'BA_GAMBLES:50', 3)
    assert isinstance(db.last_params[4], Jsonb)


def test_update_checks_version_and_keeps_first_completion(monkeypatch):
    db = FakeDB(fetchone_results=[{'version': 5}])
    with patched_dbmanager(monkeypatch, requirement_progress, db):
        outcome = RequirementProgress.write_if_unchanged(
            'team-a', 'tile-1', 'BA_GAMBLES:50', 4, _result(60, '2026-03-14T12:30:00+00:00')
        )

    assert outcome is WriteOutcome.OK
    assert 'AND version = %s' in db.last_query
    assert 'COALESCE(completed_at, %s)' in db.last_query
    assert db.last_params[2] is True
    assert db.last_params[3] == datetime(2026, 3, 14, 12, 30, tzinfo=timezone.utc)
    assert db.last_params[-4:] == ('team-a', 'tile-1', 'BA_GAMBLES:50', 4)


def test_no_returned_row_is_a_conflict(monkeypatch):
    db = FakeDB()
    with patched_dbmanager(monkeypatch, requirement_progress, db):
        outcome = RequirementProgress.write_if_unchanged('team-a', 'tile-1', 'BA_GAMBLES:50', 4, _result())
    assert outcome is WriteOutcome.CONFLICT


def test_read_maps_row_to_stored_progress(monkeypatch):
    db = FakeDB(
        fetchone_results=[
            {
                'progress_value': 12,
                'progress_metadata': {'requirementType': 'BA_GAMBLES'},
                'version': 3,
                'is_completed': False,
                'completed_at': None,
            }
        ]
    )
    _patch(monkeypatch, db, base)
    stored = RequirementProgress.read('team-a', 'tile-1', 'BA_GAMBLES:50')
    assert (stored.progress_value, stored.version, stored.is_completed) == (12, 3, False)
    assert db.last_params == ('team-a', 'tile-1', 'BA_GAMBLES:50')

    assert RequirementProgress.read('team-a', 'tile-1', 'missing') is None


def test_completed_keys(monkeypatch):
    db = FakeDB(fetchall_results=[[{'requirement_key': 'PET:Herbi:1'}, {'requirement_key': 'BA_GAMBLES:50'}]])
    _patch(monkeypatch, db, base)
    assert RequirementProgress.completed_keys('team-a', 'tile-1') == {'PET:Herbi:1', 'BA_GAMBLES:50'}
    assert db.last_query.startswith('SELECT requirement_key FROM bingo_requirement_progress')


def test_processed_event_claim_release_and_prune(monkeypatch):
    db = FakeDB(fetchone_results=[{'event_id': 'abc'}, None], rowcount=7)
    _patch(monkeypatch, db, base, processed_event)

    assert ProcessedEvent.claim('abc') is True
    assert ProcessedEvent.claim('abc') is False

    ProcessedEvent.release('abc')
    assert db.executed[-1] == ('DELETE FROM bingo_processed_events WHERE event_id = %s', ('abc',))

    cutoff = datetime(2026, 3, 1, tzinfo=timezone.utc)
    assert ProcessedEvent.prune(cutoff) == 7
    assert db.executed[-1][1] == (cutoff,)


def test_account_lookup_normalizes_names(monkeypatch):
    db = FakeDB(fetchone_results=[{'id': 42}])
    _patch(monkeypatch, db, base)

    assert OsrsAccount.resolve_account_by_name(' Lynx_Titan ') == 42
    assert db.last_params == ('lynx titan',)
    assert OsrsAccount.resolve_account_by_name('Nobody') is None
    assert OsrsAccount.resolve_account_by_name('   ') is None


def test_active_tiles_skip_malformed_requirements(monkeypatch):
    start = datetime(2026, 3, 14, tzinfo=timezone.utc)
    db = FakeDB(
        fetchall_results=[
            [
                {
                    'tile_id': 't1',
                    'team_id': 'team-a',
                    'task': 'Get a pet',
                    'requirements': {
                        'matchType': 'all',
                        'requirements': [{'type': 'PET', 'petName': 'Herbi'}],
                    },
                    'event_start': start,
                    'discord_webhook_url': 'https://discord.test/hook',
                },
                {
                    'tile_id': 't2',
                    'team_id': 'team-a',
                    'task': 'Broken',
                    'requirements': {'requirements': [{'type': 'SPEEDRUN'}]},
                    'event_start': start,
                    'discord_webhook_url': None,
                },
            ]
        ]
    )
    with patched_dbmanager(monkeypatch, board_tile, db):
        tiles = BoardTile.active_tiles_for_account(1, 'Zezima')

    [tile] = tiles
    assert tile.tile_id == 't1'
    assert tile.requirements.match_type is MatchType.ALL
    assert tile.event_start == start
    assert tile.webhook_url == 'https://discord.test/hook'
    assert db.last_params == (1,)


def test_unknown_account_has_no_active_tiles(monkeypatch):
    db = FakeDB()
    with patched_dbmanager(monkeypatch, board_tile, db):
        assert BoardTile.active_tiles_for_account(None, 'Guest') == []
    assert db.last_query is None
