import io
from datetime import datetime, timezone

import main
from bingo.utils.errors import WriteConflictError
from main import parse_args, prune_ledger, replay


class _Engine:
    def __init__(self, fail_on=None):
        self.payloads = []
        self.delivery_ids = []
        self.fail_on = fail_on

    def process_payload(self, payload, delivery_id=None):
        if payload.get('playerName') == self.fail_on:
            raise WriteConflictError('team-a', 'tile-1', 'PET:Herbi:1', 3)
        self.payloads.append(payload)
        self.delivery_ids.append(delivery_id)
        return []


def test_replay_counts_processed_and_failed_lines():
    stream = io.StringIO(
        '{"type": "PET", "playerName": "Zezima", "extra": {"petName": "Herbi"}}\n'
        '\n'
        'not json\n'
        '{"type": "PET", "playerName": "Lynx", "extra": {"petName": "Herbi"}}\n'
    )
    engine = _Engine(fail_on='Lynx')

    assert replay(engine, stream) == (1, 2)
    assert [p['playerName'] for p in engine.payloads] == ['Zezima']


def test_replay_gives_each_line_its_own_delivery_id():
    line = '{"type": "LOOT", "playerName": "Zezima", "extra": {"items": []}}\n'
    engine = _Engine()

    replay(engine, io.StringIO(line * 2), source='drops.ndjson')

    assert engine.delivery_ids == ['drops.ndjson:1', 'drops.ndjson:2']


def test_prune_ledger_uses_retention_window(monkeypatch):
    cutoffs = []
    monkeypatch.setattr(main.ProcessedEvent, 'prune', lambda older_than: cutoffs.append(older_than) or 7)
    monkeypatch.setenv('BINGO_LEDGER_RETENTION_DAYS', '3')

    assert prune_ledger(now=datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)) == 7
    assert cutoffs == [datetime(2026, 3, 11, 12, 0, tzinfo=timezone.utc)]


def test_prune_ledger_default_retention(monkeypatch):
    cutoffs = []
    monkeypatch.setattr(main.ProcessedEvent, 'prune', lambda older_than: cutoffs.append(older_than) or 0)
    monkeypatch.delenv('BINGO_LEDGER_RETENTION_DAYS', raising=False)

    prune_ledger(now=datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc))
    assert cutoffs == [datetime(2026, 2, 28, 12, 0, tzinfo=timezone.utc)]


def test_parse_args():
    args = parse_args(['a.ndjson', '--skip-setup', '-v'])
    assert args.files == ['a.ndjson']
    assert args.skip_setup and args.verbose
