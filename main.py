import argparse
import json
import logging
import sys
from datetime import timedelta

import pendulum

from bingo.database import start_db
from bingo.database.db_manager import DBManager
from bingo.engine import ProgressEngine
from bingo.models.board_tile import BoardTile
from bingo.models.osrs_account import OsrsAccount
from bingo.models.processed_event import ProcessedEvent
from bingo.models.requirement_progress import RequirementProgress
from bingo.services.notifications import DiscordNotifier
from bingo.services.wiseoldman import WiseOldManClient
from bingo.utils.constants import LEDGER_RETENTION_DAYS
from bingo.utils.env import env_float, load_env
from bingo.utils.errors import BingoError
from bingo.utils.logs import setup_logging

logger = logging.getLogger('bingo.main')


def build_engine() -> ProgressEngine:
    return ProgressEngine(
        tiles=BoardTile,
        store=RequirementProgress,
        resolver=OsrsAccount,
        ranking=WiseOldManClient(),
        ledger=ProcessedEvent,
        notifier=DiscordNotifier(),
    )


def replay(engine: ProgressEngine, stream, source: str = 'stdin') -> tuple[int, int]:
    '''Feed newline-delimited Dink payloads through the engine.

    Each line is one delivery, identified as `source:lineno`; replaying the
    same file again is recognised as a redelivery and skipped.
    '''
    processed = failed = 0
    for lineno, line in enumerate(stream, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            payload = json.loads(line)
        except json.JSONDecodeError as e:
            logger.error(f'Line {lineno}: not JSON: {e}')
            failed += 1
            continue
        try:
            completions = engine.process_payload(payload, delivery_id=f'{source}:{lineno}')
        except BingoError as e:
            logger.error(f'Line {lineno}: {e}')
            failed += 1
            continue
        processed += 1
        for c in completions:
            logger.info(f'Line {lineno}: {c.team_id}/{c.tile_id} {c.requirement_key}')
    return processed, failed


def prune_ledger(now=None) -> int:
    '''Drop ledger entries older than the retention window.'''
    days = env_float('BINGO_LEDGER_RETENTION_DAYS', LEDGER_RETENTION_DAYS)
    cutoff = (now or pendulum.now('UTC')) - timedelta(days=days)
    return ProcessedEvent.prune(cutoff)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Replay Dink payloads into bingo progress.')
    parser.add_argument('files', nargs='*', help='NDJSON payload files; stdin if omitted')
    parser.add_argument('--skip-setup', action='store_true', help='do not run migrations')
    parser.add_argument('-v', '--verbose', action='store_true', help='log timing spans')
    return parser.parse_args(argv)


if __name__ == '__main__':
    args = parse_args()
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    load_env()
    DBManager.init_pool()

    try:
        if not args.skip_setup:
            with DBManager() as db:
                # Run full DB setup (schema + migrations)
                start_db.run(db)

        engine = build_engine()
        total_failed = 0
        if args.files:
            for path in args.files:
                with open(path, encoding='utf-8') as f:
                    ok, bad = replay(engine, f, source=path)
                logger.info(f'{path}: {ok} processed, {bad} failed')
                total_failed += bad
        else:
            ok, total_failed = replay(engine, sys.stdin)
            logger.info(f'stdin: {ok} processed, {total_failed} failed')

        prune_ledger()
    finally:
        DBManager.close_pool()

    sys.exit(1 if total_failed else 0)
