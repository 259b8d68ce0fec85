import logging

from bingo.database.db_manager import DBManager

logger = logging.getLogger(__name__)


def init_schema(db: DBManager):
    '''Create the tables the progress engine owns if they don't already exist.

    Boards, tiles, teams and accounts belong to the clan site and are only read.
    '''

    # --- REQUIREMENT PROGRESS TABLE ---
    db.execute(
        '''
        CREATE TABLE IF NOT EXISTS bingo_requirement_progress (
            team_id TEXT NOT NULL,
            tile_id TEXT NOT NULL,
            requirement_key TEXT NOT NULL,
            progress_value BIGINT NOT NULL DEFAULT 0,
            progress_metadata JSONB NOT NULL DEFAULT '{}'::jsonb,
            is_completed BOOLEAN NOT NULL DEFAULT FALSE,
            completed_at TIMESTAMPTZ DEFAULT NULL,
            version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            PRIMARY KEY (team_id, tile_id, requirement_key)
        )
        '''
    )

    # --- PROCESSED EVENTS TABLE ---
    db.execute(
        '''
        CREATE TABLE IF NOT EXISTS bingo_processed_events (
            event_id TEXT PRIMARY KEY,
            processed_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
        '''
    )

    # --- MIGRATIONS TABLE ---
    db.execute(
        '''
        CREATE TABLE IF NOT EXISTS migrations (
            id SERIAL PRIMARY KEY,
            filename TEXT NOT NULL UNIQUE,
            applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
        '''
    )
    logger.debug('Progress schema verified')
