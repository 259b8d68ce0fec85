from bingo.database.db_manager import DBManager


def up(db_manager: DBManager):
    # Tile completion only ever looks at finished requirements of one tile
    db_manager.execute('''
        CREATE INDEX IF NOT EXISTS idx_bingo_progress_completed
        ON bingo_requirement_progress (team_id, tile_id)
        WHERE is_completed
    ''')


def down(db_manager: DBManager):
    db_manager.execute('DROP INDEX IF EXISTS idx_bingo_progress_completed')
    db_manager.execute(
        'DELETE FROM migrations WHERE filename = %s',
        ('20260305_101500_index_open_progress.py',),
    )
