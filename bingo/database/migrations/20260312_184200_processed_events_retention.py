from bingo.database.db_manager import DBManager


def up(db_manager: DBManager):
    # Dink redeliveries arrive within minutes; old ledger rows are pruned by date
    db_manager.execute('''
        CREATE INDEX IF NOT EXISTS idx_bingo_processed_events_processed_at
        ON bingo_processed_events (processed_at)
    ''')


def down(db_manager: DBManager):
    db_manager.execute('DROP INDEX IF EXISTS idx_bingo_processed_events_processed_at')
    db_manager.execute(
        'DELETE FROM migrations WHERE filename = %s',
        ('20260312_184200_processed_events_retention.py',),
    )
