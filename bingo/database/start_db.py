import importlib.util
import logging
import os

from bingo.database.db_manager import DBManager
from bingo.database.init_schema import init_schema

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'migrations')


def pending_migrations(db: DBManager) -> list[str]:
    if not os.path.exists(MIGRATIONS_DIR):
        return []
    migration_files = sorted(
        f
        for f in os.listdir(MIGRATIONS_DIR)
        if f.endswith('.py') and not f.startswith('__')
    )
    applied_rows = db.fetchall('SELECT filename FROM migrations')
    applied = {row['filename'] for row in applied_rows}
    return [f for f in migration_files if f not in applied]


def run(db: DBManager):
    '''Run full DB setup: schema + migrations.'''
    init_schema(db)

    tables = db.fetchall(
        'SELECT table_name FROM information_schema.tables '
        'WHERE table_schema = current_schema() AND table_name LIKE %s',
        ('bingo_%',),
    )
    logger.info(f'Progress tables present: {[t["table_name"] for t in tables]}')

    for filename in pending_migrations(db):
        filepath = os.path.join(MIGRATIONS_DIR, filename)
        module_name = f'migration_{filename.replace(".py", "")}'

        try:
            spec = importlib.util.spec_from_file_location(module_name, filepath)
            if spec is None or spec.loader is None:
                raise ImportError(f'Could not load migration module: {filename}')

            migration = importlib.util.module_from_spec(spec)
            spec.loader.exec_module(migration)

            if hasattr(migration, 'up'):
                logger.info(f'Running migration: {filename}')
                migration.up(db)
                db.execute('INSERT INTO migrations (filename) VALUES (%s)', (filename,))
            else:
                logger.error(f'Skipping {filename}: no `up()` function found.')

        except Exception:
            logger.error(f'Error running migration {filename}', exc_info=True)
            raise

    logger.info('Migrations complete.')


if __name__ == '__main__':
    from bingo.utils.env import load_env
    from bingo.utils.logs import setup_logging

    setup_logging()
    load_env()
    with DBManager() as _db:
        run(_db)
