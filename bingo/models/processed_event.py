import logging
from datetime import datetime

from bingo.database.db_manager import DBManager
from bingo.models.base import BaseModel

logger = logging.getLogger(__name__)


class ProcessedEvent(BaseModel):
    '''Ledger of event ids already folded into progress.'''

    table = 'bingo_processed_events'
    pk = 'event_id'

    @classmethod
    def claim(cls, event_id: str) -> bool:
        with DBManager() as db:
            row = db.fetchone(
                f'INSERT INTO {cls.table} (event_id) VALUES (%s) '
                'ON CONFLICT (event_id) DO NOTHING RETURNING event_id',
                (event_id,),
            )
        return row is not None

    @classmethod
    def release(cls, event_id: str) -> None:
        cls.delete(event_id)

    @classmethod
    def prune(cls, older_than: datetime) -> int:
        with DBManager() as db:
            removed = db.execute(
                f'DELETE FROM {cls.table} WHERE processed_at < %s', (older_than,)
            )
        logger.info(f'Pruned {removed} processed event ids older than {older_than}')
        return removed
