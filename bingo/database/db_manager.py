import logging
import os
from functools import wraps
from typing import Any, Callable, Iterable, List, Optional, Tuple, TypeVar

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

T = TypeVar('T')

logger = logging.getLogger(__name__)


def require_connection(func: Callable) -> Callable:
    '''Decorator to ensure DBManager is used within a context manager.'''

    @wraps(func)
    def wrapper(self: 'DBManager', *args, **kwargs) -> Any:
        if not self._connected:
            raise RuntimeError(
                'DBManager is not in a context. Use "with DBManager() as db:"'
            )
        return func(self, *args, **kwargs)

    return wrapper


def _database_url(db_url: Optional[str] = None) -> str:
    conninfo = db_url or os.getenv('DATABASE_URL')
    if not conninfo:
        raise RuntimeError('DATABASE_URL is not set; progress is stored in Postgres.')
    return conninfo


class DBManager:
    '''Postgres access for progress rows and the processed-event ledger.

    One instance is one transaction: commit on clean exit, rollback on error.
    '''

    # Shared pool across the process
    _pool: Optional[ConnectionPool] = None

    def __init__(self) -> None:
        self._connected: bool = False
        self._pg_conn: Optional[psycopg.Connection] = None
        self._from_pool: bool = False

    @classmethod
    def init_pool(
        cls,
        db_url: Optional[str] = None,
        min_size: int = 1,
        max_size: int = 10,
    ) -> None:
        '''Initialize a global connection pool for reuse across events.'''
        if cls._pool is not None:
            return
        cls._pool = ConnectionPool(
            conninfo=_database_url(db_url),
            min_size=min_size,
            max_size=max_size,
            kwargs={'row_factory': dict_row},
        )
        logger.info('Initialized Postgres connection pool')

    @classmethod
    def close_pool(cls) -> None:
        if cls._pool is not None:
            try:
                cls._pool.close()
            finally:
                cls._pool = None

    def _open(self) -> None:
        if self.__class__._pool is not None:
            self._pg_conn = self.__class__._pool.getconn()
            self._from_pool = True
        else:
            self._pg_conn = psycopg.connect(_database_url(), row_factory=dict_row)
            self._from_pool = False

    def _release(self) -> None:
        if self._pg_conn is None:
            return
        try:
            if self._from_pool and self.__class__._pool is not None:
                # a broken connection is discarded by the pool on put
                self.__class__._pool.putconn(self._pg_conn)
            else:
                self._pg_conn.close()
        finally:
            self._pg_conn = None
            self._from_pool = False

    def __enter__(self) -> 'DBManager':
        self._open()
        self._connected = True
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if not self._connected:
            return
        try:
            if exc_type is None:
                self._pg_conn.commit()
            else:
                self._pg_conn.rollback()
        finally:
            self._release()
            self._connected = False

    def _reconnect(self) -> None:
        try:
            self._release()
        except Exception as e:
            logger.warning(f'Error while closing connection during reconnect: {e}')
        self._open()

    def _run_with_retry(self, fn: Callable[[], T]) -> T:
        '''Run DB exec, reconn on OperationalError/InterfaceError, and retry once'''
        try:
            return fn()
        except (psycopg.OperationalError, psycopg.InterfaceError) as e:
            logger.warning(
                f'DB operation failed due to connection issue: {e}. '
                f'Reconnecting and retrying once...'
            )
            self._reconnect()
            return fn()

    def _exec_pg(self, query: str, params: Iterable[Any] | None) -> int:
        '''Execute a statement that does not return rows; returns the rowcount.'''
        assert self._pg_conn is not None
        with self._pg_conn.cursor() as cur:
            cur.execute(query, tuple(params or ()))
            return cur.rowcount

    def _select_pg(
        self, query: str, params: Iterable[Any] | None
    ) -> Tuple[List[dict[str, Any]], List[str]]:
        '''Execute a row-returning query and return (rows, column_names).'''
        assert self._pg_conn is not None
        with self._pg_conn.cursor() as cur:
            cur.execute(query, tuple(params or ()))
            rows: List[dict[str, Any]] = cur.fetchall() if cur.description else []
            cols: List[str] = (
                [d.name for d in cur.description] if cur.description else []
            )
            return rows, cols

    @require_connection
    def execute(self, query: str, params: Iterable[Any] | None = None) -> int:
        '''Execute a single SQL statement.'''
        try:
            return self._run_with_retry(lambda: self._exec_pg(query, params))
        except Exception as e:
            logger.error(
                f'Postgres execute() error: {e}\nQuery: {query}\nParams: {params}'
            )
            raise

    @require_connection
    def fetchall(
        self, query: str, params: Iterable[Any] | None = None
    ) -> List[dict[str, Any]]:
        '''Return all rows as a list of dictionaries.'''
        try:
            rows, _ = self._run_with_retry(lambda: self._select_pg(query, params))
            return rows
        except Exception as e:
            logger.error(
                f'Postgres fetchall() error: {e}\nQuery: {query}\nParams: {params}'
            )
            raise

    @require_connection
    def fetchone(
        self, query: str, params: Iterable[Any] | None = None
    ) -> Optional[dict[str, Any]]:
        '''Return a single row as a dictionary, or None if no result.'''
        try:
            rows, _ = self._run_with_retry(lambda: self._select_pg(query, params))
            return rows[0] if rows else None
        except Exception as e:
            logger.error(
                f'Postgres fetchone() error: {e}\nQuery: {query}\nParams: {params}'
            )
            raise
