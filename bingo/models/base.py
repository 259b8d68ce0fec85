from typing import Any, ClassVar, Iterable, Optional, cast

from psycopg.types.json import Jsonb

from bingo.database.db_manager import DBManager


def to_db(value: Any) -> Any:
    '''Wrap dicts/lists for JSONB columns; leave scalars alone.'''
    return Jsonb(value) if isinstance(value, (dict, list)) else value


class BaseModel:
    table: ClassVar[str]
    pk: ClassVar[str] = 'id'

    @classmethod
    def get_one(
        cls, where: str, params: Iterable[Any] = ()
    ) -> Optional[dict[str, Any]]:
        where_clause = f' WHERE {where}' if where else ''
        with DBManager() as db:
            row = db.fetchone(f'SELECT * FROM {cls.table}{where_clause}', tuple(params))
        return cast(Optional[dict[str, Any]], row)

    @classmethod
    def get_many(
        cls,
        where: str = '',
        params: Iterable[Any] = (),
        order_by: str = '',
        limit: Optional[int] = None,
        columns: str = '*',
    ) -> list[dict[str, Any]]:
        query_parts: list[str] = [f'SELECT {columns} FROM {cls.table}']
        parameters: tuple[Any, ...] = tuple(params)

        if where:
            query_parts.append(f'WHERE {where}')
        if order_by:
            query_parts.append(f'ORDER BY {order_by}')
        if limit is not None:
            query_parts.append('LIMIT %s')
            parameters = (*parameters, limit)

        query = ' '.join(query_parts)

        with DBManager() as db:
            rows = db.fetchall(query, parameters)
        return cast(list[dict[str, Any]], rows)

    @classmethod
    def delete(cls, id_value: Any) -> None:
        with DBManager() as db:
            db.execute(f'DELETE FROM {cls.table} WHERE {cls.pk} = %s', (id_value,))

