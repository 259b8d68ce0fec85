import logging
from typing import Any, Optional

import pendulum

from bingo.database.db_manager import DBManager
from bingo.interfaces import WriteOutcome
from bingo.models.base import BaseModel, to_db
from bingo.requirements.metadata import ProgressResult, StoredProgress

logger = logging.getLogger(__name__)


def _completed_at(result: ProgressResult) -> Optional[Any]:
    stamp = result.progress_metadata.get('completedAt')
    if not stamp:
        return None
    return pendulum.parse(stamp, strict=False)


class RequirementProgress(BaseModel):
    '''Progress for one requirement of one team's tile, versioned for compare-and-set.'''

    table = 'bingo_requirement_progress'

    @staticmethod
    def _to_stored(row: dict[str, Any]) -> StoredProgress:
        return StoredProgress(
            progress_value=int(row['progress_value']),
            progress_metadata=row.get('progress_metadata') or {},
            version=int(row['version']),
            is_completed=bool(row.get('is_completed')),
            completed_at=row.get('completed_at'),
        )

    @classmethod
    def read(
        cls, team_id: str, tile_id: str, requirement_key: str
    ) -> Optional[StoredProgress]:
        row = cls.get_one(
            'team_id = %s AND tile_id = %s AND requirement_key = %s',
            (team_id, tile_id, requirement_key),
        )
        return cls._to_stored(row) if row else None

    @classmethod
    def write_if_unchanged(
        cls,
        team_id: str,
        tile_id: str,
        requirement_key: str,
        expected_version: Optional[int],
        result: ProgressResult,
    ) -> WriteOutcome:
        '''Insert the first row, or update only if `version` still matches.

        Both paths return the new row through RETURNING; no row back means a
        concurrent writer won.
        '''
        values = (
            result.progress_value,
            to_db(result.progress_metadata),
            result.is_completed,
            _completed_at(result),
        )

        if expected_version is None:
            sql = (
                f'INSERT INTO {cls.table} (team_id, tile_id, requirement_key, '
                'progress_value, progress_metadata, is_completed, completed_at, version) '
                'VALUES (%s, %s, %s, %s, %s, %s, %s, 1) '
                'ON CONFLICT (team_id, tile_id, requirement_key) DO NOTHING '
                'RETURNING version'
            )
            params: tuple[Any, ...] = (team_id, tile_id, requirement_key, *values)
        else:
            sql = (
                f'UPDATE {cls.table} SET progress_value = %s, progress_metadata = %s, '
                'is_completed = %s, completed_at = COALESCE(completed_at, %s), '
                'version = version + 1, updated_at = NOW() '
                'WHERE team_id = %s AND tile_id = %s AND requirement_key = %s '
                'AND version = %s RETURNING version'
            )
            params = (*values, team_id, tile_id, requirement_key, expected_version)

        with DBManager() as db:
            row = db.fetchone(sql, params)

        if row is None:
            logger.debug(
                f'Version conflict on {team_id}/{tile_id}/{requirement_key} '
                f'(expected {expected_version})'
            )
            return WriteOutcome.CONFLICT
        return WriteOutcome.OK

    @classmethod
    def completed_keys(cls, team_id: str, tile_id: str) -> set[str]:
        rows = cls.get_many(
            'team_id = %s AND tile_id = %s AND is_completed',
            (team_id, tile_id),
            columns='requirement_key',
        )
        return {r['requirement_key'] for r in rows}
