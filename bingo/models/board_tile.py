import logging
from typing import Any, Optional

from bingo.database.db_manager import DBManager
from bingo.interfaces import ActiveTile
from bingo.models.base import BaseModel
from bingo.requirements.types import TileRequirements
from bingo.utils.errors import RequirementParseError

logger = logging.getLogger(__name__)

# Tiles of teams the account plays on, in events that are running right now
_ACTIVE_TILES_SQL = '''
    SELECT DISTINCT
        bbt.tile_id, bb.team_id, bt.task, bt.requirements,
        e.start_date AS event_start, et.discord_webhook_url
    FROM event_team_members etm
    JOIN event_teams et ON etm.team_id = et.id
    JOIN events e ON et.event_id = e.id
    JOIN bingo_boards bb ON bb.team_id = et.id AND bb.event_id = e.id
    JOIN bingo_board_tiles bbt ON bbt.board_id = bb.id
    JOIN bingo_tiles bt ON bbt.tile_id = bt.id
    WHERE etm.osrs_account_id = %s
      AND e.status = 'active'
      AND (e.start_date IS NULL OR e.start_date <= NOW())
      AND (e.end_date IS NULL OR e.end_date > NOW())
'''


class BoardTile(BaseModel):
    '''Read-only view over the clan site's boards, tiles and team memberships.'''

    table = 'bingo_board_tiles'

    @staticmethod
    def _to_active(row: dict[str, Any]) -> Optional[ActiveTile]:
        try:
            requirements = TileRequirements.from_dict(row.get('requirements') or {})
        except RequirementParseError as e:
            logger.error(f'Tile {row.get("tile_id")} has malformed requirements: {e}')
            return None
        return ActiveTile(
            team_id=str(row['team_id']),
            tile_id=str(row['tile_id']),
            task=row.get('task') or '',
            requirements=requirements,
            event_start=row.get('event_start'),
            webhook_url=row.get('discord_webhook_url'),
        )

    @classmethod
    def active_tiles_for_account(
        cls, account_id: Optional[int], player_name: str
    ) -> list[ActiveTile]:
        if account_id is None:
            # team membership is by account; an unknown player has no tiles
            logger.debug(f'No account for "{player_name}", no active tiles')
            return []
        with DBManager() as db:
            rows = db.fetchall(_ACTIVE_TILES_SQL, (account_id,))
        tiles = [cls._to_active(row) for row in rows]
        return [t for t in tiles if t is not None]
