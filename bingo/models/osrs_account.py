from typing import Optional

from bingo.models.base import BaseModel


class OsrsAccount(BaseModel):
    table = 'osrs_accounts'

    @classmethod
    def resolve_account_by_name(cls, name: str) -> Optional[int]:
        # RuneScape names are case-insensitive and treat '_' and ' ' alike
        normalized = name.strip().replace('_', ' ').lower()
        if not normalized:
            return None
        row = cls.get_one(
            "LOWER(REPLACE(osrs_nickname, '_', ' ')) = %s LIMIT 1", (normalized,)
        )
        return int(row['id']) if row else None
