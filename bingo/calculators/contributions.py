from __future__ import annotations

from typing import Optional

from bingo.requirements.metadata import Contribution, HistoryEntry
from bingo.utils.constants import CONTRIBUTION_HISTORY_LIMIT


def find_or_create(
    contributions: list[Contribution], account_id: Optional[int], nickname: str
) -> Contribution:
    '''Locate the player's contribution, creating it on first sight.

    Attributed players are keyed by account id only, so a rename keeps the same
    entry. Unattributed players are keyed by nickname and never merge with an
    attributed entry.
    '''
    for contribution in contributions:
        if account_id is not None:
            if contribution.get('accountId') == account_id:
                contribution['nickname'] = nickname or contribution.get('nickname', '')
                return contribution
        elif (
            contribution.get('accountId') is None
            and contribution.get('nickname') == nickname
        ):
            return contribution

    created: Contribution = {
        'accountId': account_id,
        'nickname': nickname,
        'value': 0,
        'history': [],
    }
    contributions.append(created)
    return created


def append_history(contribution: Contribution, entry: HistoryEntry) -> None:
    history = contribution.setdefault('history', [])
    history.append(entry)
    if len(history) > CONTRIBUTION_HISTORY_LIMIT:
        del history[: len(history) - CONTRIBUTION_HISTORY_LIMIT]


def team_total(contributions: list[Contribution]) -> int:
    return sum(int(c.get('value') or 0) for c in contributions)


def team_best_min(contributions: list[Contribution]) -> Optional[int]:
    values = [int(c['value']) for c in contributions if c.get('value') is not None]
    return min(values) if values else None
