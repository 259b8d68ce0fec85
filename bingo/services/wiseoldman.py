import logging
import os
from datetime import datetime
from typing import Any, Optional
from urllib.parse import quote

import pendulum
import requests

from bingo.utils.constants import (
    SKILLS,
    WOM_API_BASE,
    WOM_SNAPSHOT_LIMIT,
    WOM_TIMEOUT_SECONDS,
    WOM_USER_AGENT,
)
from bingo.utils.env import env_float
from bingo.utils.errors import RankingUnavailableError

logger = logging.getLogger(__name__)


def skill_key(skill: str) -> Optional[str]:
    key = skill.strip().lower()
    return key if key in SKILLS else None


def _skill_xp(snapshot: Optional[dict[str, Any]], key: str) -> Optional[int]:
    if not snapshot:
        return None
    skill = ((snapshot.get('data') or {}).get('skills') or {}).get(key) or {}
    xp = skill.get('experience')
    # WOM reports -1 for unranked skills
    if xp is None or int(xp) < 0:
        return None
    return int(xp)


class WiseOldManClient:
    '''Experience lookups against the WiseOldMan v2 API.

    Current-XP failures (timeout, HTTP error, unknown player or skill) come
    back as None so a ranking outage never blocks event processing. Baseline
    lookups raise RankingUnavailableError on an outage and return None only
    when the player has no usable snapshot.
    '''

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = (base_url or os.getenv('WOM_API_BASE') or WOM_API_BASE).rstrip('/')
        self.timeout = timeout if timeout is not None else env_float(
            'WOM_TIMEOUT_SECONDS', WOM_TIMEOUT_SECONDS
        )
        self.session = session or requests.Session()
        self.session.headers.setdefault(
            'User-Agent', os.getenv('WOM_USER_AGENT') or WOM_USER_AGENT
        )

    def _get(
        self, path: str, params: Optional[dict[str, Any]] = None, strict: bool = False
    ) -> Optional[Any]:
        '''GET and decode JSON. A 404 is always None; with `strict` any other
        failure raises RankingUnavailableError instead of returning None.'''
        url = f'{self.base_url}{path}'
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.Timeout:
            return self._failed(f'WiseOldMan request timed out after {self.timeout}s: {url}', strict)
        except requests.RequestException as e:
            return self._failed(f'WiseOldMan request failed: {url}: {e}', strict)

        if response.status_code == 404:
            logger.info(f'WiseOldMan has no record for {url}')
            return None
        if response.status_code >= 400:
            return self._failed(f'WiseOldMan returned {response.status_code} for {url}', strict)
        try:
            return response.json()
        except ValueError as e:
            return self._failed(f'WiseOldMan sent invalid JSON for {url}: {e}', strict)

    @staticmethod
    def _failed(message: str, strict: bool) -> None:
        logger.warning(message)
        if strict:
            raise RankingUnavailableError(message)
        return None

    def current_experience(self, name: str, skill: str) -> Optional[int]:
        key = skill_key(skill)
        if key is None:
            logger.warning(f'Unknown skill "{skill}"')
            return None
        player = self._get(f'/players/{quote(name)}')
        if not player:
            return None
        return _skill_xp(player.get('latestSnapshot'), key)

    def experience_at_or_before(
        self, name: str, skill: str, date: datetime
    ) -> Optional[int]:
        '''XP from the newest snapshot taken at or before `date`.'''
        key = skill_key(skill)
        if key is None:
            return None
        snapshots = self._get(
            f'/players/{quote(name)}/snapshots', {'limit': WOM_SNAPSHOT_LIMIT}, strict=True
        )
        if not snapshots:
            return None

        cutoff = pendulum.instance(date)
        best: Optional[tuple[Any, dict[str, Any]]] = None
        for snapshot in snapshots:
            created = snapshot.get('createdAt')
            if not created:
                continue
            taken = pendulum.parse(created, strict=False)
            if taken > cutoff:
                continue
            if best is None or taken > best[0]:
                best = (taken, snapshot)

        if best is None:
            logger.debug(f'No {key} snapshot for "{name}" at or before {cutoff}')
            return None
        return _skill_xp(best[1], key)
