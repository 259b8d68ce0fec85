from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Optional

from bingo.calculators.interface import CalculatorContext
from bingo.calculators.registry import calculate_progress
from bingo.calculators.tiers import new_tiers
from bingo.events.dink_adapter import adapt_event
from bingo.events.unified import UnifiedGameEvent
from bingo.interfaces import (
    AccountResolver,
    ActiveTile,
    Completion,
    CompletionNotifier,
    EventLedger,
    ExperienceRanking,
    ProgressStore,
    TileSource,
    WriteOutcome,
)
from bingo.matchers import matches
from bingo.requirements.keys import requirement_key_of
from bingo.requirements.metadata import ProgressResult, StoredProgress
from bingo.requirements.types import MatchType, RequirementDef
from bingo.utils.constants import APPLIED_EVENT_IDS_LIMIT, MAX_WRITE_ATTEMPTS
from bingo.utils.errors import WriteConflictError
from bingo.utils.tracing import tag_span, trace_span

logger = logging.getLogger(__name__)


def _stored_tiers(stored: Optional[StoredProgress]) -> tuple[int, ...]:
    if stored is None:
        return ()
    return tuple(stored.progress_metadata.get('completedTiers') or ())


def _fully_done(requirement: RequirementDef, stored: Optional[StoredProgress]) -> bool:
    '''Completed, and every tier (if any) already awarded.'''
    if stored is None or not stored.is_completed:
        return False
    return len(_stored_tiers(stored)) >= len(requirement.tiers)


def _applied_ids(stored: Optional[StoredProgress]) -> list[str]:
    if stored is None:
        return []
    return list(stored.progress_metadata.get('appliedEventIds') or [])


def _without_applied(metadata: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in metadata.items() if k != 'appliedEventIds'}


def _record_applied(
    result: ProgressResult, stored: Optional[StoredProgress], event_id: Optional[str]
) -> ProgressResult:
    '''Carry the row's applied event ids forward, adding this event's id.'''
    applied = _applied_ids(stored)
    if event_id:
        applied = (applied + [event_id])[-APPLIED_EVENT_IDS_LIMIT:]
    if not applied:
        return result
    return replace(result, progress_metadata={**result.progress_metadata, 'appliedEventIds': applied})


def tile_is_complete(tile: ActiveTile, completed: set[str]) -> bool:
    keys = [requirement_key_of(r) for r in tile.requirements.requirements]
    if not keys:
        return False
    if tile.requirements.match_type is MatchType.ALL:
        return all(k in completed for k in keys)
    return any(k in completed for k in keys)


class ProgressEngine:
    '''Folds game events into per-team requirement progress.

    Collaborators are injected; the engine holds no module-level state.
    '''

    def __init__(
        self,
        tiles: TileSource,
        store: ProgressStore,
        resolver: Optional[AccountResolver] = None,
        ranking: Optional[ExperienceRanking] = None,
        ledger: Optional[EventLedger] = None,
        notifier: Optional[CompletionNotifier] = None,
        now: Optional[Callable[[], datetime]] = None,
        max_attempts: int = MAX_WRITE_ATTEMPTS,
    ) -> None:
        self.tiles = tiles
        self.store = store
        self.resolver = resolver
        self.ranking = ranking
        self.ledger = ledger
        self.notifier = notifier
        self.now = now
        self.max_attempts = max_attempts

    def process_payload(
        self, payload: dict[str, Any], delivery_id: Optional[str] = None
    ) -> list[Completion]:
        '''Adapt a raw Dink payload and process it; irrelevant payloads are a no-op.'''
        event = adapt_event(payload, self.resolver, self.now, delivery_id)
        if event is None:
            return []
        return self.process_event(event)

    def process_event(self, event: UnifiedGameEvent) -> list[Completion]:
        with trace_span(
            'engine.process_event',
            {'event_type': event.event_type.value, 'player': event.player_name},
        ):
            claimed = False
            if event.event_id and self.ledger is not None:
                if not self.ledger.claim(event.event_id):
                    logger.info(f'Skipping redelivered event {event.event_id[:12]}')
                    tag_span('duplicate', True)
                    return []
                claimed = True

            try:
                completions = self._apply(event)
            except Exception:
                if claimed:
                    # let the redelivery try again
                    self.ledger.release(event.event_id)
                raise

            tag_span('completions', len(completions))
            self._notify(completions)
            return completions

    def _apply(self, event: UnifiedGameEvent) -> list[Completion]:
        completions: list[Completion] = []
        for tile in self.tiles.active_tiles_for_account(event.account_id, event.player_name):
            tile_completions: list[Completion] = []
            for requirement in tile.requirements.requirements:
                if not matches(event, requirement):
                    continue
                completion = self._update_requirement(event, tile, requirement)
                if completion is not None:
                    tile_completions.append(completion)

            if any(c.requirement_completed for c in tile_completions):
                tile_completions = self._mark_tile_completion(tile, tile_completions)
            completions.extend(tile_completions)
        return completions

    def _mark_tile_completion(
        self, tile: ActiveTile, completions: list[Completion]
    ) -> list[Completion]:
        done = self.store.completed_keys(tile.team_id, tile.tile_id)
        if not tile_is_complete(tile, done):
            return completions
        newly = {c.requirement_key for c in completions if c.requirement_completed}
        if tile_is_complete(tile, done - newly):
            # the tile was already complete before this event
            return completions

        logger.info(f'Team {tile.team_id} completed tile {tile.tile_id} ({tile.task})')
        last = max(i for i, c in enumerate(completions) if c.requirement_completed)
        completions[last] = replace(completions[last], tile_completed=True)
        return completions

    def _update_requirement(
        self, event: UnifiedGameEvent, tile: ActiveTile, requirement: RequirementDef
    ) -> Optional[Completion]:
        key = requirement_key_of(requirement)
        context = CalculatorContext.for_event(event, tile.event_start, self.ranking)

        with trace_span(
            'engine.requirement', {'team': tile.team_id, 'tile': tile.tile_id, 'key': key}
        ):
            for attempt in range(1, self.max_attempts + 1):
                stored = self.store.read(tile.team_id, tile.tile_id, key)
                if _fully_done(requirement, stored):
                    tag_span('skipped', 'completed')
                    return None
                if event.event_id and event.event_id in _applied_ids(stored):
                    # folded in by an earlier delivery that failed further on
                    tag_span('skipped', 'already_applied')
                    return None

                result = calculate_progress(event, requirement, stored, context)
                if stored is None:
                    unchanged = result.progress_metadata.get('lastUpdateAt') is None
                else:
                    unchanged = (
                        result.progress_value == stored.progress_value
                        and _without_applied(result.progress_metadata)
                        == _without_applied(stored.progress_metadata)
                    )
                if unchanged:
                    tag_span('skipped', 'unchanged')
                    return None

                result = _record_applied(result, stored, event.event_id)
                outcome = self.store.write_if_unchanged(
                    tile.team_id,
                    tile.tile_id,
                    key,
                    stored.version if stored is not None else None,
                    result,
                )
                if outcome is WriteOutcome.OK:
                    tag_span('attempts', attempt)
                    break
                logger.info(
                    f'Write conflict on {tile.team_id}/{tile.tile_id}/{key} '
                    f'(attempt {attempt}/{self.max_attempts})'
                )
            else:
                raise WriteConflictError(tile.team_id, tile.tile_id, key, self.max_attempts)

        was_completed = stored.is_completed if stored is not None else False
        requirement_completed = result.is_completed and not was_completed
        tiers = new_tiers(_stored_tiers(stored), result.completed_tiers)
        if not requirement_completed and not tiers:
            return None

        return Completion(
            team_id=tile.team_id,
            tile_id=tile.tile_id,
            task=tile.task,
            requirement_key=key,
            requirement=requirement,
            result=result,
            new_tiers=tiers,
            requirement_completed=requirement_completed,
            player_name=event.player_name,
            webhook_url=tile.webhook_url,
        )

    def _notify(self, completions: list[Completion]) -> None:
        if self.notifier is None:
            return
        for completion in completions:
            try:
                self.notifier.notify(completion)
            except Exception:
                # progress is already persisted
                logger.exception(
                    f'Notification failed for {completion.team_id}/{completion.tile_id}'
                )
