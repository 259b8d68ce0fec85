import logging
import os
from typing import Optional

import discord

from bingo.interfaces import Completion
from bingo.redaction import public_progress_view, public_requirement_view
from bingo.utils.constants import EMBED_COLOR_TIER, EMBED_COLOR_TILE

logger = logging.getLogger(__name__)


def completion_embed(completion: Completion) -> discord.Embed:
    '''Participant-facing embed; built only from the redacted views.'''
    requirement = public_requirement_view(
        completion.requirement, completion.result.progress_metadata
    )
    progress = public_progress_view(
        completion.requirement,
        completion.result.progress_value,
        completion.result.progress_metadata,
    )

    if completion.tile_completed:
        title = f'Tile completed: {completion.task}'
        color = EMBED_COLOR_TILE
    elif completion.requirement_completed:
        title = f'Requirement completed: {completion.task}'
        color = EMBED_COLOR_TILE
    else:
        tiers = ', '.join(str(t) for t in completion.new_tiers)
        title = f'Tier {tiers} reached: {completion.task}'
        color = EMBED_COLOR_TIER

    embed = discord.Embed(title=title, color=color)
    puzzle = requirement.get('puzzle')
    if puzzle is not None:
        embed.description = f'**{puzzle["displayName"]}** solved!'
        if puzzle.get('answer'):
            embed.add_field(name='It was', value=puzzle['answer'], inline=False)
    else:
        embed.description = requirement.get('description')
        embed.add_field(
            name='Progress',
            value=f'{progress["progressValue"]:,} / {progress["targetValue"]:,}',
        )
        if progress['completedTiers']:
            embed.add_field(
                name='Tiers', value=', '.join(str(t) for t in progress['completedTiers'])
            )

    if completion.player_name:
        embed.set_footer(text=f'Completed by {completion.player_name}')
    return embed


class DiscordNotifier:
    '''Posts completion embeds to the team's webhook, or a default one.'''

    def __init__(self, default_webhook_url: Optional[str] = None) -> None:
        self.default_webhook_url = default_webhook_url or os.getenv(
            'BINGO_DISCORD_WEBHOOK_URL'
        )

    def notify(self, completion: Completion) -> None:
        url = completion.webhook_url or self.default_webhook_url
        if not url:
            logger.debug(f'No webhook for team {completion.team_id}, skipping notification')
            return
        try:
            webhook = discord.SyncWebhook.from_url(url)
            webhook.send(embed=completion_embed(completion), username='Clan Bingo')
        except (discord.HTTPException, ValueError) as e:
            logger.error(
                f'Failed to notify team {completion.team_id} about tile {completion.tile_id}: {e}'
            )
            return
        logger.info(
            f'Notified team {completion.team_id}: tile {completion.tile_id} '
            f'key {completion.requirement_key}'
        )
