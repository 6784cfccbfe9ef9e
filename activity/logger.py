from __future__ import annotations

from typing import Any

import discord

from config.defaults import ACTIVITY_FIELD_MAX
from misc.chunking import truncate_message


def build_activity_embed(
    user,
    *,
    title: str,
    description: str,
    colour: discord.Colour | int,
    fields: dict[str, Any] | None = None,
) -> discord.Embed:
    embed = discord.Embed(
        title=title,
        description=description,
        colour=colour,
        timestamp=discord.utils.utcnow(),
    )
    avatar = getattr(getattr(user, "display_avatar", None), "url", None)
    embed.set_author(name=str(getattr(user, "name", "unknown")), icon_url=avatar)
    for name, value in (fields or {}).items():
        text = truncate_message(str(value) if value not in (None, "") else "(none)", ACTIVITY_FIELD_MAX)
        embed.add_field(name=name, value=text, inline=True)
    embed.set_footer(text=f"User ID: {getattr(user, 'id', 'unknown')}")
    return embed


async def log_user_activity(
    guild,
    user,
    *,
    title: str,
    description: str,
    colour: discord.Colour | int,
    fields: dict[str, Any] | None = None,
    channel_id: int = 0,
) -> bool:
    if guild is None or int(channel_id or 0) <= 0:
        return False
    channel = guild.get_channel(int(channel_id))
    if channel is None:
        print(f"[Activity] log channel {channel_id} not found in guild={getattr(guild, 'id', '?')}")
        return False

    embed = build_activity_embed(user, title=title, description=description, colour=colour, fields=fields)
    try:
        await channel.send(embed=embed)
    except discord.HTTPException as e:
        print(f"[Activity] failed to post '{title}' for user={getattr(user, 'id', '?')}: {e}")
        return False
    return True
