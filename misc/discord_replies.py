from __future__ import annotations

from typing import Awaitable
from typing import Callable

import discord

from config.defaults import CHUNK_MAX_LENGTH
from misc.chunking import chunk_message
from misc.chunking import truncate_message

SendFunc = Callable[[str], Awaitable[object]]


async def deliver_chunked(
    text: str,
    *,
    first: SendFunc,
    rest: SendFunc,
    max_length: int = CHUNK_MAX_LENGTH,
) -> int:
    """Send `text` as labelled fragments; returns the number of messages sent.

    The first fragment goes through `first` (usually a reply), the others
    through `rest`. If Discord rejects the very first send, a single
    truncated message is tried instead.
    """
    parts = chunk_message(text, max_length)
    sent = 0
    for part in parts:
        target = first if sent == 0 else rest
        try:
            await target(part)
        except discord.HTTPException as e:
            if sent:
                raise
            print(f"[Discord] chunked send failed ({len(parts)} parts), falling back to truncation: {e}")
            await first(truncate_message(text))
            return 1
        sent += 1
    return sent


async def send_chunked(channel: discord.abc.Messageable, text: str) -> int:
    return await deliver_chunked(text, first=channel.send, rest=channel.send)


async def reply_chunked(message: discord.Message, text: str) -> int:
    return await deliver_chunked(text, first=message.reply, rest=message.channel.send)


async def ctx_send_chunked(ctx, text: str) -> int:
    return await deliver_chunked(text, first=ctx.reply, rest=ctx.send)
