from __future__ import annotations

import discord


def channel_history_enabled(channel, no_history_channel_ids: set[int]) -> bool:
    if channel is None:
        return True
    channel_id = int(getattr(channel, "id", 0) or 0)
    if channel_id in no_history_channel_ids:
        return False
    # thread: inherit the parent's setting
    if isinstance(channel, discord.Thread) and channel.parent:
        return int(channel.parent.id) not in no_history_channel_ids
    return True


def is_image_attachment(attachment) -> bool:
    content_type = str(getattr(attachment, "content_type", "") or "")
    return content_type.lower().startswith("image/")


def image_attachment_urls(attachments) -> list[str]:
    return [str(a.url) for a in (attachments or []) if is_image_attachment(a)]


def member_voice_channel(member):
    voice = getattr(member, "voice", None)
    return getattr(voice, "channel", None) if voice is not None else None
