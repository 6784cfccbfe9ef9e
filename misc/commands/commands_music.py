from __future__ import annotations

import discord
from discord import app_commands
from discord.ext import commands
from misc.adhoc_modules.music_service import QueueSnapshot
from misc.adhoc_modules.music_service import Track
from misc.adhoc_modules.music_service import classify_query
from misc.adhoc_modules.music_service import source_colour
from misc.adhoc_modules.music_service import source_display_name
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.discord_gates import member_voice_channel

NOT_IN_VOICE_TEXT = "You need to be in a voice channel to use this command!"
WRONG_VOICE_TEXT = "❌ | You must be in the same voice channel as the bot to use this command!"


def build_track_embed(track: Track, *, query: str, now_playing: bool) -> discord.Embed:
    link = f"**[{track.title}]({track.url})**"
    if classify_query(query) == "search":
        description = f'**Top result for "{query}"**\n{link}'
    else:
        description = link
    embed = discord.Embed(
        title="🎵 Now Playing" if now_playing else "🎶 Added to Queue",
        description=description,
        colour=source_colour(track.source),
    )
    embed.add_field(name="Artist", value=track.author or "Unknown artist", inline=True)
    embed.add_field(name="Duration", value=track.duration, inline=True)
    embed.add_field(name="Source", value=source_display_name(track.source), inline=True)
    if track.thumbnail:
        embed.set_thumbnail(url=track.thumbnail)
    embed.set_footer(text=f"Requested by {track.requested_by_name or 'unknown'}")
    return embed


def build_queue_embed(snapshot: QueueSnapshot) -> discord.Embed:
    current = snapshot.current
    embed = discord.Embed(title="Music Queue", colour=source_colour(current.source))
    embed.add_field(
        name="🎵 Now Playing",
        value=f"**{current.title}** - {current.author} ({current.duration})",
        inline=False,
    )
    if snapshot.upcoming:
        lines = [
            f"{i}. **{t.title}** - {t.author} ({t.duration})"
            for i, t in enumerate(snapshot.upcoming, start=1)
        ]
        embed.add_field(name="🎶 Up Next", value="\n".join(lines)[:1024], inline=False)
        if snapshot.remaining:
            embed.add_field(name="• • •", value=f"And {snapshot.remaining} more tracks...", inline=False)
    else:
        embed.add_field(name="🎶 Up Next", value="No tracks in queue", inline=False)
    return embed


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    if deps.music_service is None:
        return

    service = deps.music_service

    async def _require_voice(ctx: commands.Context):
        channel = member_voice_channel(ctx.author)
        if channel is None:
            await ctx.send(NOT_IN_VOICE_TEXT, ephemeral=True)
        return channel

    async def _require_same_voice(ctx: commands.Context) -> bool:
        channel = await _require_voice(ctx)
        if channel is None:
            return False
        bot_channel_id = service.bot_voice_channel_id(int(ctx.guild.id))
        if bot_channel_id is not None and bot_channel_id != int(channel.id):
            await ctx.send(WRONG_VOICE_TEXT, ephemeral=True)
            return False
        return True

    @bot.hybrid_command(name="play", description="Play music from YouTube, SoundCloud, or direct URLs")
    @app_commands.describe(query="The song title or URL to play")
    @commands.guild_only()
    async def play(ctx: commands.Context, *, query: str):
        channel = await _require_voice(ctx)
        if channel is None:
            return
        await ctx.defer()
        ok, msg, track = await service.play(
            guild=ctx.guild,
            voice_channel=channel,
            query=query,
            requested_by=ctx.author,
        )
        if not ok or track is None:
            await ctx.send(msg)
            return
        now_playing = service.is_current(int(ctx.guild.id), track)
        await ctx.send(embed=build_track_embed(track, query=query, now_playing=now_playing))

    @bot.hybrid_command(name="queue", description="View the current music queue")
    @commands.guild_only()
    async def queue(ctx: commands.Context):
        snapshot = await service.queue_snapshot(int(ctx.guild.id))
        if snapshot is None:
            await ctx.send("❌ | No music is being played!", ephemeral=True)
            return
        await ctx.send(embed=build_queue_embed(snapshot))

    @bot.hybrid_command(name="skip", description="Skip the current song")
    @commands.guild_only()
    async def skip(ctx: commands.Context):
        if not await _require_same_voice(ctx):
            return
        ok, msg = await service.skip(int(ctx.guild.id))
        await ctx.send(msg, ephemeral=not ok)

    @bot.hybrid_command(name="stop", description="Stop playing music and disconnect the bot")
    @commands.guild_only()
    async def stop(ctx: commands.Context):
        if not await _require_same_voice(ctx):
            return
        ok, msg = await service.stop(int(ctx.guild.id))
        await ctx.send(msg, ephemeral=not ok)
