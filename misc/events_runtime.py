from __future__ import annotations

import asyncio
from datetime import datetime
from datetime import timezone

import discord
from activity.logger import log_user_activity
from activity.report import build_activity_report
from activity.roster import collect_member_statuses
from activity.roster import format_roster
from activity.store import scan_tables_sync
from config.defaults import APOLOGY_TEXT
from config.defaults import DEFAULT_IMAGE_PROMPT
from config.defaults import GREETING_TEXT
from config.defaults import REPORT_APOLOGY_TEXT
from controller.generation import GenerationError
from conversation.service import reset_conversation
from conversation.service import respond
from discord.ext import commands
from misc.discord_gates import channel_history_enabled
from misc.discord_gates import image_attachment_urls
from misc.mention_routes import ROUTE_HELP
from misc.mention_routes import ROUTE_REPORT
from misc.mention_routes import ROUTE_RESET
from misc.mention_routes import ROUTE_SCAN_TABLES
from misc.mention_routes import ROUTE_WHOS_WORKING
from misc.mention_routes import classify_mention_route
from misc.mention_routes import strip_bot_mention
from misc.runtime_deps import RuntimeBootDeps
from misc.runtime_deps import RuntimeDeps

MENTION_COLOUR = discord.Colour(0xFF5722)

HELP_TEXT = (
    "**Ferret9 help**\n"
    "- Mention me with a message (and optionally images) to chat.\n"
    "- `@Ferret9 reset` clears this channel's conversation.\n"
    "- `@Ferret9 report @user <date>` shows a daily activity report.\n"
    "- `@Ferret9 who's working` lists who is currently on the clock.\n"
    "- Commands: `/ask`, `/reset`, `/play`, `/queue`, `/skip`, `/stop`, `/report`, `/whosworking` "
    "(also available with the `!` prefix)."
)


def _speaker_name(user) -> str:
    return str(getattr(user, "name", None) or getattr(user, "display_name", None) or "user")


async def _handle_help(message: discord.Message, deps: RuntimeDeps, match) -> None:
    await message.reply(HELP_TEXT)


async def _handle_reset(message: discord.Message, deps: RuntimeDeps, match) -> None:
    reset_conversation(deps.store, int(message.channel.id), deps.preamble)
    print(f"[Conversation] reset channel={int(message.channel.id)} by={int(message.author.id)}")
    await message.reply("🔄 Conversation history for this channel has been reset.")


async def _handle_scan_tables(message: discord.Message, deps: RuntimeDeps, match) -> None:
    if not deps.user_is_owner(message.author):
        await message.reply("Scanning tables is owner-only.")
        return
    result = await asyncio.to_thread(scan_tables_sync, deps.logs_table, deps.sessions_table)
    logs = result.get("logs", [])
    sessions = result.get("sessions", [])
    print(f"[Activity] scan tables logs={len(logs)} sessions={len(sessions)}")
    for row in logs[:3]:
        print(f"[Activity] sample log row: {row}")
    for row in sessions[:3]:
        print(f"[Activity] sample session row: {row}")
    await message.reply(
        f"Scanned **{len(logs)}** activity log rows and **{len(sessions)}** session rows. "
        "Sample rows were written to the bot logs."
    )


async def _handle_report(message: discord.Message, deps: RuntimeDeps, match) -> None:
    user_id = int(match.group("user_id"))
    date_text = (match.group("date") or "").strip() or "today"
    member = message.guild.get_member(user_id) if message.guild is not None else None
    display_name = getattr(member, "display_name", None) or f"<@{user_id}>"
    try:
        report = await build_activity_report(
            logs_table=deps.logs_table,
            sessions_table=deps.sessions_table,
            user_id=str(user_id),
            display_name=display_name,
            date_text=date_text,
        )
    except Exception as e:
        print(f"[Report] Error: {e}")
        await message.reply(REPORT_APOLOGY_TEXT)
        return
    await deps.reply_chunked(message, report)


async def _handle_whos_working(message: discord.Message, deps: RuntimeDeps, match) -> None:
    if message.guild is None:
        await message.reply("That only works inside a server.")
        return
    statuses = await collect_member_statuses(
        list(getattr(message.guild, "members", []) or []),
        sessions_table=deps.sessions_table,
        working_role_id=deps.working_role_id,
        on_break_role_id=deps.on_break_role_id,
        now=datetime.now(timezone.utc),
    )
    await deps.reply_chunked(message, format_roster(statuses))


MENTION_HANDLERS = {
    ROUTE_HELP: _handle_help,
    ROUTE_RESET: _handle_reset,
    ROUTE_SCAN_TABLES: _handle_scan_tables,
    ROUTE_REPORT: _handle_report,
    ROUTE_WHOS_WORKING: _handle_whos_working,
}


async def _handle_generation(message: discord.Message, deps: RuntimeDeps, prompt: str) -> None:
    image_urls = image_attachment_urls(getattr(message, "attachments", None))
    async with message.channel.typing():
        reply = await respond(
            deps.store,
            deps.generator,
            channel_id=int(message.channel.id),
            speaker=_speaker_name(message.author),
            prompt=prompt or DEFAULT_IMAGE_PROMPT,
            preamble=deps.preamble,
            image_urls=image_urls,
            history_enabled=channel_history_enabled(message.channel, deps.no_history_channel_ids),
        )
    await deps.reply_chunked(message, reply)


async def handle_mention(bot_user_id: int, message: discord.Message, deps: RuntimeDeps) -> None:
    content = message.content or ""
    await log_user_activity(
        message.guild,
        message.author,
        title="🔔 BOT MENTIONED",
        description=f"# {message.author.mention} mentioned the bot",
        colour=MENTION_COLOUR,
        fields={
            "Message": content,
            "Channel": f"<#{int(message.channel.id)}>",
        },
        channel_id=deps.activity_channel_id,
    )

    prompt = strip_bot_mention(content, bot_user_id)
    if not prompt and not getattr(message, "attachments", None):
        await message.reply(GREETING_TEXT)
        return

    route, match = classify_mention_route(prompt)
    handler = MENTION_HANDLERS.get(route)
    print(f"[Mention] channel={int(message.channel.id)} user={int(message.author.id)} route={route}")
    try:
        if handler is not None:
            await handler(message, deps, match)
        else:
            await _handle_generation(message, deps, prompt)
    except GenerationError as e:
        print(f"[AI] Error: {e}")
        await message.reply(APOLOGY_TEXT)
    except Exception as e:
        print(f"[Mention] Error route={route}: {e}")
        await message.reply(APOLOGY_TEXT)


def register_runtime_events(
    bot: commands.Bot,
    *,
    deps: RuntimeDeps,
    boot: RuntimeBootDeps,
) -> None:
    @bot.event
    async def on_ready():
        print(f"Ferret9 is online as {bot.user}")

        if not getattr(bot, "_sweep_task", None):
            bot._sweep_task = deps.store.start_sweeper(interval_seconds=boot.sweep_interval_seconds)
            print(f"[Conversation] sweep loop started (interval={boot.sweep_interval_seconds}s)")

        if boot.sync_commands and not getattr(bot, "_commands_synced", False):
            try:
                synced = await bot.tree.sync()
                bot._commands_synced = True
                print(f"[Commands] synced {len(synced)} application commands")
            except discord.HTTPException as e:
                print(f"[Commands] sync failed: {e}")

    base_close = bot.close

    async def close() -> None:
        await deps.store.stop_sweeper()
        if getattr(bot, "_sweep_task", None) is not None:
            bot._sweep_task = None
            print("[Conversation] sweep loop stopped")
        await base_close()

    bot.close = close

    @bot.event
    async def on_message(message: discord.Message):
        if message.author.bot:
            return

        if (message.content or "").lstrip().startswith("!"):
            await bot.process_commands(message)
            return

        if bot.user and bot.user in message.mentions:
            await handle_mention(int(bot.user.id), message, deps)
            return

        await bot.process_commands(message)

    @bot.event
    async def on_voice_state_update(member, before, after):
        if deps.music_service is None or bot.user is None:
            return
        if int(member.id) != int(bot.user.id):
            return
        if before.channel is not None and after.channel is None:
            print(f"[Voice] bot was disconnected from voice in guild={int(member.guild.id)}")
            await deps.music_service.forget_guild(int(member.guild.id))
