from __future__ import annotations

from datetime import datetime
from datetime import timezone

import discord
from activity.logger import log_user_activity
from activity.report import MANILA_TZ
from activity.report import build_activity_report
from activity.roster import collect_member_statuses
from activity.roster import format_roster
from config.defaults import REPORT_APOLOGY_TEXT
from discord import app_commands
from discord.ext import commands
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates

REPORT_COLOUR = discord.Colour(0x2196F3)
ROSTER_COLOUR = discord.Colour(0x00FF00)


def build_roster_embed(description: str, *, now: datetime) -> discord.Embed:
    embed = discord.Embed(title="Current User Status", description=description, colour=ROSTER_COLOUR)
    embed.set_footer(text=f"As of {now.astimezone(MANILA_TZ).strftime('%I:%M:%S %p').lstrip('0')} (Manila)")
    return embed


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    @bot.hybrid_command(name="report", description="Generate an activity report for a user on a specific date")
    @app_commands.describe(
        user="The user to generate a report for",
        date='The date to generate the report for (e.g., "March 4", "yesterday", "today")',
    )
    async def report(ctx: commands.Context, user: discord.Member, *, date: str = "today"):
        await ctx.defer()
        await log_user_activity(
            ctx.guild,
            ctx.author,
            title="📊 ACTIVITY REPORT",
            description=f"# {ctx.author.mention} requested an activity report",
            colour=REPORT_COLOUR,
            fields={
                "Target User": user.name,
                "Date": date,
                "Channel": f"<#{int(ctx.channel.id)}>",
            },
            channel_id=deps.activity_channel_id,
        )
        try:
            text = await build_activity_report(
                logs_table=deps.logs_table,
                sessions_table=deps.sessions_table,
                user_id=str(user.id),
                display_name=getattr(user, "display_name", None) or user.name,
                date_text=date,
            )
        except Exception as e:
            print(f"[Report] Error user={int(user.id)} date={date!r}: {e}")
            await ctx.send(REPORT_APOLOGY_TEXT)
            return
        await deps.send_chunked(ctx, text)

    @bot.hybrid_command(name="whosworking", description="Lists users currently signed in and their work/break times.")
    @commands.guild_only()
    async def whosworking(ctx: commands.Context):
        await ctx.defer()
        if not deps.working_role_id or not deps.on_break_role_id:
            await ctx.send("❌ Bot configuration error: Roles not set up.")
            return
        now = datetime.now(timezone.utc)
        try:
            statuses = await collect_member_statuses(
                list(ctx.guild.members),
                sessions_table=deps.sessions_table,
                working_role_id=deps.working_role_id,
                on_break_role_id=deps.on_break_role_id,
                now=now,
            )
        except Exception as e:
            print(f"[Roster] Error: {e}")
            await ctx.send("❌ An error occurred while fetching user status.", ephemeral=True)
            return
        await ctx.send(embed=build_roster_embed(format_roster(statuses), now=now))
