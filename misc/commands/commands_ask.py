from __future__ import annotations

import discord
from activity.logger import log_user_activity
from config.defaults import APOLOGY_TEXT
from config.defaults import DEFAULT_IMAGE_PROMPT
from controller.generation import GenerationError
from conversation.service import reset_conversation
from conversation.service import respond
from discord import app_commands
from discord.ext import commands
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.discord_gates import is_image_attachment

ASK_COLOUR = discord.Colour(0x9C27B0)


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    @bot.hybrid_command(name="ask", description=f"Ask {deps.bot_name} a question")
    @app_commands.describe(
        question="The question or message for the AI",
        image="An image to analyze (optional)",
    )
    async def ask(ctx: commands.Context, image: discord.Attachment | None = None, *, question: str | None = None):
        await ctx.defer()
        text = (question or "").strip()
        if not text and image is None:
            await ctx.send("Please provide a question or an image to analyze.")
            return

        image_urls = [str(image.url)] if image is not None and is_image_attachment(image) else []
        await log_user_activity(
            ctx.guild,
            ctx.author,
            title="🖼️ AI IMAGE ANALYSIS" if image_urls else "❓ AI QUESTION",
            description=(
                f"# {ctx.author.mention} "
                + ("asked the AI to analyze an image" if image_urls else "asked the AI a question")
            ),
            colour=ASK_COLOUR,
            fields={
                "Question": text or "(Image only)",
                "Channel": f"<#{int(ctx.channel.id)}>",
            },
            channel_id=deps.activity_channel_id,
        )

        try:
            reply = await respond(
                deps.store,
                deps.generator,
                channel_id=int(ctx.channel.id),
                speaker=str(ctx.author.name),
                prompt=text or DEFAULT_IMAGE_PROMPT,
                preamble=deps.preamble,
                image_urls=image_urls,
                history_enabled=gates.history_enabled(ctx.channel),
            )
            await deps.send_chunked(ctx, reply)
        except GenerationError as e:
            print(f"[AI] /ask failed user={int(ctx.author.id)}: {e}")
            await ctx.send(APOLOGY_TEXT)
        except Exception as e:
            print(f"[Ask] Error user={int(ctx.author.id)}: {e}")
            await ctx.send(APOLOGY_TEXT)

    @bot.hybrid_command(name="reset", description="Reset this channel's conversation history")
    async def reset(ctx: commands.Context):
        reset_conversation(deps.store, int(ctx.channel.id), deps.preamble)
        print(f"[Conversation] reset channel={int(ctx.channel.id)} by={int(ctx.author.id)}")
        await ctx.send("🔄 Conversation history for this channel has been reset.")
