from __future__ import annotations

import unittest
from types import SimpleNamespace

try:
    import discord
    from discord.ext import commands
except ModuleNotFoundError:
    discord = None
    commands = None

if commands is not None:
    from config.defaults import APOLOGY_TEXT
    from controller.generation import GenerationError
    from conversation.store import ConversationStore
    from misc.commands.command_deps import CommandDeps
    from misc.commands.command_deps import CommandGates
    from misc.commands.commands_ask import register as register_ask


class _FakeCtx:
    def __init__(self, channel_id: int = 321):
        self.author = SimpleNamespace(id=42, name="alice", mention="<@42>")
        self.guild = None
        self.channel = SimpleNamespace(id=channel_id)
        self.sent: list[str] = []
        self.deferred = False

    async def defer(self):
        self.deferred = True

    async def send(self, content=None, **kwargs):
        self.sent.append(content)


class _FakeGenerator:
    backend_name = "fake"

    def __init__(self, reply="an answer", error=None):
        self.reply = reply
        self.error = error
        self.calls: list[tuple] = []

    async def generate(self, history, user_text, *, image_urls=()):
        self.calls.append((list(history), user_text, list(image_urls)))
        if self.error is not None:
            raise self.error
        return self.reply


def _setup(generator=None, history_enabled=True, send_error=None):
    chunked: list[str] = []

    async def send_chunked(ctx, text):
        if send_error is not None:
            raise send_error
        chunked.append(text)
        return 1

    store = ConversationStore(max_history=10, max_age_seconds=1800)
    gen = generator or _FakeGenerator()
    bot = commands.Bot(command_prefix="!", intents=discord.Intents.none())
    register_ask(
        bot,
        deps=CommandDeps(store=store, generator=gen, preamble="sys", send_chunked=send_chunked),
        gates=CommandGates(history_enabled=lambda channel: history_enabled),
    )
    return bot, store, gen, chunked


@unittest.skipIf(commands is None, "discord.py not installed")
class AskCommandTests(unittest.IsolatedAsyncioTestCase):
    async def test_ask_requires_question_or_image(self):
        bot, _, gen, _ = _setup()
        ctx = _FakeCtx()
        await bot.get_command("ask").callback(ctx)
        self.assertEqual(ctx.sent, ["Please provide a question or an image to analyze."])
        self.assertEqual(gen.calls, [])

    async def test_ask_runs_conversation_and_sends_chunked(self):
        bot, store, gen, chunked = _setup()
        ctx = _FakeCtx()
        await bot.get_command("ask").callback(ctx, question="what is asyncio?")
        self.assertTrue(ctx.deferred)
        self.assertEqual(gen.calls[0][1], "alice: what is asyncio?")
        self.assertEqual(chunked, ["an answer"])
        self.assertEqual([t.role for t in store.read(321)], ["system", "user", "assistant"])

    async def test_ask_with_image_only_uses_default_prompt(self):
        bot, _, gen, _ = _setup()
        ctx = _FakeCtx()
        image = SimpleNamespace(url="https://cdn.example/err.png", content_type="image/png")
        await bot.get_command("ask").callback(ctx, image=image)
        _, user_text, urls = gen.calls[0]
        self.assertEqual(user_text, "alice: What do you see in this image?")
        self.assertEqual(urls, ["https://cdn.example/err.png"])

    async def test_ask_apologizes_on_generation_error(self):
        bot, _, _, chunked = _setup(generator=_FakeGenerator(error=GenerationError("down")))
        ctx = _FakeCtx()
        await bot.get_command("ask").callback(ctx, question="hi")
        self.assertEqual(ctx.sent, [APOLOGY_TEXT])
        self.assertEqual(chunked, [])

    async def test_ask_apologizes_when_chunked_send_fails(self):
        error = discord.HTTPException(SimpleNamespace(status=400, reason="Bad Request"), "rejected")
        bot, store, _, chunked = _setup(send_error=error)
        ctx = _FakeCtx()
        await bot.get_command("ask").callback(ctx, question="hi")
        self.assertEqual(ctx.sent, [APOLOGY_TEXT])
        self.assertEqual(chunked, [])
        self.assertEqual([t.role for t in store.read(321)], ["system", "user", "assistant"])

    async def test_ask_in_history_disabled_channel_stores_nothing(self):
        bot, store, _, _ = _setup(history_enabled=False)
        await bot.get_command("ask").callback(_FakeCtx(), question="hi")
        self.assertEqual(store.read(321), [])

    async def test_reset_reinitializes_channel(self):
        bot, store, _, _ = _setup()
        store.initialize(321, "old")
        store.append(321, "user", "stale")
        ctx = _FakeCtx()
        await bot.get_command("reset").callback(ctx)
        self.assertEqual([t.content for t in store.read(321)], ["sys"])
        self.assertIn("reset", ctx.sent[0])


if __name__ == "__main__":
    unittest.main()
