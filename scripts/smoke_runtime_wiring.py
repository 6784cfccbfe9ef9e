from __future__ import annotations

import importlib


class _DummyGenerator:
    backend_name = "dummy"

    async def generate(self, history, user_text, *, image_urls=()):
        return "ok"


class _DummyTable:
    def scan(self, **kwargs):
        return {"Items": []}


def _try_import_or_skip(module_name: str, pip_name: str | None = None) -> bool:
    try:
        importlib.import_module(module_name)
        return True
    except ModuleNotFoundError:
        install_name = pip_name or module_name
        print(
            f"Smoke wiring check skipped: missing dependency '{module_name}'. "
            f"Install requirements and retry (e.g. `pip install {install_name}` "
            f"or `pip install -e .`)."
        )
        return False


def _main() -> int:
    for module_name, pip_name in (("discord", "discord.py"), ("boto3", None), ("yaml", "PyYAML")):
        if not _try_import_or_skip(module_name, pip_name):
            return 0

    import discord
    from discord.ext import commands
    from conversation.store import ConversationStore
    from misc.adhoc_modules.music_service import MusicService
    from misc.runtime_wiring import wire_bot_runtime

    bot = commands.Bot(command_prefix="!", intents=discord.Intents.none())
    wire_bot_runtime(
        bot,
        store=ConversationStore(),
        generator=_DummyGenerator(),
        preamble="You are Ferret9.",
        bot_name="Ferret9",
        no_history_channel_ids=set(),
        user_is_owner=lambda user: True,
        activity_channel_id=0,
        logs_table=_DummyTable(),
        sessions_table=_DummyTable(),
        working_role_id=0,
        on_break_role_id=0,
        music_service=MusicService(enabled=True),
        sweep_interval_seconds=600,
        sync_commands=False,
    )

    expected_commands = {"ask", "reset", "play", "queue", "skip", "stop", "report", "whosworking"}
    existing_commands = set(bot.all_commands.keys())
    missing = sorted(expected_commands - existing_commands)
    if missing:
        raise RuntimeError(f"Missing expected commands: {missing}")

    slash_commands = {cmd.name for cmd in bot.tree.get_commands()}
    missing_slash = sorted(expected_commands - slash_commands)
    if missing_slash:
        raise RuntimeError(f"Missing expected slash commands: {missing_slash}")

    for event_name in ("on_ready", "on_message", "on_voice_state_update"):
        if getattr(bot, event_name, None) is None:
            raise RuntimeError(f"Runtime event {event_name} was not registered")

    print("Smoke wiring check passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
