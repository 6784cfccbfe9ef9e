from __future__ import annotations

from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.commands.commands_ask import register as register_ask
from misc.commands.commands_music import register as register_music
from misc.commands.commands_report import register as register_report
from misc.discord_gates import channel_history_enabled
from misc.discord_replies import ctx_send_chunked
from misc.discord_replies import reply_chunked
from misc.events_runtime import register_runtime_events
from misc.runtime_deps import RuntimeBootDeps
from misc.runtime_deps import RuntimeDeps


def wire_bot_runtime(
    bot,
    *,
    store,
    generator,
    preamble: str,
    bot_name: str,
    no_history_channel_ids: set[int],
    user_is_owner,
    activity_channel_id: int,
    logs_table,
    sessions_table,
    working_role_id: int,
    on_break_role_id: int,
    music_service,
    sweep_interval_seconds: float,
    sync_commands: bool,
) -> None:
    def history_enabled(channel) -> bool:
        return channel_history_enabled(channel, no_history_channel_ids)

    command_deps = CommandDeps(
        store=store,
        generator=generator,
        preamble=preamble,
        bot_name=bot_name,
        send_chunked=ctx_send_chunked,
        activity_channel_id=activity_channel_id,
        logs_table=logs_table,
        sessions_table=sessions_table,
        working_role_id=working_role_id,
        on_break_role_id=on_break_role_id,
        music_service=music_service,
    )
    command_gates = CommandGates(
        history_enabled=history_enabled,
        user_is_owner=user_is_owner,
        no_history_channel_ids=no_history_channel_ids,
    )

    register_ask(
        bot,
        deps=command_deps,
        gates=command_gates,
    )

    register_music(
        bot,
        deps=command_deps,
        gates=command_gates,
    )

    register_report(
        bot,
        deps=command_deps,
        gates=command_gates,
    )

    register_runtime_events(
        bot,
        deps=RuntimeDeps(
            store=store,
            generator=generator,
            preamble=preamble,
            no_history_channel_ids=no_history_channel_ids,
            reply_chunked=reply_chunked,
            user_is_owner=user_is_owner,
            activity_channel_id=activity_channel_id,
            logs_table=logs_table,
            sessions_table=sessions_table,
            working_role_id=working_role_id,
            on_break_role_id=on_break_role_id,
            music_service=music_service,
        ),
        boot=RuntimeBootDeps(
            sweep_interval_seconds=sweep_interval_seconds,
            sync_commands=sync_commands,
        ),
    )
