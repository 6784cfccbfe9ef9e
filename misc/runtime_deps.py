from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable


@dataclass(frozen=True)
class RuntimeDeps:
    # conversation
    store: Any
    generator: Any
    preamble: str
    no_history_channel_ids: set[int]

    # discord helpers
    reply_chunked: Callable
    user_is_owner: Callable

    # activity
    activity_channel_id: int
    logs_table: Any
    sessions_table: Any
    working_role_id: int
    on_break_role_id: int

    # ad-hoc modules
    music_service: Any = None


@dataclass(frozen=True)
class RuntimeBootDeps:
    sweep_interval_seconds: float
    sync_commands: bool = False
