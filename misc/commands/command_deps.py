from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Callable

from config.defaults import BOT_NAME


def _default_false(*args, **kwargs) -> bool:
    return False


def _default_true(*args, **kwargs) -> bool:
    return True


@dataclass(frozen=True)
class CommandDeps:
    # Conversation
    store: Any = None
    generator: Any = None
    preamble: str = ""
    bot_name: str = BOT_NAME
    send_chunked: Callable | None = None

    # Activity
    activity_channel_id: int = 0
    logs_table: Any = None
    sessions_table: Any = None
    working_role_id: int = 0
    on_break_role_id: int = 0

    # Ad-hoc modules
    music_service: Any = None


@dataclass(frozen=True)
class CommandGates:
    history_enabled: Callable[[Any], bool] = _default_true
    user_is_owner: Callable[[Any], bool] = _default_false
    no_history_channel_ids: set[int] = field(default_factory=set)
