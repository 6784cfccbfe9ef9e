from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass
from dataclasses import field
from typing import Callable
from typing import Hashable

from config.defaults import MAX_CONVERSATION_AGE_SECONDS
from config.defaults import MAX_HISTORY_LENGTH
from config.defaults import SWEEP_INTERVAL_SECONDS
from jobs.service import conversation_sweep_loop

ROLE_SYSTEM = "system"
ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
VALID_ROLES = frozenset({ROLE_SYSTEM, ROLE_USER, ROLE_ASSISTANT})


@dataclass(frozen=True, slots=True)
class ConversationTurn:
    role: str
    content: str

    def as_message(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(slots=True)
class _Conversation:
    turns: list[ConversationTurn] = field(default_factory=list)
    last_activity: float = 0.0


class ConversationStore:
    """Per-channel chat history with a length cap and sliding expiry.

    All reads and writes go through the public methods; ``read`` hands out a
    fresh list of frozen turns so callers never alias the stored history.
    A single lock guards the map, so the background sweep and per-channel
    read/append calls are serialized against each other.
    """

    def __init__(
        self,
        *,
        max_history: int = MAX_HISTORY_LENGTH,
        max_age_seconds: float = MAX_CONVERSATION_AGE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_history = max(1, int(max_history))
        self.max_age_seconds = float(max_age_seconds)
        self._clock = clock
        self._conversations: dict[Hashable, _Conversation] = {}
        self._lock = threading.RLock()
        self._sweep_task: asyncio.Task | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._conversations)

    def initialize(self, key: Hashable, system_preamble: str) -> None:
        with self._lock:
            self._conversations[key] = _Conversation(
                turns=[ConversationTurn(ROLE_SYSTEM, str(system_preamble or ""))],
                last_activity=self._clock(),
            )

    def append(
        self,
        key: Hashable,
        role: str,
        content: str,
        speaker_label: str | None = None,
    ) -> None:
        if role not in VALID_ROLES:
            raise ValueError(f"unknown conversation role: {role!r}")
        text = str(content or "")
        if role == ROLE_USER and speaker_label:
            text = f"{speaker_label}: {text}"
        turn = ConversationTurn(role, text)

        with self._lock:
            convo = self._conversations.get(key)
            if convo is None or self._is_expired(convo, self._clock()):
                convo = _Conversation()
                self._conversations[key] = convo
            if role == ROLE_SYSTEM:
                # only one system turn, pinned to the front
                if convo.turns and convo.turns[0].role == ROLE_SYSTEM:
                    convo.turns[0] = turn
                else:
                    convo.turns.insert(0, turn)
            else:
                convo.turns.append(turn)
            self._trim_locked(convo)
            convo.last_activity = self._clock()

    def read(self, key: Hashable) -> list[ConversationTurn]:
        with self._lock:
            convo = self._conversations.get(key)
            if convo is None:
                return []
            now = self._clock()
            if self._is_expired(convo, now):
                del self._conversations[key]
                return []
            convo.last_activity = now
            return list(convo.turns)

    def clear(self, key: Hashable) -> None:
        with self._lock:
            self._conversations.pop(key, None)

    def sweep_expired(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [key for key, convo in self._conversations.items() if self._is_expired(convo, now)]
            for key in expired:
                del self._conversations[key]
        return len(expired)

    def start_sweeper(self, *, interval_seconds: float = SWEEP_INTERVAL_SECONDS) -> asyncio.Task:
        task = self._sweep_task
        if task is not None and not task.done():
            return task
        self._sweep_task = asyncio.create_task(
            conversation_sweep_loop(
                sweep_func=self.sweep_expired,
                interval_seconds=interval_seconds,
            )
        )
        return self._sweep_task

    async def stop_sweeper(self) -> None:
        task = self._sweep_task
        self._sweep_task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _is_expired(self, convo: _Conversation, now: float) -> bool:
        return (now - convo.last_activity) > self.max_age_seconds

    def _trim_locked(self, convo: _Conversation) -> None:
        turns = convo.turns
        if len(turns) <= self.max_history:
            return
        if turns[0].role != ROLE_SYSTEM:
            convo.turns = turns[-self.max_history:]
            return
        keep = self.max_history - 1
        convo.turns = [turns[0]] + (turns[-keep:] if keep > 0 else [])
