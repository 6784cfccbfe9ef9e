from __future__ import annotations

import asyncio
import unittest
from unittest import mock

from conversation.store import ROLE_ASSISTANT
from conversation.store import ROLE_SYSTEM
from conversation.store import ROLE_USER
from conversation.store import ConversationStore
from conversation.store import ConversationTurn


class _FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += float(seconds)


def _store(clock=None, **overrides) -> ConversationStore:
    base = dict(max_history=10, max_age_seconds=1800, clock=clock or _FakeClock())
    base.update(overrides)
    return ConversationStore(**base)


class ConversationStoreTests(unittest.TestCase):
    def test_read_unknown_key_is_empty(self):
        self.assertEqual(_store().read(42), [])

    def test_initialize_seeds_single_system_turn(self):
        store = _store()
        store.append(1, ROLE_USER, "old")
        store.initialize(1, "You are Ferret9.")
        self.assertEqual(store.read(1), [ConversationTurn(ROLE_SYSTEM, "You are Ferret9.")])

    def test_user_turn_gets_speaker_label(self):
        store = _store()
        store.initialize(1, "sys")
        store.append(1, ROLE_USER, "hi there", speaker_label="alice")
        store.append(1, ROLE_ASSISTANT, "hello alice")
        turns = store.read(1)
        self.assertEqual(turns[1], ConversationTurn(ROLE_USER, "alice: hi there"))
        self.assertEqual(turns[2], ConversationTurn(ROLE_ASSISTANT, "hello alice"))

    def test_default_store_labels_user_turn_after_system(self):
        store = ConversationStore()
        store.initialize("chan1", "SYS")
        store.append("chan1", ROLE_USER, "hi", "alice")
        self.assertEqual(
            store.read("chan1"),
            [ConversationTurn(ROLE_SYSTEM, "SYS"), ConversationTurn(ROLE_USER, "alice: hi")],
        )

    def test_default_store_keeps_most_recent_ten_of_eleven(self):
        store = ConversationStore()
        for i in range(11):
            role = ROLE_USER if i % 2 == 0 else ROLE_ASSISTANT
            store.append("chan1", role, f"turn {i}")
        turns = store.read("chan1")
        self.assertEqual(len(turns), 10)
        self.assertEqual([t.content for t in turns], [f"turn {i}" for i in range(1, 11)])

    def test_append_to_unknown_key_creates_conversation(self):
        store = _store()
        store.append(5, ROLE_USER, "hello")
        self.assertEqual(store.read(5), [ConversationTurn(ROLE_USER, "hello")])

    def test_unknown_role_is_rejected(self):
        store = _store()
        with self.assertRaises(ValueError):
            store.append(1, "tool", "nope")

    def test_history_never_exceeds_cap_and_keeps_system_turn(self):
        store = _store(max_history=4)
        store.initialize(1, "sys")
        for i in range(12):
            store.append(1, ROLE_USER, f"u{i}")
            turns = store.read(1)
            self.assertLessEqual(len(turns), 4)
            self.assertEqual(turns[0].role, ROLE_SYSTEM)
        self.assertEqual([t.content for t in store.read(1)], ["sys", "u9", "u10", "u11"])

    def test_trim_without_system_turn_keeps_newest(self):
        store = _store(max_history=3)
        for i in range(5):
            store.append(1, ROLE_USER, f"u{i}")
        self.assertEqual([t.content for t in store.read(1)], ["u2", "u3", "u4"])

    def test_system_append_replaces_existing_system_turn(self):
        store = _store()
        store.initialize(1, "first")
        store.append(1, ROLE_USER, "hi")
        store.append(1, ROLE_SYSTEM, "second")
        turns = store.read(1)
        self.assertEqual([t.role for t in turns].count(ROLE_SYSTEM), 1)
        self.assertEqual(turns[0], ConversationTurn(ROLE_SYSTEM, "second"))

    def test_read_returns_copy(self):
        store = _store()
        store.initialize(1, "sys")
        snapshot = store.read(1)
        snapshot.append(ConversationTurn(ROLE_USER, "sneaky"))
        self.assertEqual(len(store.read(1)), 1)

    def test_channels_are_isolated(self):
        store = _store()
        store.initialize(1, "sys")
        store.append(1, ROLE_USER, "one")
        store.initialize(2, "sys")
        self.assertEqual(len(store.read(1)), 2)
        self.assertEqual(len(store.read(2)), 1)

    def test_expired_conversation_reads_empty_and_is_forgotten(self):
        clock = _FakeClock()
        store = _store(clock=clock, max_age_seconds=60)
        store.initialize(1, "sys")
        clock.advance(61)
        self.assertEqual(store.read(1), [])
        self.assertEqual(len(store), 0)
        store.initialize(1, "fresh")
        self.assertEqual(store.read(1), [ConversationTurn(ROLE_SYSTEM, "fresh")])

    def test_append_after_expiry_starts_fresh_conversation(self):
        clock = _FakeClock()
        store = _store(clock=clock, max_age_seconds=1800)
        store.initialize(1, "SYS")
        store.append(1, ROLE_USER, "old secret")
        clock.advance(3600)
        store.append(1, ROLE_USER, "new")
        self.assertEqual(store.read(1), [ConversationTurn(ROLE_USER, "new")])

    def test_activity_at_exact_age_is_not_expired(self):
        clock = _FakeClock()
        store = _store(clock=clock, max_age_seconds=60)
        store.initialize(1, "sys")
        clock.advance(60)
        self.assertEqual(len(store.read(1)), 1)

    def test_read_refreshes_last_activity(self):
        clock = _FakeClock()
        store = _store(clock=clock, max_age_seconds=60)
        store.initialize(1, "sys")
        clock.advance(50)
        store.read(1)
        clock.advance(50)
        self.assertEqual(len(store.read(1)), 1)

    def test_clear_removes_conversation(self):
        store = _store()
        store.initialize(1, "sys")
        store.clear(1)
        store.clear(999)
        self.assertEqual(store.read(1), [])

    def test_sweep_removes_only_expired(self):
        clock = _FakeClock()
        store = _store(clock=clock, max_age_seconds=60)
        store.initialize("old", "sys")
        clock.advance(45)
        store.initialize("new", "sys")
        clock.advance(30)
        self.assertEqual(store.sweep_expired(), 1)
        self.assertEqual(store.read("old"), [])
        self.assertEqual(len(store.read("new")), 1)


class ConversationSweeperTests(unittest.IsolatedAsyncioTestCase):
    async def test_start_sweeper_is_idempotent_and_stoppable(self):
        store = _store()
        task = store.start_sweeper(interval_seconds=3600)
        self.assertIs(store.start_sweeper(interval_seconds=3600), task)
        await store.stop_sweeper()
        self.assertTrue(task.cancelled() or task.done())

    async def test_sweeper_runs_sweep_on_each_tick(self):
        clock = _FakeClock()
        store = _store(clock=clock, max_age_seconds=10)
        store.initialize(1, "sys")
        clock.advance(11)

        real_sleep = asyncio.sleep
        ticks = 0

        async def fast_sleep(seconds):
            nonlocal ticks
            ticks += 1
            await real_sleep(0)

        with mock.patch("jobs.service.asyncio.sleep", fast_sleep):
            store.start_sweeper(interval_seconds=600)
            while ticks < 3:
                await real_sleep(0)
            await store.stop_sweeper()

        self.assertEqual(len(store), 0)


if __name__ == "__main__":
    unittest.main()
