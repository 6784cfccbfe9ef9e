from __future__ import annotations

import asyncio
from typing import Callable


async def conversation_sweep_loop(
    *,
    sweep_func: Callable[[], int],
    interval_seconds: float = 600,
) -> None:
    while True:
        await asyncio.sleep(max(1.0, float(interval_seconds)))
        try:
            removed = sweep_func()
            if removed:
                print(f"[Conversation] sweep removed={removed} expired conversations")
        except Exception as e:
            print(f"[Conversation] sweep loop error: {e}")
