from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from activity.report import parse_utc_timestamp
from activity.store import get_active_session_sync
from activity.store import item_field
from config.defaults import EMBED_DESCRIPTION_MAX

TRUNCATION_SUFFIX = "\n... (list truncated)"


@dataclass(frozen=True, slots=True)
class MemberStatus:
    name: str
    status: str
    emoji: str
    work_time: str
    break_time: str
    total_time: str


def format_duration_with_seconds(total_seconds: float) -> str:
    total = max(0, int(total_seconds))
    hours = total // 3600
    minutes = (total % 3600) // 60
    seconds = total % 60

    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if hours == 0 and minutes == 0:
        parts.append(f"{seconds}s")
    return " ".join(parts) if parts else "0s"


def summarize_member_session(name: str, session: dict[str, Any] | None, now: datetime) -> MemberStatus | None:
    if not session:
        return None
    status_raw = str(item_field(session, "Status", "status") or "")
    if status_raw == "SignedOut":
        return None
    start = parse_utc_timestamp(item_field(session, "StartTime", "startTime"))
    if start is None:
        return None

    total_seconds = int((now - start).total_seconds())
    break_minutes = item_field(session, "BreakDuration", "breakDuration") or 0
    break_seconds = int(float(break_minutes) * 60)
    status, emoji = "Working", "🟢"
    if status_raw == "Break":
        status, emoji = "On Break", "🔴"
        break_start = parse_utc_timestamp(item_field(session, "LastBreakStart", "lastBreakStart"))
        if break_start is not None:
            break_seconds += int((now - break_start).total_seconds())

    return MemberStatus(
        name=name,
        status=status,
        emoji=emoji,
        work_time=format_duration_with_seconds(total_seconds - break_seconds),
        break_time=format_duration_with_seconds(break_seconds),
        total_time=format_duration_with_seconds(total_seconds),
    )


def format_roster(statuses: list[MemberStatus], *, max_chars: int = EMBED_DESCRIPTION_MAX) -> str:
    if not statuses:
        return "🍃 No users found with active sessions."
    ordered = sorted(statuses, key=lambda s: s.name.casefold())
    lines = [f"**{len(ordered)} user(s) currently signed in:**", ""]
    for s in ordered:
        lines.append(f"{s.emoji} **{s.name}** - {s.status}")
        lines.append(f"   - Work: `{s.work_time}` | Break: `{s.break_time}` | Total: `{s.total_time}`")
    text = "\n".join(lines)
    if len(text) > max_chars:
        text = text[: max_chars - len(TRUNCATION_SUFFIX)] + TRUNCATION_SUFFIX
    return text


def _member_has_any_role(member, role_ids: set[int]) -> bool:
    return any(int(getattr(role, "id", 0) or 0) in role_ids for role in getattr(member, "roles", []) or [])


async def collect_member_statuses(
    members,
    *,
    sessions_table,
    working_role_id: int,
    on_break_role_id: int,
    now: datetime,
) -> list[MemberStatus]:
    role_ids = {rid for rid in (int(working_role_id or 0), int(on_break_role_id or 0)) if rid > 0}
    relevant = [
        m for m in members
        if not getattr(m, "bot", False) and _member_has_any_role(m, role_ids)
    ]
    if not relevant:
        return []

    sessions = await asyncio.gather(
        *(asyncio.to_thread(get_active_session_sync, sessions_table, str(m.id)) for m in relevant)
    )
    out: list[MemberStatus] = []
    for member, session in zip(relevant, sessions):
        name = getattr(member, "display_name", None) or getattr(member, "name", None) or str(member.id)
        summary = summarize_member_session(name, session, now)
        if summary is not None:
            out.append(summary)
    return out
