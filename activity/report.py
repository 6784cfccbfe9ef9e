from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from datetime import date
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from typing import Any

from activity.store import fetch_user_activity_sync
from activity.store import fetch_user_sessions_sync
from activity.store import item_field
from config.defaults import MANILA_UTC_OFFSET_HOURS

MANILA_TZ = timezone(timedelta(hours=MANILA_UTC_OFFSET_HOURS))
SESSION_MARKERS = {"SignIn", "SignOut"}
BREAK_TYPES = {"Break", "BackFromBreak"}

_NUMERIC_MDY_RE = re.compile(r"^(\d{1,2})[-/](\d{1,2})[-/](\d{4})$")
_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_YEAR_RE = re.compile(r"\b(\d{4})\b")
_ORDINAL_RE = re.compile(r"(\d{1,2})(st|nd|rd|th)\b", re.I)


@dataclass(frozen=True, slots=True)
class ActivityEntry:
    type: str
    timestamp: str | None
    original_timestamp: str | None
    details: Any
    duration: Any = None


@dataclass(frozen=True, slots=True)
class SessionEntry:
    start_time: str | None
    original_start_time: str | None
    end_time: str | None
    original_end_time: str | None
    total_work_duration: Any = None
    break_duration: Any = None
    status: str | None = None


def parse_report_date(text: str | None, *, today: date) -> date | None:
    raw = " ".join((text or "").replace(",", " ").split())
    if not raw:
        return None
    lowered = raw.lower()
    if lowered == "today":
        return today
    if lowered == "yesterday":
        return today - timedelta(days=1)

    m = _NUMERIC_MDY_RE.match(raw)
    if m:
        try:
            return date(int(m.group(3)), int(m.group(1)), int(m.group(2)))
        except ValueError:
            return None

    m = _ISO_DATE_RE.match(raw)
    if m:
        try:
            return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        except ValueError:
            return None

    cleaned = _ORDINAL_RE.sub(r"\1", raw)
    if not _YEAR_RE.search(cleaned):
        cleaned = f"{cleaned} {today.year}"
    for fmt in ("%B %d %Y", "%b %d %Y", "%d %B %Y", "%d %b %Y"):
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    return None


def parse_utc_timestamp(value: Any) -> datetime | None:
    text = str(value or "").strip()
    if not text:
        return None
    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_manila_time(timestamp: Any) -> str | None:
    if not timestamp:
        return None
    if timestamp in SESSION_MARKERS:
        return str(timestamp)
    dt = parse_utc_timestamp(timestamp)
    if dt is None:
        return str(timestamp)
    local = dt.astimezone(MANILA_TZ)
    period = "PM" if local.hour >= 12 else "AM"
    hour = local.hour % 12 or 12
    return f"{hour}:{local.minute:02d} {period}"


def to_activity_entry(item: dict[str, Any]) -> ActivityEntry:
    original = item_field(item, "Timestamp", "timestamp")
    return ActivityEntry(
        type=str(item_field(item, "ActivityType", "activityType") or "Unknown activity"),
        timestamp=to_manila_time(original),
        original_timestamp=original,
        details=item_field(item, "Details", "details") or {},
        duration=item_field(item, "Duration", "duration"),
    )


def to_session_entry(item: dict[str, Any]) -> SessionEntry:
    original_start = item_field(item, "StartTime", "startTime")
    original_end = item_field(item, "EndTime", "endTime")
    return SessionEntry(
        start_time=to_manila_time(original_start),
        original_start_time=original_start,
        end_time=to_manila_time(original_end),
        original_end_time=original_end,
        total_work_duration=item_field(item, "TotalWorkDuration", "totalWorkDuration"),
        break_duration=item_field(item, "BreakDuration", "breakDuration"),
        status=item_field(item, "Status", "status"),
    )


def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'' if n == 1 else 's'}"


def _format_hours_minutes(total_hours: float) -> str:
    hours = int(total_hours)
    minutes = int((total_hours - hours) * 60)
    return f"{_plural(hours, 'hour')} and {_plural(minutes, 'minute')}"


def _details_text(details: Any) -> str:
    if isinstance(details, str) and details:
        return details
    if isinstance(details, dict) and details.get("message"):
        return str(details["message"])
    return "No details available"


def _describe_activity(entry: ActivityEntry) -> str:
    if entry.type == "SignIn":
        return "Started work session"
    if entry.type == "SignOut":
        return "Ended work session"
    if entry.type == "Update":
        return f'Worked on "{_details_text(entry.details)}"'
    return f"{entry.type} - {_details_text(entry.details)}"


def format_activity_report(
    *,
    display_name: str,
    date_label: str,
    activities: list[ActivityEntry],
    sessions: list[SessionEntry],
    now: datetime,
) -> str:
    start_label = "Unknown"
    start_dt: datetime | None = None
    if sessions and sessions[0].start_time:
        start_label = sessions[0].start_time
        start_dt = parse_utc_timestamp(sessions[0].original_start_time)
    else:
        sign_in = next((a for a in activities if a.type == "SignIn"), None)
        if sign_in is not None:
            start_label = sign_in.timestamp or "Unknown"
            start_dt = parse_utc_timestamp(sign_in.original_timestamp)

    end_label = "No recorded end time, indicating the session was still active as of the last update."
    end_dt: datetime | None = None
    if sessions and sessions[0].end_time:
        end_label = sessions[0].end_time
        end_dt = parse_utc_timestamp(sessions[0].original_end_time)
    else:
        sign_out = next((a for a in reversed(activities) if a.type == "SignOut"), None)
        if sign_out is not None:
            end_label = sign_out.timestamp or end_label
            end_dt = parse_utc_timestamp(sign_out.original_timestamp)

    work_duration = "Unable to calculate, as the session is ongoing."
    total_hours = 0.0
    if start_dt is not None and end_dt is not None:
        delta = end_dt - start_dt
        if delta < timedelta(0):
            # sign-out recorded after midnight
            delta += timedelta(days=1)
        total_hours = delta.total_seconds() / 3600
        work_duration = _format_hours_minutes(total_hours)
    elif start_dt is not None:
        total_hours = max(0.0, (now - start_dt).total_seconds() / 3600)
        work_duration = f"{_format_hours_minutes(total_hours)} (ongoing)"

    activity_lines = "\n".join(
        f"• {a.timestamp or 'Unknown time'}: {_describe_activity(a)}" for a in activities
    )
    break_rows = [a for a in activities if a.type in BREAK_TYPES]
    if break_rows:
        breaks = "\n".join(
            f"• {a.timestamp}: {'Started break' if a.type == 'Break' else 'Returned from break'}"
            for a in break_rows
        )
    else:
        breaks = "• No breaks or time off were recorded during the session."

    return (
        f"**Activity Summary for {display_name} ({date_label})**\n"
        "\n"
        "**1. Total Work Time**\n"
        f"• Start Time: {start_label} (Manila time, UTC+8)\n"
        f"• End Time: {end_label}\n"
        f"• Work Duration: {work_duration}\n"
        f"• Total Hours: {total_hours:.2f} hours\n"
        "\n"
        "**2. Key Activities**\n"
        f"{activity_lines or '• No specific activities recorded.'}\n"
        "\n"
        "**3. Breaks or Time Off**\n"
        f"{breaks}\n"
    )


async def build_activity_report(
    *,
    logs_table,
    sessions_table,
    user_id: str,
    display_name: str,
    date_text: str,
    today: date | None = None,
    now: datetime | None = None,
) -> str:
    now = now or datetime.now(timezone.utc)
    today = today or now.astimezone(MANILA_TZ).date()
    day = parse_report_date(date_text, today=today)
    if day is None:
        return (
            f'I couldn\'t understand the date "{date_text}". '
            'Try something like "March 4", "03-04-2025", "today" or "yesterday".'
        )

    date_iso = day.isoformat()
    activity_rows = await asyncio.to_thread(fetch_user_activity_sync, logs_table, str(user_id), date_iso)
    session_rows = await asyncio.to_thread(fetch_user_sessions_sync, sessions_table, str(user_id), date_iso)
    print(
        f"[Report] user={user_id} date={date_iso} activities={len(activity_rows)} sessions={len(session_rows)}"
    )
    if not activity_rows and not session_rows:
        return f"No activity data found for {display_name} on {date_text}."

    return format_activity_report(
        display_name=display_name,
        date_label=date_text,
        activities=[to_activity_entry(row) for row in activity_rows],
        sessions=[to_session_entry(row) for row in session_rows],
        now=now,
    )
