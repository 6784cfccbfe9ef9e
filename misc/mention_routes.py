from __future__ import annotations

import re
from dataclasses import dataclass

ROUTE_HELP = "help"
ROUTE_RESET = "reset"
ROUTE_SCAN_TABLES = "scan_tables"
ROUTE_REPORT = "report"
ROUTE_WHOS_WORKING = "whos_working"
ROUTE_DEFAULT = "default"


@dataclass(frozen=True)
class MentionRoute:
    name: str
    pattern: re.Pattern[str]

    def match(self, prompt: str) -> re.Match[str] | None:
        return self.pattern.search(prompt)


# Evaluated in order; the first match wins. "status" overlaps with ordinary
# chat ("what's the status of the deploy?") and still routes to the roster.
MENTION_ROUTES: tuple[MentionRoute, ...] = (
    MentionRoute(ROUTE_HELP, re.compile(r"^\s*help\s*[!?.]*\s*$", re.I)),
    MentionRoute(ROUTE_RESET, re.compile(r"^\s*reset(?:\s+(?:conversation|chat|history))?\s*[!.]*\s*$", re.I)),
    MentionRoute(ROUTE_SCAN_TABLES, re.compile(r"^\s*scan\s+tables\b", re.I)),
    MentionRoute(ROUTE_REPORT, re.compile(r"^\s*/?report\s+<@!?(?P<user_id>\d+)>\s*(?P<date>.*)$", re.I | re.S)),
    MentionRoute(ROUTE_WHOS_WORKING, re.compile(r"\b(?:who'?s\s+working|who\s+is\s+working|status)\b", re.I)),
)


def strip_bot_mention(content: str | None, bot_user_id: int) -> str:
    return re.sub(rf"<@!?\s*{int(bot_user_id)}\s*>", "", content or "").strip()


def classify_mention_route(prompt: str) -> tuple[str, re.Match[str] | None]:
    text = (prompt or "").strip()
    for route in MENTION_ROUTES:
        m = route.match(text)
        if m:
            return (route.name, m)
    return (ROUTE_DEFAULT, None)
