from __future__ import annotations

from typing import Any

import boto3
from boto3.dynamodb.conditions import Attr


def build_tables(*, region: str | None, logs_table: str, sessions_table: str) -> tuple[Any, Any]:
    resource = boto3.resource("dynamodb", region_name=region or None)
    return (resource.Table(logs_table), resource.Table(sessions_table))


def item_field(item: dict[str, Any], *names: str) -> Any:
    # records written by older tooling use camelCase keys
    for name in names:
        value = item.get(name)
        if value not in (None, ""):
            return value
    return None


def scan_table_sync(table, filter_expression=None) -> list[dict[str, Any]]:
    items: list[dict[str, Any]] = []
    kwargs: dict[str, Any] = {}
    if filter_expression is not None:
        kwargs["FilterExpression"] = filter_expression
    while True:
        resp = table.scan(**kwargs)
        items.extend(resp.get("Items") or [])
        last_key = resp.get("LastEvaluatedKey")
        if not last_key:
            break
        kwargs["ExclusiveStartKey"] = last_key
    return items


def scan_tables_sync(logs_table, sessions_table) -> dict[str, list[dict[str, Any]]]:
    return {
        "logs": scan_table_sync(logs_table),
        "sessions": scan_table_sync(sessions_table),
    }


def _user_rows_sync(table, user_id: str) -> list[dict[str, Any]]:
    return scan_table_sync(table, filter_expression=Attr("UserId").eq(str(user_id)))


def fetch_user_activity_sync(table, user_id: str, date_iso: str) -> list[dict[str, Any]]:
    rows = [
        row
        for row in _user_rows_sync(table, user_id)
        if str(item_field(row, "Timestamp", "timestamp") or "")[:10] == date_iso
    ]
    rows.sort(key=lambda row: str(item_field(row, "Timestamp", "timestamp") or ""))
    return rows


def fetch_user_sessions_sync(table, user_id: str, date_iso: str) -> list[dict[str, Any]]:
    rows = [
        row
        for row in _user_rows_sync(table, user_id)
        if str(item_field(row, "StartTime", "startTime") or "")[:10] == date_iso
    ]
    rows.sort(key=lambda row: str(item_field(row, "StartTime", "startTime") or ""))
    return rows


def get_active_session_sync(table, user_id: str) -> dict[str, Any] | None:
    live = [
        row
        for row in _user_rows_sync(table, user_id)
        if str(item_field(row, "Status", "status") or "") != "SignedOut"
    ]
    if not live:
        return None
    return max(live, key=lambda row: str(item_field(row, "StartTime", "startTime") or ""))
