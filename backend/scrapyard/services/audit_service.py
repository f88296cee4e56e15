"""
Per-user action log

WHY: Every state-changing operation leaves a human-readable trace on the
acting user's record, so a company owner can see who did what.

DESIGN:
- Entries are prepended (newest first) and never edited
- The entry is written inside the caller's mutation; if the operation
  fails, the entry disappears with it
"""

from __future__ import annotations

import uuid
from typing import Optional

from ..domain import ActionLog
from ..store import USERS, ScrapyardStore


def log_user_action(store: ScrapyardStore, user_id: str, action: str, details: str) -> Optional[ActionLog]:
    """Prepend an entry to a user's log. Unknown users are ignored."""
    user = store.find(USERS, user_id)
    if user is None:
        return None

    entry = ActionLog(
        id=str(uuid.uuid4()),
        action=action,
        details=details,
        timestamp=store.now(),
    )
    with store.mutation(USERS):
        user.logs.insert(0, entry)
    return entry


def log_current_action(store: ScrapyardStore, action: str, details: str) -> Optional[ActionLog]:
    """Log against the acting identity, if any."""
    if not store.current_user_id:
        return None
    return log_user_action(store, store.current_user_id, action, details)


def list_audit_entries(store: ScrapyardStore, limit: int | None = None) -> list[dict]:
    """
    Flatten the logs of every user the caller can see, newest first.

    Requires view_audit; callers without it get an empty list.
    """
    from . import permission_service, tenant_service

    if not permission_service.check_permission(store, "view_audit"):
        return []

    entries = []
    for user in tenant_service.visible_users(store):
        for log in user.logs:
            row = log.to_dict()
            row["user_id"] = user.id
            row["user_name"] = user.name
            entries.append((log.timestamp, row))

    entries.sort(key=lambda pair: pair[0], reverse=True)
    rows = [row for _, row in entries]
    if limit is not None:
        rows = rows[:limit]
    return rows
