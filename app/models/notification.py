"""Notification records (``notifications`` collection)."""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

NOTIFICATIONS = "notifications"

# Inbox listing cap, newest first
INBOX_LIMIT = 50


class NotificationType(str, Enum):
    reminder = "reminder"
    location = "location"
    activity = "activity"
    message = "message"
    system = "system"
    other = "other"


def coerce_type(value: Optional[str]) -> NotificationType:
    try:
        return NotificationType(value) if value else NotificationType.system
    except ValueError:
        return NotificationType.other


def new_notification_document(
    user_id: str,
    title: str,
    body: str,
    data: Optional[Dict[str, Any]] = None,
    type_: Optional[str] = None,
) -> Dict[str, Any]:
    now = datetime.now(timezone.utc)
    return {
        "userId": user_id,
        "title": title.strip(),
        "body": body.strip(),
        "read": False,
        "data": data or {},
        "type": coerce_type(type_).value,
        "createdAt": now,
        "updatedAt": now,
    }
