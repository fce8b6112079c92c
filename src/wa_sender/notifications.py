from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .models import MessageRecord, MessageStatus


class NotificationType(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class Notification:
    type: NotificationType
    message: str


def notification_for(record: MessageRecord) -> Notification | None:
    """Transient notice for a record's final status; pending records get none."""
    if record.status is MessageStatus.SENT:
        return Notification(NotificationType.SUCCESS, "Message sent successfully!")
    if record.status is MessageStatus.FAILED:
        return Notification(NotificationType.ERROR, record.error or "Failed to send message")
    return None


def history_cleared() -> Notification:
    return Notification(NotificationType.INFO, "Message history cleared")
