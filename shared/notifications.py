"""
User-facing notifications.

Services report outcomes ("Workflow deleted successfully", "Error requesting
deployment") through a ``NotificationChannel``. The default channel logs each
message and keeps it visible until it is dismissed or its duration runs out.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, List, Optional, Protocol, runtime_checkable

from shared.config import config
from shared.logger import get_logger

logger = get_logger(__name__)


class Severity(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


@dataclass(slots=True)
class Notification:
    """A message shown to the user for ``duration_ms`` milliseconds."""

    id: str
    message: str
    severity: Severity
    duration_ms: int
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def expires_at(self) -> datetime:
        return self.created_at + timedelta(milliseconds=self.duration_ms)


@runtime_checkable
class NotificationChannel(Protocol):
    def notify(
        self,
        message: str,
        severity: Severity = Severity.INFO,
        duration_ms: Optional[int] = None,
    ) -> str:
        ...


class LoggingNotificationChannel:
    """Logs every notification and tracks the ones still on screen."""

    def __init__(self, default_duration_ms: Optional[int] = None) -> None:
        self.default_duration_ms = default_duration_ms or config.notification_duration_ms
        self._visible: Dict[str, Notification] = {}
        self.history: List[Notification] = []

    def notify(
        self,
        message: str,
        severity: Severity = Severity.INFO,
        duration_ms: Optional[int] = None,
    ) -> str:
        severity = Severity(severity)
        notification = Notification(
            id=uuid.uuid4().hex,
            message=message,
            severity=severity,
            duration_ms=duration_ms or self.default_duration_ms,
        )
        self._visible[notification.id] = notification
        self.history.append(notification)

        if severity == Severity.ERROR:
            logger.error(message)
        else:
            logger.info(f"[{severity.value}] {message}")
        return notification.id

    def dismiss(self, notification_id: str) -> None:
        self._visible.pop(notification_id, None)

    def expire(self, now: Optional[datetime] = None) -> None:
        """Drop notifications whose duration has elapsed."""
        now = now or datetime.now(timezone.utc)
        for notification_id, notification in list(self._visible.items()):
            if notification.expires_at <= now:
                del self._visible[notification_id]

    @property
    def visible(self) -> List[Notification]:
        self.expire()
        return list(self._visible.values())

    @property
    def messages(self) -> List[str]:
        return [notification.message for notification in self.history]


__all__ = ["Severity", "Notification", "NotificationChannel", "LoggingNotificationChannel"]
