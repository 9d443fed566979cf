"""Notification system types, protocol and manager.

This module provides the core types for the mediastash notification system:
- NotificationLevel: Severity of a notification
- NotificationRequest: A notification addressed to a set of users
- Notifier: Protocol defining the notifier interface
- NotificationManager: Fans a request out to every registered notifier

Delivery and persistence belong to the notifiers; the manager only fans out
and reports which notifiers accepted the request.

Example:
    class LogNotifier:
        def __call__(self, request: NotificationRequest) -> None:
            logging.getLogger("notifications").info("%s: %s", request.name, request.description)

    manager = NotificationManager()
    manager.add_notifier(LogNotifier())
    manager.send_notification(NotificationRequest(name="Hello", description="World"))
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from pydantic import BaseModel, Field

from mediastash.models import NameIdPair
from mediastash.notification_result import NotificationResult, NotifierResult

logger = logging.getLogger(__name__)


class NotificationLevel(Enum):
    """Severity of a notification."""

    NORMAL = "Normal"
    WARNING = "Warning"
    ERROR = "Error"

    @classmethod
    def parse(cls, value: str | None) -> NotificationLevel:
        """Parse a level name case-insensitively; None means NORMAL.

        Raises:
            ValueError: If value is not a known level.
        """
        if value is None or value == "":
            return cls.NORMAL
        for level in cls:
            if level.value.lower() == value.lower():
                return level
        raise ValueError(f"Unknown notification level: '{value}'")


@dataclass(frozen=True)
class NotificationRequest:
    """A notification addressed to a set of users.

    Attributes:
        name: Short title.
        description: Body text.
        url: Optional link related to the notification.
        level: Severity.
        user_ids: Users the notification is addressed to.
        date: When the notification was raised (UTC).
    """

    name: str
    description: str = ""
    url: str | None = None
    level: NotificationLevel = NotificationLevel.NORMAL
    user_ids: tuple[str, ...] = ()
    date: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )


class NotificationTypeInfo(BaseModel):
    """Describes a kind of notification the server can raise."""

    type: str = Field(serialization_alias="Type")
    name: str = Field(serialization_alias="Name")
    enabled: bool = Field(default=False, serialization_alias="Enabled")
    category: str = Field(serialization_alias="Category")
    is_based_on_user_event: bool = Field(default=False, serialization_alias="IsBasedOnUserEvent")


NOTIFICATION_TYPES: tuple[NotificationTypeInfo, ...] = (
    NotificationTypeInfo(
        type="ApplicationUpdateInstalled",
        name="Application update installed",
        category="Application",
    ),
    NotificationTypeInfo(
        type="TaskFailed",
        name="Scheduled task failed",
        category="Application",
    ),
    NotificationTypeInfo(
        type="ServerRestartRequired",
        name="Server restart required",
        category="Application",
    ),
    NotificationTypeInfo(
        type="NewLibraryContent",
        name="New content added",
        category="Library",
    ),
    NotificationTypeInfo(
        type="VideoPlayback",
        name="Video playback started",
        category="User",
        is_based_on_user_event=True,
    ),
    NotificationTypeInfo(
        type="VideoPlaybackStopped",
        name="Video playback stopped",
        category="User",
        is_based_on_user_event=True,
    ),
    NotificationTypeInfo(
        type="UserLockedOut",
        name="User locked out",
        category="User",
        is_based_on_user_event=True,
    ),
)


class Notifier(Protocol):
    """Protocol for notification handlers.

    Notifiers receive notification requests and handle the actual delivery
    mechanism (email, webhook, in-app inbox...).
    """

    def __call__(self, request: NotificationRequest) -> None:
        """Deliver a notification.

        Args:
            request: The notification to deliver.
        """
        ...


def notifier_name(notifier: Notifier) -> str:
    return getattr(notifier, "__name__", type(notifier).__name__)


class NotificationManager:
    """Registry of notifiers and fan-out of notification requests."""

    def __init__(self) -> None:
        self.notifiers: list[Notifier] = []

    def add_notifier(self, notifier: Notifier) -> None:
        """Register a notifier to receive notifications.

        Args:
            notifier: A callable conforming to the Notifier protocol.
        """
        if not callable(notifier):
            raise TypeError(f"notifier must be callable, got {type(notifier)}")
        self.notifiers.append(notifier)

    def send_notification(self, request: NotificationRequest) -> NotificationResult:
        """Send a notification to all registered notifiers.

        A notifier that raises does not prevent delivery to the others; its
        failure is logged and recorded in the result.

        Args:
            request: The notification to send.

        Returns:
            NotificationResult with the outcome of every notifier.
        """
        result = NotificationResult()
        for notifier in self.notifiers:
            name = notifier_name(notifier)
            try:
                notifier(request)
            except Exception as e:
                logger.exception("Notifier %s failed to deliver '%s'", name, request.name)
                result.notifier_results.append(
                    NotifierResult(notifier_name=name, delivered=False, error=str(e))
                )
            else:
                result.notifier_results.append(NotifierResult(notifier_name=name))

        logger.info(
            "Notification '%s' sent to %d user(s) via %d/%d notifier(s)",
            request.name,
            len(request.user_ids),
            result.notifiers_delivered,
            result.total_notifiers,
        )
        return result

    def get_notification_types(self) -> list[NotificationTypeInfo]:
        """Return every notification type the server can raise."""
        return list(NOTIFICATION_TYPES)

    def get_notification_services(self) -> list[NameIdPair]:
        """Return one name/id pair per registered notifier."""
        services = []
        for notifier in self.notifiers:
            name = notifier_name(notifier)
            services.append(NameIdPair(name=name, id=name.lower()))
        return services
