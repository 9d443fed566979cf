"""Notification result types.

This module provides the result types for the notification system:
- NotifierResult: Result of a single notifier call
- NotificationResult: Aggregated results from all notifiers
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class NotifierResult:
    """Result of sending a notification to a single notifier.

    Attributes:
        notifier_name: Name of the notifier.
        delivered: Whether the notifier accepted the notification.
        error: Error message if the notifier raised.
    """

    notifier_name: str
    delivered: bool = True
    error: str | None = None


@dataclass
class NotificationResult:
    """Result of sending a notification to all notifiers.

    Attributes:
        notifier_results: List of results for each notifier.
        total_notifiers: Total number of registered notifiers.
        notifiers_delivered: Number of notifiers that accepted the notification.
        notifiers_failed: Number of notifiers that raised.
    """

    notifier_results: list[NotifierResult] = field(default_factory=list)

    @property
    def total_notifiers(self) -> int:
        return len(self.notifier_results)

    @property
    def notifiers_delivered(self) -> int:
        return sum(1 for r in self.notifier_results if r.delivered)

    @property
    def notifiers_failed(self) -> int:
        return sum(1 for r in self.notifier_results if not r.delivered)
