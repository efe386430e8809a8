"""
Notification sinks for the presentation layer.
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from ..core.enums import Severity
from ..core.models import Notification


class Notifier(ABC):

    @abstractmethod
    def notify(self, notification: Notification) -> None:
        pass


class LoggingNotifier(Notifier):
    """Writes notifications to a logger; used by the CLI"""

    _LEVELS = {
        Severity.SUCCESS: logging.INFO,
        Severity.INFO: logging.INFO,
        Severity.WARNING: logging.WARNING,
        Severity.ERROR: logging.ERROR,
    }

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(f"{__name__}.LoggingNotifier")

    def notify(self, notification: Notification) -> None:
        sticky = " [persistent]" if notification.persistent else ""
        self.logger.log(
            self._LEVELS.get(notification.severity, logging.INFO),
            f"{notification.title}: {notification.message}{sticky}"
        )


class CollectingNotifier(Notifier):
    """Keeps notifications in memory until drained by the presentation layer"""

    def __init__(self, forward_to: Optional[Notifier] = None):
        self.notifications: List[Notification] = []
        self.forward_to = forward_to

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)
        if self.forward_to:
            self.forward_to.notify(notification)

    def drain(self) -> List[Notification]:
        drained, self.notifications = self.notifications, []
        return drained
