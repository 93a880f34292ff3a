"""User notification interface."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional


logger = logging.getLogger(__name__)


@dataclass
class Notification:
    """A message for the person editing the project."""
    kind: str  # "error", "warning", "info"
    title: str
    message: str
    dismissible: bool = True
    action_label: Optional[str] = None
    action: Optional[Callable[[], Awaitable[object]]] = None


class INotifier(ABC):
    """Delivers notifications to the UI layer."""

    @abstractmethod
    def notify(self, notification: Notification) -> None:
        pass


class LoggingNotifier(INotifier):
    """Notifier used when no UI is attached; writes to the log."""

    def notify(self, notification: Notification) -> None:
        level = logging.ERROR if notification.kind == "error" else logging.INFO
        logger.log(level, f"{notification.title}: {notification.message}")
