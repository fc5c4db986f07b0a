"""
Notification collaborator.

Notifications are fire-and-forget: ``safe_notify`` logs and swallows every
failure so the request that triggered them still succeeds.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict

from hubmarket.utils.logging import setup_logger

logger = setup_logger(__name__)

class Notifier(ABC):
    """Delivers in-app and email notifications."""

    @abstractmethod
    def notify(self, event: str, payload: Dict[str, Any]) -> None:
        """Send a notification for ``event``."""

class LoggingNotifier(Notifier):
    """Writes notifications to the log; used when no delivery channel is configured."""

    def notify(self, event: str, payload: Dict[str, Any]) -> None:
        logger.info(f"notification {event}: {payload}")

def safe_notify(notifier: Notifier, event: str, payload: Dict[str, Any]) -> bool:
    """
    Send a notification without ever raising.

    Args:
        notifier: Notifier to use
        event: Event name, e.g. ``order_confirmed``
        payload: Event details

    Returns:
        bool: True if the notifier accepted the event
    """
    if notifier is None:
        return False
    try:
        notifier.notify(event, payload)
        return True
    except Exception as e:
        logger.warning(f"Notification {event} failed: {e}")
        return False
