"""Notification delivery layer."""

from pricewatch.notify.email_notifier import EmailNotifier
from pricewatch.notify.notifier import Notifier

__all__ = ["EmailNotifier", "Notifier"]
