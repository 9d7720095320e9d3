"""
Telegram delivery for monitor alerts.
"""

from .notifier import TelegramNotifier

__all__ = ["TelegramNotifier"]
