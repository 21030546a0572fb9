"""Hiring Notifier — Notifier Package.

Telegram notification system for new job batches.
Components:
  - formatters: HTML message builders and job-type labels
  - telegram_bot: Async Telegram bot client with message splitting
  - dispatcher: Bounded queue plus the single delivery worker
"""

from hiring_notifier.notifier.formatters import (
    escape_html,
    format_batch,
    humanize_job_type,
)
from hiring_notifier.notifier.telegram_bot import TelegramNotifier
from hiring_notifier.notifier.dispatcher import NotificationDispatcher

__all__ = [
    "escape_html",
    "format_batch",
    "humanize_job_type",
    "TelegramNotifier",
    "NotificationDispatcher",
]
