"""Notification delivery for saved-search alerts.

This module provides:
- NotificationSink: the contract the dispatchers call
- EmailNotificationSink: Jinja2-rendered e-mail over SMTP with retry/backoff
- BackgroundNotificationSink: thread-pool wrapper for fire-and-forget delivery
- NotificationResult and the notification exceptions
"""

from .background import BackgroundNotificationSink
from .base import NotificationSink
from .models import (
    NotificationError,
    NotificationResult,
    NotificationTemplateError,
    SMTPDeliveryError,
)
from .service import EmailNotificationSink
from .smtp_client import SMTPClient
from .templates import TemplateRenderer

__all__ = [
    "NotificationSink",
    "EmailNotificationSink",
    "BackgroundNotificationSink",
    "NotificationResult",
    "NotificationError",
    "NotificationTemplateError",
    "SMTPDeliveryError",
    "SMTPClient",
    "TemplateRenderer",
]
