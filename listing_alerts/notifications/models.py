"""Result types and exceptions for notification delivery."""

from dataclasses import dataclass, field
from typing import Optional, Tuple


class NotificationError(Exception):
    """Base exception for notification-related errors."""


class NotificationTemplateError(NotificationError):
    """Raised when a template is missing or references an undefined variable."""


class SMTPDeliveryError(NotificationError):
    """Raised when a single SMTP delivery attempt fails."""


@dataclass
class NotificationResult:
    """Outcome of handing one alert to a sink.

    Advisory only: the dispatchers log it but never roll back state because
    of it.

    Attributes:
        kind: "instant" or "digest"
        recipient: Address the alert was (or would have been) sent to
        search_name: Saved search the alert belongs to
        status: "sent", "failed" or "queued"
        attempts: Number of SMTP attempts made
        listing_ids: Listings carried by the alert
        error: Error message when status is "failed"
    """

    kind: str
    recipient: str
    search_name: str
    status: str  # "sent", "failed", "queued"
    attempts: int = 0
    listing_ids: Tuple[str, ...] = field(default_factory=tuple)
    error: Optional[str] = None

    def is_success(self) -> bool:
        return self.status == "sent"

    def is_queued(self) -> bool:
        return self.status == "queued"
