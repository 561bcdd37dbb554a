"""E-mail implementation of the NotificationSink.

Builds the template context, renders subject and bodies, and delivers over
SMTP with exponential backoff. Delivery problems are reported through the
returned NotificationResult instead of being raised.
"""

import logging
import time
from email.message import EmailMessage
from typing import Callable, Dict, Optional, Sequence

from listing_alerts.config.environment import EnvironmentConfig
from listing_alerts.config.models import EmailConfig, LinksConfig
from listing_alerts.domain.models import AlertFrequency, ContactInfo, ListingSnapshot
from listing_alerts.logging import get_logger

from .base import NotificationSink
from .models import NotificationResult, NotificationTemplateError, SMTPDeliveryError
from .payloads import build_digest_context, build_instant_context
from .smtp_client import SMTPClient, build_sender_address, normalize_recipient
from .templates import DIGEST, INSTANT_MATCH, TemplateRenderer

logger = get_logger(__name__, component="notification")

MAX_RETRY_DELAY = 60.0


class EmailNotificationSink(NotificationSink):
    """Sends instant-match and digest e-mails.

    Responsibilities:
    - Build the template context for one alert
    - Render subject, HTML and text bodies
    - Validate the recipient address
    - Deliver with retry/backoff per EmailConfig
    """

    def __init__(
        self,
        env_config: EnvironmentConfig,
        email_config: Optional[EmailConfig] = None,
        links_config: Optional[LinksConfig] = None,
        template_renderer: Optional[TemplateRenderer] = None,
        smtp_client: Optional[SMTPClient] = None,
        sleep: Callable[[float], None] = time.sleep,
        logger_instance: Optional[logging.Logger] = None,
    ):
        self.env_config = env_config
        self.email_config = email_config or EmailConfig()
        self.links_config = links_config or LinksConfig()
        self.template_renderer = template_renderer or TemplateRenderer()
        self.smtp_client = smtp_client or SMTPClient()
        self.sleep = sleep
        self.logger = logger_instance or logger

    def send_instant_match(
        self,
        contact: ContactInfo,
        listing: ListingSnapshot,
        search_name: str,
        *,
        search_id: Optional[str] = None,
    ) -> NotificationResult:
        context = build_instant_context(
            contact, listing, search_name, self.links_config, search_id=search_id
        )
        return self._deliver(INSTANT_MATCH, contact, search_name, context, (listing.id,))

    def send_digest(
        self,
        contact: ContactInfo,
        listings: Sequence[ListingSnapshot],
        search_name: str,
        *,
        search_id: Optional[str] = None,
        frequency: Optional[AlertFrequency] = None,
    ) -> NotificationResult:
        context = build_digest_context(
            contact,
            listings,
            search_name,
            self.links_config,
            search_id=search_id,
            frequency=frequency,
        )
        listing_ids = tuple(listing.id for listing in listings)
        return self._deliver(DIGEST, contact, search_name, context, listing_ids)

    def _deliver(
        self,
        kind: str,
        contact: ContactInfo,
        search_name: str,
        context: Dict,
        listing_ids: tuple,
    ) -> NotificationResult:
        result_kind = "instant" if kind == INSTANT_MATCH else "digest"

        def failed(error: str, attempts: int = 0) -> NotificationResult:
            return NotificationResult(
                kind=result_kind,
                recipient=contact.email,
                search_name=search_name,
                status="failed",
                attempts=attempts,
                listing_ids=listing_ids,
                error=error,
            )

        try:
            rendered = self.template_renderer.render(kind, context)
        except NotificationTemplateError as e:
            return failed(str(e))

        try:
            recipient = normalize_recipient(contact.email)
        except ValueError as e:
            self.logger.error(
                str(e),
                extra={"event": "notification.invalid_recipient", "owner_id": contact.owner_id},
            )
            return failed(str(e))

        message = EmailMessage()
        message["Subject"] = rendered["subject"]
        message["From"] = build_sender_address(self.env_config)
        message["To"] = recipient
        message.set_content(rendered["text_body"])
        message.add_alternative(rendered["html_body"], subtype="html")

        max_attempts = self.email_config.max_retries + 1
        last_error = None

        for attempt in range(1, max_attempts + 1):
            if attempt > 1:
                delay = self.email_config.retry_initial_delay * (
                    self.email_config.retry_backoff_multiplier ** (attempt - 2)
                )
                delay = min(delay, MAX_RETRY_DELAY)
                self.logger.warning(
                    f"Retrying {result_kind} alert to {recipient} "
                    f"(attempt {attempt}/{max_attempts}) after {delay:.1f}s",
                    extra={"event": "notification.send.retry", "attempt": attempt},
                )
                self.sleep(delay)

            try:
                self.smtp_client.send(message, self.env_config, self.email_config.use_tls)
            except SMTPDeliveryError as e:
                last_error = str(e)
                self.logger.warning(
                    f"SMTP delivery failed (attempt {attempt}/{max_attempts}): {e}",
                    extra={
                        "event": "notification.send.failure",
                        "attempt": attempt,
                        "retry_remaining": attempt < max_attempts,
                    },
                )
                continue

            self.logger.info(
                f"Sent {result_kind} alert for '{search_name}' to {recipient} "
                f"({len(listing_ids)} listing(s), attempts: {attempt})",
                extra={
                    "event": "notification.send.success",
                    "kind": result_kind,
                    "attempt": attempt,
                    "listing_count": len(listing_ids),
                },
            )
            return NotificationResult(
                kind=result_kind,
                recipient=recipient,
                search_name=search_name,
                status="sent",
                attempts=attempt,
                listing_ids=listing_ids,
            )

        self.logger.error(
            f"Giving up on {result_kind} alert to {recipient} after {max_attempts} attempts",
            extra={"event": "notification.send.exhausted", "attempts": max_attempts},
        )
        return failed(last_error or "delivery failed", attempts=max_attempts)
