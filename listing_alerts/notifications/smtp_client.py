"""Thin smtplib wrapper plus address helpers.

Port 465 uses implicit TLS; any other port connects in plain text and upgrades
with STARTTLS when ``use_tls`` is set.
"""

import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Callable, Optional

from email_validator import EmailNotValidError, validate_email

from listing_alerts.config.environment import EnvironmentConfig

from .models import SMTPDeliveryError

logger = logging.getLogger(__name__)

IMPLICIT_TLS_PORT = 465


class SMTPClient:
    """Opens one SMTP connection per message.

    The factories exist so tests can substitute ``smtplib.SMTP`` and
    ``smtplib.SMTP_SSL`` with mocks.
    """

    def __init__(
        self,
        smtp_factory: Optional[Callable] = None,
        smtp_ssl_factory: Optional[Callable] = None,
    ):
        self.smtp_factory = smtp_factory or smtplib.SMTP
        self.smtp_ssl_factory = smtp_ssl_factory or smtplib.SMTP_SSL

    def send(self, message: EmailMessage, env_config: EnvironmentConfig, use_tls: bool = True) -> None:
        """Deliver ``message`` and always close the connection.

        Raises:
            SMTPDeliveryError: On any SMTP or network failure
        """
        host, port = env_config.smtp_host, env_config.smtp_port
        smtp = None
        try:
            if port == IMPLICIT_TLS_PORT:
                logger.debug(f"Connecting to {host}:{port} with implicit TLS")
                smtp = self.smtp_ssl_factory(host, port, context=ssl.create_default_context())
            else:
                logger.debug(f"Connecting to {host}:{port}")
                smtp = self.smtp_factory(host, port)
                if use_tls:
                    smtp.starttls(context=ssl.create_default_context())

            if env_config.smtp_user and env_config.smtp_pass:
                smtp.login(env_config.smtp_user, env_config.smtp_pass)

            smtp.send_message(message)
            logger.debug(f"Message delivered to {message['To']}")

        except smtplib.SMTPException as e:
            raise SMTPDeliveryError(f"SMTP error during message delivery: {e}") from e
        except OSError as e:
            raise SMTPDeliveryError(f"Network error during SMTP connection: {e}") from e
        finally:
            if smtp is not None:
                try:
                    smtp.quit()
                except (smtplib.SMTPException, OSError) as e:
                    logger.warning(f"Error closing SMTP connection: {e}")


def normalize_recipient(address: str) -> str:
    """Validate one recipient address and return its normalized form.

    Raises:
        ValueError: If the address is not a valid e-mail address
    """
    try:
        return validate_email(address.strip(), check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValueError(f"Invalid recipient address '{address}': {e}") from e


def build_sender_address(env_config: EnvironmentConfig) -> str:
    """Return the From header, e.g. ``Property Alerts <alerts@example.com>``.

    Falls back to ``noreply@<smtp host>`` when no SMTP user is configured.
    """
    sender_email = env_config.smtp_user or f"noreply@{env_config.smtp_host}"
    return f"{env_config.smtp_sender_name} <{sender_email}>"
