"""Environment variable loading and validation."""

import os
from typing import Mapping, Optional

from .exceptions import ConfigurationError

DEFAULT_DATABASE_URL = "sqlite:///./data/listing_alerts.db"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class EnvironmentConfig:
    """Secrets and deployment settings that come from the environment."""

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        smtp_user: Optional[str] = None,
        smtp_pass: Optional[str] = None,
        smtp_sender_name: Optional[str] = None,
        log_level: Optional[str] = None,
        database_url: Optional[str] = None,
        environment: Optional[str] = None,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_pass = smtp_pass
        self.smtp_sender_name = smtp_sender_name or "Property Alerts"
        self.log_level = log_level
        self.database_url = database_url or DEFAULT_DATABASE_URL
        self.environment = environment or "local"


def load_environment_config(environ: Optional[Mapping[str, str]] = None) -> EnvironmentConfig:
    """Read and validate environment variables.

    Required:
    - SMTP_HOST: SMTP server hostname
    - SMTP_PORT: SMTP server port (1-65535)

    Optional:
    - SMTP_USER / SMTP_PASS: SMTP credentials (both or neither)
    - SMTP_SENDER_NAME: Display name for the From header
    - LOG_LEVEL: Overrides the configured log level
    - DATABASE_URL: SQLAlchemy URL (default: sqlite:///./data/listing_alerts.db)
    - ENVIRONMENT: Label stamped on log records (default: local)

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Raises:
        ConfigurationError: If required variables are missing or invalid
    """
    env = os.environ if environ is None else environ
    errors = []

    smtp_host = env.get("SMTP_HOST")
    smtp_port_raw = env.get("SMTP_PORT")
    smtp_user = env.get("SMTP_USER") or None
    smtp_pass = env.get("SMTP_PASS") or None
    log_level = env.get("LOG_LEVEL") or None

    if not smtp_host:
        errors.append("Missing required environment variable: SMTP_HOST")

    smtp_port = None
    if not smtp_port_raw:
        errors.append("Missing required environment variable: SMTP_PORT")
    else:
        try:
            smtp_port = int(smtp_port_raw)
        except ValueError:
            errors.append(f"Invalid SMTP_PORT: '{smtp_port_raw}'. Must be a valid integer.")
        else:
            if not 1 <= smtp_port <= 65535:
                errors.append(f"Invalid SMTP_PORT: {smtp_port}. Must be between 1 and 65535.")

    if log_level and log_level.upper() not in VALID_LOG_LEVELS:
        errors.append(
            f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )

    if bool(smtp_user) != bool(smtp_pass):
        errors.append("SMTP_USER and SMTP_PASS must be set together for authentication.")

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and fill in your credentials",
                "Ensure SMTP_HOST and SMTP_PORT are set",
            ],
        )

    return EnvironmentConfig(
        smtp_host=smtp_host,
        smtp_port=smtp_port,
        smtp_user=smtp_user,
        smtp_pass=smtp_pass,
        smtp_sender_name=env.get("SMTP_SENDER_NAME") or None,
        log_level=log_level.upper() if log_level else None,
        database_url=env.get("DATABASE_URL") or None,
        environment=env.get("ENVIRONMENT") or None,
    )
