"""Shared pytest fixtures."""

import pytest

from listing_alerts.logging.context import clear_log_context


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Minimal valid SMTP environment."""
    monkeypatch.setenv("SMTP_HOST", "smtp.test.com")
    monkeypatch.setenv("SMTP_PORT", "587")
    for name in ("SMTP_USER", "SMTP_PASS", "LOG_LEVEL", "DATABASE_URL", "ENVIRONMENT"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def clean_log_context():
    clear_log_context()
    yield
    clear_log_context()
