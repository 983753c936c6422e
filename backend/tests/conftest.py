"""
Shared pytest fixtures for jobsync tests.
"""

import os

# Must be set before jobsync builds its settings and engine
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_JSON"] = "false"

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from jobsync.config import Settings
from jobsync.database import Base, SessionLocal, engine
from jobsync.email_processor import EmailProcessor
from jobsync.models import AuthSession, User


def make_message(
    message_id: str,
    subject: str = "Thank you for applying to Initech",
    sender: str = "Initech Careers <careers@initech.com>",
    snippet: str = "We received your application for the Backend Developer role.",
    date: str = "Mon, 06 Oct 2025 14:30:00 +0000",
    thread_id: str = None,
) -> dict:
    """A message as returned by GmailService.search_job_emails."""
    return {
        "id": message_id,
        "thread_id": thread_id or f"thread-{message_id}",
        "headers": {
            "from": sender,
            "subject": subject,
            "date": date,
            "to": "jane@example.com",
        },
        "snippet": snippet,
    }


def fake_token_exchange(refresh_token, settings=None):
    return "access-token"


@pytest.fixture
def db_session():
    """Fresh in-memory schema per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def user(db_session) -> User:
    user = User(id="user-1", email="jane@example.com", google_refresh_token="refresh-token")
    db_session.add(user)
    db_session.add(
        AuthSession(
            token="session-token",
            user_id=user.id,
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        )
    )
    db_session.commit()
    return user


@pytest.fixture
def other_user(db_session) -> User:
    user = User(id="user-2", email="bob@example.com", google_refresh_token="other-refresh-token")
    db_session.add(user)
    db_session.add(AuthSession(token="other-session-token", user_id=user.id))
    db_session.commit()
    return user


@pytest.fixture
def test_settings() -> Settings:
    return Settings(database_url="sqlite://", google_client_id="client-id", google_client_secret="client-secret")


@pytest.fixture
def mock_gmail():
    """Gmail fetcher double; tests set search_job_emails.return_value."""
    gmail = MagicMock()
    gmail.search_job_emails.return_value = []
    return gmail


@pytest.fixture
def processor(mock_gmail, test_settings) -> EmailProcessor:
    return EmailProcessor(gmail_service=mock_gmail, settings=test_settings, token_exchanger=fake_token_exchange)


@pytest.fixture
def message_factory():
    return make_message


@pytest.fixture
def gmail_api():
    """Mock googleapiclient Gmail resource."""
    return MagicMock()
