"""Error taxonomy for the Gmail sync pipeline."""

from typing import Optional


class JobSyncError(Exception):
    """Base error for the sync pipeline."""


class AuthError(JobSyncError):
    """Missing, expired or rejected credential or session.

    Never retried: the user has to re-authenticate.
    """


class ProviderError(JobSyncError):
    """Batch-level failure talking to the mail provider."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PerMessageError(JobSyncError):
    """Failure while classifying, looking up or writing a single message."""

    def __init__(self, message_id: str, message: str):
        super().__init__(f"{message_id}: {message}")
        self.message_id = message_id


class StoreError(JobSyncError):
    """Record store failure outside the per-message loop."""
