from typing import Any, Dict, List, Optional

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .classifier import headers_to_dict
from .config import Settings, get_settings
from .errors import AuthError, ProviderError
from .logging import get_logger

log = get_logger(__name__)


def _status_of(error: HttpError) -> Optional[int]:
    status = getattr(error, "status_code", None)
    if status is None and getattr(error, "resp", None) is not None:
        status = getattr(error.resp, "status", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


def _provider_error(error: HttpError, action: str) -> Exception:
    status = _status_of(error)
    if status in (401, 403):
        return AuthError(f"Gmail rejected the access token while trying to {action}. Please re-authenticate with Google.")
    return ProviderError(f"Failed to {action}: {error}", status_code=status)


class GmailService:
    """Gmail metadata fetcher authorised with a bearer access token."""

    def __init__(self, access_token: Optional[str] = None, service=None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.access_token = access_token
        self.service = service

    def authenticate(self, access_token: Optional[str] = None):
        """Build the Gmail API client from an access token"""
        if access_token:
            self.access_token = access_token
        if not self.access_token:
            raise AuthError("No Gmail access token available. Please re-authenticate with Google.")
        creds = Credentials(token=self.access_token)
        self.service = build("gmail", "v1", credentials=creds, cache_discovery=False)
        return self.service

    def _client(self):
        if not self.service:
            self.authenticate()
        return self.service

    def list_message_ids(self) -> List[str]:
        """Message ids matching the relevance query, capped at ``gmail_max_results``."""
        try:
            results = self._client().users().messages().list(
                userId="me",
                q=self.settings.gmail_query,
                maxResults=self.settings.gmail_max_results,
            ).execute()
        except HttpError as error:
            log.error("gmail_list_failed", error=str(error))
            raise _provider_error(error, "fetch message list") from error

        return [m["id"] for m in results.get("messages", []) if m.get("id")]

    def get_message_metadata(self, message_id: str) -> Dict[str, Any]:
        """Fetch headers and snippet for one message; the body is never downloaded."""
        try:
            message = self._client().users().messages().get(
                userId="me",
                id=message_id,
                format="metadata",
                metadataHeaders=self.settings.gmail_metadata_headers,
            ).execute()
        except HttpError as error:
            raise _provider_error(error, f"fetch message {message_id}") from error
        return self._parse_email(message)

    def search_job_emails(self) -> List[Dict[str, Any]]:
        """
        Search for job-related emails and fetch their metadata.

        Only the first ``gmail_fetch_limit`` ids are fetched. A failed fetch drops
        that message and the rest of the batch carries on.
        """
        message_ids = self.list_message_ids()
        log.info("gmail_messages_listed", count=len(message_ids))

        job_emails = []
        for message_id in message_ids[: self.settings.gmail_fetch_limit]:
            try:
                job_emails.append(self.get_message_metadata(message_id))
            except Exception as e:
                log.warning("gmail_message_fetch_failed", message_id=message_id, error=str(e))
        return job_emails

    def _parse_email(self, message: Dict[str, Any]) -> Dict[str, Any]:
        """Flatten a Gmail metadata message into the fields the classifier reads"""
        payload = message.get("payload") or {}
        return {
            "id": message["id"],
            "thread_id": message.get("threadId"),
            "headers": headers_to_dict(payload.get("headers", [])),
            "snippet": message.get("snippet", "") or "",
        }
