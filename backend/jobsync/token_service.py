"""Exchange a stored Google refresh token for a short-lived access token."""

from typing import Optional

import requests
from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials

from .config import Settings, get_settings
from .errors import AuthError, ProviderError
from .logging import get_logger

log = get_logger(__name__)

GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]


def exchange_refresh_token(
    refresh_token: Optional[str],
    settings: Optional[Settings] = None,
    session: Optional[requests.Session] = None,
) -> str:
    """
    Refresh a Google OAuth credential (grant_type=refresh_token).

    Raises:
        AuthError: the refresh token is missing or rejected. Not retryable.
        ProviderError: the token endpoint could not be reached.
    """
    if not refresh_token:
        raise AuthError("No refresh token found. Please re-authenticate with Google.")

    settings = settings or get_settings()
    creds = Credentials(
        token=None,
        refresh_token=refresh_token,
        token_uri=settings.google_token_uri,
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        scopes=GMAIL_SCOPES,
    )

    try:
        creds.refresh(Request(session=session))
    except RefreshError as e:
        log.warning("google_refresh_rejected", error=str(e))
        raise AuthError(f"Failed to refresh Google token: {e}. Please re-authenticate with Google.") from e
    except TransportError as e:
        log.error("google_token_endpoint_unreachable", error=str(e))
        raise ProviderError(f"Failed to reach Google token endpoint: {e}") from e

    if not creds.token:
        raise AuthError("Google token endpoint returned no access token. Please re-authenticate with Google.")
    return creds.token
