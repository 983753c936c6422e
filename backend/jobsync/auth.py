"""Resolve the dashboard session carried in the Authorization header."""

from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .errors import AuthError
from .models import AuthSession, User

bearer_scheme = HTTPBearer(auto_error=False)


def resolve_user(db: Session, token: Optional[str]) -> User:
    if not token:
        raise AuthError("Missing authorization header")

    session = db.get(AuthSession, token)
    if session is None:
        raise AuthError("Invalid or expired token")

    if session.expires_at is not None:
        expires_at = session.expires_at
        # SQLite hands back naive datetimes
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if expires_at <= datetime.now(timezone.utc):
            raise AuthError("Invalid or expired token")

    user = db.get(User, session.user_id)
    if user is None:
        raise AuthError("Invalid or expired token")
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    return resolve_user(db, credentials.credentials if credentials else None)
