from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import AliasChoices, BaseModel, Field
from sqlalchemy.orm import Session

from ..auth import bearer_scheme, resolve_user
from ..classifier import classify_message
from ..database import get_db
from ..email_processor import EmailProcessor
from .sync import get_email_processor

router = APIRouter(tags=["classify"])


class ClassifyRequest(BaseModel):
    email_id: Optional[str] = Field(None, validation_alias=AliasChoices("email_id", "emailId"))
    raw_headers: Optional[Dict[str, str]] = Field(None, validation_alias=AliasChoices("raw_headers", "rawHeaders"))
    snippet: Optional[str] = None


class ClassificationResponse(BaseModel):
    company: str
    role: Optional[str] = None
    status: str
    applied_at: str
    applied_at_estimated: bool = False
    confidence: float


@router.post("/classify", response_model=ClassificationResponse)
def classify_email(
    request: ClassifyRequest,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    processor: EmailProcessor = Depends(get_email_processor),
):
    """
    Classify a single message without touching the store.

    With ``email_id`` the message is fetched from the caller's Gmail account,
    which needs a session; raw headers and a snippet are classified directly.
    """
    if request.email_id:
        user = resolve_user(db, credentials.credentials if credentials else None)
        result = processor.classify_email_id(user, request.email_id)
    elif request.raw_headers is not None and request.snippet is not None:
        headers = {name.lower(): value for name, value in request.raw_headers.items()}
        result = classify_message(headers, request.snippet, processor.rules)
    else:
        raise HTTPException(status_code=400, detail="Either email_id or raw_headers+snippet must be provided")

    return result.to_dict()
