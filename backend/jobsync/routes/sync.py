from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..email_processor import EmailProcessor
from ..models import SyncLog, User

router = APIRouter(tags=["sync"])


class SyncStatsResponse(BaseModel):
    scanned: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0


class SyncResponse(BaseModel):
    ok: bool = True
    stats: SyncStatsResponse


class SyncLogResponse(BaseModel):
    id: str
    status: str
    stats: Dict[str, int]
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


def get_email_processor() -> EmailProcessor:
    return EmailProcessor()


@router.post("/sync", response_model=SyncResponse)
def sync_gmail(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    processor: EmailProcessor = Depends(get_email_processor),
):
    """Fetch recent job emails from Gmail and reconcile them into the user's applications"""
    stats = processor.sync_user(db, user)
    return {"ok": True, "stats": stats.to_dict()}


@router.get("/sync/logs", response_model=List[SyncLogResponse])
def list_sync_logs(
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return (
        db.query(SyncLog)
        .filter(SyncLog.user_id == user.id)
        .order_by(SyncLog.created_at.desc())
        .limit(limit)
        .all()
    )
