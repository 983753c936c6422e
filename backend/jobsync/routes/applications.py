from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..logging import get_logger
from ..models import JobApplication, User

log = get_logger(__name__)

router = APIRouter(tags=["applications"])

Status = Literal["applied", "assessment", "interview", "offer", "rejected", "ghosted", "withdrawn", "other"]


# Pydantic models for API requests/responses
class JobApplicationCreate(BaseModel):
    company: str = Field(min_length=1)
    role: Optional[str] = None
    location: Optional[str] = None
    status: Status = "applied"
    job_post_url: Optional[str] = None
    applied_at: Optional[datetime] = None
    snippet: Optional[str] = None


class JobApplicationUpdate(BaseModel):
    company: Optional[str] = Field(None, min_length=1)
    role: Optional[str] = None
    location: Optional[str] = None
    status: Optional[Status] = None
    job_post_url: Optional[str] = None
    applied_at: Optional[datetime] = None
    snippet: Optional[str] = None


class JobApplicationResponse(BaseModel):
    id: str
    source: str
    company: str
    role: Optional[str] = None
    location: Optional[str] = None
    status: str
    job_post_url: Optional[str] = None
    applied_at: Optional[datetime] = None
    email_id: Optional[str] = None
    thread_id: Optional[str] = None
    snippet: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias=AliasChoices("metadata_", "metadata"))
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


def _get_owned(db: Session, user: User, application_id: str) -> JobApplication:
    application = (
        db.query(JobApplication)
        .filter(JobApplication.id == application_id, JobApplication.user_id == user.id)
        .first()
    )
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")
    return application


@router.post("/applications/", response_model=JobApplicationResponse)
async def create_application(
    application: JobApplicationCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Manual entry; manual rows have no message id and are never deduplicated"""
    try:
        db_application = JobApplication(user_id=user.id, source="manual", metadata_={}, **application.model_dump())
        db.add(db_application)
        db.commit()
        db.refresh(db_application)
        return db_application
    except SQLAlchemyError as e:
        db.rollback()
        log.error("application_create_failed", user_id=user.id, error=str(e))
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/applications/", response_model=List[JobApplicationResponse])
async def get_applications(
    status: Optional[Status] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(JobApplication).filter(JobApplication.user_id == user.id)
    if status:
        query = query.filter(JobApplication.status == status)
    return query.order_by(
        JobApplication.applied_at.desc().nulls_last(),
        JobApplication.created_at.desc(),
    ).all()


@router.get("/applications/{application_id}", response_model=JobApplicationResponse)
async def get_application(
    application_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _get_owned(db, user, application_id)


@router.patch("/applications/{application_id}", response_model=JobApplicationResponse)
async def update_application(
    application_id: str,
    updates: JobApplicationUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    application = _get_owned(db, user, application_id)
    changes = updates.model_dump(exclude_unset=True)
    # company and status are not nullable
    for required in ("company", "status"):
        if changes.get(required, "") is None:
            del changes[required]
    try:
        for field, value in changes.items():
            setattr(application, field, value)
        db.commit()
        db.refresh(application)
        return application
    except SQLAlchemyError as e:
        db.rollback()
        log.error("application_update_failed", application_id=application_id, error=str(e))
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/applications/{application_id}")
async def delete_application(
    application_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    application = _get_owned(db, user, application_id)
    db.delete(application)
    db.commit()
    return {"ok": True}
