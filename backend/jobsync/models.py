import uuid

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.sql import func

from .database import Base

APPLICATION_STATUSES = (
    "applied",
    "assessment",
    "interview",
    "offer",
    "rejected",
    "ghosted",
    "withdrawn",
    "other",
)
APPLICATION_SOURCES = ("gmail", "manual")
UNKNOWN_COMPANY = "Unknown Company"


def _new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String, unique=True, nullable=False)
    # Null until the user links a Google identity
    google_refresh_token = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class AuthSession(Base):
    __tablename__ = "auth_sessions"

    token = Column(String, primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class JobApplication(Base):
    __tablename__ = "applications"
    # NULL email ids (manual rows) never collide
    __table_args__ = (UniqueConstraint("user_id", "email_id", name="uq_applications_user_email"),)

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    source = Column(String, nullable=False, default="manual")  # "gmail", "manual"
    company = Column(String, nullable=False, default=UNKNOWN_COMPANY)
    role = Column(String, nullable=True)
    location = Column(String, nullable=True)
    status = Column(String, nullable=False, default="applied")
    job_post_url = Column(String, nullable=True)
    applied_at = Column(DateTime(timezone=True), nullable=True)
    email_id = Column(String, nullable=True)
    thread_id = Column(String, nullable=True)
    snippet = Column(Text)  # Small part of email for reference
    # "metadata" is reserved on declarative classes
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class SyncLog(Base):
    __tablename__ = "sync_logs"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String, nullable=False, default="success")
    stats = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
