from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .classifier import DEFAULT_RULES, ClassificationResult, ClassifierRules, classify_message, parse_gmail_message
from .config import Settings, get_settings
from .errors import PerMessageError, StoreError
from .gmail_service import GmailService
from .logging import get_logger
from .models import JobApplication, SyncLog, User
from .token_service import exchange_refresh_token

log = get_logger(__name__)

# Position of each status in the forward-only lattice. Terminal states share the top rank.
STATUS_RANK = {
    "other": 0,
    "applied": 1,
    "ghosted": 1,
    "assessment": 2,
    "interview": 3,
    "offer": 4,
    "rejected": 5,
    "withdrawn": 5,
}


@dataclass
class SyncStats:
    """Counters for one sync run, returned to the caller and stored in sync_logs."""

    scanned: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class EmailProcessor:
    def __init__(
        self,
        gmail_service: Optional[GmailService] = None,
        rules: ClassifierRules = DEFAULT_RULES,
        settings: Optional[Settings] = None,
        token_exchanger: Callable[..., str] = exchange_refresh_token,
    ):
        self.settings = settings or get_settings()
        self.gmail_service = gmail_service
        self.rules = rules
        self.token_exchanger = token_exchanger

    def _gmail_for(self, user: User) -> GmailService:
        """Exchange the user's refresh token and return an authorised Gmail client"""
        access_token = self.token_exchanger(user.google_refresh_token, self.settings)
        if self.gmail_service is not None:
            return self.gmail_service
        return GmailService(access_token=access_token, settings=self.settings)

    def sync_user(self, db: Session, user: User) -> SyncStats:
        """
        Main function: fetch emails, classify them, and reconcile them into the database.

        Anything failing before the per-message loop aborts the run without a sync log.
        Per-message failures are rolled back and counted as skipped.
        """
        log.info("gmail_sync_started", user_id=user.id)

        gmail = self._gmail_for(user)
        emails = gmail.search_job_emails()
        log.info("gmail_messages_fetched", user_id=user.id, count=len(emails))

        stats = SyncStats(scanned=len(emails))
        for email_data in emails:
            message_id = email_data.get("id") if isinstance(email_data, dict) else None
            try:
                outcome = self._process_message(db, user, email_data)
            except Exception as e:
                db.rollback()
                stats.skipped += 1
                log.error("message_processing_failed", user_id=user.id, message_id=message_id, error=str(e))
                continue

            if outcome == "created":
                stats.created += 1
            elif outcome == "updated":
                stats.updated += 1
            else:
                stats.skipped += 1

        self._log_sync(db, user, stats)
        log.info("gmail_sync_completed", user_id=user.id, **stats.to_dict())
        return stats

    def classify_email_id(self, user: User, email_id: str) -> ClassificationResult:
        """On-demand classification of one Gmail message. Nothing is written."""
        gmail = self._gmail_for(user)
        message = gmail.get_message_metadata(email_id)
        return classify_message(message["headers"], message["snippet"], self.rules)

    def _process_message(self, db: Session, user: User, email_data: Dict[str, Any]) -> str:
        message_id = email_data["id"]
        parsed = parse_gmail_message(email_data, self.rules)
        if parsed is None:
            log.debug("message_not_job_related", message_id=message_id)
            return "skipped"

        data = self._application_data(user, email_data, parsed)
        try:
            existing = self._find_existing(db, user.id, message_id)
            if existing is not None:
                self._update_application(db, existing, data)
                return "updated"

            try:
                db.add(JobApplication(**data))
                db.commit()
            except IntegrityError:
                # Another run inserted this message first; converge on its row
                db.rollback()
                existing = self._find_existing(db, user.id, message_id)
                if existing is None:
                    raise
                self._update_application(db, existing, data)
                return "updated"
        except SQLAlchemyError as e:
            raise PerMessageError(message_id, str(e)) from e

        log.debug("application_created", message_id=message_id, company=data["company"], status=data["status"])
        return "created"

    def _application_data(self, user: User, email_data: Dict[str, Any], parsed: ClassificationResult) -> Dict[str, Any]:
        return {
            "user_id": user.id,
            "source": "gmail",
            "company": parsed.company,
            "role": parsed.role,
            "status": parsed.status,
            "applied_at": parsed.applied_at,
            "email_id": email_data["id"],
            "thread_id": email_data.get("thread_id"),
            "snippet": (email_data.get("snippet") or "")[: self.settings.snippet_max_length],
            "metadata_": {
                "headers": dict(email_data.get("headers") or {}),
                "applied_at_estimated": parsed.applied_at_estimated,
            },
        }

    def _find_existing(self, db: Session, user_id: str, email_id: str) -> Optional[JobApplication]:
        return (
            db.query(JobApplication)
            .filter(JobApplication.user_id == user_id, JobApplication.email_id == email_id)
            .first()
        )

    def _update_application(self, db: Session, existing: JobApplication, data: Dict[str, Any]) -> None:
        """Overwrite every classifiable field with the latest classification."""
        if not self._status_may_change(existing.status, data["status"]):
            data = {**data, "status": existing.status}
        for field, value in data.items():
            setattr(existing, field, value)
        db.commit()

    def _status_may_change(self, current: Optional[str], new: str) -> bool:
        if self.settings.status_policy != "forward_only" or not current:
            return True
        return STATUS_RANK.get(new, 0) >= STATUS_RANK.get(current, 0)

    def _log_sync(self, db: Session, user: User, stats: SyncStats) -> None:
        try:
            db.add(SyncLog(user_id=user.id, status="success", stats=stats.to_dict()))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            log.error("sync_log_write_failed", user_id=user.id, error=str(e))
            raise StoreError(f"Failed to write sync log: {e}") from e
