"""
Account persistence and password checks.

Emails are normalized (trimmed, lowercased) before every write and lookup, so
the unique index on ``accounts.email`` gives case-insensitive uniqueness.
"""
import logging
import re
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from study_helper.core.clock import Clock, utcnow
from study_helper.core.errors import DuplicateResource, ValidationError
from study_helper.models.history import HistoryEntry
from study_helper.models.user import Account
from study_helper.utils.auth import PasswordHasher

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")
MIN_PASSWORD_LENGTH = 6
# bcrypt ignores everything past its first 72 bytes
MAX_PASSWORD_BYTES = 72


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def validate_password(password: Optional[str], label: str = "Password") -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"{label} must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"{label} cannot exceed {MAX_PASSWORD_BYTES} bytes")


class CredentialStore:
    def __init__(
        self,
        db: Session,
        hasher: PasswordHasher,
        default_daily_limit: int = 100,
        clock: Optional[Clock] = None,
    ):
        self.db = db
        self.hasher = hasher
        self.default_daily_limit = default_daily_limit
        self.clock = clock or utcnow

    def create(self, email: str, password: str) -> Account:
        if not email or not password:
            raise ValidationError("Please provide email and password")

        normalized_email = normalize_email(email)
        if not EMAIL_PATTERN.match(normalized_email):
            raise ValidationError("Please provide a valid email")
        validate_password(password)

        if self.find_by_email(normalized_email):
            raise DuplicateResource("User already exists with this email")

        now = self.clock()
        account = Account(
            email=normalized_email,
            hashed_password=self.hasher.hash_password(password),
            request_count=0,
            window_start=now,
            created_at=now,
            daily_limit=self.default_daily_limit,
        )
        try:
            self.db.add(account)
            self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            self.db.rollback()
            raise DuplicateResource("User already exists with this email")
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(account)
        logger.info("Created account %s", account.id)
        return account

    def find_by_email(self, email: str) -> Optional[Account]:
        normalized_email = normalize_email(email)
        if not normalized_email:
            return None
        return self.db.query(Account).filter(Account.email == normalized_email).first()

    def find_by_id(self, account_id: int) -> Optional[Account]:
        return self.db.query(Account).filter(Account.id == account_id).first()

    def verify_password(self, account: Account, password: str) -> bool:
        if not password:
            return False
        return self.hasher.verify_password(password, account.hashed_password)

    def update_password(self, account: Account, new_password: str) -> Account:
        """Re-hash with a fresh salt. Callers must have re-verified the current password."""
        validate_password(new_password, label="New password")
        account.hashed_password = self.hasher.hash_password(new_password)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(account)
        logger.info("Password updated for account %s", account.id)
        return account

    def delete(self, account: Account) -> None:
        account_id = account.id
        try:
            # Explicit delete so SQLite without foreign key enforcement matches PostgreSQL
            self.db.query(HistoryEntry).filter(HistoryEntry.user_id == account_id).delete(
                synchronize_session=False
            )
            self.db.delete(account)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        logger.info("Deleted account %s", account_id)
