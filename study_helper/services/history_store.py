"""
Owner-scoped storage for saved study results.

Every query filters on ``user_id``. An entry that exists but belongs to
someone else is reported exactly like a missing one.
"""
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from study_helper.core.clock import Clock, utcnow
from study_helper.core.config import HISTORY_TYPES
from study_helper.core.errors import NotFound, ValidationError
from study_helper.models.history import HistoryEntry

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
RECENT_ACTIVITY_DAYS = 7


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class HistoryStore:
    def __init__(self, db: Session, max_input_chars: int = 5000, clock: Optional[Clock] = None):
        self.db = db
        self.max_input_chars = max_input_chars
        self.clock = clock or utcnow

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def save(self, owner_id: int, type: str, input_text: str, result: str, url: Optional[str] = None) -> HistoryEntry:
        if not type or not input_text or not result:
            raise ValidationError("Missing required fields: type, inputText, result")
        if type not in HISTORY_TYPES:
            raise ValidationError("Invalid type. Must be: explain, summarize, or flashcards")
        if len(input_text) > self.max_input_chars:
            raise ValidationError(f"Input text cannot exceed {self.max_input_chars} characters")

        entry = HistoryEntry(
            user_id=owner_id,
            type=type,
            input_text=input_text,
            result=result,
            url=(url or "").strip(),
            created_at=self.clock(),
        )
        self.db.add(entry)
        self._commit()
        self.db.refresh(entry)
        return entry

    def _owned(self, owner_id: int):
        return self.db.query(HistoryEntry).filter(HistoryEntry.user_id == owner_id)

    def list(
        self,
        owner_id: int,
        type: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = MAX_PAGE_SIZE,
        skip: int = 0,
    ) -> Tuple[List[HistoryEntry], int]:
        query = self._owned(owner_id)

        # Unknown type filters are ignored rather than rejected
        if type and type in HISTORY_TYPES:
            query = query.filter(HistoryEntry.type == type)

        if search:
            pattern = f"%{_escape_like(search.strip())}%"
            query = query.filter(
                or_(
                    HistoryEntry.input_text.ilike(pattern, escape="\\"),
                    HistoryEntry.result.ilike(pattern, escape="\\"),
                )
            )

        total = query.count()
        entries = (
            query.order_by(HistoryEntry.created_at.desc(), HistoryEntry.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return entries, total

    def get(self, owner_id: int, entry_id: int) -> HistoryEntry:
        entry = self._owned(owner_id).filter(HistoryEntry.id == entry_id).first()
        if not entry:
            raise NotFound("History item not found")
        return entry

    def delete(self, owner_id: int, entry_id: int) -> None:
        entry = self.get(owner_id, entry_id)
        self.db.delete(entry)
        self._commit()

    def clear(self, owner_id: int) -> int:
        deleted = self._owned(owner_id).delete(synchronize_session=False)
        self._commit()
        logger.info("Cleared %s history entries for account %s", deleted, owner_id)
        return deleted

    def stats(self, owner_id: int) -> Dict[str, Any]:
        rows = (
            self.db.query(HistoryEntry.type, func.count(HistoryEntry.id))
            .filter(HistoryEntry.user_id == owner_id)
            .group_by(HistoryEntry.type)
            .all()
        )
        stats: Dict[str, Any] = {t: 0 for t in HISTORY_TYPES}
        for entry_type, count in rows:
            stats[entry_type] = count
        stats = {"total": sum(stats.values()), **stats}

        since = self.clock() - timedelta(days=RECENT_ACTIVITY_DAYS)
        recent = self._owned(owner_id).filter(HistoryEntry.created_at >= since).count()
        stats["recentActivity"] = {"last7Days": recent}
        return stats

    def cleanup(self, owner_id: int, days: int = 90) -> int:
        if days < 1:
            raise ValidationError("days must be at least 1")
        cutoff = self.clock() - timedelta(days=days)
        deleted = self._owned(owner_id).filter(HistoryEntry.created_at < cutoff).delete(
            synchronize_session=False
        )
        self._commit()
        return deleted

    def purge_older_than(self, days: int) -> int:
        """Retention sweep across every owner."""
        if days < 1:
            raise ValidationError("days must be at least 1")
        cutoff = self.clock() - timedelta(days=days)
        deleted = self.db.query(HistoryEntry).filter(HistoryEntry.created_at < cutoff).delete(
            synchronize_session=False
        )
        self._commit()
        logger.info("Purged %s history entries older than %s days", deleted, days)
        return deleted
