"""
Model for saved study results (explanations, summaries, flashcards).
"""
from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Index, CheckConstraint
from sqlalchemy.orm import relationship

from study_helper.core.clock import utcnow
from study_helper.db.base import Base


class HistoryEntry(Base):
    __tablename__ = "history_entries"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(20), nullable=False)
    input_text = Column(Text, nullable=False)
    result = Column(Text, nullable=False)
    url = Column(String(2048), nullable=False, default="")
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    owner = relationship("Account", back_populates="history")

    __table_args__ = (
        CheckConstraint("type IN ('explain', 'summarize', 'flashcards')", name="ck_history_entries_type"),
        Index("ix_history_entries_user_created", "user_id", "created_at"),
        Index("ix_history_entries_user_type_created", "user_id", "type", "created_at"),
    )

    def __repr__(self):
        return f"<HistoryEntry(id={self.id}, user_id={self.user_id}, type={self.type})>"
