from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from study_helper.core.clock import utcnow
from study_helper.db.base import Base


class Account(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)  # Always stored lowercased
    hashed_password = Column(String(255), nullable=False)

    # Daily AI usage window, reset lazily on access
    request_count = Column(Integer, default=0, nullable=False)
    window_start = Column(DateTime, default=utcnow, nullable=False)
    daily_limit = Column(Integer, default=100, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    history = relationship(
        "HistoryEntry",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Account(id={self.id}, email={self.email}, usage={self.request_count}/{self.daily_limit})>"
