"""Chat and daily checkin models."""

from datetime import datetime, date
from sqlalchemy import (
    Column, String, Integer, DateTime, Date, Boolean, ForeignKey,
    UniqueConstraint, CheckConstraint, Index
)
from sqlalchemy.orm import relationship

from learntrack.core.database import Base
from learntrack.models.profile import new_id


class ChatMessage(Base):
    """Chat message scoped to a lesson or to a level classroom."""
    __tablename__ = "chat_messages"
    
    # Autoincrement id is the storage-assigned order for equal timestamps
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    message = Column(String, nullable=False)
    lesson_id = Column(String(36))
    level_classroom = Column(String)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    
    author = relationship("Profile")
    
    __table_args__ = (
        CheckConstraint(
            "(lesson_id IS NULL) <> (level_classroom IS NULL)",
            name="ck_chat_messages_single_scope"
        ),
        Index("ix_chat_messages_lesson_created", "lesson_id", "created_at"),
        Index("ix_chat_messages_level_created", "level_classroom", "created_at"),
    )


class DailyCheckin(Base):
    """One row per learner per calendar date."""
    __tablename__ = "daily_checkins"
    
    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False, default=date.today)
    data_task = Column(Boolean, nullable=False, default=False)
    english_task = Column(Boolean, nullable=False, default=False)
    soft_task = Column(Boolean, nullable=False, default=False)
    points_generated = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_daily_checkins_user_date"),
    )
