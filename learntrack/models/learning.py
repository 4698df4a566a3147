"""Task and lesson models."""

from datetime import datetime
from enum import Enum
from sqlalchemy import Column, String, Integer, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.orm import relationship

from learntrack.core.database import Base
from learntrack.models.profile import new_id


class TaskStatus(str, Enum):
    """Status of a learner's attempt at a task."""
    PENDING = "pending"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class Task(Base):
    """Task definition."""
    __tablename__ = "tasks"
    
    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String, nullable=False)
    description = Column(String)
    track = Column(String, nullable=False, index=True)
    points = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    
    attempts = relationship("UserTask", back_populates="task")


class UserTask(Base):
    """A learner's attempt at a task."""
    __tablename__ = "user_tasks"
    
    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False)
    status = Column(String, nullable=False, default=TaskStatus.PENDING.value)
    completion_proof = Column(String)
    points_granted = Column(Integer)
    created_at = Column(DateTime, default=datetime.utcnow)
    submitted_at = Column(DateTime)
    reviewed_at = Column(DateTime)
    reviewed_by = Column(String(36))
    
    task = relationship("Task", back_populates="attempts")
    user = relationship("Profile")
    
    __table_args__ = (
        Index("ix_user_tasks_status_submitted", "status", "submitted_at"),
        Index("ix_user_tasks_user_created", "user_id", "created_at"),
    )


class Lesson(Base):
    """Published lesson content. Read-only for learners."""
    __tablename__ = "lessons"
    
    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String, nullable=False)
    description = Column(String)
    track = Column(String, nullable=False)
    duration_minutes = Column(Integer, default=0)
    order_index = Column(Integer, nullable=False, default=0)
    published = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class CustomLesson(Base):
    """Lesson assigned to a single learner, with a completion flag."""
    __tablename__ = "custom_lessons"
    
    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(String)
    video_link = Column(String)
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
