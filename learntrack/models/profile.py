"""Identity and learner profile models."""

from datetime import datetime
from enum import Enum
from sqlalchemy import Column, String, Integer, Float, DateTime, Date, ForeignKey, Index
import uuid

from learntrack.core.database import Base


def new_id() -> str:
    return str(uuid.uuid4())


class Role(str, Enum):
    """Account roles."""
    LEARNER = "learner"
    ADMIN = "admin"


class Level(str, Enum):
    """Learner levels, also used as classroom chat scopes."""
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class Track(str, Enum):
    """Learning tracks progress and checkins are recorded against."""
    DATA = "data"
    ENGLISH = "english"
    SOFT = "soft"


class User(Base):
    """Login credentials."""
    __tablename__ = "users"
    
    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class Profile(Base):
    """Learner profile with cumulative points and per-track progress."""
    __tablename__ = "profiles"
    
    id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    full_name = Column(String, nullable=False)
    avatar_url = Column(String)
    role = Column(String, nullable=False, default=Role.LEARNER.value)
    level = Column(String, nullable=False, default=Level.BEGINNER.value)
    governorate = Column(String)
    membership_number = Column(String)
    points = Column(Integer, nullable=False, default=0)
    data_progress = Column(Float, nullable=False, default=0.0)
    english_progress = Column(Float, nullable=False, default=0.0)
    soft_progress = Column(Float, nullable=False, default=0.0)
    overall_progress = Column(Float, nullable=False, default=0.0)
    streak_days = Column(Integer, nullable=False, default=0)
    last_checkin_date = Column(Date)
    join_date = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    __table_args__ = (
        Index("ix_profiles_role_points", "role", "points"),
    )


class Activity(Base):
    """Timeline entry for things a learner did or was granted."""
    __tablename__ = "activities"
    
    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    activity_type = Column(String, nullable=False)  # task_approved, daily_checkin, lesson_completed
    description = Column(String, nullable=False)
    points_earned = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    
    __table_args__ = (
        Index("ix_activities_user_created", "user_id", "created_at"),
    )
