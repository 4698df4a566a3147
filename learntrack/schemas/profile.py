"""Profile schemas."""

from datetime import datetime, date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from learntrack.models.profile import Level, Role
from learntrack.schemas.learning import CustomLessonResponse, CompletionStats, UserTaskResponse


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    
    id: str
    full_name: str
    avatar_url: Optional[str] = None
    role: Role
    level: Level
    governorate: Optional[str] = None
    membership_number: Optional[str] = None
    points: int
    data_progress: float
    english_progress: float
    soft_progress: float
    overall_progress: float
    streak_days: int
    last_checkin_date: Optional[date] = None
    join_date: Optional[datetime] = None


class ActivityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    
    id: str
    activity_type: str
    description: str
    points_earned: int
    created_at: datetime


class ProfileView(BaseModel):
    profile: ProfileResponse
    is_own_profile: bool
    activities: List[ActivityResponse]
    tasks: List[UserTaskResponse]
    custom_lessons: List[CustomLessonResponse]
    custom_lesson_stats: CompletionStats
