"""Admin schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from learntrack.models.profile import Level
from learntrack.schemas.common import NotifiedResponse
from learntrack.schemas.learning import UserTaskResponse
from learntrack.schemas.profile import ProfileResponse


class ApproveRequest(BaseModel):
    points: Optional[int] = Field(None, ge=0)


class LevelChange(BaseModel):
    level: Level


class AdminStats(BaseModel):
    total_learners: int
    average_progress: float
    total_points: int
    pending_tasks: int


class PendingSubmission(UserTaskResponse):
    model_config = ConfigDict(from_attributes=True)
    
    user: Optional[ProfileResponse] = None


class AdminOverview(BaseModel):
    stats: AdminStats
    learners: List[ProfileResponse]
    pending_submissions: List[PendingSubmission]
    generated_at: datetime


class ApprovalResult(NotifiedResponse):
    attempt: UserTaskResponse
    points_granted: int
    total_points: int
    overall_progress: float


class ReviewResult(NotifiedResponse):
    attempt: UserTaskResponse


class LevelChangeResult(NotifiedResponse):
    profile: ProfileResponse
