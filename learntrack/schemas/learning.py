"""Task and lesson schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from learntrack.models.learning import TaskStatus
from learntrack.models.profile import Track
from learntrack.schemas.common import NotifiedResponse


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    track: Track
    points: int = Field(0, ge=0)


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    
    id: str
    title: str
    description: Optional[str] = None
    track: Track
    points: int


class UserTaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    
    id: str
    user_id: str
    task_id: str
    status: TaskStatus
    completion_proof: Optional[str] = None
    points_granted: Optional[int] = None
    created_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    task: Optional[TaskResponse] = None


class UserTaskResult(NotifiedResponse):
    attempt: UserTaskResponse


class SubmitProof(BaseModel):
    proof: str = ""


class LessonCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    track: Track
    duration_minutes: int = Field(0, ge=0)
    order_index: int = 0
    published: bool = True


class LessonResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    
    id: str
    title: str
    description: Optional[str] = None
    track: Track
    duration_minutes: Optional[int] = None
    order_index: int
    published: bool


class CustomLessonCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    video_link: Optional[str] = None


class CustomLessonResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    
    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    video_link: Optional[str] = None
    completed: bool
    completed_at: Optional[datetime] = None


class CompletionStats(BaseModel):
    completed: int
    total: int
    percent: float


class CustomLessonToggleResult(NotifiedResponse):
    lesson: CustomLessonResponse
    stats: CompletionStats
