"""Checkin and chat schemas."""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from learntrack.models.profile import Level, Track
from learntrack.schemas.common import NotifiedResponse


class CheckinRequest(BaseModel):
    track: Track


class DailyCheckinResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    
    date: date
    data_task: bool
    english_task: bool
    soft_task: bool
    points_generated: int


class CheckinResult(NotifiedResponse):
    date: date
    track: Track
    points_awarded: int
    total_points: int
    streak_days: int
    checkin: DailyCheckinResponse


class ChatMessageCreate(BaseModel):
    message: str = ""
    lesson_id: Optional[str] = None
    level: Optional[Level] = None


class ChatAuthor(BaseModel):
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None


class ChatMessageResponse(BaseModel):
    id: int
    user_id: str
    message: str
    created_at: datetime
    lesson_id: Optional[str] = None
    level_classroom: Optional[str] = None
    author: ChatAuthor
    can_delete: bool


class ChatMessageList(BaseModel):
    focus_message_id: Optional[int] = None
    messages: List[ChatMessageResponse]


class ChatMessageResult(NotifiedResponse):
    message: ChatMessageResponse
