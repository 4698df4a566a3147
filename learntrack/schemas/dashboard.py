"""Dashboard schemas."""

from typing import List, Optional

from pydantic import BaseModel

from learntrack.schemas.engagement import DailyCheckinResponse
from learntrack.schemas.learning import LessonResponse, UserTaskResponse
from learntrack.schemas.profile import ProfileResponse


class DashboardResponse(BaseModel):
    profile: ProfileResponse
    recent_tasks: List[UserTaskResponse]
    lessons: List[LessonResponse]
    today_checkin: Optional[DailyCheckinResponse] = None
