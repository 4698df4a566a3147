"""Learner dashboard endpoint."""

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from sqlalchemy.orm import selectinload
import structlog

from learntrack.core.config import settings
from learntrack.core.database import get_db
from learntrack.core.dependencies import CurrentUser, get_current_user
from learntrack.core.exceptions import NotFound
from learntrack.models.engagement import DailyCheckin
from learntrack.models.learning import UserTask, Lesson
from learntrack.models.profile import Profile
from learntrack.schemas.dashboard import DashboardResponse

logger = structlog.get_logger()
router = APIRouter()


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Profile, recent task attempts, suggested lessons and today's checkins."""
    profile = await db.get(Profile, current_user.user_id)
    if profile is None:
        raise NotFound("Profile not found")
    
    tasks = await db.execute(
        select(UserTask)
        .options(selectinload(UserTask.task))
        .where(UserTask.user_id == current_user.user_id)
        .order_by(UserTask.created_at.desc())
        .limit(settings.DASHBOARD_TASK_LIMIT)
    )
    
    lessons = await db.execute(
        select(Lesson)
        .where(Lesson.published == True)
        .order_by(Lesson.order_index)
        .limit(settings.DASHBOARD_LESSON_LIMIT)
    )
    
    today_checkin = await db.scalar(
        select(DailyCheckin).where(
            and_(
                DailyCheckin.user_id == current_user.user_id,
                DailyCheckin.date == date.today()
            )
        )
    )
    
    return {
        "profile": profile,
        "recent_tasks": tasks.scalars().all(),
        "lessons": lessons.scalars().all(),
        "today_checkin": today_checkin,
    }
