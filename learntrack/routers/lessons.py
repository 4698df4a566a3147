"""Lesson endpoints."""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import structlog

from learntrack.analytics.progress_engine import completion_stats
from learntrack.core.database import get_db
from learntrack.core.dependencies import CurrentUser, get_current_user
from learntrack.core.exceptions import AccessDenied, NotFound, notification
from learntrack.models.learning import Lesson, CustomLesson
from learntrack.models.profile import Activity, Track
from learntrack.schemas.learning import LessonResponse, CustomLessonResponse, CustomLessonToggleResult

logger = structlog.get_logger()
router = APIRouter()


@router.get("", response_model=List[LessonResponse])
async def list_lessons(
    track: Optional[Track] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Published lessons in display order."""
    query = select(Lesson).where(Lesson.published == True)
    if track:
        query = query.where(Lesson.track == track.value)
    result = await db.execute(query.order_by(Lesson.order_index).limit(limit))
    return result.scalars().all()


@router.get("/custom", response_model=List[CustomLessonResponse])
async def list_custom_lessons(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Lessons assigned to the caller."""
    result = await db.execute(
        select(CustomLesson)
        .where(CustomLesson.user_id == current_user.user_id)
        .order_by(CustomLesson.created_at.desc())
    )
    return result.scalars().all()


@router.patch("/custom/{lesson_id}/toggle", response_model=CustomLessonToggleResult)
async def toggle_custom_lesson(
    lesson_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Flip the completion flag of one of the caller's lessons."""
    lesson = await db.get(CustomLesson, lesson_id)
    if lesson is None:
        raise NotFound("Lesson not found")
    if lesson.user_id != current_user.user_id:
        raise AccessDenied("You can only update your own lessons")
    
    lesson.completed = not lesson.completed
    lesson.completed_at = datetime.utcnow() if lesson.completed else None
    if lesson.completed:
        db.add(Activity(
            user_id=current_user.user_id,
            activity_type="lesson_completed",
            description=f"Completed lesson: {lesson.title}",
            points_earned=0
        ))
    
    try:
        await db.commit()
    except Exception as e:
        logger.error("Failed to update lesson", lesson_id=lesson_id, error=str(e))
        await db.rollback()
        raise
    
    result = await db.execute(
        select(CustomLesson.completed).where(CustomLesson.user_id == current_user.user_id)
    )
    title = "Lesson completed" if lesson.completed else "Lesson marked incomplete"
    return {
        "lesson": lesson,
        "stats": completion_stats(result.scalars().all()),
        "notification": notification(title)
    }
