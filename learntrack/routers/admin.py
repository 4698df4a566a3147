"""Admin review and learner management endpoints."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
import structlog

from learntrack.analytics.progress_engine import summarize_learners
from learntrack.core.config import settings
from learntrack.core.database import get_db
from learntrack.core.dependencies import CurrentUser, get_cache, require_admin
from learntrack.core.exceptions import NotFound, notification
from learntrack.models.learning import Task, UserTask, Lesson, CustomLesson, TaskStatus
from learntrack.models.profile import Profile, Role
from learntrack.review.review_engine import ReviewEngine
from learntrack.schemas.admin import (
    AdminOverview, ApproveRequest, ApprovalResult, ReviewResult, LevelChange, LevelChangeResult
)
from learntrack.schemas.learning import (
    TaskCreate, TaskResponse, LessonCreate, LessonResponse, CustomLessonCreate, CustomLessonResponse
)

logger = structlog.get_logger()
router = APIRouter()

OVERVIEW_CACHE_KEY = "admin:overview"


async def invalidate_overview():
    cache = await get_cache()
    await cache.delete(OVERVIEW_CACHE_KEY)


async def _commit(db: AsyncSession, what: str):
    try:
        await db.commit()
    except Exception as e:
        logger.error(f"Failed to create {what}", error=str(e))
        await db.rollback()
        raise


@router.get("/overview", response_model=AdminOverview)
async def get_overview(
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Learners by points, submissions awaiting review and summary stats."""
    cache = await get_cache()
    cached = await cache.get(OVERVIEW_CACHE_KEY)
    if cached:
        return AdminOverview.model_validate(cached)
    
    learners = await db.execute(
        select(Profile)
        .where(Profile.role == Role.LEARNER.value)
        .order_by(Profile.points.desc())
    )
    learners = learners.scalars().all()
    
    pending = await db.execute(
        select(UserTask)
        .options(selectinload(UserTask.task), selectinload(UserTask.user))
        .where(UserTask.status == TaskStatus.SUBMITTED.value)
        .order_by(UserTask.submitted_at.desc())
    )
    pending = pending.scalars().all()
    
    overview = AdminOverview.model_validate({
        "stats": summarize_learners(learners, len(pending)),
        "learners": learners,
        "pending_submissions": pending,
        "generated_at": datetime.utcnow(),
    })
    await cache.set(OVERVIEW_CACHE_KEY, overview.model_dump(mode="json"), ttl=settings.DASHBOARD_CACHE_TTL)
    return overview


@router.post("/submissions/{user_task_id}/approve", response_model=ApprovalResult)
async def approve_submission(
    user_task_id: str,
    payload: Optional[ApproveRequest] = None,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Approve a submitted task and grant its points."""
    points = payload.points if payload else None
    result = await ReviewEngine(db).approve(user_task_id, current_user.user_id, points)
    await invalidate_overview()
    result["notification"] = notification(
        "Approved",
        f"Granted {result['points_granted']} points to the learner"
    )
    return result


@router.post("/submissions/{user_task_id}/reject", response_model=ReviewResult)
async def reject_submission(
    user_task_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    attempt = await ReviewEngine(db).reject(user_task_id, current_user.user_id)
    await invalidate_overview()
    return {"attempt": attempt, "notification": notification("Rejected")}


@router.patch("/learners/{user_id}/level", response_model=LevelChangeResult)
async def change_level(
    user_id: str,
    payload: LevelChange,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Move a learner to another level."""
    profile = await ReviewEngine(db).change_level(user_id, payload.level)
    await invalidate_overview()
    return {
        "profile": profile,
        "notification": notification("Level updated", f"Level changed to {payload.level.value}")
    }


@router.post("/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    payload: TaskCreate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    task = Task(
        title=payload.title,
        description=payload.description,
        track=payload.track.value,
        points=payload.points
    )
    db.add(task)
    await _commit(db, "task")
    logger.info("Task created", task_id=task.id, track=task.track, points=task.points)
    return task


@router.post("/lessons", response_model=LessonResponse, status_code=status.HTTP_201_CREATED)
async def create_lesson(
    payload: LessonCreate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    lesson = Lesson(**payload.model_dump(exclude={"track"}), track=payload.track.value)
    db.add(lesson)
    await _commit(db, "lesson")
    logger.info("Lesson created", lesson_id=lesson.id)
    return lesson


@router.post(
    "/learners/{user_id}/custom-lessons",
    response_model=CustomLessonResponse,
    status_code=status.HTTP_201_CREATED
)
async def assign_custom_lesson(
    user_id: str,
    payload: CustomLessonCreate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Assign a lesson to a single learner."""
    if await db.get(Profile, user_id) is None:
        raise NotFound("Learner not found")
    
    lesson = CustomLesson(user_id=user_id, **payload.model_dump())
    db.add(lesson)
    await _commit(db, "custom lesson")
    logger.info("Custom lesson assigned", lesson_id=lesson.id, user_id=user_id)
    return lesson
