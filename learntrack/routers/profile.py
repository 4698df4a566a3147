"""Profile endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
import structlog

from learntrack.analytics.progress_engine import completion_stats
from learntrack.core.config import settings
from learntrack.core.database import get_db
from learntrack.core.dependencies import CurrentUser, get_current_user
from learntrack.core.exceptions import AccessDenied, NotFound, ValidationFailed, notification
from learntrack.core.security import hash_password
from learntrack.models.learning import UserTask, CustomLesson
from learntrack.models.profile import User, Profile, Activity
from learntrack.realtime.auth_events import AuthEvent, AuthSession, get_auth_bus
from learntrack.routers.auth import validate_password
from learntrack.schemas.auth import PasswordChange
from learntrack.schemas.profile import ProfileView

logger = structlog.get_logger()
router = APIRouter()


async def load_profile_view(db: AsyncSession, user_id: str, viewer: CurrentUser) -> dict:
    profile = await db.get(Profile, user_id)
    if profile is None:
        raise NotFound("Profile not found")
    
    limit = settings.PROFILE_HISTORY_LIMIT
    activities = await db.execute(
        select(Activity)
        .where(Activity.user_id == user_id)
        .order_by(Activity.created_at.desc())
        .limit(limit)
    )
    tasks = await db.execute(
        select(UserTask)
        .options(selectinload(UserTask.task))
        .where(UserTask.user_id == user_id)
        .order_by(UserTask.created_at.desc())
        .limit(limit)
    )
    lessons = await db.execute(
        select(CustomLesson)
        .where(CustomLesson.user_id == user_id)
        .order_by(CustomLesson.created_at.desc())
    )
    custom_lessons = lessons.scalars().all()
    
    return {
        "profile": profile,
        "is_own_profile": user_id == viewer.user_id,
        "activities": activities.scalars().all(),
        "tasks": tasks.scalars().all(),
        "custom_lessons": custom_lessons,
        "custom_lesson_stats": completion_stats(lesson.completed for lesson in custom_lessons),
    }


@router.get("/me", response_model=ProfileView)
async def get_own_profile(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Profile page for the caller."""
    return await load_profile_view(db, current_user.user_id, current_user)


@router.get("/{user_id}", response_model=ProfileView)
async def get_profile(
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Profile page for a learner. Admins may view anyone."""
    if current_user.user_id != user_id and not current_user.is_admin:
        raise AccessDenied("Not authorized to view this profile")
    return await load_profile_view(db, user_id, current_user)


@router.post("/password")
async def change_password(
    payload: PasswordChange,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Change the caller's password."""
    if payload.new_password != payload.confirm_password:
        raise ValidationFailed("Passwords do not match")
    validate_password(payload.new_password)
    
    user = await db.get(User, current_user.user_id)
    if user is None:
        raise NotFound("Account not found")
    
    user.password_hash = hash_password(payload.new_password)
    try:
        await db.commit()
    except Exception as e:
        logger.error("Failed to change password", user_id=current_user.user_id, error=str(e))
        await db.rollback()
        raise
    
    logger.info("Password changed", user_id=current_user.user_id)
    await get_auth_bus().emit(
        AuthEvent.USER_UPDATED,
        AuthSession(current_user.user_id, current_user.session_id)
    )
    return {"notification": notification("Password updated", "Your password was changed")}
