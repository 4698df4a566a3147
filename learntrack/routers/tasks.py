"""Learner task endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from learntrack.core.database import get_db
from learntrack.core.dependencies import CurrentUser, get_current_user
from learntrack.core.exceptions import notification
from learntrack.models.learning import Task, UserTask, TaskStatus
from learntrack.models.profile import Track
from learntrack.review.review_engine import ReviewEngine
from learntrack.schemas.learning import TaskResponse, UserTaskResponse, UserTaskResult, SubmitProof

router = APIRouter()


@router.get("", response_model=List[TaskResponse])
async def list_tasks(
    track: Optional[Track] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Available task definitions."""
    query = select(Task).order_by(Task.created_at)
    if track:
        query = query.where(Task.track == track.value)
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/mine", response_model=List[UserTaskResponse])
async def list_my_attempts(
    status_filter: Optional[TaskStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """The caller's task attempts, newest first."""
    query = (
        select(UserTask)
        .options(selectinload(UserTask.task))
        .where(UserTask.user_id == current_user.user_id)
    )
    if status_filter:
        query = query.where(UserTask.status == status_filter.value)
    result = await db.execute(query.order_by(UserTask.created_at.desc()).limit(limit))
    return result.scalars().all()


@router.post("/{task_id}/start", response_model=UserTaskResult, status_code=status.HTTP_201_CREATED)
async def start_task(
    task_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    attempt = await ReviewEngine(db).start_task(current_user.user_id, task_id)
    return {"attempt": attempt, "notification": notification("Task started")}


@router.post("/attempts/{user_task_id}/submit", response_model=UserTaskResult)
async def submit_attempt(
    user_task_id: str,
    payload: SubmitProof,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Submit proof of completion for review."""
    attempt = await ReviewEngine(db).submit(user_task_id, current_user.user_id, payload.proof)
    return {
        "attempt": attempt,
        "notification": notification("Submitted", "Your proof was sent for review")
    }
