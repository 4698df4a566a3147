"""Task submission and admin review workflow.

Attempts move ``pending -> submitted`` (learner) and then
``submitted -> approved | rejected`` (admin). Both review outcomes are
terminal. Every transition is a conditional update on the current status,
so a repeated or concurrent review finds zero matching rows and fails
instead of granting points twice.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, and_
from sqlalchemy.orm import selectinload
import structlog

from learntrack.analytics.progress_engine import ProgressEngine
from learntrack.core.exceptions import AccessDenied, InvalidTransition, NotFound, ValidationFailed
from learntrack.gamification.points_engine import PointsEngine
from learntrack.models.learning import Task, UserTask, TaskStatus
from learntrack.models.profile import Profile, Level

logger = structlog.get_logger()


class ReviewEngine:
    """Status transitions for task attempts."""
    
    def __init__(self, db: AsyncSession):
        self.db = db
    
    async def start_task(self, user_id: str, task_id: str) -> UserTask:
        """Open a pending attempt for the learner."""
        task = await self.db.get(Task, task_id)
        if task is None:
            raise NotFound("Task not found")
        
        attempt = UserTask(user_id=user_id, task_id=task_id, status=TaskStatus.PENDING.value)
        self.db.add(attempt)
        try:
            await self.db.commit()
        except Exception as e:
            logger.error("Failed to start task", user_id=user_id, task_id=task_id, error=str(e))
            await self.db.rollback()
            raise
        
        logger.info("Task started", user_id=user_id, task_id=task_id, user_task_id=attempt.id)
        return await self.get_attempt(attempt.id)
    
    async def submit(self, user_task_id: str, user_id: str, proof: str) -> UserTask:
        """Attach proof and move the learner's attempt to submitted."""
        proof = (proof or "").strip()
        if not proof:
            raise ValidationFailed("Proof of completion is required")
        
        attempt = await self.get_attempt(user_task_id)
        if attempt.user_id != user_id:
            raise AccessDenied("You can only submit your own tasks")
        
        await self._transition(
            user_task_id,
            TaskStatus.PENDING,
            status=TaskStatus.SUBMITTED.value,
            completion_proof=proof,
            submitted_at=datetime.utcnow()
        )
        await self.db.commit()
        
        logger.info("Task submitted", user_id=user_id, user_task_id=user_task_id)
        return await self.get_attempt(user_task_id)
    
    async def approve(
        self,
        user_task_id: str,
        admin_id: str,
        points: Optional[int] = None
    ) -> Dict[str, Any]:
        """Approve a submission and grant its points in one transaction."""
        attempt = await self.get_attempt(user_task_id)
        granted = attempt.task.points if points is None else points
        if granted < 0:
            raise ValidationFailed("Granted points cannot be negative")
        
        try:
            await self._transition(
                user_task_id,
                TaskStatus.SUBMITTED,
                status=TaskStatus.APPROVED.value,
                points_granted=granted,
                reviewed_at=datetime.utcnow(),
                reviewed_by=admin_id
            )
            award = await PointsEngine(self.db).award_points(
                attempt.user_id,
                granted,
                "task_approved",
                f"Task approved: {attempt.task.title}"
            )
            progress = await ProgressEngine(self.db).recompute_track_progress(
                attempt.user_id,
                attempt.task.track
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        
        logger.info(
            "Submission approved",
            user_task_id=user_task_id,
            user_id=attempt.user_id,
            admin_id=admin_id,
            points=granted
        )
        
        return {
            "attempt": await self.get_attempt(user_task_id),
            "points_granted": granted,
            "total_points": award["total_points"],
            "overall_progress": progress["overall_progress"],
        }
    
    async def reject(self, user_task_id: str, admin_id: str) -> UserTask:
        """Reject a submission. No points are granted."""
        attempt = await self.get_attempt(user_task_id)
        
        await self._transition(
            user_task_id,
            TaskStatus.SUBMITTED,
            status=TaskStatus.REJECTED.value,
            reviewed_at=datetime.utcnow(),
            reviewed_by=admin_id
        )
        await self.db.commit()
        
        logger.info("Submission rejected", user_task_id=user_task_id, user_id=attempt.user_id, admin_id=admin_id)
        return await self.get_attempt(user_task_id)
    
    async def change_level(self, user_id: str, level: Level) -> Profile:
        result = await self.db.execute(
            update(Profile).where(Profile.id == user_id).values(level=Level(level).value)
        )
        if result.rowcount == 0:
            raise NotFound("Learner not found")
        await self.db.commit()
        
        logger.info("Learner level changed", user_id=user_id, level=Level(level).value)
        return await self.db.get(Profile, user_id, populate_existing=True)
    
    async def get_attempt(self, user_task_id: str) -> UserTask:
        result = await self.db.execute(
            select(UserTask)
            .options(selectinload(UserTask.task), selectinload(UserTask.user))
            .where(UserTask.id == user_task_id)
            .execution_options(populate_existing=True)
        )
        attempt = result.scalar_one_or_none()
        if attempt is None:
            raise NotFound("Task submission not found")
        return attempt
    
    async def _transition(self, user_task_id: str, expected: TaskStatus, **values):
        result = await self.db.execute(
            update(UserTask)
            .where(
                and_(
                    UserTask.id == user_task_id,
                    UserTask.status == expected.value
                )
            )
            .values(**values)
        )
        if result.rowcount == 0:
            current = await self.db.scalar(
                select(UserTask.status).where(UserTask.id == user_task_id)
            )
            raise InvalidTransition(
                f"Cannot move a {current} task to {values['status']}",
                extra={"current_status": current}
            )
