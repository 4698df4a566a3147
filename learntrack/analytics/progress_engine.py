"""Derived progress statistics."""

from typing import Any, Dict, Iterable, List, Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, func
import numpy as np
import structlog

from learntrack.models.learning import Task, UserTask, TaskStatus
from learntrack.models.profile import Profile, Track

logger = structlog.get_logger()

TRACK_COLUMNS = {
    Track.DATA: "data_progress",
    Track.ENGLISH: "english_progress",
    Track.SOFT: "soft_progress",
}


def percentage(done: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(done / total * 100, 2)


def mean(values: Sequence[float]) -> float:
    """Mean of the values, 0 for an empty sequence."""
    if len(values) == 0:
        return 0.0
    return round(float(np.mean(np.asarray(values, dtype=float))), 2)


def completion_stats(completed_flags: Iterable[bool]) -> Dict[str, Any]:
    """Completed/total/percent for a list of completion flags."""
    flags = list(completed_flags)
    completed = sum(1 for flag in flags if flag)
    return {
        "completed": completed,
        "total": len(flags),
        "percent": percentage(completed, len(flags)),
    }


def summarize_learners(learners: List[Profile], pending_count: int) -> Dict[str, Any]:
    """Aggregate statistics shown on the admin overview."""
    points = np.asarray([learner.points or 0 for learner in learners], dtype=int)
    return {
        "total_learners": len(learners),
        "average_progress": mean([learner.overall_progress or 0.0 for learner in learners]),
        "total_points": int(points.sum()) if len(points) else 0,
        "pending_tasks": pending_count,
    }


class ProgressEngine:
    """Recomputes per-track progress from approved tasks."""
    
    def __init__(self, db: AsyncSession):
        self.db = db
    
    async def recompute_track_progress(self, user_id: str, track: Track) -> Dict[str, float]:
        """Track progress is approved tasks over all tasks in the track."""
        track = Track(track)
        
        total = await self.db.scalar(
            select(func.count(Task.id)).where(Task.track == track.value)
        )
        approved = await self.db.scalar(
            select(func.count(func.distinct(UserTask.task_id)))
            .join(Task, Task.id == UserTask.task_id)
            .where(
                and_(
                    UserTask.user_id == user_id,
                    UserTask.status == TaskStatus.APPROVED.value,
                    Task.track == track.value
                )
            )
        )
        
        profile = await self.db.get(Profile, user_id, populate_existing=True)
        setattr(profile, TRACK_COLUMNS[track], percentage(approved or 0, total or 0))
        profile.overall_progress = mean([
            profile.data_progress or 0.0,
            profile.english_progress or 0.0,
            profile.soft_progress or 0.0,
        ])
        await self.db.flush()
        
        logger.debug(
            "Track progress recomputed",
            user_id=user_id,
            track=track.value,
            progress=getattr(profile, TRACK_COLUMNS[track]),
            overall=profile.overall_progress
        )
        return {
            "track_progress": getattr(profile, TRACK_COLUMNS[track]),
            "overall_progress": profile.overall_progress,
        }
