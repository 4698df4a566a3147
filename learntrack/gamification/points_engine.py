"""Points awarding engine."""

from typing import Dict, Any

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
import structlog

from learntrack.core.exceptions import NotFound
from learntrack.models.profile import Profile, Activity

logger = structlog.get_logger()


class PointsEngine:
    """Adds points to a learner's cumulative total.
    
    The increment is evaluated by the database (``points = points + n``)
    inside the caller's transaction, so concurrent awards never overwrite
    each other. The caller commits.
    """
    
    def __init__(self, db: AsyncSession):
        self.db = db
    
    async def award_points(
        self,
        user_id: str,
        points: int,
        activity_type: str,
        description: str
    ) -> Dict[str, Any]:
        """Increment the learner's total and record the activity."""
        result = await self.db.execute(
            update(Profile)
            .where(Profile.id == user_id)
            .values(points=Profile.points + points)
        )
        if result.rowcount == 0:
            raise NotFound("Learner profile not found")
        
        self.db.add(Activity(
            user_id=user_id,
            activity_type=activity_type,
            description=description,
            points_earned=points
        ))
        await self.db.flush()
        
        total = await self.db.scalar(select(Profile.points).where(Profile.id == user_id))
        
        logger.info(
            "Points awarded",
            user_id=user_id,
            points=points,
            reason=activity_type,
            total_points=total
        )
        
        return {
            "points_awarded": points,
            "total_points": total
        }
