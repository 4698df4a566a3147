"""Daily checkin engine."""

from datetime import date, timedelta
from typing import Dict, Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, and_
import structlog

from learntrack.core.config import settings
from learntrack.core.exceptions import AlreadyCheckedIn, NotFound
from learntrack.gamification.points_engine import PointsEngine
from learntrack.models.engagement import DailyCheckin
from learntrack.models.profile import Profile, Track

logger = structlog.get_logger()

TRACK_FLAGS = {
    Track.DATA: "data_task",
    Track.ENGLISH: "english_task",
    Track.SOFT: "soft_task",
}


class CheckinEngine:
    """Records at most one checkin per (learner, date, track)."""
    
    def __init__(self, db: AsyncSession):
        self.db = db
    
    async def check_in(
        self,
        user_id: str,
        track: Track,
        today: Optional[date] = None
    ) -> Dict[str, Any]:
        """Set today's flag for the track and grant the checkin points."""
        today = today or date.today()
        flag = TRACK_FLAGS[Track(track)]
        increment = settings.POINTS_DAILY_CHECKIN
        
        existing = await self.get_day(user_id, today)
        if existing is not None and getattr(existing, flag):
            raise AlreadyCheckedIn("You already checked in on this track today")
        
        try:
            if existing is None:
                await self._insert_day(user_id, today, flag, increment)
            else:
                await self._set_flag(existing.id, flag, increment)
            
            award = await PointsEngine(self.db).award_points(
                user_id,
                increment,
                "daily_checkin",
                f"Daily checkin ({Track(track).value})"
            )
            streak = await self._update_streak(user_id, today)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        
        logger.info("Daily checkin recorded", user_id=user_id, track=Track(track).value, date=today.isoformat())
        
        day = await self.get_day(user_id, today)
        return {
            "date": today,
            "track": Track(track),
            "points_awarded": increment,
            "total_points": award["total_points"],
            "streak_days": streak,
            "checkin": day
        }
    
    async def get_day(self, user_id: str, day: date) -> Optional[DailyCheckin]:
        result = await self.db.execute(
            select(DailyCheckin).where(
                and_(
                    DailyCheckin.user_id == user_id,
                    DailyCheckin.date == day
                )
            ).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()
    
    async def _insert_day(self, user_id: str, today: date, flag: str, increment: int):
        self.db.add(DailyCheckin(
            user_id=user_id,
            date=today,
            points_generated=increment,
            **{flag: True}
        ))
        try:
            await self.db.flush()
        except IntegrityError:
            # Row created concurrently for the same day; nothing else is
            # pending in this transaction yet
            await self.db.rollback()
            existing = await self.get_day(user_id, today)
            await self._set_flag(existing.id, flag, increment)
    
    async def _set_flag(self, checkin_id: str, flag: str, increment: int):
        column = getattr(DailyCheckin, flag)
        result = await self.db.execute(
            update(DailyCheckin)
            .where(and_(DailyCheckin.id == checkin_id, column == False))
            .values({
                flag: True,
                "points_generated": DailyCheckin.points_generated + increment
            })
        )
        if result.rowcount == 0:
            raise AlreadyCheckedIn("You already checked in on this track today")
    
    async def _update_streak(self, user_id: str, today: date) -> int:
        profile = await self.db.get(Profile, user_id, populate_existing=True)
        if profile is None:
            raise NotFound("Learner profile not found")
        
        if profile.last_checkin_date == today:
            return profile.streak_days
        
        if profile.last_checkin_date == today - timedelta(days=1):
            profile.streak_days = (profile.streak_days or 0) + 1
        else:
            profile.streak_days = 1
        profile.last_checkin_date = today
        await self.db.flush()
        return profile.streak_days
