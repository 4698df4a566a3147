"""Daily checkin endpoints."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from learntrack.core.database import get_db
from learntrack.core.dependencies import CurrentUser, get_current_user
from learntrack.core.exceptions import notification
from learntrack.gamification.checkin_engine import CheckinEngine
from learntrack.schemas.engagement import CheckinRequest, CheckinResult, DailyCheckinResponse

router = APIRouter()


@router.post("", response_model=CheckinResult)
async def check_in(
    payload: CheckinRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Check in on a track for today."""
    result = await CheckinEngine(db).check_in(current_user.user_id, payload.track)
    result["notification"] = notification(
        "Great!",
        f"You earned {result['points_awarded']} points for today's checkin"
    )
    return result


@router.get("/today", response_model=Optional[DailyCheckinResponse])
async def get_today(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await CheckinEngine(db).get_day(current_user.user_id, date.today())
