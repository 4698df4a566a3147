"""Database factories shared by the tests."""

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, update

from learntrack.core.database import AsyncSessionLocal
from learntrack.core.security import hash_password
from learntrack.models.engagement import ChatMessage
from learntrack.models.learning import Task, UserTask, Lesson, CustomLesson, TaskStatus
from learntrack.models.profile import User, Profile, Role, Level, Track


async def create_profile(
    full_name: str = "Learner",
    role: Role = Role.LEARNER,
    points: int = 0,
    level: Level = Level.BEGINNER,
) -> str:
    async with AsyncSessionLocal() as db:
        user = User(email=f"{full_name.lower().replace(' ', '.')}.{datetime.utcnow().timestamp()}@example.com",
                    password_hash=hash_password("secret123"))
        db.add(user)
        await db.flush()
        db.add(Profile(id=user.id, full_name=full_name, role=role.value, level=level.value, points=points))
        await db.commit()
        return user.id


async def set_role(user_id: str, role: Role):
    async with AsyncSessionLocal() as db:
        await db.execute(update(Profile).where(Profile.id == user_id).values(role=role.value))
        await db.commit()


async def create_task(title: str = "Clean a dataset", track: Track = Track.DATA, points: int = 10) -> str:
    async with AsyncSessionLocal() as db:
        task = Task(title=title, track=track.value, points=points)
        db.add(task)
        await db.commit()
        return task.id


async def create_attempt(
    user_id: str,
    task_id: str,
    status: TaskStatus = TaskStatus.SUBMITTED,
    proof: Optional[str] = "https://example.com/proof",
    submitted_at: Optional[datetime] = None,
) -> str:
    async with AsyncSessionLocal() as db:
        attempt = UserTask(
            user_id=user_id,
            task_id=task_id,
            status=status.value,
            completion_proof=proof,
            submitted_at=submitted_at or (datetime.utcnow() if status != TaskStatus.PENDING else None),
        )
        db.add(attempt)
        await db.commit()
        return attempt.id


async def create_lesson(title: str, order_index: int, published: bool = True, track: Track = Track.ENGLISH) -> str:
    async with AsyncSessionLocal() as db:
        lesson = Lesson(title=title, order_index=order_index, published=published, track=track.value)
        db.add(lesson)
        await db.commit()
        return lesson.id


async def create_custom_lesson(user_id: str, title: str = "Pivot tables") -> str:
    async with AsyncSessionLocal() as db:
        lesson = CustomLesson(user_id=user_id, title=title)
        db.add(lesson)
        await db.commit()
        return lesson.id


async def create_message(
    user_id: str,
    message: str,
    created_at: datetime,
    lesson_id: Optional[str] = None,
    level_classroom: Optional[str] = None,
) -> int:
    async with AsyncSessionLocal() as db:
        row = ChatMessage(
            user_id=user_id,
            message=message,
            created_at=created_at,
            lesson_id=lesson_id,
            level_classroom=level_classroom,
        )
        db.add(row)
        await db.commit()
        return row.id


async def get_profile(user_id: str) -> Profile:
    async with AsyncSessionLocal() as db:
        return await db.get(Profile, user_id)


async def set_points(user_id: str, points: int):
    async with AsyncSessionLocal() as db:
        await db.execute(update(Profile).where(Profile.id == user_id).values(points=points))
        await db.commit()


async def delete_profile(user_id: str):
    async with AsyncSessionLocal() as db:
        await db.execute(delete(Profile).where(Profile.id == user_id))
        await db.commit()
