"""Data models for the learner tracking service."""

from learntrack.models.profile import User, Profile, Activity, Role, Level, Track
from learntrack.models.learning import Task, UserTask, Lesson, CustomLesson, TaskStatus
from learntrack.models.engagement import ChatMessage, DailyCheckin

__all__ = [
    "User",
    "Profile",
    "Activity",
    "Role",
    "Level",
    "Track",
    "Task",
    "UserTask",
    "Lesson",
    "CustomLesson",
    "TaskStatus",
    "ChatMessage",
    "DailyCheckin"
]
