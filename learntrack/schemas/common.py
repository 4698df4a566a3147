"""Shared response pieces."""

from typing import Optional

from pydantic import BaseModel


class Notification(BaseModel):
    """User-facing toast content."""
    title: str
    description: str = ""
    variant: str = "default"


class NotifiedResponse(BaseModel):
    notification: Optional[Notification] = None
