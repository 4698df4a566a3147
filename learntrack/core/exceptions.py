"""Domain errors and their HTTP rendering.

Every error carries the user-facing notification shown by clients as a
toast. Local state is never changed when one of these is raised.
"""

from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
import structlog

logger = structlog.get_logger()


class AppError(Exception):
    """Base class for errors surfaced to the user."""
    
    status_code = status.HTTP_400_BAD_REQUEST
    title = "Something went wrong"
    
    def __init__(self, detail: str, title: Optional[str] = None, extra: Optional[Dict[str, Any]] = None):
        super().__init__(detail)
        self.detail = detail
        if title:
            self.title = title
        self.extra = extra or {}
    
    def notification(self) -> Dict[str, str]:
        return {
            "title": self.title,
            "description": self.detail,
            "variant": "destructive",
        }


class ValidationFailed(AppError):
    """Input rejected before any write was attempted."""
    status_code = status.HTTP_400_BAD_REQUEST
    title = "Invalid input"


class AuthenticationRequired(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    title = "Sign in required"


class AccessDenied(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    title = "Not allowed"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    title = "Not found"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    title = "Conflict"


class InvalidTransition(Conflict):
    """A status change whose precondition no longer holds."""
    title = "Invalid status change"


class AlreadyCheckedIn(Conflict):
    title = "Already checked in"


def notification(title: str, description: str = "") -> Dict[str, str]:
    """Success notification returned by mutating endpoints."""
    return {"title": title, "description": description, "variant": "default"}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an AppError as a JSON error with its notification."""
    logger.info(
        "Request rejected",
        path=request.url.path,
        error=type(exc).__name__,
        detail=exc.detail
    )
    content = {"detail": exc.detail, "notification": exc.notification()}
    content.update(exc.extra)
    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)
