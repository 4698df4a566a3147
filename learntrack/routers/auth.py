"""Sign-up, sign-in and session endpoints."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import structlog

from learntrack.core.config import settings
from learntrack.core.database import get_db
from learntrack.core.dependencies import CurrentUser, get_current_user, get_session_registry
from learntrack.core.exceptions import AuthenticationRequired, Conflict, ValidationFailed, notification
from learntrack.core.security import create_access_token, hash_password, verify_password
from learntrack.models.profile import User, Profile, Role, Level
from learntrack.realtime.auth_events import AuthEvent, AuthSession, get_auth_bus
from learntrack.schemas.auth import (
    SignupRequest, SignupResponse, LoginRequest, TokenResponse, SessionInfo
)

logger = structlog.get_logger()
router = APIRouter()


def _token_response(user_id: str, session_id: str, role: str, note: dict) -> TokenResponse:
    token = create_access_token({"sub": user_id, "sid": session_id, "role": role})
    return TokenResponse(
        access_token=token,
        expires_in=settings.JWT_EXPIRATION_MINUTES * 60,
        user_id=user_id,
        role=role,
        notification=note
    )


def validate_password(password: str):
    if len(password or "") < settings.PASSWORD_MIN_LENGTH:
        raise ValidationFailed(
            f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters"
        )


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(payload: SignupRequest, db: AsyncSession = Depends(get_db)):
    """Create a learner account at the Beginner level."""
    email = payload.email.strip().lower()
    if not payload.full_name.strip():
        raise ValidationFailed("Full name is required")
    if not payload.governorate.strip():
        raise ValidationFailed("Governorate is required")
    if not payload.membership_number.strip():
        raise ValidationFailed("Membership number is required")
    validate_password(payload.password)
    
    existing = await db.scalar(select(User.id).where(User.email == email))
    if existing:
        raise Conflict("An account with this email already exists")
    
    user = User(email=email, password_hash=hash_password(payload.password))
    db.add(user)
    await db.flush()
    db.add(Profile(
        id=user.id,
        full_name=payload.full_name.strip(),
        role=Role.LEARNER.value,
        level=Level.BEGINNER.value,
        governorate=payload.governorate.strip(),
        membership_number=payload.membership_number.strip()
    ))
    
    try:
        await db.commit()
    except Exception as e:
        logger.error("Failed to create account", email=email, error=str(e))
        await db.rollback()
        raise Conflict("Could not create the account")
    
    logger.info("Account created", user_id=user.id)
    return SignupResponse(
        user_id=user.id,
        email=email,
        notification=notification("Account created", "Your account is pending review by the administrators")
    )


@router.post("/login", response_model=TokenResponse)
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Exchange email and password for an access token."""
    user = await db.scalar(select(User).where(User.email == payload.email.strip().lower()))
    if user is None or not verify_password(payload.password, user.password_hash):
        raise AuthenticationRequired("Invalid email or password", extra={"redirect_to": "/auth"})
    
    role = await db.scalar(select(Profile.role).where(Profile.id == user.id)) or Role.LEARNER.value
    
    registry = await get_session_registry()
    session_id = await registry.open(user.id)
    await get_auth_bus().emit(AuthEvent.SIGNED_IN, AuthSession(user.id, session_id))
    
    return _token_response(user.id, session_id, role, notification("Welcome back!", "Signed in successfully"))


@router.post("/refresh", response_model=TokenResponse)
async def refresh(current_user: CurrentUser = Depends(get_current_user)):
    """Issue a fresh token for the current session."""
    registry = await get_session_registry()
    await registry.touch(current_user.session_id, current_user.user_id)
    await get_auth_bus().emit(
        AuthEvent.TOKEN_REFRESHED,
        AuthSession(current_user.user_id, current_user.session_id)
    )
    return _token_response(
        current_user.user_id,
        current_user.session_id,
        current_user.role,
        notification("Session refreshed")
    )


@router.post("/logout")
async def logout(current_user: CurrentUser = Depends(get_current_user)):
    """End the current session."""
    registry = await get_session_registry()
    await registry.close(current_user.session_id)
    await get_auth_bus().emit(
        AuthEvent.SIGNED_OUT,
        AuthSession(current_user.user_id, current_user.session_id)
    )
    return {"notification": notification("Signed out")}


@router.get("/session", response_model=SessionInfo)
async def get_session(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Current identity and role."""
    email = await db.scalar(select(User.email).where(User.id == current_user.user_id))
    return SessionInfo(
        user_id=current_user.user_id,
        session_id=current_user.session_id,
        role=current_user.role,
        is_admin=current_user.is_admin,
        email=email
    )
