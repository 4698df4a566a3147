"""Authentication schemas."""

from typing import Optional

from pydantic import BaseModel, Field

from learntrack.schemas.common import NotifiedResponse


class SignupRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str
    full_name: str = ""
    governorate: str = ""
    membership_number: str = ""


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(NotifiedResponse):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user_id: str
    role: str


class SignupResponse(NotifiedResponse):
    user_id: str
    email: str


class SessionInfo(BaseModel):
    user_id: str
    session_id: str
    role: str
    is_admin: bool
    email: Optional[str] = None


class PasswordChange(BaseModel):
    new_password: str
    confirm_password: str
