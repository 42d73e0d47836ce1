from datetime import datetime

from pydantic import EmailStr, Field

from src.shared.schemas import BaseSchema


class LoginRequest(BaseSchema):
    """Staff sign-in."""

    email: EmailStr
    password: str


class StudentLoginRequest(BaseSchema):
    """Student portal sign-in."""

    matricule: str = Field(..., min_length=1, max_length=20)
    password: str = Field(..., min_length=1)


class RefreshRequest(BaseSchema):
    refresh_token: str


class TokenResponse(BaseSchema):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class UserResponse(BaseSchema):
    """Staff member as returned by the API."""

    id: int
    email: str
    full_name: str
    phone: str | None
    role: str
    is_active: bool
    last_login_at: datetime | None
    created_at: datetime


class StudentPrincipalResponse(BaseSchema):
    """Signed-in student, as shown by the portal."""

    id: int
    matricule: str
    full_name: str
    email: str | None
    class_name: str | None
    financial_status: str


class LoginResponse(TokenResponse):
    user: UserResponse


class StudentLoginResponse(TokenResponse):
    student: StudentPrincipalResponse
