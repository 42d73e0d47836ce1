from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import CurrentUser
from src.core.auth.schemas import (
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    StudentLoginRequest,
    StudentLoginResponse,
    StudentPrincipalResponse,
    TokenResponse,
    UserResponse,
)
from src.core.auth.service import AuthService
from src.core.database import get_db
from src.shared.schemas import SuccessResponse

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


@router.post("/login", response_model=SuccessResponse[LoginResponse])
async def login(
    request: Request,
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Staff sign-in with email and password."""
    user, access_token, refresh_token = await AuthService(db).authenticate(
        email=data.email,
        password=data.password,
        ip_address=_client_ip(request),
    )
    return SuccessResponse(
        data=LoginResponse(
            user=UserResponse.model_validate(user),
            access_token=access_token,
            refresh_token=refresh_token,
        ),
        message="Login successful",
    )


@router.post("/student/login", response_model=SuccessResponse[StudentLoginResponse])
async def student_login(
    request: Request,
    data: StudentLoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Student portal sign-in with matricule and password."""
    student, access_token, refresh_token = await AuthService(db).authenticate_student(
        matricule=data.matricule,
        password=data.password,
        ip_address=_client_ip(request),
    )
    return SuccessResponse(
        data=StudentLoginResponse(
            student=StudentPrincipalResponse.model_validate(student),
            access_token=access_token,
            refresh_token=refresh_token,
        ),
        message="Login successful",
    )


@router.post("/refresh", response_model=SuccessResponse[TokenResponse])
async def refresh_tokens(
    data: RefreshRequest,
    db: AsyncSession = Depends(get_db),
):
    """New token pair for staff or student refresh tokens."""
    access_token, refresh_token = await AuthService(db).refresh_tokens(data.refresh_token)
    return SuccessResponse(
        data=TokenResponse(access_token=access_token, refresh_token=refresh_token),
        message="Tokens refreshed",
    )


@router.get("/me", response_model=SuccessResponse[UserResponse])
async def get_current_user_info(current_user: CurrentUser):
    """Signed-in staff member."""
    return SuccessResponse(data=UserResponse.model_validate(current_user))
