from src.core.auth.models import User, UserRole
from src.core.auth.jwt import (
    PrincipalKind,
    create_access_token,
    create_refresh_token,
    create_student_access_token,
    decode_token,
)
from src.core.auth.service import AuthService
from src.core.auth.dependencies import (
    CurrentStudent,
    CurrentUser,
    get_current_student,
    get_current_user,
    require_roles,
)

__all__ = [
    "User",
    "UserRole",
    "PrincipalKind",
    "AuthService",
    "create_access_token",
    "create_refresh_token",
    "create_student_access_token",
    "decode_token",
    "CurrentStudent",
    "CurrentUser",
    "get_current_student",
    "get_current_user",
    "require_roles",
]
