from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.jwt import PrincipalKind, decode_token
from src.core.auth.models import LEDGER_READ_ROLES, LEDGER_WRITE_ROLES, User, UserRole
from src.core.auth.service import AuthService
from src.core.database import get_db
from src.core.exceptions import AuthenticationError, AuthorizationError
from src.modules.students.models import Student


def _bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise AuthenticationError("Authorization header required")
    if not authorization.startswith("Bearer "):
        raise AuthenticationError("Invalid authorization header format")
    return authorization.removeprefix("Bearer ")


async def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Staff member behind a Bearer JWT. Student portal tokens are refused.

    Usage:
        @router.get("/me")
        async def get_me(user: User = Depends(get_current_user)):
            return user
    """
    payload = decode_token(_bearer_token(authorization), kind=PrincipalKind.STAFF)

    user = await AuthService(db).get_user_by_id(int(payload["sub"]))
    if not user:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthenticationError("User account is deactivated")

    return user


async def get_current_student(
    authorization: Annotated[str | None, Header()] = None,
    db: AsyncSession = Depends(get_db),
) -> Student:
    """Student behind a portal token. Staff tokens are refused."""
    payload = decode_token(_bearer_token(authorization), kind=PrincipalKind.STUDENT)

    student = await AuthService(db).get_student_by_id(int(payload["sub"]))
    if not student or not student.password_hash:
        raise AuthenticationError("Student not found")

    return student


def require_roles(*roles: UserRole):
    """
    Dependency factory to require specific staff roles.

    Usage:
        @router.post("/payments")
        async def record_payment(user: User = Depends(require_roles(UserRole.ADMIN))):
            ...
    """

    async def role_checker(
        current_user: User = Depends(get_current_user),
    ) -> User:
        if not current_user.has_role(*roles):
            allowed = ", ".join(r.value for r in roles)
            raise AuthorizationError(f"Required role: {allowed}")
        return current_user

    return role_checker


# Convenience dependencies
CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentStudent = Annotated[Student, Depends(get_current_student)]
AdminUser = Annotated[User, Depends(require_roles(*LEDGER_WRITE_ROLES))]
StaffUser = Annotated[User, Depends(require_roles(*LEDGER_READ_ROLES))]
