"""
JWT tokens for the two kinds of principals.

Staff tokens carry the user id and role; student portal tokens carry the
student id and matricule. The "kind" claim keeps one from being accepted
where the other is expected.
"""

from datetime import datetime, timedelta, timezone
from enum import StrEnum
from typing import Any

from jose import JWTError, jwt

from src.core.config import settings
from src.core.exceptions import AuthenticationError

STUDENT_ROLE = "Student"


class PrincipalKind(StrEnum):
    STAFF = "staff"
    STUDENT = "student"


def _encode(payload: dict[str, Any], expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {**payload, "exp": now + expires_delta, "iat": now}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: int, role: str) -> str:
    """Staff access token."""
    return _encode(
        {"sub": str(user_id), "role": role, "kind": PrincipalKind.STAFF.value, "type": "access"},
        timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_student_access_token(student_id: int, matricule: str) -> str:
    """Student portal access token."""
    return _encode(
        {
            "sub": str(student_id),
            "matricule": matricule,
            "role": STUDENT_ROLE,
            "kind": PrincipalKind.STUDENT.value,
            "type": "access",
        },
        timedelta(minutes=settings.student_access_token_expire_minutes),
    )


def create_refresh_token(subject_id: int, kind: PrincipalKind = PrincipalKind.STAFF) -> str:
    return _encode(
        {"sub": str(subject_id), "kind": kind.value, "type": "refresh"},
        timedelta(days=settings.refresh_token_expire_days),
    )


def decode_token(
    token: str,
    token_type: str = "access",
    kind: PrincipalKind | None = PrincipalKind.STAFF,
) -> dict[str, Any]:
    """
    Decode and validate JWT token.

    kind=None accepts either principal; the caller then reads payload["kind"].

    Raises:
        AuthenticationError: If token is invalid, expired, of the wrong type or for the wrong principal
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        raise AuthenticationError(f"Invalid token: {str(e)}")

    if payload.get("type") != token_type:
        raise AuthenticationError(f"Invalid token type, expected {token_type}")

    token_kind = payload.get("kind", PrincipalKind.STAFF.value)
    if token_kind not in (PrincipalKind.STAFF.value, PrincipalKind.STUDENT.value):
        raise AuthenticationError("Invalid token subject")
    if kind is not None and token_kind != kind.value:
        raise AuthenticationError(f"Token is not valid for {kind.value} access")

    return payload
