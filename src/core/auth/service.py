from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit import AuditAction, AuditService
from src.core.auth.jwt import (
    PrincipalKind,
    create_access_token,
    create_refresh_token,
    create_student_access_token,
    decode_token,
)
from src.core.auth.models import User, UserRole
from src.core.auth.password import hash_password, verify_password
from src.core.exceptions import AuthenticationError, DuplicateError
from src.modules.students.models import Student, normalize_matricule

INVALID_CREDENTIALS = "Invalid credentials"


class AuthService:
    """Sign-in for staff (email) and students (matricule), token refresh."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.audit = AuditService(session)

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: int) -> User | None:
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_student_by_id(self, student_id: int) -> Student | None:
        result = await self.session.execute(select(Student).where(Student.id == student_id))
        return result.scalar_one_or_none()

    async def create_user(
        self,
        email: str,
        password: str,
        full_name: str,
        role: UserRole,
        phone: str | None = None,
        created_by_id: int | None = None,
    ) -> User:
        """Create a staff account (flushed, caller commits)."""
        if await self.get_user_by_email(email):
            raise DuplicateError("User", "email", email)

        user = User(
            email=email,
            password_hash=hash_password(password),
            full_name=full_name,
            phone=phone,
            role=role.value,
            is_active=True,
        )
        self.session.add(user)
        await self.session.flush()

        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type="User",
            entity_id=user.id,
            user_id=created_by_id,
            entity_identifier=user.email,
            new_values={"email": user.email, "role": user.role, "full_name": user.full_name},
        )
        return user

    async def authenticate(
        self, email: str, password: str, ip_address: str | None = None
    ) -> tuple[User, str, str]:
        """
        Staff sign-in.

        Returns:
            Tuple of (user, access_token, refresh_token)

        Raises:
            AuthenticationError: unknown email, wrong password or deactivated account
        """
        user = await self.get_user_by_email(email)

        if not user or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password")

        if not user.is_active:
            raise AuthenticationError("User account is deactivated")

        user.last_login_at = datetime.now(timezone.utc)
        await self.session.flush()

        await self.audit.log(
            action=AuditAction.LOGIN,
            entity_type="User",
            entity_id=user.id,
            user_id=user.id,
            entity_identifier=user.email,
            ip_address=ip_address,
        )

        return user, create_access_token(user.id, user.role), create_refresh_token(user.id)

    async def authenticate_student(
        self, matricule: str, password: str, ip_address: str | None = None
    ) -> tuple[Student, str, str]:
        """
        Student portal sign-in with matricule and password.

        Students without a portal password cannot sign in. The error does not
        say whether the matricule exists.
        """
        result = await self.session.execute(
            select(Student).where(Student.matricule == normalize_matricule(matricule))
        )
        student = result.scalar_one_or_none()

        if (
            not student
            or not student.password_hash
            or not verify_password(password, student.password_hash)
        ):
            raise AuthenticationError(INVALID_CREDENTIALS)

        student.last_login_at = datetime.now(timezone.utc)
        await self.session.flush()

        await self.audit.log(
            action=AuditAction.LOGIN,
            entity_type="Student",
            entity_id=student.id,
            entity_identifier=student.matricule,
            ip_address=ip_address,
        )

        return (
            student,
            create_student_access_token(student.id, student.matricule),
            create_refresh_token(student.id, kind=PrincipalKind.STUDENT),
        )

    async def refresh_tokens(self, refresh_token: str) -> tuple[str, str]:
        """
        Issue a new token pair for whichever principal the refresh token belongs to.

        Raises:
            AuthenticationError: If refresh token is invalid or its subject is gone
        """
        payload = decode_token(refresh_token, token_type="refresh", kind=None)
        subject_id = int(payload["sub"])

        if payload.get("kind") == PrincipalKind.STUDENT.value:
            student = await self.get_student_by_id(subject_id)
            if not student or not student.password_hash:
                raise AuthenticationError("Student not found")
            return (
                create_student_access_token(student.id, student.matricule),
                create_refresh_token(student.id, kind=PrincipalKind.STUDENT),
            )

        user = await self.get_user_by_id(subject_id)
        if not user:
            raise AuthenticationError("User not found")
        if not user.is_active:
            raise AuthenticationError("User account is deactivated")

        return create_access_token(user.id, user.role), create_refresh_token(user.id)
