from collections.abc import AsyncGenerator, Awaitable, Callable
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.core.auth.jwt import create_access_token, create_student_access_token
from src.core.auth.models import User, UserRole
from src.core.auth.service import AuthService
from src.core.database import get_db
from src.core.database.base import Base
from src.main import app
from src.modules.students.models import Student
from src.modules.students.schemas import StudentCreate
from src.modules.students.service import StudentService

# In-memory SQLite; StaticPool keeps one connection so every session sees the same database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_engine():
    """Fresh database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Get test database session."""
    session_factory = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Get test HTTP client with overridden database dependency."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    """Admin allowed to record payments."""
    user = await AuthService(db_session).create_user(
        email="admin@school.com",
        password="Admin123!",
        full_name="School Admin",
        role=UserRole.ADMIN,
    )
    await db_session.commit()
    return user


@pytest.fixture
async def accountant_user(db_session: AsyncSession) -> User:
    """Read-only staff user."""
    user = await AuthService(db_session).create_user(
        email="accountant@school.com",
        password="Accountant123!",
        full_name="School Accountant",
        role=UserRole.ACCOUNTANT,
    )
    await db_session.commit()
    return user


@pytest.fixture
def admin_headers(admin_user: User) -> dict[str, str]:
    token = create_access_token(admin_user.id, admin_user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def accountant_headers(accountant_user: User) -> dict[str, str]:
    token = create_access_token(accountant_user.id, accountant_user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_student(
    db_session: AsyncSession, admin_user: User
) -> Callable[..., Awaitable[Student]]:
    """Factory creating students through StudentService."""
    counter = {"n": 0}
    admin_id = admin_user.id

    async def _make(
        tuition_total: Decimal | str = "500000",
        matricule: str | None = None,
        **fields,
    ) -> Student:
        counter["n"] += 1
        data = StudentCreate(
            matricule=matricule or f"STU2026{100000 + counter['n']}",
            first_name=fields.pop("first_name", "Test"),
            last_name=fields.pop("last_name", f"Student{counter['n']}"),
            tuition_total=Decimal(str(tuition_total)),
            **fields,
        )
        return await StudentService(db_session).create_student(data, admin_id)

    return _make


@pytest.fixture
async def student(make_student) -> Student:
    """Student with a 500000.00 tuition total and nothing paid."""
    return await make_student(matricule="STU2026000001")


STUDENT_PASSWORD = "Student123!"


@pytest.fixture
async def portal_student(make_student) -> Student:
    """Student with portal access (same 500000.00 total, nothing paid)."""
    return await make_student(
        matricule="STU2026000002", first_name="Jane", last_name="Doe", password=STUDENT_PASSWORD
    )


@pytest.fixture
def student_headers(portal_student: Student) -> dict[str, str]:
    token = create_student_access_token(portal_student.id, portal_student.matricule)
    return {"Authorization": f"Bearer {token}"}
