import logging
from collections.abc import AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.core.config import settings

logger = logging.getLogger(__name__)


def _engine_options() -> dict:
    options: dict = {"echo": settings.debug, "pool_pre_ping": True}
    # SQLite (local tooling) has no connection pool to size
    if not settings.is_sqlite:
        options["pool_size"] = settings.database_pool_size
        options["max_overflow"] = settings.database_max_overflow
    return options


# Password is masked in the rendered URL
logger.info(
    "Database: %s", make_url(settings.database_url).render_as_string(hide_password=True)
)

engine = create_async_engine(settings.database_url, **_engine_options())

# Objects stay readable after commit; the payment recorder relies on it
async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session. Commits on success, rolls back if the handler raised."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
