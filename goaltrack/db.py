import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from goaltrack.config import settings
from goaltrack.fitness.tables import metadata

logger = logging.getLogger(__name__)


def normalize_url(raw_url: str) -> str:
    """Point bare postgres URLs at the asyncpg driver."""
    if raw_url.startswith("postgres://"):
        return raw_url.replace("postgres://", "postgresql+asyncpg://", 1)
    if raw_url.startswith("postgresql://"):
        return raw_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return raw_url


engine = create_async_engine(normalize_url(settings.database_url), pool_pre_ping=True)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_schema(bind: AsyncEngine | None = None) -> None:
    """Create the fitness tables if they do not exist yet."""
    target = bind or engine
    async with target.begin() as conn:
        await conn.run_sync(metadata.create_all)
    logger.info("Schema ready on %s", target.url.render_as_string(hide_password=True))


async def get_session() -> AsyncSession:  # type: ignore[misc]
    async with async_session() as session:
        yield session
