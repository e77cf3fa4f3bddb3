from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine
from sqlalchemy.orm import DeclarativeBase

from conduit.cache import cache
from conduit.config import settings
from conduit.middleware import install_query_counter


def _engine_options() -> dict:
    """Pool sizing for server databases; SQLite URLs keep the driver defaults."""
    if settings.database_url.startswith("sqlite"):
        return {}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "connect_args": {"ssl": settings.DB_SSLMODE},
    }


# Module-level engine variable allows tests to override with a test engine.
engine = create_async_engine(
    settings.database_url,
    echo=settings.DEBUG,
    pool_pre_ping=True,
    **_engine_options(),
)

# Register the per-request SQL query counter on the production engine.
install_query_counter(engine)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


# Session.info flag set by writes that add rows to the global tag list.
TAGS_CHANGED = "tags_changed"


async def commit(session: AsyncSession) -> None:
    """
    Commit *session*, then drop cache entries the transaction made stale.
    Readers never see an invalidated key refilled from the old snapshot.
    """
    await session.commit()
    if session.info.pop(TAGS_CHANGED, False):
        await cache.invalidate_tags()


async def get_db():
    async with async_session() as session:
        try:
            yield session
            await commit(session)
        except Exception:
            await session.rollback()
            raise


async def ping(target: AsyncEngine = engine) -> None:
    """Issue a trivial query so startup fails fast on an unreachable database."""
    async with target.connect() as conn:
        await conn.execute(text("SELECT 1"))
