from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from app.cache import cache
from app.config import settings

# Module-level engine variable allows tests to override with a test engine.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# session.info flag set by post writes; consumed by commit().
POSTS_CHANGED = "posts_changed"


class Base(DeclarativeBase):
    pass


async def commit(session: AsyncSession) -> None:
    """
    Commit *session*, then drop the post read views if it wrote posts.

    Invalidation waits for the commit: a reader refilling the cache
    before then would store the pre-write state.
    """
    await session.commit()
    if session.info.pop(POSTS_CHANGED, False):
        await cache.invalidate_posts()


async def get_db():
    async with async_session() as session:
        try:
            yield session
            await commit(session)
        except Exception:
            session.info.pop(POSTS_CHANGED, None)
            await session.rollback()
            raise
