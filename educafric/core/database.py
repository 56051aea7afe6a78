# educafric/core/database.py
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from educafric.core.config import settings


def build_engine(database_url: str, **overrides):
    """Create the async engine; SQLite does not accept queue pool sizing."""
    options = {
        "echo": False,
        "future": True,
        "pool_pre_ping": True,
    }
    if not database_url.startswith("sqlite"):
        options.update(
            pool_size=20,
            max_overflow=30,
            pool_timeout=60,
            pool_recycle=3600,      # Recycle connections every hour
        )
    options.update(overrides)
    return create_async_engine(database_url, **options)


engine = build_engine(settings.DATABASE_URL)

async_session_maker = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)
