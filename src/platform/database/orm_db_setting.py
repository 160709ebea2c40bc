"""
SQLAlchemy declarative base and table creation.

Runtime reads and writes go through asyncpg (see asyncpg_setting.py); the ORM
layer only owns the table definitions so the schema lives in one place.
"""

from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import DeclarativeBase

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger


class Base(DeclarativeBase):
    pass


async def create_db_and_tables() -> None:
    """Create database tables if they don't exist"""
    # Import models so they register on Base.metadata
    import src.service.booking.driven_adapter.model.booking_model  # noqa: F401

    engine = create_async_engine(settings.DATABASE_URL_ASYNC, echo=False)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all, checkfirst=True)
        Logger.base.info('🗄️ [DB] Tables ensured')
    except Exception as e:
        error_msg = str(e).lower()
        if any(keyword in error_msg for keyword in ['already exists', 'duplicate key']):
            # Concurrent consumers racing on first startup
            Logger.base.info('Tables already exist, skipping creation')
        else:
            Logger.base.error(f'Error creating tables: {e}')
            raise
    finally:
        await engine.dispose()
