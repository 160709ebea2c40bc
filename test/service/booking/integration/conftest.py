"""
Postgres fixtures for booking store integration tests

Requires a reachable Postgres (POSTGRES_SERVER / POSTGRES_PORT / POSTGRES_USER /
POSTGRES_PASSWORD). The test database is created on first use; tests are
skipped when the server cannot be reached.
"""

import asyncio
from collections.abc import AsyncGenerator

import asyncpg
import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine

from src.platform.config.core_setting import settings
from src.platform.database.asyncpg_setting import close_asyncpg_pool, get_asyncpg_pool
from src.platform.database.orm_db_setting import create_db_and_tables
from src.service.booking.domain.entity.booking_entity import Booking


async def _ensure_test_database() -> None:
    db_name = settings.POSTGRES_DB
    postgres_url = settings.DATABASE_URL_ASYNC.rsplit('/', 1)[0] + '/postgres'
    engine = create_async_engine(
        postgres_url, isolation_level='AUTOCOMMIT', connect_args={'timeout': 5}
    )
    try:
        async with engine.begin() as conn:
            result = await conn.execute(
                text('SELECT 1 FROM pg_database WHERE datname = :name'), {'name': db_name}
            )
            if not result.fetchone():
                await conn.execute(text(f'CREATE DATABASE "{db_name}"'))
    finally:
        await engine.dispose()


async def _truncate_bookings() -> None:
    pool = await get_asyncpg_pool()
    async with pool.acquire() as conn:
        await conn.execute('TRUNCATE booking')


@pytest_asyncio.fixture
async def clean_database() -> AsyncGenerator[None, None]:
    try:
        await _ensure_test_database()
    except (OSError, asyncio.TimeoutError, asyncpg.PostgresError, SQLAlchemyError) as e:
        pytest.skip(f'Postgres not reachable: {e}')

    await create_db_and_tables()
    await _truncate_bookings()
    yield

    try:
        await _truncate_bookings()
    finally:
        await close_asyncpg_pool()


@pytest.fixture
def insert_booking():
    """
    Insert a Booking row as the ingress would

    Usage:
        await insert_booking(booking_at('Bistro', 19))
    """

    async def _insert(booking: Booking) -> Booking:
        pool = await get_asyncpg_pool()
        async with pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO booking (id, restaurant_name, datetime, guests, status)
                VALUES ($1, $2, $3, $4, $5)
                """,
                booking.id,
                booking.restaurant_name,
                booking.datetime,
                booking.guests,
                booking.status.value,
            )
        return booking

    return _insert


@pytest.fixture
def status_of():
    async def _status_of(booking: Booking) -> str:
        pool = await get_asyncpg_pool()
        async with pool.acquire() as conn:
            return await conn.fetchval('SELECT status FROM booking WHERE id = $1', booking.id)

    return _status_of
