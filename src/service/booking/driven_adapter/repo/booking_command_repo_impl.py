"""
Booking Command Repository Implementation (Booking Service)

asyncpg-backed Booking Store Gateway.

Concurrency:
- The claim is a single conditional UPDATE (compare-and-set on status)
- Decisions run in one transaction holding the booking row lock and a
  transaction-scoped advisory lock keyed by restaurant, so two overlapping
  bookings at the same restaurant are never decided concurrently
"""

from datetime import datetime
from typing import Awaitable, Callable, TypeVar

import asyncpg
from uuid_utils import UUID

from src.platform.config.core_setting import settings
from src.platform.database.asyncpg_setting import get_asyncpg_pool
from src.platform.logging.loguru_io import Logger
from src.service.booking.app.interface.i_booking_command_repo import (
    IBookingCommandRepo,
    IBookingTransaction,
)
from src.service.booking.domain.entity.booking_entity import Booking, BookingStatus


T = TypeVar('T')

_BOOKING_COLUMNS = 'id, restaurant_name, datetime, guests, status, created_at, updated_at'


def _row_to_entity(row: asyncpg.Record) -> Booking:
    return Booking(
        id=UUID(str(row['id'])),
        restaurant_name=row['restaurant_name'],
        datetime=row['datetime'],
        guests=row['guests'],
        status=BookingStatus(row['status']),
        created_at=row['created_at'],
        updated_at=row['updated_at'],
    )


def _affected_rows(command_tag: str) -> int:
    """asyncpg returns the command tag, e.g. 'UPDATE 1'"""
    try:
        return int(command_tag.rsplit(' ', 1)[-1])
    except (ValueError, IndexError):
        return 0


async def _update_status(
    conn: asyncpg.Connection,
    *,
    booking_id: UUID,
    from_status: BookingStatus,
    to_status: BookingStatus,
) -> bool:
    command_tag = await conn.execute(
        """
        UPDATE booking
        SET status = $1,
            updated_at = now()
        WHERE id = $2
          AND status = $3
        """,
        to_status.value,
        booking_id,
        from_status.value,
    )
    return _affected_rows(command_tag) == 1


class AsyncpgBookingTransaction(IBookingTransaction):
    def __init__(self, conn: asyncpg.Connection) -> None:
        self.conn = conn

    async def lock_restaurant(self, *, restaurant_name: str) -> None:
        await self.conn.execute('SELECT pg_advisory_xact_lock(hashtext($1))', restaurant_name)

    async def get_by_id_for_update(self, *, booking_id: UUID) -> Booking | None:
        row = await self.conn.fetchrow(
            f"""
            SELECT {_BOOKING_COLUMNS}
            FROM booking
            WHERE id = $1
            FOR UPDATE
            """,
            booking_id,
        )
        return _row_to_entity(row) if row else None

    async def exists_confirmed_in_window(
        self,
        *,
        restaurant_name: str,
        window_start: datetime,
        window_end: datetime,
        exclude_id: UUID,
    ) -> bool:
        return bool(
            await self.conn.fetchval(
                """
                SELECT EXISTS (
                    SELECT 1
                    FROM booking
                    WHERE restaurant_name = $1
                      AND status = $2
                      AND datetime BETWEEN $3 AND $4
                      AND id <> $5
                )
                """,
                restaurant_name,
                BookingStatus.CONFIRMED.value,
                window_start,
                window_end,
                exclude_id,
            )
        )

    async def update_status(
        self, *, booking_id: UUID, from_status: BookingStatus, to_status: BookingStatus
    ) -> bool:
        return await _update_status(
            self.conn, booking_id=booking_id, from_status=from_status, to_status=to_status
        )


class BookingCommandRepoImpl(IBookingCommandRepo):
    def __init__(self, *, isolation: str = settings.BOOKING_TRANSACTION_ISOLATION) -> None:
        self.isolation = isolation

    @Logger.io
    async def get_by_id(self, *, booking_id: UUID) -> Booking | None:
        async with (await get_asyncpg_pool()).acquire() as conn:
            row = await conn.fetchrow(
                f"""
                SELECT {_BOOKING_COLUMNS}
                FROM booking
                WHERE id = $1
                """,
                booking_id,
            )
            return _row_to_entity(row) if row else None

    @Logger.io
    async def update_status(
        self, *, booking_id: UUID, from_status: BookingStatus, to_status: BookingStatus
    ) -> bool:
        async with (await get_asyncpg_pool()).acquire() as conn:
            updated = await _update_status(
                conn, booking_id=booking_id, from_status=from_status, to_status=to_status
            )

        if updated:
            Logger.base.debug(f'🔁 [BOOKING-REPO] {booking_id}: {from_status} → {to_status}')
        return updated

    async def run_in_transaction(self, fn: Callable[[IBookingTransaction], Awaitable[T]]) -> T:
        async with (await get_asyncpg_pool()).acquire() as conn:
            async with conn.transaction(isolation=self.isolation):
                return await fn(AsyncpgBookingTransaction(conn))
