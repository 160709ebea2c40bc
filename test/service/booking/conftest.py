"""
In-memory doubles for the booking store and the event source.

InMemoryBookingCommandRepo mimics the locking the Postgres gateway relies on:
- lock_restaurant / get_by_id_for_update hold asyncio locks until the
  transaction ends
- writes inside a transaction are staged and only visible to other callers
  after commit (read committed)
- every call yields to the event loop so concurrent tasks interleave
"""

import asyncio
from collections import defaultdict, deque
from datetime import datetime
from typing import Awaitable, Callable, Iterable, Optional, TypeVar

import pytest
from uuid_utils import UUID

from src.platform.message_queue.event_source import EventRecord, IEventSource
from src.service.booking.app.interface.i_booking_command_repo import (
    IBookingCommandRepo,
    IBookingTransaction,
)
from src.service.booking.domain.entity.booking_entity import Booking, BookingStatus
from src.service.booking.domain.value_object import ConflictWindow


T = TypeVar('T')


class InMemoryBookingTransaction(IBookingTransaction):
    def __init__(self, repo: 'InMemoryBookingCommandRepo') -> None:
        self.repo = repo
        self.staged: dict[UUID, BookingStatus] = {}
        self._held: list[asyncio.Lock] = []

    async def _acquire(self, lock: asyncio.Lock) -> None:
        if lock in self._held:
            return
        await lock.acquire()
        self._held.append(lock)

    def release(self) -> None:
        while self._held:
            self._held.pop().release()

    def _visible(self, booking_id: UUID) -> Optional[Booking]:
        booking = self.repo.bookings.get(booking_id)
        if booking is not None and booking_id in self.staged:
            booking = booking.transition_to(self.staged[booking_id])
        return booking

    async def lock_restaurant(self, *, restaurant_name: str) -> None:
        await self.repo.checkpoint('lock_restaurant')
        await self._acquire(self.repo.restaurant_locks[restaurant_name])
        self.repo.locked_restaurants.append(restaurant_name)

    async def get_by_id_for_update(self, *, booking_id: UUID) -> Optional[Booking]:
        await self.repo.checkpoint('get_by_id_for_update')
        await self._acquire(self.repo.row_locks[booking_id])
        return self._visible(booking_id)

    async def exists_confirmed_in_window(
        self,
        *,
        restaurant_name: str,
        window_start: datetime,
        window_end: datetime,
        exclude_id: UUID,
    ) -> bool:
        await self.repo.checkpoint('exists_confirmed_in_window')
        for booking_id in list(self.repo.bookings):
            booking = self._visible(booking_id)
            if (
                booking is not None
                and booking.id != exclude_id
                and booking.restaurant_name == restaurant_name
                and booking.status == BookingStatus.CONFIRMED
                and ConflictWindow(start=window_start, end=window_end).contains(booking.datetime)
            ):
                return True
        return False

    async def update_status(
        self, *, booking_id: UUID, from_status: BookingStatus, to_status: BookingStatus
    ) -> bool:
        await self.repo.checkpoint('tx_update_status')
        booking = self._visible(booking_id)
        if booking is None or booking.status != from_status:
            return False
        self.staged[booking_id] = to_status
        return True


class InMemoryBookingCommandRepo(IBookingCommandRepo):
    """
    Usage:
        repo.add(booking)
        repo.failures['get_by_id'] = OSError('connection reset')
        repo.failures['commit'] = OSError('connection reset')  # every decision fails
    """

    def __init__(self) -> None:
        self.bookings: dict[UUID, Booking] = {}
        self.history: dict[UUID, list[BookingStatus]] = defaultdict(list)
        self.restaurant_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self.row_locks: dict[UUID, asyncio.Lock] = defaultdict(asyncio.Lock)
        self.failures: dict[str, Exception] = {}
        self.locked_restaurants: list[str] = []
        self.transactions = 0

    def add(self, booking: Booking) -> Booking:
        self.bookings[booking.id] = booking
        self.history[booking.id].append(booking.status)
        return booking

    def status_of(self, booking_id: UUID) -> BookingStatus:
        return self.bookings[booking_id].status

    async def checkpoint(self, operation: str) -> None:
        await asyncio.sleep(0)
        if operation in self.failures:
            raise self.failures[operation]

    def _write(self, booking_id: UUID, to_status: BookingStatus) -> None:
        # transition_to refuses backward moves, so tests fail loudly on one
        self.bookings[booking_id] = self.bookings[booking_id].transition_to(to_status)
        self.history[booking_id].append(to_status)

    async def get_by_id(self, *, booking_id: UUID) -> Optional[Booking]:
        await self.checkpoint('get_by_id')
        return self.bookings.get(booking_id)

    async def update_status(
        self, *, booking_id: UUID, from_status: BookingStatus, to_status: BookingStatus
    ) -> bool:
        await self.checkpoint('update_status')
        booking = self.bookings.get(booking_id)
        if booking is None or booking.status != from_status:
            return False
        # A row locked by an open transaction blocks a plain UPDATE too
        async with self.row_locks[booking_id]:
            booking = self.bookings.get(booking_id)
            if booking is None or booking.status != from_status:
                return False
            self._write(booking_id, to_status)
        return True

    async def run_in_transaction(self, fn: Callable[[IBookingTransaction], Awaitable[T]]) -> T:
        await self.checkpoint('begin')
        self.transactions += 1
        tx = InMemoryBookingTransaction(self)
        try:
            result = await fn(tx)
            await self.checkpoint('commit')
            for booking_id, to_status in tx.staged.items():
                self._write(booking_id, to_status)
            return result
        finally:
            tx.release()


class InMemoryEventSource(IEventSource):
    """
    Replays a fixed list of records.

    ``on_drained`` is called the first time poll() finds nothing left,
    typically consumer.stop.
    """

    def __init__(self, records: Iterable[EventRecord] = ()) -> None:
        self.pending: deque[EventRecord] = deque(records)
        self.subscribed: list[str] = []
        self.delivered: list[EventRecord] = []
        self.committed: list[EventRecord] = []
        self.rewound: list[EventRecord] = []
        self.closed = False
        self.on_drained: Optional[Callable[[], None]] = None
        self.commit_error: Optional[Exception] = None
        self.poll_errors: deque[Exception] = deque()

    def subscribe(self, topics: list[str]) -> None:
        self.subscribed = list(topics)

    def poll(self, timeout: float) -> Optional[EventRecord]:
        if self.poll_errors:
            raise self.poll_errors.popleft()
        if self.pending:
            record = self.pending.popleft()
            self.delivered.append(record)
            return record
        if self.on_drained is not None:
            self.on_drained()
        return None

    def commit(self, record: EventRecord) -> None:
        if self.commit_error is not None:
            raise self.commit_error
        self.committed.append(record)

    def rewind(self, record: EventRecord) -> None:
        self.rewound.append(record)
        self.pending.appendleft(record)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def booking_repo() -> InMemoryBookingCommandRepo:
    return InMemoryBookingCommandRepo()


@pytest.fixture
def event_source_factory():
    """
    Usage:
        source = event_source_factory([record1, record2])
    """

    def _make(records: Iterable[EventRecord] = ()) -> InMemoryEventSource:
        return InMemoryEventSource(records)

    return _make
