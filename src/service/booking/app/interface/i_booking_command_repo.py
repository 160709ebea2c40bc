"""
Booking Store Gateway Interface (Booking Service)

The booking service never creates bookings; the ingress stores them in
CREATED status. This gateway only reads bookings and advances their status.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Awaitable, Callable, TypeVar

from uuid_utils import UUID

from src.service.booking.domain.entity.booking_entity import Booking, BookingStatus


T = TypeVar('T')


class IBookingTransaction(ABC):
    """Operations available inside a single store transaction"""

    @abstractmethod
    async def lock_restaurant(self, *, restaurant_name: str) -> None:
        """
        Block until no other transaction holds the decision lock for this restaurant.

        The lock is held until the transaction ends, so two overlapping bookings
        at the same restaurant are decided one after the other.
        """
        pass

    @abstractmethod
    async def get_by_id_for_update(self, *, booking_id: UUID) -> Booking | None:
        """Read the booking row and lock it for the rest of the transaction"""
        pass

    @abstractmethod
    async def exists_confirmed_in_window(
        self,
        *,
        restaurant_name: str,
        window_start: datetime,
        window_end: datetime,
        exclude_id: UUID,
    ) -> bool:
        """
        True iff a CONFIRMED booking other than ``exclude_id`` exists at
        ``restaurant_name`` with ``window_start <= datetime <= window_end``
        """
        pass

    @abstractmethod
    async def update_status(
        self, *, booking_id: UUID, from_status: BookingStatus, to_status: BookingStatus
    ) -> bool:
        """Conditional status write; True iff exactly one row changed"""
        pass


class IBookingCommandRepo(ABC):
    @abstractmethod
    async def get_by_id(self, *, booking_id: UUID) -> Booking | None:
        pass

    @abstractmethod
    async def update_status(
        self, *, booking_id: UUID, from_status: BookingStatus, to_status: BookingStatus
    ) -> bool:
        """
        Atomic compare-and-set of a single booking's status

        Args:
            booking_id: Booking ID
            from_status: Status the row must currently have
            to_status: Status to write

        Returns:
            True if exactly one row was updated, False if the booking is absent
            or no longer in ``from_status``
        """
        pass

    @abstractmethod
    async def run_in_transaction(self, fn: Callable[[IBookingTransaction], Awaitable[T]]) -> T:
        """
        Run ``fn`` inside one transaction and commit if it returns.

        Any exception raised by ``fn`` or by the commit rolls the transaction
        back and propagates to the caller.
        """
        pass
