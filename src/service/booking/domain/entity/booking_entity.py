from datetime import datetime, timezone
from enum import StrEnum
from typing import Optional

import attrs
from uuid_utils import UUID

from src.platform.exception.exceptions import DomainError, InvalidStatusTransitionError
from src.platform.logging.loguru_io import Logger


MIN_GUESTS = 1
MAX_GUESTS = 15


class BookingStatus(StrEnum):
    CREATED = 'CREATED'
    CHECKING_AVAILABILITY = 'CHECKING_AVAILABILITY'
    CONFIRMED = 'CONFIRMED'
    REJECTED = 'REJECTED'

    @property
    def is_terminal(self) -> bool:
        return self in (BookingStatus.CONFIRMED, BookingStatus.REJECTED)


# Status only moves forward; terminal states have no successors
ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.CREATED: frozenset({BookingStatus.CHECKING_AVAILABILITY}),
    BookingStatus.CHECKING_AVAILABILITY: frozenset(
        {BookingStatus.CONFIRMED, BookingStatus.REJECTED}
    ),
    BookingStatus.CONFIRMED: frozenset(),
    BookingStatus.REJECTED: frozenset(),
}


@attrs.define
class Booking:
    id: UUID
    restaurant_name: str
    datetime: datetime
    guests: int
    status: BookingStatus = BookingStatus.CREATED
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    @Logger.io
    def create(
        cls,
        *,
        id: UUID,
        restaurant_name: str,
        datetime: datetime,
        guests: int,
    ) -> 'Booking':
        """
        Build a new booking in CREATED status

        Raises:
            DomainError: restaurant_name blank, guests outside [1, 15] or datetime naive
        """
        if not isinstance(restaurant_name, str) or not restaurant_name.strip():
            raise DomainError('Restaurant name is required and must be a non-empty string')
        if datetime.tzinfo is None:
            raise DomainError('Valid datetime is required')
        if (
            isinstance(guests, bool)
            or not isinstance(guests, int)
            or not MIN_GUESTS <= guests <= MAX_GUESTS
        ):
            raise DomainError(f'Guests must be an integer between {MIN_GUESTS} and {MAX_GUESTS}')

        now = _utcnow()
        return cls(
            id=id,
            restaurant_name=restaurant_name,
            datetime=datetime,
            guests=guests,
            status=BookingStatus.CREATED,
            created_at=now,
            updated_at=now,
        )

    def can_transition_to(self, status: BookingStatus) -> bool:
        return status in ALLOWED_TRANSITIONS[self.status]

    def transition_to(self, status: BookingStatus) -> 'Booking':
        if not self.can_transition_to(status):
            raise InvalidStatusTransitionError(
                f'Booking {self.id} cannot move from {self.status} to {status}'
            )
        return attrs.evolve(self, status=status, updated_at=_utcnow())

    def mark_as_checking_availability(self) -> 'Booking':
        return self.transition_to(BookingStatus.CHECKING_AVAILABILITY)

    def mark_as_decided(self, *, has_conflict: bool) -> 'Booking':
        """CHECKING_AVAILABILITY → REJECTED when a confirmed booking overlaps, else CONFIRMED"""
        return self.transition_to(
            BookingStatus.REJECTED if has_conflict else BookingStatus.CONFIRMED
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)
