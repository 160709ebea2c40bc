"""Outcome of processing one booking-creation event."""

from enum import StrEnum

import attrs
from uuid_utils import UUID

from src.service.booking.domain.entity.booking_entity import BookingStatus


class SkipReason(StrEnum):
    NOT_FOUND = 'not_found'
    ALREADY_PROCESSED = 'already_processed'
    CLAIMED_ELSEWHERE = 'claimed_elsewhere'
    DECISION_SUPERSEDED = 'decision_superseded'
    STRANDED = 'stranded'


@attrs.define(frozen=True)
class Ok:
    """Booking reached a terminal status during this delivery"""

    booking_id: UUID
    status: BookingStatus


@attrs.define(frozen=True)
class Skip:
    """Nothing (more) to do for this delivery; the event can be acknowledged"""

    booking_id: UUID
    reason: SkipReason
    detail: str = ''


@attrs.define(frozen=True)
class Retryable:
    """
    The store failed before the booking was claimed.

    No state changed, so redelivering the same event is productive.
    """

    booking_id: UUID
    error: str


ProcessingResult = Ok | Skip | Retryable
