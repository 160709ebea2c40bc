"""Booking Domain Value Objects"""

from src.service.booking.domain.value_object.booking_ref import BookingRef
from src.service.booking.domain.value_object.conflict_window import ConflictWindow

__all__ = ['BookingRef', 'ConflictWindow']
