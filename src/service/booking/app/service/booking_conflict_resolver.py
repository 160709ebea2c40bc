from datetime import datetime, timedelta

from uuid_utils import UUID

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger
from src.service.booking.app.interface.i_booking_command_repo import IBookingTransaction
from src.service.booking.domain.value_object.conflict_window import ConflictWindow


class BookingConflictResolver:
    """
    Decides whether a booking time collides with an already confirmed booking
    at the same restaurant.

    Must be called inside the caller's transaction: the restaurant lock taken
    here is what keeps two concurrent decisions from both seeing "no conflict".
    """

    def __init__(self, *, window_hours: float = settings.BOOKING_CONFLICT_WINDOW_HOURS) -> None:
        self.half_width = timedelta(hours=window_hours)

    def window_for(self, booking_datetime: datetime) -> ConflictWindow:
        return ConflictWindow.around(booking_datetime, half_width=self.half_width)

    @Logger.io
    async def has_conflict(
        self,
        *,
        tx: IBookingTransaction,
        restaurant_name: str,
        booking_datetime: datetime,
        exclude_id: UUID,
    ) -> bool:
        window = self.window_for(booking_datetime)

        await tx.lock_restaurant(restaurant_name=restaurant_name)
        return await tx.exists_confirmed_in_window(
            restaurant_name=restaurant_name,
            window_start=window.start,
            window_end=window.end,
            exclude_id=exclude_id,
        )
