from datetime import datetime, timedelta

import attrs


DEFAULT_HALF_WIDTH = timedelta(hours=2)


@attrs.define(frozen=True)
class ConflictWindow:
    """Closed interval [start, end] around a booking time"""

    start: datetime
    end: datetime

    @classmethod
    def around(
        cls, booking_datetime: datetime, *, half_width: timedelta = DEFAULT_HALF_WIDTH
    ) -> 'ConflictWindow':
        if half_width < timedelta(0):
            raise ValueError('half_width must not be negative')
        return cls(start=booking_datetime - half_width, end=booking_datetime + half_width)

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end
