from datetime import datetime
from typing import Optional

import attrs
from uuid_utils import UUID


@attrs.define(frozen=True)
class BookingRef:
    """
    What a booking-creation event tells the consumer about a booking.

    Only ``id`` drives processing; the persisted row is authoritative for
    restaurant and time once it has been read.
    """

    id: UUID
    restaurant_name: str
    datetime: datetime
    guests: Optional[int] = None
