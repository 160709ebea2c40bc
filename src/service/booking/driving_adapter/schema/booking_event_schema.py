from datetime import datetime, timezone
from typing import Any, Optional

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from uuid_utils import UUID

from src.platform.exception.exceptions import EventDecodeError
from src.service.booking.domain.entity.booking_entity import MAX_GUESTS, MIN_GUESTS
from src.service.booking.domain.value_object.booking_ref import BookingRef


class BookingCreatedEventSchema(BaseModel):
    """
    Booking-creation event as published by the ingress (the stored booking row).

    Unknown fields (status, createdAt, ...) are ignored. Only ``id`` drives
    processing; the stored row is authoritative for everything else, so
    ``guests`` never makes an event undecodable.
    """

    model_config = ConfigDict(extra='ignore', populate_by_name=True)

    id: str = Field(min_length=1)
    restaurant_name: str = Field(alias='restaurantName')
    booking_datetime: datetime = Field(alias='datetime')
    guests: Optional[int] = None

    @field_validator('guests', mode='before')
    @classmethod
    def drop_unusable_guests(cls, v: Any) -> Optional[int]:
        if isinstance(v, bool) or not isinstance(v, int) or not MIN_GUESTS <= v <= MAX_GUESTS:
            return None
        return v

    @field_validator('booking_datetime')
    @classmethod
    def assume_utc_when_naive(cls, v: datetime) -> datetime:
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)


def _describe_validation_error(error: ValidationError) -> str:
    return '; '.join(
        f'{".".join(str(loc) for loc in err["loc"]) or "payload"}: {err["msg"]}'
        for err in error.errors()
    )


def decode_booking_event(raw: Optional[bytes]) -> BookingRef:
    """
    Decode a raw message value into a BookingRef

    Raises:
        EventDecodeError: empty value, invalid JSON, missing id/restaurantName/datetime,
            unparseable datetime or non-UUID id
    """
    if not raw:
        raise EventDecodeError('Empty message value')

    try:
        payload: Any = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise EventDecodeError(f'Message value is not valid JSON: {e}') from e

    if not isinstance(payload, dict):
        raise EventDecodeError(f'Expected a JSON object, got {type(payload).__name__}')

    try:
        event = BookingCreatedEventSchema.model_validate(payload)
    except ValidationError as e:
        raise EventDecodeError(f'Invalid booking event: {_describe_validation_error(e)}') from e

    # booking.id is a uuid column, so no other id can name a stored booking
    try:
        booking_id = UUID(event.id)
    except (TypeError, ValueError) as e:
        raise EventDecodeError(f'Invalid booking id: {event.id!r}') from e

    return BookingRef(
        id=booking_id,
        restaurant_name=event.restaurant_name,
        datetime=event.booking_datetime,
        guests=event.guests,
    )
