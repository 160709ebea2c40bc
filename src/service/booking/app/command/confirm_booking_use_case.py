from functools import partial

import anyio
from opentelemetry import trace
from uuid_utils import UUID

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import ConflictError
from src.platform.logging.loguru_io import Logger
from src.service.booking.app.dto.processing_result import (
    Ok,
    ProcessingResult,
    Retryable,
    Skip,
    SkipReason,
)
from src.service.booking.app.interface.i_booking_command_repo import (
    IBookingCommandRepo,
    IBookingTransaction,
)
from src.service.booking.app.service.booking_conflict_resolver import BookingConflictResolver
from src.service.booking.domain.entity.booking_entity import BookingStatus
from src.service.booking.domain.value_object.booking_ref import BookingRef


class ConfirmBookingUseCase:
    """
    Drive one booking from CREATED to CONFIRMED or REJECTED

    Flow:
    1. Read booking; absent or not CREATED → Skip
    2. Claim: CREATED → CHECKING_AVAILABILITY as a single conditional update
    3. One transaction: lock row, conflict check under restaurant lock, write decision

    Store failures before the claim return Retryable (nothing changed, redelivery helps).
    Once claimed the booking never goes back to CREATED: the decision transaction is
    retried in-process and, if it keeps failing, the booking is left in
    CHECKING_AVAILABILITY and reported as stranded.

    Dependencies:
    - booking_command_repo: Booking store gateway
    - conflict_resolver: ±window overlap check against CONFIRMED bookings
    """

    def __init__(
        self,
        *,
        booking_command_repo: IBookingCommandRepo,
        conflict_resolver: BookingConflictResolver,
        decision_max_attempts: int = settings.BOOKING_DECISION_MAX_ATTEMPTS,
        decision_retry_backoff_seconds: float = settings.BOOKING_DECISION_RETRY_BACKOFF_SECONDS,
    ) -> None:
        self.booking_command_repo = booking_command_repo
        self.conflict_resolver = conflict_resolver
        self.decision_max_attempts = decision_max_attempts
        self.decision_retry_backoff_seconds = decision_retry_backoff_seconds
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def process(self, *, booking_ref: BookingRef) -> ProcessingResult:
        booking_id = booking_ref.id

        with self.tracer.start_as_current_span(
            'use_case.confirm_booking',
            attributes={'booking.id': str(booking_id)},
        ) as span:
            result = await self._process(booking_id=booking_id)
            span.set_attribute('booking.result', type(result).__name__)
            return result

    async def _process(self, *, booking_id: UUID) -> ProcessingResult:
        try:
            booking = await self.booking_command_repo.get_by_id(booking_id=booking_id)
        except Exception as e:
            Logger.base.error(f'❌ [CONFIRM] Failed to read booking {booking_id}: {e}')
            return Retryable(booking_id=booking_id, error=str(e))

        if booking is None:
            Logger.base.error(f'❌ [CONFIRM] {booking_id} not found')
            return Skip(booking_id=booking_id, reason=SkipReason.NOT_FOUND)

        if booking.status != BookingStatus.CREATED:
            stage = 'decided' if booking.status.is_terminal else 'in progress'
            Logger.base.info(
                f'⏭️ [CONFIRM] {booking_id} already processed ({stage}): {booking.status}'
            )
            return Skip(
                booking_id=booking_id,
                reason=SkipReason.ALREADY_PROCESSED,
                detail=booking.status,
            )

        try:
            claimed = await self.booking_command_repo.update_status(
                booking_id=booking_id,
                from_status=booking.status,
                to_status=booking.mark_as_checking_availability().status,
            )
        except Exception as e:
            Logger.base.error(f'❌ [CONFIRM] Failed to claim booking {booking_id}: {e}')
            return Retryable(booking_id=booking_id, error=str(e))

        if not claimed:
            Logger.base.info(f'⏭️ [CONFIRM] {booking_id} claimed by another delivery')
            return Skip(booking_id=booking_id, reason=SkipReason.CLAIMED_ELSEWHERE)

        return await self._decide_with_retry(booking_id=booking_id)

    async def _decide_with_retry(self, *, booking_id: UUID) -> ProcessingResult:
        last_error: Exception | None = None

        for attempt in range(1, self.decision_max_attempts + 1):
            try:
                final_status = await self.booking_command_repo.run_in_transaction(
                    partial(self._decide, booking_id=booking_id)
                )
            except Exception as e:
                last_error = e
                Logger.base.warning(
                    f'⚠️ [CONFIRM] Decision for {booking_id} failed '
                    f'(attempt {attempt}/{self.decision_max_attempts}): {e}'
                )
                if attempt < self.decision_max_attempts:
                    await anyio.sleep(self.decision_retry_backoff_seconds * attempt)
                continue

            if final_status is None:
                Logger.base.warning(
                    f'⏭️ [CONFIRM] {booking_id} left CHECKING_AVAILABILITY before the decision'
                )
                return Skip(booking_id=booking_id, reason=SkipReason.DECISION_SUPERSEDED)

            Logger.base.info(f'✅ [CONFIRM] {booking_id} booking change status on {final_status}')
            return Ok(booking_id=booking_id, status=final_status)

        Logger.base.error(
            f'🧊 [CONFIRM] {booking_id} stranded in CHECKING_AVAILABILITY after '
            f'{self.decision_max_attempts} attempts: {last_error}'
        )
        return Skip(booking_id=booking_id, reason=SkipReason.STRANDED, detail=str(last_error))

    async def _decide(self, tx: IBookingTransaction, *, booking_id: UUID) -> BookingStatus | None:
        booking = await tx.get_by_id_for_update(booking_id=booking_id)
        if booking is None or booking.status != BookingStatus.CHECKING_AVAILABILITY:
            return None

        has_conflict = await self.conflict_resolver.has_conflict(
            tx=tx,
            restaurant_name=booking.restaurant_name,
            booking_datetime=booking.datetime,
            exclude_id=booking.id,
        )
        decided = booking.mark_as_decided(has_conflict=has_conflict)

        written = await tx.update_status(
            booking_id=booking_id,
            from_status=booking.status,
            to_status=decided.status,
        )
        if not written:
            # Row is locked FOR UPDATE, so this only happens if the store lost the lock
            raise ConflictError(f'Booking {booking_id} changed while its decision was being written')

        return decided.status
