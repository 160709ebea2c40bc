"""
Booking Confirmation MQ Consumer

Consumes booking-creation events and hands each one to ConfirmBookingUseCase.

Processing model:
- One event at a time, to completion, before the next poll
- Acknowledgment policy per ProcessingResult:
  - Ok / Skip → commit offset
  - Retryable → rewind partition to the same offset (redelivery), up to
    MAX_DELIVERY_ATTEMPTS; then commit and log as exhausted
- Undecodable messages are logged and committed
- No exception from a single event stops the loop
- stop() only flags the loop; the in-flight event finishes before the source closes
"""

from functools import partial
from threading import Event
from typing import TYPE_CHECKING, Dict, Optional

from opentelemetry import trace

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import EventDecodeError
from src.platform.logging.loguru_io import Logger
from src.platform.message_queue.event_source import EventRecord, IEventSource
from src.platform.message_queue.kafka_constant_builder import KafkaTopicBuilder
from src.platform.observability.tracing import extract_trace_context
from src.service.booking.app.command.confirm_booking_use_case import ConfirmBookingUseCase
from src.service.booking.app.dto.processing_result import ProcessingResult, Retryable
from src.service.booking.driving_adapter.schema.booking_event_schema import decode_booking_event


if TYPE_CHECKING:
    from anyio.from_thread import BlockingPortal


_RecordKey = tuple[str, int, int]


class BookingConfirmationMqConsumer:
    def __init__(
        self,
        *,
        event_source: IEventSource,
        confirm_booking_use_case: ConfirmBookingUseCase,
        topics: Optional[list[str]] = None,
        poll_timeout_seconds: float = settings.BOOKING_CONSUMER_POLL_TIMEOUT_SECONDS,
        max_delivery_attempts: int = settings.BOOKING_CONSUMER_MAX_DELIVERY_ATTEMPTS,
        retry_pause_seconds: float = settings.BOOKING_CONSUMER_RETRY_PAUSE_SECONDS,
    ) -> None:
        self.event_source = event_source
        self.confirm_booking_use_case = confirm_booking_use_case
        self.topics = topics or [KafkaTopicBuilder.booking_requests()]
        self.poll_timeout_seconds = poll_timeout_seconds
        self.max_delivery_attempts = max_delivery_attempts
        self.retry_pause_seconds = retry_pause_seconds
        self.instance_id = settings.KAFKA_CONSUMER_INSTANCE_ID

        self.portal: Optional['BlockingPortal'] = None  # anyio cross-thread bridge
        self.tracer = trace.get_tracer(__name__)

        self.running = False
        self.stop_event = Event()
        self.stopped_event = Event()
        self._delivery_attempts: Dict[_RecordKey, int] = {}

    def set_portal(self, portal: 'BlockingPortal') -> None:
        """Set BlockingPortal for calling the async use case from the poll loop"""
        self.portal = portal

    # ========== Lifecycle ==========

    def start(self) -> None:
        """Subscribe and consume until stop() is called. Blocks the calling thread."""
        if self.portal is None:
            raise RuntimeError('BlockingPortal must be set before starting the consumer')

        self.stopped_event.clear()
        self.event_source.subscribe(self.topics)
        self.running = True

        Logger.base.info(
            f'🚀 [BOOKING-CONSUMER-{self.instance_id}] Started | topics={self.topics} '
            f'max_delivery_attempts={self.max_delivery_attempts}'
        )

        try:
            self._run_loop()
        finally:
            self.running = False
            try:
                self.event_source.close()
            except Exception as e:
                Logger.base.warning(f'⚠️ [BOOKING-CONSUMER] Close error: {e}')
            self.stopped_event.set()
            Logger.base.info(f'✅ [BOOKING-CONSUMER-{self.instance_id}] Stopped')

    def stop(self) -> None:
        """
        Stop pulling new events; the event being processed is allowed to finish.
        A stop requested before start() makes start() return without polling.
        """
        Logger.base.info('🛑 [BOOKING-CONSUMER] Stopping...')
        self.running = False
        self.stop_event.set()

    def wait_until_stopped(self, timeout: Optional[float] = None) -> bool:
        return self.stopped_event.wait(timeout)

    def _run_loop(self) -> None:
        while self.running and not self.stop_event.is_set():
            try:
                record = self.event_source.poll(self.poll_timeout_seconds)
            except Exception as e:
                Logger.base.error(f'❌ [BOOKING-CONSUMER] Poll error: {e}')
                self.stop_event.wait(self.retry_pause_seconds)
                continue

            if record is None:
                continue

            self._handle_record(record)

    # ========== Message Handling ==========

    def _handle_record(self, record: EventRecord) -> None:
        extract_trace_context(headers=record.headers)

        with self.tracer.start_as_current_span(
            'consumer.booking_requests',
            attributes={
                'messaging.system': 'kafka',
                'messaging.destination': record.topic,
                'messaging.kafka.partition': record.partition,
                'messaging.kafka.offset': record.offset,
            },
        ):
            try:
                booking_ref = decode_booking_event(record.value)
            except EventDecodeError as e:
                Logger.base.error(
                    f'❌ [BOOKING-CONSUMER] Skipping undecodable message '
                    f'{record.topic}[{record.partition}]@{record.offset}: {e}'
                )
                self._commit(record)
                return

            Logger.base.info(f'📥 [BOOKING-CONSUMER-{self.instance_id}] Processing: {booking_ref.id}')

            try:
                # pyrefly: ignore  # missing-attribute
                result: ProcessingResult = self.portal.call(
                    partial(self.confirm_booking_use_case.process, booking_ref=booking_ref)
                )
            except Exception as e:
                Logger.base.exception(
                    f'❌ [BOOKING-CONSUMER] Dispatch failed for {booking_ref.id}: {e}'
                )
                result = Retryable(booking_id=booking_ref.id, error=str(e))

            self._acknowledge(record, result)

    def _acknowledge(self, record: EventRecord, result: ProcessingResult) -> None:
        key: _RecordKey = (record.topic, record.partition, record.offset)

        if isinstance(result, Retryable):
            attempts = self._delivery_attempts.get(key, 0) + 1
            if attempts < self.max_delivery_attempts:
                self._delivery_attempts[key] = attempts
                Logger.base.warning(
                    f'🔄 [BOOKING-CONSUMER] {result.booking_id} retryable '
                    f'(attempt {attempts}/{self.max_delivery_attempts}): {result.error}'
                )
                if self._rewind(record):
                    self.stop_event.wait(self.retry_pause_seconds)
                    return
            else:
                Logger.base.error(
                    f'❌ [BOOKING-CONSUMER] {result.booking_id} exhausted '
                    f'{self.max_delivery_attempts} delivery attempts, giving up: {result.error}'
                )

        self._delivery_attempts.pop(key, None)
        self._commit(record)

    def _commit(self, record: EventRecord) -> None:
        try:
            self.event_source.commit(record)
        except Exception as e:
            # Uncommitted record is redelivered later; processing is idempotent
            Logger.base.error(
                f'❌ [BOOKING-CONSUMER] Commit failed for '
                f'{record.topic}[{record.partition}]@{record.offset}: {e}'
            )

    def _rewind(self, record: EventRecord) -> bool:
        try:
            self.event_source.rewind(record)
            return True
        except Exception as e:
            Logger.base.error(
                f'❌ [BOOKING-CONSUMER] Rewind failed for '
                f'{record.topic}[{record.partition}]@{record.offset}: {e}'
            )
            return False
