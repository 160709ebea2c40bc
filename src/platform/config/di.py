"""
https://python-dependency-injector.ets-labs.org/index.html
"""

from dependency_injector import containers, providers

from src.platform.config.core_setting import Settings
from src.platform.message_queue.kafka_constant_builder import (
    KafkaConsumerGroupBuilder,
    KafkaTopicBuilder,
)
from src.platform.message_queue.kafka_event_source import KafkaEventSource
from src.service.booking.app.command.confirm_booking_use_case import ConfirmBookingUseCase
from src.service.booking.app.service.booking_conflict_resolver import BookingConflictResolver
from src.service.booking.driven_adapter.repo.booking_command_repo_impl import (
    BookingCommandRepoImpl,
)
from src.service.booking.driving_adapter.mq_consumer.booking_confirmation_mq_consumer import (
    BookingConfirmationMqConsumer,
)


class Container(containers.DeclarativeContainer):
    # Configuration
    config_service = providers.Singleton(Settings)

    # Booking store gateway (stateless - acquires pooled connections per call)
    booking_command_repo = providers.Singleton(
        BookingCommandRepoImpl,
        isolation=config_service.provided.BOOKING_TRANSACTION_ISOLATION,
    )

    conflict_resolver = providers.Singleton(
        BookingConflictResolver,
        window_hours=config_service.provided.BOOKING_CONFLICT_WINDOW_HOURS,
    )

    # Use cases
    confirm_booking_use_case = providers.Factory(
        ConfirmBookingUseCase,
        booking_command_repo=booking_command_repo,
        conflict_resolver=conflict_resolver,
        decision_max_attempts=config_service.provided.BOOKING_DECISION_MAX_ATTEMPTS,
        decision_retry_backoff_seconds=config_service.provided.BOOKING_DECISION_RETRY_BACKOFF_SECONDS,
    )

    # Event source + consumer (one Kafka consumer per process)
    booking_event_source = providers.Singleton(
        KafkaEventSource,
        consumer_group_id=KafkaConsumerGroupBuilder.booking_service(),
    )

    booking_confirmation_consumer = providers.Singleton(
        BookingConfirmationMqConsumer,
        event_source=booking_event_source,
        confirm_booking_use_case=confirm_booking_use_case,
        topics=providers.List(KafkaTopicBuilder.booking_requests()),
        poll_timeout_seconds=config_service.provided.BOOKING_CONSUMER_POLL_TIMEOUT_SECONDS,
        max_delivery_attempts=config_service.provided.BOOKING_CONSUMER_MAX_DELIVERY_ATTEMPTS,
        retry_pause_seconds=config_service.provided.BOOKING_CONSUMER_RETRY_PAUSE_SECONDS,
    )


container = Container()
