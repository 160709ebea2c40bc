"""
Standalone Booking Confirmation Service Entry Point

Usage:
    PYTHONPATH=$PWD python -m src.service.booking.driving_adapter.mq_consumer.start_booking_confirmation_consumer
"""

import signal

from anyio.from_thread import start_blocking_portal

from src.platform.config.di import container
from src.platform.database.asyncpg_setting import (
    close_asyncpg_pool,
    get_asyncpg_pool,
    warmup_asyncpg_pool,
)
from src.platform.database.orm_db_setting import create_db_and_tables
from src.platform.logging.loguru_io import Logger
from src.platform.observability.tracing import TracingConfig


def main() -> None:
    """Start Booking Confirmation Service with BlockingPortal"""
    Logger.base.info('🚀 [Booking Service] Starting...')

    tracing = TracingConfig(service_name='booking-service')
    tracing.setup()
    Logger.base.info('📊 [Booking Service] OpenTelemetry configured')

    consumer = container.booking_confirmation_consumer()

    with start_blocking_portal() as portal:
        consumer.set_portal(portal)

        try:
            portal.call(create_db_and_tables)
            portal.call(get_asyncpg_pool)
            portal.call(warmup_asyncpg_pool)
            Logger.base.info('🏊 [Booking Service] Asyncpg pool initialized')
        except Exception as e:
            Logger.base.error(f'❌ [Booking Service] Failed to initialize database: {e}')
            raise

        def shutdown_handler(signum, frame):
            Logger.base.info(f'🛑 [Booking Service] Received signal {signum}')
            consumer.stop()

        signal.signal(signal.SIGINT, shutdown_handler)
        signal.signal(signal.SIGTERM, shutdown_handler)

        try:
            Logger.base.info('✅ [Booking Service] Starting consumer...')
            consumer.start()
        finally:
            try:
                portal.call(close_asyncpg_pool)
                Logger.base.info('🏊 [Booking Service] Asyncpg pool closed')
            except Exception as e:
                Logger.base.warning(f'⚠️ [Booking Service] Pool close error: {e}')

            tracing.shutdown()
            Logger.base.info('📊 [Booking Service] Tracing shutdown complete')


if __name__ == '__main__':
    main()
