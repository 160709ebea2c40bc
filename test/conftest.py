"""
Test Configuration and Fixtures

This module provides:
- Early environment setup (test log dir, test database name)
- Shared booking fixtures used by unit tests

Architecture:
- Unit tests (test/**/unit/): run against in-memory doubles, no Postgres or Kafka
- Integration tests (test/**/integration/): run against a real Postgres test database,
  skipped when it is not reachable (fixtures in test/service/booking/integration/conftest.py)
- Store/source doubles live in test/service/booking/conftest.py
"""

# =============================================================================
# CRITICAL: Environment setup MUST happen before any other imports
# Settings and the loguru sinks read these at import time
# =============================================================================
import os
from pathlib import Path


def _early_setup_test_environment() -> None:
    """Set test environment variables before any module imports."""
    worker_id = os.environ.get('PYTEST_XDIST_WORKER', 'master')
    if worker_id == 'master':
        os.environ['POSTGRES_DB'] = 'restaurant_booking_test_db'
    else:
        os.environ['POSTGRES_DB'] = f'restaurant_booking_test_db_{worker_id}'

    test_log_dir = Path(__file__).parent / 'test_log'
    test_log_dir.mkdir(exist_ok=True)
    os.environ['TEST_LOG_DIR'] = str(test_log_dir)

    # Keep retries fast in tests
    os.environ.setdefault('BOOKING_DECISION_RETRY_BACKOFF_SECONDS', '0')
    os.environ.setdefault('BOOKING_CONSUMER_RETRY_PAUSE_SECONDS', '0')
    os.environ.setdefault('BOOKING_CONSUMER_POLL_TIMEOUT_SECONDS', '0')


_early_setup_test_environment()


# =============================================================================
# Imports (after environment setup)
# =============================================================================
from datetime import datetime, timezone  # noqa: E402

import pytest  # noqa: E402
import uuid_utils  # noqa: E402

from src.service.booking.domain.entity.booking_entity import Booking  # noqa: E402


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        markers = [m.name for m in item.iter_markers()]
        if 'unit' not in markers:
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def booking_at():
    """
    Factory for CREATED bookings

    Usage:
        booking = booking_at('Bistro', 19)
        booking = booking_at('Bistro', 21, minute=1)
    """

    def _make(
        restaurant_name: str,
        hour: int,
        *,
        minute: int = 0,
        second: int = 0,
        day: int = 1,
        guests: int = 2,
    ) -> Booking:
        return Booking.create(
            id=uuid_utils.uuid7(),
            restaurant_name=restaurant_name,
            datetime=datetime(2030, 6, day, hour, minute, second, tzinfo=timezone.utc),
            guests=guests,
        )

    return _make
