import pytest
from pydantic import ValidationError

from src.platform.config.core_setting import Settings


@pytest.mark.unit
class TestSettings:
    def test_booking_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv('BOOKING_DECISION_RETRY_BACKOFF_SECONDS', raising=False)
        monkeypatch.delenv('BOOKING_CONSUMER_RETRY_PAUSE_SECONDS', raising=False)

        s = Settings(_env_file=None)

        assert s.BOOKING_CONFLICT_WINDOW_HOURS == 2.0
        assert s.BOOKING_TRANSACTION_ISOLATION == 'read_committed'
        assert s.BOOKING_CONSUMER_MAX_DELIVERY_ATTEMPTS == 5
        assert s.BOOKING_DECISION_MAX_ATTEMPTS == 3
        assert s.KAFKA_CONSUMER_AUTO_OFFSET_RESET == 'earliest'

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv('BOOKING_TRANSACTION_ISOLATION', 'serializable')
        monkeypatch.setenv('BOOKING_CONSUMER_MAX_DELIVERY_ATTEMPTS', '9')

        s = Settings(_env_file=None)

        assert s.BOOKING_TRANSACTION_ISOLATION == 'serializable'
        assert s.BOOKING_CONSUMER_MAX_DELIVERY_ATTEMPTS == 9

    def test_repeatable_read_is_not_accepted(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv('BOOKING_TRANSACTION_ISOLATION', 'repeatable_read')
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    @pytest.mark.parametrize(
        'name', ['BOOKING_CONSUMER_MAX_DELIVERY_ATTEMPTS', 'BOOKING_DECISION_MAX_ATTEMPTS']
    )
    def test_attempt_limits_must_be_positive(
        self, monkeypatch: pytest.MonkeyPatch, name: str
    ) -> None:
        monkeypatch.setenv(name, '0')
        with pytest.raises(ValidationError, match='at least 1'):
            Settings(_env_file=None)

    def test_kafka_consumer_config(self) -> None:
        s = Settings(_env_file=None, KAFKA_BOOTSTRAP_SERVERS='kafka:29092')
        config = s.KAFKA_CONSUMER_CONFIG

        assert config['bootstrap.servers'] == 'kafka:29092'
        assert config['enable.auto.commit'] is False

    def test_database_url_uses_secret_password(self) -> None:
        s = Settings(
            _env_file=None,
            POSTGRES_SERVER='db',
            POSTGRES_PORT=5432,
            POSTGRES_PASSWORD='s3cret',
            POSTGRES_DB='bookings',
        )

        assert s.DATABASE_URL_ASYNC.endswith(':s3cret@db:5432/bookings')
        assert 's3cret' not in repr(s.POSTGRES_PASSWORD)
