import os
from pathlib import Path
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ENV_PATH = _PROJECT_ROOT / '.env'
_ENV_FILE = _ENV_PATH if _ENV_PATH.exists() else (_PROJECT_ROOT / '.env.example')


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_ignore_empty=True,
        extra='ignore',
    )

    PROJECT_NAME: str = 'Restaurant Booking Service'
    VERSION: str = '0.1.0'
    DEBUG: bool = True  # Set to False in production

    # PostgreSQL
    POSTGRES_SERVER: str = 'localhost'
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = 'postgres'
    POSTGRES_PASSWORD: SecretStr = SecretStr('postgres')
    POSTGRES_DB: str = 'restaurant_booking'

    @property
    def DATABASE_URL_ASYNC(self) -> str:
        return (
            f'postgresql+asyncpg://{self.POSTGRES_USER}:'
            f'{self.POSTGRES_PASSWORD.get_secret_value()}@'
            f'{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}'
        )

    # asyncpg Connection Pool Configuration
    ASYNCPG_POOL_MIN_SIZE: int = 2
    ASYNCPG_POOL_MAX_SIZE: int = 10
    ASYNCPG_POOL_COMMAND_TIMEOUT: float = 10.0  # Per-statement timeout (seconds)
    ASYNCPG_POOL_TIMEOUT: float = 10.0  # Connection acquire timeout (seconds)
    ASYNCPG_POOL_MAX_INACTIVE_LIFETIME: float = 300.0
    ASYNCPG_POOL_MAX_QUERIES: int = 50000

    # Kafka Instance Configuration
    KAFKA_CONSUMER_INSTANCE_ID: str = os.getenv(
        'KAFKA_CONSUMER_INSTANCE_ID', f'consumer-{os.getpid()}'
    )

    # Kafka Configuration
    KAFKA_BOOTSTRAP_SERVERS: str = 'localhost:9092'
    KAFKA_SECURITY_PROTOCOL: str = 'PLAINTEXT'
    KAFKA_CONSUMER_AUTO_OFFSET_RESET: str = 'earliest'  # consume booking.requests from beginning
    KAFKA_SESSION_TIMEOUT_MS: int = 45000
    KAFKA_HEARTBEAT_INTERVAL_MS: int = 15000

    # Booking confirmation consumer tuning
    BOOKING_CONSUMER_POLL_TIMEOUT_SECONDS: float = 0.5
    BOOKING_CONSUMER_MAX_DELIVERY_ATTEMPTS: int = 5
    BOOKING_CONSUMER_RETRY_PAUSE_SECONDS: float = 1.0

    # Booking domain
    BOOKING_CONFLICT_WINDOW_HOURS: float = 2.0
    # repeatable_read is not offered: its snapshot predates the restaurant lock wait
    BOOKING_TRANSACTION_ISOLATION: Literal['read_committed', 'serializable'] = 'read_committed'
    BOOKING_DECISION_MAX_ATTEMPTS: int = 3
    BOOKING_DECISION_RETRY_BACKOFF_SECONDS: float = 0.2

    @field_validator('BOOKING_CONSUMER_MAX_DELIVERY_ATTEMPTS', 'BOOKING_DECISION_MAX_ATTEMPTS')
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError('attempt limits must be at least 1')
        return v

    @property
    def KAFKA_CONSUMER_CONFIG(self) -> dict:
        return {
            'bootstrap.servers': self.KAFKA_BOOTSTRAP_SERVERS,
            'security.protocol': self.KAFKA_SECURITY_PROTOCOL,
            'auto.offset.reset': self.KAFKA_CONSUMER_AUTO_OFFSET_RESET,
            'enable.auto.commit': False,  # Offsets are committed after dispatch returns
            'session.timeout.ms': self.KAFKA_SESSION_TIMEOUT_MS,
            'heartbeat.interval.ms': self.KAFKA_HEARTBEAT_INTERVAL_MS,
        }


settings = Settings()  # type: ignore
