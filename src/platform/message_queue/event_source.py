"""
Event Source contract consumed by MQ consumers.

Delivery is at-least-once: a record that was polled but not committed is
delivered again after a restart, a rebalance or an explicit rewind.
"""

from abc import ABC, abstractmethod
from typing import Optional

import attrs


@attrs.define(frozen=True)
class EventRecord:
    topic: str
    partition: int
    offset: int
    value: Optional[bytes]
    key: Optional[bytes] = None
    headers: list[tuple[str, bytes]] = attrs.field(factory=list)


class IEventSource(ABC):
    @abstractmethod
    def subscribe(self, topics: list[str]) -> None:
        pass

    @abstractmethod
    def poll(self, timeout: float) -> EventRecord | None:
        """Return the next record, or None if nothing arrived within ``timeout`` seconds"""
        pass

    @abstractmethod
    def commit(self, record: EventRecord) -> None:
        """Acknowledge ``record`` and everything before it on the same partition"""
        pass

    @abstractmethod
    def rewind(self, record: EventRecord) -> None:
        """Make ``record`` the next one delivered on its partition"""
        pass

    @abstractmethod
    def close(self) -> None:
        pass
