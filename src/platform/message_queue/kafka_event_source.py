from typing import Any, Dict, Optional

from confluent_kafka import Consumer, KafkaError, Message, TopicPartition

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger
from src.platform.message_queue.event_source import EventRecord, IEventSource


class KafkaEventSource(IEventSource):
    """
    confluent-kafka backed Event Source.

    Key settings:
    - enable.auto.commit: False, offsets are committed explicitly per record
    - auto.offset.reset: earliest, a new group starts from the first booking request
    """

    def __init__(
        self,
        *,
        consumer_group_id: str,
        extra_config: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.consumer_group_id = consumer_group_id
        config = settings.KAFKA_CONSUMER_CONFIG | {'group.id': consumer_group_id}
        if extra_config:
            config |= extra_config
        self.consumer = Consumer(config)

    def subscribe(self, topics: list[str]) -> None:
        self.consumer.subscribe(topics)
        Logger.base.info(f'📥 [KAFKA] Subscribed group={self.consumer_group_id} topics={topics}')

    def poll(self, timeout: float) -> EventRecord | None:
        msg: Message | None = self.consumer.poll(timeout=timeout)
        if msg is None:
            return None

        if msg.error():
            if msg.error().code() != KafkaError._PARTITION_EOF:
                Logger.base.error(f'❌ [KAFKA] Consumer error: {msg.error()}')
            return None

        return EventRecord(
            topic=msg.topic(),
            partition=msg.partition(),
            offset=msg.offset(),
            key=msg.key(),
            value=msg.value(),
            headers=list(msg.headers() or []),
        )

    def commit(self, record: EventRecord) -> None:
        # Kafka commits the NEXT offset to read
        self.consumer.commit(
            offsets=[TopicPartition(record.topic, record.partition, record.offset + 1)],
            asynchronous=False,
        )

    def rewind(self, record: EventRecord) -> None:
        self.consumer.seek(TopicPartition(record.topic, record.partition, record.offset))

    def close(self) -> None:
        # Leaves the group, triggering a rebalance for the remaining consumers
        self.consumer.close()
        Logger.base.info(f'🔌 [KAFKA] Consumer closed group={self.consumer_group_id}')
