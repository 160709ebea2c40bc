class KafkaTopicBuilder:
    """Kafka topic names shared between the ingress and the booking service"""

    @staticmethod
    def booking_requests() -> str:
        """Booking-creation events published by the ingress after the row is stored"""
        return 'booking.requests'

    @staticmethod
    def get_all_topics() -> list[str]:
        return [KafkaTopicBuilder.booking_requests()]


class KafkaConsumerGroupBuilder:
    """Kafka consumer group names"""

    @staticmethod
    def booking_service() -> str:
        return 'booking-group'
