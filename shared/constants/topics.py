class Topics:
    """Centralised Kafka topic definitions"""

    # Structured events published by upstream collectors
    EVENTS = "forwarder_events"

    @classmethod
    def event_topics(cls) -> list[str]:
        """Topics the forwarder consumes by default"""
        return [cls.EVENTS]
