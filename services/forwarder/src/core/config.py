from functools import lru_cache
from typing import ClassVar, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PositiveInt,
    SecretStr,
    field_validator,
)

from shared.config import BaseServiceConfig
from shared.constants import Topics

STACKDRIVER_GATEWAY_URL = "https://custom-gateway.stackdriver.com/v1/custom"


class MetricTemplate(BaseModel):
    """How to derive one custom metric from an event's fields.

    Each pattern may contain ``{{field_name}}`` placeholders.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., min_length=1, description="Metric name pattern")
    value: str = Field(..., min_length=1, description="Metric value pattern")
    instance_id: str = Field("", description="Optional instance id pattern")

    @field_validator("name", "value")
    @classmethod
    def _not_blank(cls, pattern: str) -> str:
        if not pattern.strip():
            raise ValueError("pattern must not be blank")
        return pattern


class Settings(BaseServiceConfig):
    config_file: ClassVar[str] = "forwarder.toml"
    config_file_env: ClassVar[str] = "FORWARDER_CONFIG_FILE"

    # Stackdriver gateway
    api_key: SecretStr
    gateway_url: str = STACKDRIVER_GATEWAY_URL
    submit_timeout_seconds: float = Field(10.0, gt=0)

    # Flush cadence; one minute is the gateway's rate limit
    ticker_interval: PositiveInt = 60

    # Metric templates keyed by an arbitrary name
    metric: dict[str, MetricTemplate] = {}

    # Behaviour switches
    drain_on_close: bool = True  # flush the pending batch when input closes
    strict_values: bool = True  # false: unparseable values become zero samples

    # Kafka event source
    forwarder_kafka_topics: list[str] = Topics.event_topics()
    forwarder_kafka_consumer_group: str = "metric-forwarder"
    forwarder_consume_from: Literal["earliest", "latest"] = "latest"
    channel_max_size: int = 1000

    # Health / metrics
    metrics_port: int = 8001
    health_port: int = 8081

    otel_service_name: str = "forwarder"

    @field_validator("api_key")
    @classmethod
    def _api_key_present(cls, key: SecretStr) -> SecretStr:
        if not key.get_secret_value().strip():
            raise ValueError("api_key must contain a Stackdriver API key")
        return key


@lru_cache
def get_settings() -> Settings:
    return Settings()
