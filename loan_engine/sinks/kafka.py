"""Kafka sink for streaming loan events and payments."""

import json
import logging
from dataclasses import dataclass, is_dataclass
from enum import Enum
from typing import Any

from confluent_kafka import KafkaException, Producer
from confluent_kafka.serialization import MessageField, SerializationContext

from loan_engine.config import KafkaConfig
from loan_engine.exceptions import SinkError
from loan_engine.models import Payment
from loan_engine.sinks.serialization import dumps

logger = logging.getLogger(__name__)

SCHEMA_NAMESPACE = "com.loanengine.servicing"

MONEY = {"type": "bytes", "logicalType": "decimal", "precision": 15, "scale": 2}

# Avro schemas keyed by the last segment of the topic name
AVRO_SCHEMAS = {
    "payments": {
        "type": "record",
        "name": "Payment",
        "namespace": SCHEMA_NAMESPACE,
        "fields": [
            {"name": "payment_id", "type": "string"},
            {"name": "loan_id", "type": "string"},
            {"name": "amount", "type": MONEY},
            {"name": "payment_date", "type": {"type": "int", "logicalType": "date"}},
            {"name": "method", "type": "string"},
            {"name": "payment_type", "type": "string"},
            {"name": "status", "type": "string"},
            {"name": "gateway_fee", "type": MONEY},
            {"name": "convenience_fee", "type": MONEY},
            {"name": "notice_fee", "type": MONEY},
            {"name": "postal_fee", "type": MONEY},
            {"name": "late_fee", "type": MONEY},
            {"name": "interest", "type": MONEY},
            {"name": "tax_escrow", "type": MONEY},
            {"name": "hoa_escrow", "type": MONEY},
            {"name": "principal", "type": MONEY},
            {"name": "transaction_id", "type": ["null", "string"], "default": None},
        ],
    },
}


@dataclass
class ProducerStats:
    """Track producer delivery statistics."""

    sent: int = 0
    delivered: int = 0
    failed: int = 0

    @property
    def success_rate(self) -> float:
        total = self.delivered + self.failed
        return self.delivered / total if total > 0 else 0.0


class KafkaSink:
    """Publish records to Kafka, keyed by loan so each loan stays ordered."""

    def __init__(self, config: KafkaConfig | str) -> None:
        """Initialize Kafka sink.

        Parameters
        ----------
        config : KafkaConfig | str
            Producer configuration or bootstrap servers string.
        """
        if isinstance(config, str):
            config = KafkaConfig(bootstrap_servers=config)

        self.config = config
        self.producer = Producer(config.to_dict())
        self.stats = ProducerStats()
        self._avro_serializers: dict[str, Any] = {}

        if config.schema_registry_url:
            self._init_avro_serializers()

    def _init_avro_serializers(self) -> None:
        """Register Avro serializers; needs the ``confluent-kafka[avro]`` extra."""
        from confluent_kafka.schema_registry import SchemaRegistryClient
        from confluent_kafka.schema_registry.avro import AvroSerializer

        client = SchemaRegistryClient({"url": self.config.schema_registry_url})
        for entity_type, schema in AVRO_SCHEMAS.items():
            self._avro_serializers[entity_type] = AvroSerializer(
                client,
                json.dumps(schema),
                to_dict=self._to_avro_dict,
            )
        logger.info("Avro serializers initialized for: %s", list(AVRO_SCHEMAS))

    @staticmethod
    def _to_avro_dict(obj: Any, ctx: SerializationContext) -> dict:
        """Flatten a payment and its allocation into an Avro record."""
        if not isinstance(obj, Payment):
            raise SinkError(f"Cannot encode {type(obj).__name__} with the payment schema")
        result: dict[str, Any] = {}
        for key, value in vars(obj).items():
            if key == "allocation":
                result.update(vars(value))
            elif isinstance(value, Enum):
                result[key] = value.value
            elif key != "notes":
                result[key] = value
        return result

    def _delivery_callback(self, err: Any, msg: Any) -> None:
        """Handle delivery reports."""
        if err:
            self.stats.failed += 1
            logger.error("Delivery failed: %s", err)
        else:
            self.stats.delivered += 1
            logger.debug("Delivered to %s[%d]@%d", msg.topic(), msg.partition(), msg.offset())

    @staticmethod
    def _get_key(record: Any) -> str | None:
        """Events are keyed by subject, everything else by loan id."""
        for key_field in ("subject", "loan_id"):
            if is_dataclass(record):
                value = getattr(record, key_field, None)
            elif isinstance(record, dict):
                value = record.get(key_field)
            else:
                value = None
            if value:
                return str(value)
        return None

    @staticmethod
    def _get_entity_type(topic: str) -> str:
        # dev.loans.payments -> payments
        return topic.split(".")[-1].replace("-", "_")

    def send(self, topic: str, record: Any, key: str | None = None) -> None:
        """Send a single record to a Kafka topic."""
        serializer = self._avro_serializers.get(self._get_entity_type(topic))
        if serializer is not None:
            value = serializer(record, SerializationContext(topic, MessageField.VALUE))
        else:
            value = dumps(record).encode("utf-8")

        if key is None:
            key = self._get_key(record)

        try:
            self.producer.produce(
                topic=topic,
                key=key.encode("utf-8") if key else None,
                value=value,
                callback=self._delivery_callback,
            )
        except (BufferError, KafkaException) as exc:
            raise SinkError(f"Cannot produce to {topic}: {exc}") from exc
        self.stats.sent += 1
        self.producer.poll(0)

    def write_batch(self, topic: str, records: list[Any]) -> None:
        """Write a batch of records to a Kafka topic."""
        logger.debug("Writing batch to %s: %d records", topic, len(records))

        for record in records:
            self.send(topic, record)

        self.flush()

    def flush(self, timeout: float = 30.0) -> None:
        """Flush pending messages."""
        remaining = self.producer.flush(timeout)
        if remaining:
            raise SinkError(f"{remaining} messages still pending after {timeout}s")

    def close(self) -> None:
        """Flush and close the producer."""
        self.flush()
        logger.info(
            "Kafka sink closed: sent=%d, delivered=%d, failed=%d",
            self.stats.sent,
            self.stats.delivered,
            self.stats.failed,
        )
