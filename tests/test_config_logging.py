"""Tests for config and logging."""

import io
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Iterator

import pytest

from loan_engine.config import (
    AmortizationConfig,
    EngineConfig,
    FeeSchedule,
    GatewayFeeConfig,
    KafkaConfig,
    OutputConfig,
)
from loan_engine.exceptions import ConfigurationError
from loan_engine.logging import JsonFormatter, get_logger, setup_logging

ENV_VARS = [
    "LATE_FEE",
    "LATE_FEE_GRACE_DAYS",
    "NOTICE_FEE",
    "NOTICE_THRESHOLD_DAYS",
    "CURE_PERIOD_DAYS",
    "MIN_MONTHLY_PAYMENT",
    "GATEWAY_FEE_PERCENT",
    "GATEWAY_FEE_FIXED",
    "CONVENIENCE_FEE",
    "KAFKA_BOOTSTRAP_SERVERS",
    "KAFKA_ACKS",
    "SCHEMA_REGISTRY_URL",
    "OUTPUT_DIR",
    "PRETTY_JSON",
    "TOPIC_PREFIX",
    "DEFAULT_DUE_DAY",
    "SEED",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestKafkaConfig:
    """Tests for KafkaConfig."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        config = KafkaConfig()

        assert config.bootstrap_servers == "localhost:9092"
        assert config.schema_registry_url is None
        assert config.acks == "all"
        assert config.compression == "snappy"

    def test_to_dict(self) -> None:
        """Test conversion to confluent-kafka config dict."""
        config = KafkaConfig(bootstrap_servers="kafka:9092", linger_ms=10, schema_registry_url="http://sr:8081")

        result = config.to_dict()

        assert result["bootstrap.servers"] == "kafka:9092"
        assert result["linger.ms"] == 10
        assert result["compression.type"] == "snappy"
        # Registry URL is not a producer setting
        assert "schema.registry.url" not in result
        assert len(result) == 6


class TestEngineConfig:
    """Tests for EngineConfig."""

    def test_default_values(self) -> None:
        """Test default policy values."""
        config = EngineConfig()

        assert config.fees == FeeSchedule()
        assert config.fees.late_fee == Decimal("75.00")
        assert config.fees.notice_threshold_days == 30
        assert config.fees.cure_period_days == 7
        assert config.amortization == AmortizationConfig()
        assert config.gateway == GatewayFeeConfig()
        assert config.output == OutputConfig()
        assert config.output.topic_prefix == "dev.loans"
        assert config.default_due_day == 1

    def test_validate_returns_self(self) -> None:
        """Test a valid config passes through."""
        config = EngineConfig()

        assert config.validate() is config

    @pytest.mark.parametrize(
        "config",
        [
            EngineConfig(default_due_day=10),
            EngineConfig(fees=FeeSchedule(late_fee=Decimal("-1"))),
            EngineConfig(fees=FeeSchedule(notice_threshold_days=5)),
            EngineConfig(amortization=AmortizationConfig(min_monthly_payment=Decimal("0"))),
            EngineConfig(gateway=GatewayFeeConfig(fixed=Decimal("-0.30"))),
        ],
    )
    def test_validate_rejects(self, config: EngineConfig) -> None:
        """Test out-of-range policy values."""
        with pytest.raises(ConfigurationError):
            config.validate()

    def test_from_env_default(self, clean_env: pytest.MonkeyPatch) -> None:
        """Test creating config from environment with defaults."""
        config = EngineConfig.from_env()

        assert config == EngineConfig()
        assert config.seed is None
        assert config.log_level == "INFO"

    def test_from_env_custom(self, clean_env: pytest.MonkeyPatch) -> None:
        """Test creating config from custom environment variables."""
        clean_env.setenv("LATE_FEE", "50.00")
        clean_env.setenv("CURE_PERIOD_DAYS", "10")
        clean_env.setenv("GATEWAY_FEE_PERCENT", "0.035")
        clean_env.setenv("KAFKA_BOOTSTRAP_SERVERS", "kafka-cluster:9092")
        clean_env.setenv("SCHEMA_REGISTRY_URL", "http://registry:8081")
        clean_env.setenv("OUTPUT_DIR", "/tmp/loans")
        clean_env.setenv("PRETTY_JSON", "true")
        clean_env.setenv("TOPIC_PREFIX", "prod.loans")
        clean_env.setenv("DEFAULT_DUE_DAY", "15")
        clean_env.setenv("SEED", "42")
        clean_env.setenv("LOG_LEVEL", "DEBUG")

        config = EngineConfig.from_env()

        assert config.fees.late_fee == Decimal("50.00")
        assert config.fees.cure_period_days == 10
        assert config.gateway.percent == Decimal("0.035")
        assert config.kafka.bootstrap_servers == "kafka-cluster:9092"
        assert config.kafka.schema_registry_url == "http://registry:8081"
        assert config.output.json_output_dir == Path("/tmp/loans")
        assert config.output.pretty_json is True
        assert config.output.topic_prefix == "prod.loans"
        assert config.default_due_day == 15
        assert config.seed == 42
        assert config.log_level == "DEBUG"

    def test_from_env_bad_decimal(self, clean_env: pytest.MonkeyPatch) -> None:
        """Test a non-numeric fee is a configuration error."""
        clean_env.setenv("NOTICE_FEE", "seventy-five")

        with pytest.raises(ConfigurationError, match="NOTICE_FEE"):
            EngineConfig.from_env()

    def test_from_env_bad_due_day(self, clean_env: pytest.MonkeyPatch) -> None:
        """Test the default due day is validated."""
        clean_env.setenv("DEFAULT_DUE_DAY", "20")

        with pytest.raises(ConfigurationError, match="default_due_day"):
            EngineConfig.from_env()


class TestSetupLogging:
    """Tests for setup_logging function."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self) -> Iterator[None]:
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)
        logging.getLogger("loan_engine").setLevel(logging.NOTSET)

    def test_setup_logging_stream(self) -> None:
        """Test output goes to the given stream."""
        stream = io.StringIO()
        setup_logging(level="INFO", stream=stream)

        logging.getLogger("loan_engine.test").info("Loan %s originated", "loan-001")

        assert "INFO     | loan_engine.test | Loan loan-001 originated" in stream.getvalue()

    def test_setup_logging_default(self) -> None:
        """Test default logging setup."""
        setup_logging()

        assert logging.getLogger("loan_engine").level == logging.INFO

    def test_setup_logging_debug(self) -> None:
        """Test debug level logging setup."""
        setup_logging(level="debug")

        assert logging.getLogger().level == logging.DEBUG

    def test_setup_logging_invalid_level(self) -> None:
        """Test logging with invalid level defaults to INFO."""
        setup_logging(level="INVALID")

        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_json_format(self) -> None:
        """Test JSON format logging."""
        setup_logging(format_type="json")

        assert any(isinstance(h.formatter, JsonFormatter) for h in logging.getLogger().handlers)

    def test_setup_logging_replaces_handlers(self) -> None:
        """Test that setup_logging replaces existing handlers."""
        logger = logging.getLogger()
        logger.addHandler(logging.StreamHandler())
        logger.addHandler(logging.StreamHandler())

        setup_logging()

        assert len(logger.handlers) == 1

    def test_external_loggers_quieted(self) -> None:
        """Test that external library loggers are quieted."""
        setup_logging(level="DEBUG")

        assert logging.getLogger("confluent_kafka").level == logging.WARNING
        assert logging.getLogger("faker").level == logging.WARNING


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def _record(self, **kwargs: object) -> logging.LogRecord:
        fields = {
            "name": "loan_engine.services.servicing",
            "level": logging.INFO,
            "pathname": "/path/to/servicing.py",
            "lineno": 42,
            "msg": "Recorded payment %s",
            "args": ("pay-001",),
            "exc_info": None,
        }
        fields.update(kwargs)
        return logging.LogRecord(**fields)

    def test_format_basic(self) -> None:
        """Test basic log formatting."""
        data = json.loads(JsonFormatter().format(self._record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "loan_engine.services.servicing"
        assert data["message"] == "Recorded payment pay-001"
        assert "timestamp" in data
        assert "exception" not in data

    def test_format_with_exception(self) -> None:
        """Test formatting with exception info."""
        try:
            raise ValueError("boom")
        except ValueError:
            import sys

            record = self._record(level=logging.ERROR, exc_info=sys.exc_info())

        data = json.loads(JsonFormatter().format(record))

        assert "ValueError: boom" in data["exception"]

    def test_format_with_loan_context(self) -> None:
        """Test loan fields passed through ``extra`` reach the document."""
        logger = logging.getLogger("loan_engine.test_context")
        record = logger.makeRecord(
            logger.name, logging.INFO, "servicing.py", 1, "Paid %s", (Decimal("210.00"),), None,
            extra={"loan_id": "loan-001", "payment_id": "pay-001"},
        )

        data = json.loads(JsonFormatter().format(record))

        assert data["loan_id"] == "loan-001"
        assert data["payment_id"] == "pay-001"
        assert data["message"] == "Paid 210.00"
        assert "event_type" not in data


class TestGetLogger:
    """Tests for get_logger function."""

    def test_get_logger(self) -> None:
        """Test getting a named logger."""
        logger = get_logger("loan_engine.test")

        assert isinstance(logger, logging.Logger)
        assert logger.name == "loan_engine.test"
