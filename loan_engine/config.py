"""Configuration management for loan-engine."""

from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any

from loan_engine.exceptions import ConfigurationError

VALID_DUE_DAYS = (1, 15)


@dataclass
class FeeSchedule:
    """Delinquency fee policy.

    Amounts are policy inputs, not engine decisions.
    """

    late_fee: Decimal = Decimal("75.00")
    late_fee_grace_days: int = 0
    waivable_after_days: int = 7
    notice_threshold_days: int = 30
    notice_fee: Decimal = Decimal("75.00")
    cure_period_days: int = 7
    days_per_installment: int = 30


@dataclass
class AmortizationConfig:
    """Limits applied when deriving a loan term."""

    min_monthly_payment: Decimal = Decimal("50.00")
    floor_term_months: int = 360


@dataclass
class GatewayFeeConfig:
    """Card gateway surcharge added to online payments."""

    percent: Decimal = Decimal("0.029")
    fixed: Decimal = Decimal("0.30")
    convenience_fee: Decimal = Decimal("5.00")


@dataclass
class KafkaConfig:
    """Kafka producer configuration."""

    bootstrap_servers: str = "localhost:9092"
    schema_registry_url: str | None = None
    acks: str = "all"
    batch_size: int = 16384
    linger_ms: int = 5
    compression: str = "snappy"
    retries: int = 3

    def to_dict(self) -> dict[str, Any]:
        """Convert to confluent-kafka config dict."""
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "acks": self.acks,
            "batch.size": self.batch_size,
            "linger.ms": self.linger_ms,
            "compression.type": self.compression,
            "retries": self.retries,
        }


@dataclass
class OutputConfig:
    """Output configuration."""

    json_output_dir: Path = field(default_factory=lambda: Path("output"))
    pretty_json: bool = False
    topic_prefix: str = "dev.loans"


@dataclass
class EngineConfig:
    """Main configuration for loan-engine."""

    fees: FeeSchedule = field(default_factory=FeeSchedule)
    amortization: AmortizationConfig = field(default_factory=AmortizationConfig)
    gateway: GatewayFeeConfig = field(default_factory=GatewayFeeConfig)
    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    default_due_day: int = 1
    seed: int | None = None
    log_level: str = "INFO"

    def validate(self) -> "EngineConfig":
        """Check policy values and return self.

        Raises
        ------
        ConfigurationError
            If any value is outside its allowed range.
        """
        if self.default_due_day not in VALID_DUE_DAYS:
            raise ConfigurationError(f"default_due_day must be one of {VALID_DUE_DAYS}")
        if self.fees.late_fee < 0 or self.fees.notice_fee < 0:
            raise ConfigurationError("Fee amounts cannot be negative")
        if self.fees.late_fee_grace_days < 0:
            raise ConfigurationError("late_fee_grace_days cannot be negative")
        if self.fees.notice_threshold_days <= self.fees.waivable_after_days:
            raise ConfigurationError("notice_threshold_days must exceed waivable_after_days")
        if self.fees.days_per_installment <= 0:
            raise ConfigurationError("days_per_installment must be positive")
        if self.amortization.min_monthly_payment <= 0:
            raise ConfigurationError("min_monthly_payment must be positive")
        if self.amortization.floor_term_months <= 0:
            raise ConfigurationError("floor_term_months must be positive")
        if self.gateway.percent < 0 or self.gateway.fixed < 0 or self.gateway.convenience_fee < 0:
            raise ConfigurationError("Gateway fees cannot be negative")
        return self

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Create config from environment variables."""
        import os
        from decimal import InvalidOperation

        def money(name: str, default: str) -> Decimal:
            raw = os.getenv(name, default)
            try:
                return Decimal(raw)
            except InvalidOperation as exc:
                raise ConfigurationError(f"{name} is not a decimal: {raw!r}") from exc

        fees = FeeSchedule(
            late_fee=money("LATE_FEE", "75.00"),
            late_fee_grace_days=int(os.getenv("LATE_FEE_GRACE_DAYS", "0")),
            notice_fee=money("NOTICE_FEE", "75.00"),
            notice_threshold_days=int(os.getenv("NOTICE_THRESHOLD_DAYS", "30")),
            cure_period_days=int(os.getenv("CURE_PERIOD_DAYS", "7")),
        )

        amortization = AmortizationConfig(
            min_monthly_payment=money("MIN_MONTHLY_PAYMENT", "50.00"),
        )

        gateway = GatewayFeeConfig(
            percent=money("GATEWAY_FEE_PERCENT", "0.029"),
            fixed=money("GATEWAY_FEE_FIXED", "0.30"),
            convenience_fee=money("CONVENIENCE_FEE", "5.00"),
        )

        kafka = KafkaConfig(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            acks=os.getenv("KAFKA_ACKS", "all"),
            schema_registry_url=os.getenv("SCHEMA_REGISTRY_URL") or None,
        )

        output = OutputConfig(
            json_output_dir=Path(os.getenv("OUTPUT_DIR", "output")),
            pretty_json=os.getenv("PRETTY_JSON", "false").lower() == "true",
            topic_prefix=os.getenv("TOPIC_PREFIX", "dev.loans"),
        )

        return cls(
            fees=fees,
            amortization=amortization,
            gateway=gateway,
            kafka=kafka,
            output=output,
            default_due_day=int(os.getenv("DEFAULT_DUE_DAY", "1")),
            seed=int(os.getenv("SEED")) if os.getenv("SEED") else None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        ).validate()
