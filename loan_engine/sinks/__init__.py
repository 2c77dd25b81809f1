"""Output sinks for loan events and records."""

from loan_engine.sinks.console import ConsoleSink
from loan_engine.sinks.json_file import JsonFileSink
from loan_engine.sinks.kafka import KafkaSink

__all__ = ["ConsoleSink", "JsonFileSink", "KafkaSink"]
