"""JSON Lines sink for exporting records and events to files."""

import json
import logging
from pathlib import Path
from typing import Any

from loan_engine.exceptions import SinkError
from loan_engine.sinks.serialization import dumps, to_dict

logger = logging.getLogger(__name__)


class JsonFileSink:
    """Append records to one ``.jsonl`` file per topic."""

    def __init__(self, output_dir: str | Path, pretty: bool = False) -> None:
        """Initialize JSON file sink.

        Parameters
        ----------
        output_dir : str | Path
            Directory to write files into.
        pretty : bool
            Write snapshots (``write_snapshot``) indented.
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.pretty = pretty
        self._counts: dict[str, int] = {}

    def path_for(self, topic: str) -> Path:
        # dev.loans.loan-events -> dev_loans_loan-events.jsonl
        return self.output_dir / (topic.replace(".", "_") + ".jsonl")

    def write_batch(self, topic: str, records: list[Any]) -> None:
        """Append a batch of records, one JSON document per line."""
        file_path = self.path_for(topic)
        try:
            with open(file_path, "a", encoding="utf-8") as f:
                for record in records:
                    f.write(dumps(record) + "\n")
        except OSError as exc:
            raise SinkError(f"Cannot write to {file_path}: {exc}") from exc

        self._counts[topic] = self._counts.get(topic, 0) + len(records)
        logger.debug("Appended %d records to %s", len(records), file_path)

    def write_snapshot(self, name: str, records: list[Any]) -> Path:
        """Overwrite ``<name>.json`` with a full list of records."""
        file_path = self.output_dir / f"{name}.json"
        data = [to_dict(record) for record in records]
        try:
            with open(file_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2 if self.pretty else None, ensure_ascii=False)
        except OSError as exc:
            raise SinkError(f"Cannot write to {file_path}: {exc}") from exc

        self._counts[name] = len(records)
        return file_path

    def close(self) -> None:
        """Log summary."""
        logger.info("JSON files written to: %s", self.output_dir)
        for topic, count in self._counts.items():
            logger.info("  %s: %d records", topic, count)
