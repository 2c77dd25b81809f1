"""Console sink for debugging and development."""

import sys
from typing import Any, TextIO

from loan_engine.models import Event
from loan_engine.sinks.serialization import dumps, to_dict


class ConsoleSink:
    """Print records to a text stream.

    Events get a one-line header (time, type, loan) above their payload;
    other records are printed as JSON.

    Parameters
    ----------
    pretty : bool
        Indent JSON output.
    max_records : int | None
        Maximum records to print per batch (None for all).
    stream : TextIO | None
        Output stream, ``sys.stdout`` by default.
    """

    def __init__(self, pretty: bool = True, max_records: int | None = None, stream: TextIO | None = None) -> None:
        self.pretty = pretty
        self.max_records = max_records
        self.stream = stream
        self._counts: dict[str, int] = {}

    def _print(self, text: str = "") -> None:
        print(text, file=self.stream or sys.stdout)

    def _format(self, record: Any) -> str:
        if isinstance(record, Event):
            header = f"{record.event_time:%Y-%m-%d %H:%M:%S}  {record.event_type:<18}  {record.subject}"
            return f"{header}\n{dumps(record.data, self.pretty)}"
        return dumps(to_dict(record), self.pretty)

    def write_batch(self, topic: str, records: list[Any]) -> None:
        """Print a batch under a topic header."""
        self._print(f"--- {topic} ({len(records)} records)")

        shown = records if self.max_records is None else records[: self.max_records]
        for record in shown:
            self._print(self._format(record))

        hidden = len(records) - len(shown)
        if hidden:
            self._print(f"... and {hidden} more records")

        self._counts[topic] = self._counts.get(topic, 0) + len(records)

    def close(self) -> None:
        """Print per-topic totals."""
        self._print("--- console sink summary")
        for topic, count in sorted(self._counts.items()):
            self._print(f"  {topic}: {count} records")
