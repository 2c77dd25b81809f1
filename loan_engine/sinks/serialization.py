"""JSON encoding shared by the sinks.

Money is written as a string so that no cent is lost to float conversion.
"""

import json
from dataclasses import fields, is_dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any


def serialize_value(value: Any) -> Any:
    """Convert one value to something ``json`` can encode.

    Enums are checked first: the model enums subclass ``str``.
    """
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        # Also covers datetime
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: serialize_value(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, dict):
        return {str(k): serialize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [serialize_value(v) for v in value]
    return value


def to_dict(record: Any) -> dict:
    """Convert a record (dataclass or dict) to a JSON-ready dictionary."""
    data = serialize_value(record)
    if isinstance(data, dict):
        return data
    return {"value": str(record)}


def dumps(record: Any, pretty: bool = False) -> str:
    """Encode a record as one JSON document."""
    return json.dumps(to_dict(record), indent=2 if pretty else None, ensure_ascii=False)
