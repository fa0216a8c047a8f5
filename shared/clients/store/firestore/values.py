"""Codec between plain Python values and Firestore REST typed values.

Firestore wraps every field value in a single-key object naming its type,
e.g. {"stringValue": "a"} or {"integerValue": "42"} (64 bit integers travel
as strings). Maps and arrays nest the same encoding.
"""

import base64
import re
from datetime import date, datetime, timezone
from typing import Any

# Firestore sends up to nanosecond precision; datetime keeps microseconds.
_FRACTION_RE = re.compile(r"\.(\d+)")


def parse_timestamp(raw: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware datetime in UTC.

    Raises:
        ValueError: If the string is not a valid timestamp.
    """
    text = raw.strip().replace("Z", "+00:00")
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def encode_value(value: Any) -> dict:
    """Encode a Python value as a Firestore typed value.

    Raises:
        TypeError: If the value has no Firestore representation.
    """
    # bool before int, bool is an int subclass
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime):
        return {"timestampValue": format_timestamp(value)}
    if isinstance(value, date):
        return {"timestampValue": format_timestamp(datetime(value.year, value.month, value.day, tzinfo=timezone.utc))}
    if isinstance(value, bytes):
        return {"bytesValue": base64.b64encode(value).decode("ascii")}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    raise TypeError(f"Cannot encode value of type {type(value).__name__} for Firestore.")


def encode_fields(fields: dict[str, Any]) -> dict[str, dict]:
    return {key: encode_value(val) for key, val in fields.items()}


def decode_value(raw: dict) -> Any:
    """Decode a Firestore typed value into a plain Python value.

    Unknown value types are returned as the raw dict.
    """
    if not isinstance(raw, dict) or not raw:
        return None
    kind, val = next(iter(raw.items()))
    if kind == "nullValue":
        return None
    if kind == "booleanValue":
        return bool(val)
    if kind == "integerValue":
        return int(val)
    if kind == "doubleValue":
        return float(val)
    if kind in ("stringValue", "referenceValue"):
        return val
    if kind == "timestampValue":
        return parse_timestamp(val)
    if kind == "bytesValue":
        return base64.b64decode(val)
    if kind == "geoPointValue":
        return {"latitude": val.get("latitude"), "longitude": val.get("longitude")}
    if kind == "mapValue":
        return decode_fields((val or {}).get("fields", {}))
    if kind == "arrayValue":
        return [decode_value(v) for v in (val or {}).get("values", [])]
    return raw


def decode_fields(fields: dict[str, dict]) -> dict[str, Any]:
    return {key: decode_value(val) for key, val in (fields or {}).items()}
