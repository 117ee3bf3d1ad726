
# converts between Firestore REST documents and plain Python values.

# Firestore's REST API wraps every value in a one-key object naming its type:
#   {"fields": {"uids": {"arrayValue": {"values": [{"stringValue": "user_1"}]}}}}
# Decoding unwraps those into str / int / float / bool / None / datetime /
# list / dict. Encoding does the reverse for PATCH bodies.

import logging
from datetime import datetime, timezone
from typing import Any

from uid_monitor.models import Snapshot, parse_dt

log = logging.getLogger(__name__)


def decode_value(value: dict[str, Any]) -> Any:
    if "stringValue" in value:
        return value["stringValue"]
    if "integerValue" in value:
        # int64 travels as a decimal string
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "nullValue" in value:
        return None
    if "timestampValue" in value:
        return parse_dt(value["timestampValue"])
    if "referenceValue" in value:
        return value["referenceValue"]
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))

    log.warning("Unsupported Firestore value type: %s", ", ".join(value) or "<empty>")
    return None


def decode_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {name: decode_value(raw) for name, raw in fields.items()}


def encode_value(value: Any) -> dict[str, Any]:
    # bool first: bool is a subclass of int
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
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        stamp = value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")
        return {"timestampValue": stamp}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    raise TypeError(f"Cannot encode {type(value).__name__} as a Firestore value")


def encode_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {str(name): encode_value(v) for name, v in fields.items()}


def _decode_field(path: str, name: str, raw: Any) -> Any:
    try:
        return decode_value(raw)
    except (ValueError, TypeError, AttributeError, KeyError) as exc:
        log.warning("Malformed field %r in %s: %s", name, path, exc)
        return None


def parse_document(path: str, data: dict[str, Any]) -> Snapshot:
    """
    Turn a REST document resource into an existing Snapshot.

    A field whose value cannot be decoded comes out as None, so one bad
    field never hides the rest of the document.
    """
    fields = data.get("fields") or {}
    return Snapshot(
        path=path,
        exists=True,
        fields={name: _decode_field(path, name, raw) for name, raw in fields.items()},
        update_time=parse_dt(data.get("updateTime")),
    )


def extract_identifiers(snapshot: Snapshot, field: str) -> list[str] | None:
    """
    Return the identifier list held in `field`, or None when the document
    is absent or the field is missing / not a list of strings.
    """
    if not snapshot.exists:
        return None

    value = snapshot.fields.get(field)
    if not isinstance(value, list):
        return None
    if not all(isinstance(item, str) for item in value):
        return None
    return list(value)
