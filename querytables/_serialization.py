"""JSON encoding used by structured logging."""

import datetime
from typing import Any

import msgspec

__all__ = ("encode_json",)


def _type_to_string(value: Any) -> Any:
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    return str(value)


_encoder = msgspec.json.Encoder(enc_hook=_type_to_string)


def encode_json(data: Any) -> str:
    """Encode data to a JSON string.

    Objects msgspec cannot encode natively are rendered with ``str()``.
    """
    return _encoder.encode(data).decode("utf-8")
