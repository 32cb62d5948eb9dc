"""Byte-level encoding of cache records.

The entry envelope is pretty-printed JSON with the payload embedded as a
raw JSON value (not a nested string), compatible with caches written by
other producers of the same layout.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic_core import PydanticSerializationError, to_jsonable_python

from pydevcache.exceptions import CacheEncodeError
from pydevcache.models import Entry, Meta


def encode_payload(data: Any) -> Any:
    """Convert *data* into a plain JSON value.

    Raises :class:`CacheEncodeError` when *data* (or something nested in it)
    has no JSON representation.
    """
    try:
        payload = to_jsonable_python(data)
        # NaN and infinities have no JSON form; pydantic would write them as null.
        json.dumps(payload, allow_nan=False)
    except (PydanticSerializationError, TypeError, ValueError) as exc:
        raise CacheEncodeError(f"failed to marshal cache data: {exc}") from exc
    return payload


def encode_entry(entry: Entry) -> bytes:
    exclude = None if entry.device_id else {"device_id"}
    return entry.model_dump_json(indent=2, exclude=exclude).encode("utf-8")


def decode_entry(raw: bytes) -> Entry:
    """Parse an entry envelope.

    Raises :class:`ValueError` (pydantic ``ValidationError``) on malformed input.
    """
    return Entry.model_validate_json(raw)


def encode_meta(meta: Meta) -> bytes:
    return meta.model_dump_json(indent=2).encode("utf-8")


def decode_meta(raw: bytes) -> Meta:
    return Meta.model_validate_json(raw)
