"""Base model and timestamp type for persisted cache records.

Every on-disk record inherits from :class:`CacheBaseModel`, which
ignores unknown keys so that records written by newer producers still
load. Timestamps use :data:`CacheTimestamp`:

* RFC3339 strings are accepted with any UTC offset. Fractions of a
  second beyond microsecond precision (nanosecond writers) are
  truncated before parsing.
* Naive datetimes are assumed to be UTC.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict

_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def _truncate_fraction(value: Any) -> Any:
    if isinstance(value, str):
        return _FRACTION_RE.sub(r"\1", value, count=1)
    return value


def ensure_utc(value: datetime) -> datetime:
    """Return *value* as an aware datetime, assuming UTC when naive."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


CacheTimestamp = Annotated[datetime, BeforeValidator(_truncate_fraction), AfterValidator(ensure_utc)]
"""Annotated type for RFC3339 timestamps in cache records."""

#: The "zero" timestamp used when a record has never been written.
ZERO_TIME = datetime.min.replace(tzinfo=UTC)


class CacheBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore")
