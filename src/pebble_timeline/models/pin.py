"""Stored pin model.

:class:`StoredPin` is the single ingestion boundary for pin data. Anything
read from the backing file or handed in by a caller passes through
:meth:`StoredPin.from_raw` / :meth:`StoredPin.new`, which coerce the id
and parse both timestamps once. Store internals can then rely on
``id`` being a short non-empty string and on timestamps being either an
aware ``datetime`` or ``None``.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pebble_timeline._constants import MAX_PIN_ID_LENGTH, STORED_AT_KEY

# Threshold to distinguish epoch seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000

# Fractions finer than microseconds (e.g. ".1234567") are cut to six digits.
_LONG_FRACTION = re.compile(r"(\.\d{6})\d+")


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 string or epoch number into an aware UTC datetime.

    Returns ``None`` for missing or unparsable values instead of raising.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        ts = float(value)
        if ts != ts:  # NaN check
            return None
        if abs(ts) >= _MS_THRESHOLD:
            ts /= 1000.0
        try:
            return datetime.fromtimestamp(ts, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(_LONG_FRACTION.sub(r"\1", value.strip()))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def format_timestamp(value: datetime) -> str:
    """Format *value* as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    utc = value.astimezone(UTC)
    return f"{utc.strftime('%Y-%m-%dT%H:%M:%S')}.{utc.microsecond // 1000:03d}Z"


def normalize_pin_id(value: Any) -> str | None:
    """Coerce a pin id to a string of at most 64 characters, or ``None``."""
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()[:MAX_PIN_ID_LENGTH]
    return text or None


class StoredPin(BaseModel):
    """A pin as held by the local store.

    ``data`` is the on-disk object verbatim: the caller's pin fields plus
    the ``_stored`` key. ``event_time`` and ``stored_at`` are parsed views
    of its ``time`` and ``_stored`` fields.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    event_time: datetime | None = None
    stored_at: datetime | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("id")
    @classmethod
    def _normalize_id(cls, value: str) -> str:
        pin_id = normalize_pin_id(value)
        if pin_id is None:
            raise ValueError("pin id must be non-empty")
        return pin_id

    @classmethod
    def from_raw(cls, raw: Any) -> StoredPin | None:
        """Build a pin from an on-disk entry; ``None`` when it has no usable id."""
        if not isinstance(raw, Mapping):
            return None
        pin_id = normalize_pin_id(raw.get("id"))
        if pin_id is None:
            return None
        data = dict(raw)
        data["id"] = pin_id
        return cls(
            id=pin_id,
            event_time=parse_timestamp(data.get("time")),
            stored_at=parse_timestamp(data.get(STORED_AT_KEY)),
            data=data,
        )

    @classmethod
    def new(cls, payload: Mapping[str, Any], stored_at: datetime) -> StoredPin:
        """Stamp a caller-supplied pin payload with its storage time.

        Raises :class:`ValueError` if *payload* is not a mapping or carries
        no usable ``id``.
        """
        if not isinstance(payload, Mapping):
            raise ValueError(f"pin payload must be a mapping, got {type(payload).__name__}")
        data = {key: copy.deepcopy(value) for key, value in payload.items() if key != STORED_AT_KEY}
        if isinstance(data.get("time"), datetime):
            data["time"] = format_timestamp(data["time"])
        data[STORED_AT_KEY] = format_timestamp(stored_at)
        pin = cls.from_raw(data)
        if pin is None:
            raise ValueError("pin payload has no usable 'id'")
        return pin

    @property
    def payload(self) -> dict[str, Any]:
        """The pin fields as sent to the timeline API (without ``_stored``)."""
        return {key: copy.deepcopy(value) for key, value in self.data.items() if key != STORED_AT_KEY}

    def to_raw(self) -> dict[str, Any]:
        """Return the JSON-ready on-disk representation."""
        return copy.deepcopy(self.data)
