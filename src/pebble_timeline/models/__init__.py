"""Data models for timeline pins and operation results."""

from pebble_timeline.models.pin import StoredPin, format_timestamp, normalize_pin_id, parse_timestamp
from pebble_timeline.models.results import PinOperationResult, StoreOutcome

__all__ = [
    "PinOperationResult",
    "StoreOutcome",
    "StoredPin",
    "format_timestamp",
    "normalize_pin_id",
    "parse_timestamp",
]
