"""Local pin store.

The single source of truth for pins created through this library: a
per-token, file-backed mirror of the remote timeline with calendar-month
retention.
"""

from pebble_timeline.store.coordinator import PinStore
from pebble_timeline.store.index import PinIndex
from pebble_timeline.store.persistence import PinFile, Store, store_path
from pebble_timeline.store.retention import months_ago, sweep, sweep_all

__all__ = [
    "PinFile",
    "PinIndex",
    "PinStore",
    "Store",
    "months_ago",
    "store_path",
    "sweep",
    "sweep_all",
]
