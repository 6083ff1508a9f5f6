"""pebble_timeline - Async Python client for the Pebble timeline API with a local pin store."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pebble-timeline")
except PackageNotFoundError:
    __version__ = "0+local"
from pebble_timeline.client import TimelineClient
from pebble_timeline.config import TimelineConfig
from pebble_timeline.exceptions import (
    CorruptStoreWarning,
    PersistFailure,
    TimelineApiError,
    TimelineConfigError,
    TimelineError,
    TimelineStoreError,
    TimelineTransportError,
)
from pebble_timeline.models import PinOperationResult, StoredPin, StoreOutcome
from pebble_timeline.store import PinFile, PinIndex, PinStore

__all__ = [
    "__version__",
    "CorruptStoreWarning",
    "PersistFailure",
    "PinFile",
    "PinIndex",
    "PinOperationResult",
    "PinStore",
    "StoreOutcome",
    "StoredPin",
    "TimelineApiError",
    "TimelineClient",
    "TimelineConfig",
    "TimelineConfigError",
    "TimelineError",
    "TimelineStoreError",
    "TimelineTransportError",
]
