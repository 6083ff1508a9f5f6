"""Internal constants shared across the library."""

from pathlib import Path

API_URL = "https://timeline-api.rebble.io"
PINS_ENDPOINT = "/v1/user/pins"
TOKEN_HEADER = "X-User-Token"
USER_AGENT = "pebble-timeline-python"

DEFAULT_DATA_DIR = Path.home() / ".local" / "share"
STORE_DIRNAME = "pebble-timeline"
STORE_FILENAME = "timeline-pins.json"

#: Key added to every stored pin recording when it entered the local store.
STORED_AT_KEY = "_stored"

MAX_PIN_ID_LENGTH = 64

#: Pins older than this many calendar months (by local storage time) are evicted.
DEFAULT_RETENTION_MONTHS = 1

#: Store key used by list operations when no token is available.
FALLBACK_TOKEN_KEY = "default"
