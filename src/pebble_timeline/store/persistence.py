"""File-backed persistence for the pin store.

One JSON document per installation maps each token to an array of stored
pin objects::

    {
      "<token>": [
        {"id": "...", "time": "...", "layout": {...}, "_stored": "2024-06-15T12:00:00.000Z"}
      ]
    }

Reads are tolerant: a missing file is an empty store, a corrupt file is an
empty store plus a :class:`CorruptStoreWarning`. Writes replace the whole
document in one ``os.replace`` so readers never observe a partial file.
"""

from __future__ import annotations

import json
import logging
import os
import warnings
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pebble_timeline._constants import STORE_DIRNAME, STORE_FILENAME
from pebble_timeline._redact import mask_token
from pebble_timeline.exceptions import CorruptStoreWarning, PersistFailure
from pebble_timeline.models.pin import StoredPin
from pebble_timeline.store.index import PinIndex

_logger = logging.getLogger(__name__)

Store = dict[str, PinIndex]


def store_path(data_dir: str | os.PathLike[str]) -> Path:
    """Return the backing file path for an installation data directory."""
    return Path(data_dir).expanduser() / STORE_DIRNAME / STORE_FILENAME


def parse_store(document: Any) -> Store:
    """Convert a decoded JSON document into a :data:`Store`.

    Raises :class:`ValueError` when the top level is not an object. Token
    values that are not arrays become empty collections; entries without
    a usable id are dropped.
    """
    if not isinstance(document, Mapping):
        raise ValueError(f"expected a JSON object at top level, got {type(document).__name__}")
    store: Store = {}
    for token, entries in document.items():
        key = str(token)
        if not isinstance(entries, list):
            _logger.debug("Pins for token %s are not a list; resetting", mask_token(key))
            store[key] = PinIndex()
            continue
        pins = [pin for pin in (StoredPin.from_raw(entry) for entry in entries) if pin is not None]
        if len(pins) != len(entries):
            _logger.debug(
                "Dropped %d malformed pin entries for token %s",
                len(entries) - len(pins),
                mask_token(key),
            )
        store[key] = PinIndex(pins)
    return store


def dump_store(store: Mapping[str, PinIndex]) -> dict[str, list[dict[str, Any]]]:
    """Convert a :data:`Store` into a JSON-ready document."""
    return {str(token): [pin.to_raw() for pin in index] for token, index in store.items()}


class PinFile:
    """Reads and writes the per-installation pin file.

    Parameters
    ----------
    data_dir : path-like
        Installation data directory; the file lives at
        ``<data_dir>/pebble-timeline/timeline-pins.json``.
    """

    def __init__(self, data_dir: str | os.PathLike[str]) -> None:
        self._path = store_path(data_dir)
        self.writes = 0

    @property
    def path(self) -> Path:
        return self._path

    def signature(self) -> tuple[int, int, int] | None:
        """Identify the file version on disk; ``None`` when it does not exist."""
        try:
            stat = self._path.stat()
        except OSError:
            return None
        return (stat.st_ino, stat.st_mtime_ns, stat.st_size)

    def load(self) -> Store:
        """Read the whole store; never raises for missing or corrupt files."""
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError) as exc:
            self._report_corrupt(f"Error loading pins file: {exc}")
            return {}

        try:
            return parse_store(json.loads(text))
        except (json.JSONDecodeError, ValueError) as exc:
            self._report_corrupt(f"Error loading pins file: {exc}")
            return {}

    def save(self, store: Mapping[str, PinIndex]) -> None:
        """Atomically overwrite the file with *store*.

        Raises :class:`PersistFailure` if the document cannot be written.
        """
        tmp = self._path.with_name(f"{self._path.name}.tmp")
        try:
            body = json.dumps(dump_store(store), indent=2, ensure_ascii=False)
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(body, encoding="utf-8")
            os.replace(tmp, self._path)
        except (OSError, TypeError, ValueError) as exc:
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                _logger.debug("Could not remove temp file %s", tmp, exc_info=True)
            raise PersistFailure(f"Error saving pins to file: {exc}", path=str(self._path)) from exc
        self.writes += 1
        _logger.debug("Saved %d tokens to %s", len(store), self._path)

    def _report_corrupt(self, message: str) -> None:
        _logger.warning("%s (%s); starting with an empty pin store", message, self._path)
        warnings.warn(CorruptStoreWarning(message), stacklevel=3)
