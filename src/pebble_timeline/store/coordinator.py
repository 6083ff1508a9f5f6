"""Pin store coordinator.

This is the only component allowed to write the backing pin file. Each
public operation is one session: load (again only when the file changed
since this instance last read or wrote it), mutate, sweep, and persist
when the store changed. Sessions against the same file are serialized by
a shared ``asyncio.Lock``.
"""

from __future__ import annotations

import asyncio
import logging
import os
import weakref
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, TypeVar

from pebble_timeline._constants import DEFAULT_RETENTION_MONTHS
from pebble_timeline._redact import mask_token
from pebble_timeline.exceptions import PersistFailure, TimelineConfigError
from pebble_timeline.models.pin import StoredPin, normalize_pin_id, parse_timestamp
from pebble_timeline.models.results import StoreOutcome
from pebble_timeline.store.index import PinIndex
from pebble_timeline.store.persistence import PinFile, Store, dump_store
from pebble_timeline.store.retention import sweep_all

_logger = logging.getLogger(__name__)

T = TypeVar("T")

# One lock per resolved backing file, shared by every PinStore on that path.
_FILE_LOCKS: weakref.WeakValueDictionary[Path, asyncio.Lock] = weakref.WeakValueDictionary()


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _lock_for(path: Path) -> asyncio.Lock:
    key = path.resolve()
    lock = _FILE_LOCKS.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _FILE_LOCKS[key] = lock
    return lock


def _require_token(token: Any) -> str:
    if token is None or not str(token).strip():
        raise TimelineConfigError("Timeline token is required")
    return str(token)


def _as_bound(value: datetime | str | None) -> datetime | None:
    if value is None:
        return None
    parsed = parse_timestamp(value)
    if parsed is None:
        raise ValueError(f"invalid time bound: {value!r}")
    return parsed


class PinStore:
    """Local mirror of timeline pins, partitioned by token.

    Parameters
    ----------
    data_dir : path-like
        Installation data directory holding ``pebble-timeline/timeline-pins.json``.
    retention_months : int
        Calendar months a pin is kept after it was stored.
    clock : callable
        Returns the current aware ``datetime``; injectable for tests.
    """

    def __init__(
        self,
        data_dir: str | os.PathLike[str],
        *,
        retention_months: int = DEFAULT_RETENTION_MONTHS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._file = PinFile(data_dir)
        self._retention_months = retention_months
        self._clock = clock
        self._lock = _lock_for(self._file.path)
        self._store: Store | None = None
        self._signature: tuple[int, int, int] | None = None

    @property
    def file(self) -> PinFile:
        return self._file

    @property
    def path(self) -> Path:
        return self._file.path

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _now(self) -> datetime:
        # Naive clocks are taken as UTC, like every other timestamp in the store.
        now = self._clock()
        if now.tzinfo is None:
            return now.replace(tzinfo=UTC)
        return now

    async def _run_blocking(self, fn: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn, *args)

    async def _ensure_loaded(self) -> Store:
        # Re-read when another writer replaced the file since our last load/save.
        signature = await self._run_blocking(self._file.signature)
        if self._store is None or signature != self._signature:
            self._store = await self._run_blocking(self._file.load)
            self._signature = signature
            _logger.debug("Loaded pin store from %s (%d tokens)", self._file.path, len(self._store))
        return self._store

    def _save_sync(self, store: Store) -> tuple[int, int, int] | None:
        self._file.save(store)
        return self._file.signature()

    async def _persist(self, store: Store) -> PersistFailure | None:
        try:
            self._signature = await self._run_blocking(self._save_sync, store)
        except PersistFailure as exc:
            _logger.warning("%s", exc)
            return exc
        return None

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def add_pin(self, token: Any, pin: Mapping[str, Any] | StoredPin) -> StoreOutcome:
        """Store *pin* for *token*, replacing any pin with the same id.

        Every token's expired pins are evicted in the same write. The file
        is always rewritten; a write failure is returned in the outcome.
        """
        key = _require_token(token)
        payload = pin.payload if isinstance(pin, StoredPin) else pin
        async with self._lock:
            store = await self._ensure_loaded()
            now = self._now()
            stored = StoredPin.new(payload, now)
            index = store.setdefault(key, PinIndex())
            replaced = index.upsert(stored)
            expired = sweep_all(store, now, self._retention_months)
            _logger.debug(
                "%s pin %s for token %s",
                "Replaced" if replaced is not None else "Stored",
                stored.id,
                mask_token(key),
            )
            error = await self._persist(store)
        return StoreOutcome(changed=True, expired=expired, persisted=error is None, error=error)

    async def delete_pin(self, token: Any, pin_id: Any) -> StoreOutcome:
        """Remove pin *pin_id* from *token*'s collection.

        The file is only rewritten when a pin was actually removed. The
        retention sweep still runs, but on its own it never triggers a write.
        """
        key = _require_token(token)
        normalized = normalize_pin_id(pin_id)
        async with self._lock:
            store = await self._ensure_loaded()
            index = store.get(key)
            if index is None:
                return StoreOutcome()
            removed = index.remove(normalized) if normalized is not None else 0
            expired = sweep_all(store, self._now(), self._retention_months)
            if not removed:
                # Evictions stay in memory until the next write.
                return StoreOutcome(expired=expired)
            error = await self._persist(store)
        return StoreOutcome(
            changed=True,
            removed=bool(removed),
            expired=expired,
            persisted=error is None,
            error=error,
        )

    async def list_pins(
        self,
        token: Any,
        start: datetime | str | None = None,
        end: datetime | str | None = None,
    ) -> list[StoredPin]:
        """Return *token*'s pins whose event time falls within ``[start, end]``.

        Unknown tokens yield an empty list. The pins are copies, so editing
        them never reaches the store. Raises :class:`ValueError` for a bound
        that cannot be parsed.
        """
        key = str(token)
        lower = _as_bound(start)
        upper = _as_bound(end)
        async with self._lock:
            store = await self._ensure_loaded()
            index = store.get(key)
            if index is None:
                return []
            return [pin.model_copy(deep=True) for pin in index.query_range(lower, upper)]

    async def reload(self) -> None:
        """Drop the in-memory cache; the next operation re-reads the file."""
        async with self._lock:
            self._store = None

    async def snapshot(self) -> dict[str, list[dict[str, Any]]]:
        """Return the current store as plain JSON-ready data."""
        async with self._lock:
            store = await self._ensure_loaded()
            return dump_store(store)
