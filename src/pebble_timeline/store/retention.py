"""Time-based eviction of locally stored pins.

Age is measured from ``stored_at`` (when the pin entered the local store),
never from the pin's event time. The window is expressed in calendar
months: the cutoff is ``now`` with its month field reduced, so "one month
ago" on 15 March is 15 February regardless of month length.
"""

from __future__ import annotations

import calendar
import logging
from collections.abc import Iterable, MutableMapping
from datetime import datetime

from pebble_timeline._constants import DEFAULT_RETENTION_MONTHS
from pebble_timeline._redact import mask_token
from pebble_timeline.models.pin import StoredPin
from pebble_timeline.store.index import PinIndex

_logger = logging.getLogger(__name__)


def months_ago(now: datetime, months: int = DEFAULT_RETENTION_MONTHS) -> datetime:
    """Subtract *months* calendar months from *now*.

    The day is clamped to the last day of the target month (31 March
    minus one month is the last day of February).
    """
    month_index = now.year * 12 + (now.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


def is_expired(pin: StoredPin, cutoff: datetime) -> bool:
    # Pins without a parseable storage time are corrupt and always evicted.
    if pin.stored_at is None:
        return True
    return pin.stored_at < cutoff


def sweep(
    pins: Iterable[StoredPin],
    now: datetime,
    months: int = DEFAULT_RETENTION_MONTHS,
) -> tuple[list[StoredPin], int]:
    """Split *pins* into survivors and a count of expired pins.

    Pure function: the input is not modified.
    """
    cutoff = months_ago(now, months)
    survivors: list[StoredPin] = []
    removed = 0
    for pin in pins:
        if is_expired(pin, cutoff):
            removed += 1
        else:
            survivors.append(pin)
    return survivors, removed


def sweep_all(
    store: MutableMapping[str, PinIndex],
    now: datetime,
    months: int = DEFAULT_RETENTION_MONTHS,
) -> int:
    """Evict expired pins from every token's collection in *store*.

    Empty collections are skipped. Returns the total number of pins removed.
    """
    total = 0
    for token, index in store.items():
        if not len(index):
            continue
        survivors, removed = sweep(index, now, months)
        if not removed:
            continue
        index.replace_all(survivors)
        total += removed
        _logger.debug("Removed %d old pins for token %s", removed, mask_token(token))
    return total
