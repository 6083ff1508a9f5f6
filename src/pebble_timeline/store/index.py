"""Per-token pin collection."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import datetime

from pebble_timeline.models.pin import StoredPin


class PinIndex:
    """Ordered pins of a single token, unique by ``id``.

    Iteration follows insertion order; an upserted pin moves to the end.
    """

    def __init__(self, pins: Iterable[StoredPin] = ()) -> None:
        self._pins: dict[str, StoredPin] = {}
        self.replace_all(pins)

    def __len__(self) -> int:
        return len(self._pins)

    def __iter__(self) -> Iterator[StoredPin]:
        return iter(list(self._pins.values()))

    def __contains__(self, pin_id: object) -> bool:
        return pin_id in self._pins

    def __repr__(self) -> str:
        return f"PinIndex({list(self._pins)!r})"

    def get(self, pin_id: str) -> StoredPin | None:
        return self._pins.get(pin_id)

    def replace_all(self, pins: Iterable[StoredPin]) -> None:
        """Reset the collection; later duplicates of an id win."""
        self._pins = {}
        for pin in pins:
            self.upsert(pin)

    def upsert(self, pin: StoredPin) -> StoredPin | None:
        """Insert *pin*, replacing any pin with the same id.

        Returns the replaced pin, or ``None`` when the id was new.
        """
        previous = self._pins.pop(pin.id, None)
        self._pins[pin.id] = pin
        return previous

    def remove(self, pin_id: str) -> int:
        """Delete the pin with *pin_id*; returns the number removed (0 or 1)."""
        return 0 if self._pins.pop(pin_id, None) is None else 1

    def query_range(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> Iterator[StoredPin]:
        """Yield pins whose event time lies within ``[start, end]``.

        Either bound may be ``None`` (unbounded). Pins without a parseable
        event time never match a bounded query.
        """
        for pin in list(self._pins.values()):
            if start is None and end is None:
                yield pin
                continue
            event_time = pin.event_time
            if event_time is None:
                continue
            if start is not None and event_time < start:
                continue
            if end is not None and event_time > end:
                continue
            yield pin
