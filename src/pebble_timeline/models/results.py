"""Operation result models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pebble_timeline.exceptions import PersistFailure


@dataclass(frozen=True, slots=True)
class StoreOutcome:
    """Result of a mutating pin store operation.

    ``removed`` is set by deletes, ``expired`` counts pins evicted by the
    retention sweep that ran in the same session. ``error`` carries a
    :class:`PersistFailure` when the backing file could not be written;
    the in-memory change is kept regardless.
    """

    changed: bool = False
    removed: bool = False
    expired: int = 0
    persisted: bool = False
    error: PersistFailure | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PinOperationResult(BaseModel):
    """Outcome of a :class:`~pebble_timeline.client.TimelineClient` call."""

    model_config = ConfigDict(frozen=True)

    success: bool
    pin: dict[str, Any] | None = None
    pin_id: str | None = None
    pins: list[dict[str, Any]] = Field(default_factory=list)
    count: int = 0
    response: Any = None
    error: str | None = None
    store_warning: str | None = Field(
        default=None,
        description="Local store problem attached to an otherwise successful call.",
    )
