"""High-level async client for the Pebble timeline API."""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

import aiohttp

from pebble_timeline._constants import FALLBACK_TOKEN_KEY
from pebble_timeline._redact import mask_token, redact_for_log
from pebble_timeline._transport import TimelineTransport
from pebble_timeline.config import TimelineConfig
from pebble_timeline.exceptions import (
    TimelineApiError,
    TimelineConfigError,
    TimelineError,
    TimelineTransportError,
)
from pebble_timeline.models.pin import format_timestamp, normalize_pin_id, parse_timestamp
from pebble_timeline.models.results import PinOperationResult
from pebble_timeline.store.coordinator import PinStore

_logger = logging.getLogger(__name__)


def _now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


def _optional_bound(value: datetime | str | None, name: str) -> datetime | None:
    """Parse a list filter bound; invalid values are ignored with a warning."""
    if value is None or value == "":
        return None
    parsed = parse_timestamp(value)
    if parsed is None:
        _logger.warning("Invalid %s time format: %r", name, value)
    return parsed


class TimelineClient:
    """Async client for the timeline API with a local pin mirror.

    Remote calls go to the timeline service; successful creates and
    deletes are mirrored into a :class:`~pebble_timeline.store.PinStore`
    so pins can be listed without querying the service.

    Usage::

        async with TimelineClient(TimelineConfig.from_env()) as client:
            await client.add_pin({"id": "evt-1", "time": "2024-06-15T12:00:00Z", "layout": {...}})
            result = await client.list_pins()
    """

    def __init__(
        self,
        config: TimelineConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        store: PinStore | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport: TimelineTransport | None = None
        self._store = store or PinStore(config.data_dir, retention_months=config.retention_months)

    @property
    def store(self) -> PinStore:
        return self._store

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> TimelineClient:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        self._transport = TimelineTransport(self._http_session, timeout=self._config.request_timeout)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> TimelineTransport:
        if self._transport is None:
            raise TimelineError("Client not initialized. Use 'async with TimelineClient(...) as client:'")
        return self._transport

    def _require_token(self, token: Any) -> str:
        resolved = self._config.resolve_token(token)
        if resolved is None:
            raise TimelineConfigError("Timeline token is required")
        return resolved

    def _prepare_pin(self, pin: Mapping[str, Any]) -> dict[str, Any]:
        """Fill in the identity fields the API requires."""
        prepared = dict(pin)
        pin_id = normalize_pin_id(prepared.get("id"))
        prepared["id"] = pin_id or f"pin-{_now_ms()}"
        when = prepared.get("time")
        if isinstance(when, datetime):
            prepared["time"] = format_timestamp(when)
        elif not when:
            prepared["time"] = format_timestamp(datetime.now(UTC))
        return prepared

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def add_pin(
        self,
        pin: Mapping[str, Any],
        *,
        token: str | None = None,
        api_url: str | None = None,
    ) -> PinOperationResult:
        """Create (or replace) *pin* on the timeline and mirror it locally.

        API failures are reported in the result rather than raised. A local
        store failure leaves ``success`` untouched and sets ``store_warning``.
        """
        transport = self._require_transport()
        timeline_token = self._require_token(token)
        prepared = self._prepare_pin(pin)
        _logger.debug("Sending pin: %s", redact_for_log(prepared))

        try:
            response = await transport.put_pin(api_url or self._config.api_url, timeline_token, prepared)
        except TimelineApiError as exc:
            return PinOperationResult(success=False, pin=prepared, error=str(exc), response=exc.response)
        except TimelineTransportError as exc:
            return PinOperationResult(success=False, pin=prepared, error=str(exc))

        outcome = await self._store.add_pin(timeline_token, prepared)
        return PinOperationResult(
            success=True,
            pin=prepared,
            pin_id=prepared["id"],
            response=response,
            store_warning=str(outcome.error) if outcome.error is not None else None,
        )

    async def delete_pin(
        self,
        pin_id: Any,
        *,
        token: str | None = None,
        api_url: str | None = None,
    ) -> PinOperationResult:
        """Delete *pin_id* from the timeline and from the local mirror."""
        normalized = normalize_pin_id(pin_id)
        if normalized is None:
            raise ValueError("Pin ID is required")
        transport = self._require_transport()
        timeline_token = self._require_token(token)

        try:
            response = await transport.delete_pin(api_url or self._config.api_url, timeline_token, normalized)
        except TimelineApiError as exc:
            return PinOperationResult(
                success=False,
                pin_id=normalized,
                error=str(exc),
                response=exc.response,
            )
        except TimelineTransportError as exc:
            return PinOperationResult(success=False, pin_id=normalized, error=str(exc))

        outcome = await self._store.delete_pin(timeline_token, normalized)
        if not outcome.removed:
            _logger.debug("Pin %s was not in the local store", normalized)
        return PinOperationResult(
            success=True,
            pin_id=normalized,
            response=response,
            store_warning=str(outcome.error) if outcome.error is not None else None,
        )

    async def list_pins(
        self,
        start: datetime | str | None = None,
        end: datetime | str | None = None,
        *,
        token: str | None = None,
    ) -> PinOperationResult:
        """List locally stored pins whose event time lies within ``[start, end]``.

        No request is made to the timeline service.
        """
        timeline_token = self._config.resolve_token(token)
        if timeline_token is None:
            _logger.warning("No valid timeline token provided")
            timeline_token = FALLBACK_TOKEN_KEY

        pins = await self._store.list_pins(
            timeline_token,
            _optional_bound(start, "start"),
            _optional_bound(end, "end"),
        )
        _logger.debug("%d pins found for token %s", len(pins), mask_token(timeline_token))
        return PinOperationResult(
            success=True,
            pins=[pin.to_raw() for pin in pins],
            count=len(pins),
        )
