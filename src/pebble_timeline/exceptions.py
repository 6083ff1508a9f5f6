"""Custom exception hierarchy for pebble_timeline."""

from __future__ import annotations

from typing import Any


class TimelineError(Exception):
    """Base exception for all pebble_timeline errors."""


class TimelineConfigError(TimelineError):
    """Invalid or missing configuration (e.g. no timeline token available)."""


class TimelineTransportError(TimelineError):
    """HTTP-level failure (network error, timeout, connection refused)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class TimelineApiError(TimelineTransportError):
    """The timeline API answered with a non-2xx status.

    ``response`` holds the decoded error body (JSON or text) when the
    server sent one.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
        response: Any = None,
    ) -> None:
        self.response = response
        super().__init__(message, status_code=status_code, endpoint=endpoint)


class TimelineStoreError(TimelineError):
    """Local pin store failure."""


class PersistFailure(TimelineStoreError):
    """Writing the backing pin file failed.

    The in-memory store keeps the mutation; callers receive this error
    attached to an otherwise successful result instead of as a raise.
    """

    def __init__(self, message: str, *, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class CorruptStoreWarning(UserWarning):
    """The backing pin file could not be parsed and was treated as empty."""
