"""HTTP transport for the timeline REST API."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

import aiohttp

from pebble_timeline._constants import PINS_ENDPOINT, TOKEN_HEADER, USER_AGENT
from pebble_timeline._redact import mask_token, redact_for_log
from pebble_timeline.exceptions import TimelineApiError, TimelineTransportError

_logger = logging.getLogger(__name__)


def _decode_body(text: str) -> Any:
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


class TimelineTransport:
    """aiohttp transport for ``/v1/user/pins/{id}``."""

    def __init__(self, http_session: aiohttp.ClientSession, *, timeout: float = 30.0) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def _request(
        self,
        method: str,
        url: str,
        token: str,
        *,
        body: Mapping[str, Any] | None = None,
    ) -> Any:
        headers: dict[str, str] = {
            "user-agent": USER_AGENT,
            TOKEN_HEADER: token,
        }
        data: str | None = None
        if body is not None:
            headers["content-type"] = "application/json"
            data = json.dumps(body)

        _logger.debug("%s %s (token %s) %s", method, url, mask_token(token), redact_for_log(body))

        try:
            async with self._http.request(
                method,
                url,
                data=data,
                headers=headers,
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                if not 200 <= resp.status < 300:
                    decoded = _decode_body(text)
                    _logger.debug("Error response: %s", redact_for_log(decoded))
                    raise TimelineApiError(
                        f"HTTP {resp.status} from {url}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=url,
                        response=decoded,
                    )
        except TimelineApiError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise TimelineTransportError(
                f"Request to {url} failed: {exc}",
                endpoint=url,
            ) from exc

        return _decode_body(text)

    @staticmethod
    def pin_url(api_url: str, pin_id: str) -> str:
        return f"{api_url.rstrip('/')}{PINS_ENDPOINT}/{quote(pin_id, safe='')}"

    async def put_pin(self, api_url: str, token: str, pin: Mapping[str, Any]) -> Any:
        """Create or replace a pin on the timeline."""
        return await self._request("PUT", self.pin_url(api_url, str(pin["id"])), token, body=pin)

    async def delete_pin(self, api_url: str, token: str, pin_id: str) -> Any:
        """Delete a pin from the timeline."""
        return await self._request("DELETE", self.pin_url(api_url, pin_id), token)
