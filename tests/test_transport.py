from __future__ import annotations

from typing import Any

import aiohttp
import pytest
from aiohttp import web
from aiohttp import test_utils

from pebble_timeline._transport import TimelineTransport
from pebble_timeline.exceptions import TimelineApiError, TimelineTransportError


def _app(received: list[dict[str, Any]]) -> web.Application:
    async def put_pin(request: web.Request) -> web.Response:
        received.append(
            {
                "method": request.method,
                "pin_id": request.match_info["pin_id"],
                "token": request.headers.get("X-User-Token"),
                "content_type": request.headers.get("Content-Type"),
                "body": await request.json(),
            }
        )
        if request.match_info["pin_id"] == "rejected":
            return web.json_response({"errorCode": "INVALID_JSON"}, status=400)
        return web.Response(text="OK")

    async def delete_pin(request: web.Request) -> web.Response:
        received.append(
            {
                "method": request.method,
                "pin_id": request.match_info["pin_id"],
                "token": request.headers.get("X-User-Token"),
            }
        )
        return web.Response(status=200)

    app = web.Application()
    app.router.add_put("/v1/user/pins/{pin_id}", put_pin)
    app.router.add_delete("/v1/user/pins/{pin_id}", delete_pin)
    return app


def test_pin_url_quotes_id() -> None:
    url = TimelineTransport.pin_url("https://timeline-api.rebble.io/", "a b/c")
    assert url == "https://timeline-api.rebble.io/v1/user/pins/a%20b%2Fc"


@pytest.mark.asyncio
async def test_put_pin_sends_json_and_token_header() -> None:
    received: list[dict[str, Any]] = []
    async with test_utils.TestServer(_app(received)) as server, aiohttp.ClientSession() as session:
        transport = TimelineTransport(session)
        api_url = f"http://{server.host}:{server.port}"

        response = await transport.put_pin(api_url, "tok-1", {"id": "evt-1", "time": "2024-06-15T12:00:00Z"})

    assert response == "OK"
    assert received == [
        {
            "method": "PUT",
            "pin_id": "evt-1",
            "token": "tok-1",
            "content_type": "application/json",
            "body": {"id": "evt-1", "time": "2024-06-15T12:00:00Z"},
        }
    ]


@pytest.mark.asyncio
async def test_put_pin_error_status_raises_api_error() -> None:
    received: list[dict[str, Any]] = []
    async with test_utils.TestServer(_app(received)) as server, aiohttp.ClientSession() as session:
        transport = TimelineTransport(session)
        api_url = f"http://{server.host}:{server.port}"

        with pytest.raises(TimelineApiError) as excinfo:
            await transport.put_pin(api_url, "tok-1", {"id": "rejected"})

    assert excinfo.value.status_code == 400
    assert excinfo.value.response == {"errorCode": "INVALID_JSON"}


@pytest.mark.asyncio
async def test_delete_pin_with_empty_body_returns_none() -> None:
    received: list[dict[str, Any]] = []
    async with test_utils.TestServer(_app(received)) as server, aiohttp.ClientSession() as session:
        transport = TimelineTransport(session)
        api_url = f"http://{server.host}:{server.port}"

        response = await transport.delete_pin(api_url, "tok-1", "evt-1")

    assert response is None
    assert received == [{"method": "DELETE", "pin_id": "evt-1", "token": "tok-1"}]


@pytest.mark.asyncio
async def test_connection_failure_raises_transport_error() -> None:
    async with aiohttp.ClientSession() as session:
        transport = TimelineTransport(session, timeout=5.0)
        with pytest.raises(TimelineTransportError) as excinfo:
            await transport.delete_pin("http://127.0.0.1:1", "tok-1", "evt-1")

    assert not isinstance(excinfo.value, TimelineApiError)
