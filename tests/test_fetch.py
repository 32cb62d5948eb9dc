from __future__ import annotations

import asyncio

import aiohttp
import pytest
from aiohttp import test_utils, web

from pydevcache.exceptions import DeviceFetchError
from pydevcache.fetch import rpc_fetcher, with_timeout


async def _device_info(request: web.Request) -> web.Response:
    return web.json_response({"id": "shellyplus1-a8032ab12345", "gen": 2})


async def _switch_status(request: web.Request) -> web.Response:
    return web.json_response({"id": int(request.query["id"]), "output": True})


async def _broken(request: web.Request) -> web.Response:
    return web.Response(status=500, text="internal error")


async def _html(request: web.Request) -> web.Response:
    return web.Response(text="<html>login</html>", content_type="text/html")


def _app() -> web.Application:
    app = web.Application()
    app.router.add_get("/rpc/Shelly.GetDeviceInfo", _device_info)
    app.router.add_get("/rpc/Switch.GetStatus", _switch_status)
    app.router.add_get("/rpc/Broken", _broken)
    app.router.add_get("/rpc/Html", _html)
    return app


@pytest.mark.asyncio
async def test_with_timeout_passes_result_through() -> None:
    async def fetch() -> dict[str, int]:
        return {"ok": 1}

    assert await with_timeout(fetch, 1.0)() == {"ok": 1}


@pytest.mark.asyncio
async def test_with_timeout_raises_timeout_error() -> None:
    async def slow() -> None:
        await asyncio.sleep(5)

    with pytest.raises(TimeoutError):
        await with_timeout(slow, 0.01)()


@pytest.mark.asyncio
async def test_rpc_fetcher_returns_json_body() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        host = f"{server.host}:{server.port}"

        info = await rpc_fetcher(session, host, "Shelly.GetDeviceInfo")()
        status = await rpc_fetcher(session, host, "Switch.GetStatus", params={"id": 0})()

    assert info == {"id": "shellyplus1-a8032ab12345", "gen": 2}
    assert status == {"id": 0, "output": True}


@pytest.mark.asyncio
async def test_rpc_fetcher_maps_http_errors() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        host = f"{server.host}:{server.port}"

        with pytest.raises(DeviceFetchError) as excinfo:
            await rpc_fetcher(session, host, "Broken")()

    assert excinfo.value.status_code == 500
    assert excinfo.value.method == "Broken"
    assert excinfo.value.device == host


@pytest.mark.asyncio
async def test_rpc_fetcher_rejects_non_json_body() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        host = f"{server.host}:{server.port}"

        with pytest.raises(DeviceFetchError, match="Invalid JSON"):
            await rpc_fetcher(session, host, "Html")()


@pytest.mark.asyncio
async def test_rpc_fetcher_maps_unknown_method_to_404() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        host = f"{server.host}:{server.port}"

        with pytest.raises(DeviceFetchError) as excinfo:
            await rpc_fetcher(session, host, "Nope.Missing")()

    assert excinfo.value.status_code == 404
