"""Fetch function helpers.

The coordinator never builds fetch functions itself; these helpers are for
integration code that wants a deadline around a fetch or a ready-made call
to a device's JSON-RPC-over-HTTP endpoint (``http://<host>/rpc/<method>``).
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import aiohttp

from pydevcache.exceptions import DeviceFetchError

_logger = logging.getLogger(__name__)

DEFAULT_RPC_TIMEOUT: float = 30.0


def with_timeout(fetch: Callable[[], Awaitable[Any]], seconds: float) -> Callable[[], Awaitable[Any]]:
    """Wrap *fetch* so it raises :class:`TimeoutError` after *seconds*."""

    async def _fetch() -> Any:
        return await asyncio.wait_for(fetch(), timeout=seconds)

    return _fetch


def rpc_fetcher(
    session: aiohttp.ClientSession,
    host: str,
    method: str,
    *,
    params: Mapping[str, Any] | None = None,
    timeout: float = DEFAULT_RPC_TIMEOUT,
    scheme: str = "http",
) -> Callable[[], Awaitable[Any]]:
    """Build a fetch function that calls ``<scheme>://<host>/rpc/<method>``.

    The JSON response body is returned as-is. HTTP errors, transport
    failures, timeouts and non-JSON bodies raise :class:`DeviceFetchError`.
    """
    url = f"{scheme}://{host}/rpc/{method}"
    query = {key: json.dumps(value) if not isinstance(value, str) else value for key, value in (params or {}).items()}

    async def _fetch() -> Any:
        _logger.debug("GET %s", url)
        try:
            async with session.get(url, params=query or None, timeout=aiohttp.ClientTimeout(total=timeout)) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise DeviceFetchError(
                        f"HTTP {resp.status} from {host} {method}: {text[:200]}",
                        device=host,
                        method=method,
                        status_code=resp.status,
                    )
        except DeviceFetchError:
            raise
        except TimeoutError as exc:
            raise DeviceFetchError(f"{method} on {host} timed out after {timeout}s", device=host, method=method) from exc
        except aiohttp.ClientError as exc:
            raise DeviceFetchError(f"{method} on {host} failed: {exc}", device=host, method=method) from exc

        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise DeviceFetchError(
                f"Invalid JSON from {host} {method}: {text[:200]}",
                device=host,
                method=method,
            ) from exc

    return _fetch
