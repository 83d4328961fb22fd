"""Ready-made producers for common data sources."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any
from urllib.parse import quote

import aiohttp

_logger = logging.getLogger(__name__)


def http_json_producer(
    session: aiohttp.ClientSession,
    url: str,
    *,
    method: str = "GET",
    headers: Mapping[str, str] | None = None,
    timeout: float | None = 30.0,
) -> Callable[..., Awaitable[Any]]:
    """Build an async producer that requests *url* and returns the decoded JSON.

    Positional arguments passed when the channel is invoked are appended to
    *url* as quoted path segments, so ``invoke("todo", 1)`` requests
    ``<url>/1``.  Keyword arguments are sent as query parameters (``GET``)
    or as the JSON body (other methods).  Non-2xx
    responses raise ``aiohttp.ClientResponseError``, which an invocation
    turns into an error record.
    """
    client_timeout = aiohttp.ClientTimeout(total=timeout) if timeout is not None else None

    async def _produce(*segments: Any, **params: Any) -> Any:
        target = url
        if segments:
            target = url.rstrip("/") + "/" + "/".join(quote(str(s), safe="") for s in segments)
        request_kwargs: dict[str, Any] = {"headers": dict(headers or {})}
        if client_timeout is not None:
            request_kwargs["timeout"] = client_timeout
        if params:
            if method.upper() == "GET":
                request_kwargs["params"] = {k: str(v) for k, v in params.items()}
            else:
                request_kwargs["json"] = params
        _logger.debug("%s %s", method.upper(), target)
        async with session.request(method.upper(), target, **request_kwargs) as response:
            response.raise_for_status()
            return await response.json(content_type=None)

    return _produce
