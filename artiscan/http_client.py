"""HTTP clients shared by the curation, scan and summary components.

Retries live in the transport so every caller gets the same policy:
transport errors and 5xx answers are retried with exponential backoff,
everything else is returned to the caller untouched.
"""

import asyncio
import time

import httpx

from artiscan import __version__
from artiscan.config import ServerDetails
from artiscan.utils.constants import DEFAULT_HTTP_RETRIES
from artiscan.utils.logging import logger

USER_AGENT = f"artiscan/{__version__}"


def _should_retry(response: httpx.Response) -> bool:
    return response.status_code >= 500


class RetryTransport(httpx.BaseTransport):
    """Synchronous transport wrapper with retry on 5xx and transport errors."""

    def __init__(self, wrapped: httpx.BaseTransport, retries: int = DEFAULT_HTTP_RETRIES, backoff: float = 0.5):
        self.wrapped = wrapped
        self.retries = retries
        self.backoff = backoff

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        attempt = 0
        while True:
            try:
                response = self.wrapped.handle_request(request)
            except httpx.TransportError as e:
                if attempt >= self.retries:
                    raise
                logger.debug(f"{request.method} {request.url} failed ({e}), retrying")
            else:
                if not _should_retry(response) or attempt >= self.retries:
                    return response
                response.close()
                logger.debug(f"{request.method} {request.url} returned {response.status_code}, retrying")
            time.sleep(self.backoff * (2 ** attempt))
            attempt += 1

    def close(self) -> None:
        self.wrapped.close()


class AsyncRetryTransport(httpx.AsyncBaseTransport):
    """Async twin of RetryTransport."""

    def __init__(self, wrapped: httpx.AsyncBaseTransport, retries: int = DEFAULT_HTTP_RETRIES, backoff: float = 0.5):
        self.wrapped = wrapped
        self.retries = retries
        self.backoff = backoff

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        attempt = 0
        while True:
            try:
                response = await self.wrapped.handle_async_request(request)
            except httpx.TransportError as e:
                if attempt >= self.retries:
                    raise
                logger.debug(f"{request.method} {request.url} failed ({e}), retrying")
            else:
                if not _should_retry(response) or attempt >= self.retries:
                    return response
                await response.aclose()
                logger.debug(f"{request.method} {request.url} returned {response.status_code}, retrying")
            await asyncio.sleep(self.backoff * (2 ** attempt))
            attempt += 1

    async def aclose(self) -> None:
        await self.wrapped.aclose()


def _client_kwargs(server: ServerDetails | None) -> dict:
    headers = {"User-Agent": USER_AGENT}
    kwargs: dict = {"headers": headers, "follow_redirects": True}
    if server is not None:
        headers.update(server.auth_headers())
        basic = server.basic_auth()
        if basic:
            kwargs["auth"] = basic
    return kwargs


def create_client(
    server: ServerDetails | None = None,
    retries: int = DEFAULT_HTTP_RETRIES,
    backoff: float = 0.5,
    timeout: float = 60.0,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Blocking client authenticated against ``server``."""
    inner = transport or httpx.HTTPTransport()
    return httpx.Client(
        transport=RetryTransport(inner, retries=retries, backoff=backoff),
        timeout=timeout,
        **_client_kwargs(server),
    )


def create_async_client(
    server: ServerDetails | None = None,
    retries: int = DEFAULT_HTTP_RETRIES,
    backoff: float = 0.5,
    timeout: float = 60.0,
    transport: httpx.AsyncBaseTransport | None = None,
    max_connections: int = 10,
) -> httpx.AsyncClient:
    """Async client authenticated against ``server``, sized for ``max_connections`` workers."""
    inner = transport or httpx.AsyncHTTPTransport(
        limits=httpx.Limits(max_connections=max_connections, max_keepalive_connections=max_connections)
    )
    return httpx.AsyncClient(
        transport=AsyncRetryTransport(inner, retries=retries, backoff=backoff),
        timeout=timeout,
        **_client_kwargs(server),
    )
