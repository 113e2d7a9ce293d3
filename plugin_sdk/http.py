import asyncio
import logging
from typing import Optional

import httpx

from .settings import settings

logger = logging.getLogger(__name__)


class RetryTransport(httpx.AsyncBaseTransport):
    """
    Retries requests that got no response or a 5xx, with exponential backoff.
    Attempt n (1-based) waits 2**n * backoff_base_ms before being sent.
    After the last retry the final 5xx response is returned as-is, so callers
    still decide with raise_for_status().
    """
    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_retries: int = settings.http_max_retries,
        backoff_base_ms: int = settings.http_backoff_base_ms,
    ):
        self._transport = transport or httpx.AsyncHTTPTransport()
        self.max_retries = max_retries
        self.backoff_base_ms = backoff_base_ms

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        retry_count = 0
        while True:
            try:
                response = await self._transport.handle_async_request(request)
            except httpx.TransportError as e:
                if retry_count >= self.max_retries:
                    raise
                reason = f"{type(e).__name__}: {e}"
            else:
                if response.status_code < 500 or retry_count >= self.max_retries:
                    return response
                reason = f"HTTP {response.status_code}"
                await response.aclose()

            retry_count += 1
            delay = (2 ** retry_count) * self.backoff_base_ms / 1000.0
            logger.warning(
                "Retrying %s %s in %.1fs (%s/%s) after %s",
                request.method, request.url, delay, retry_count, self.max_retries, reason,
            )
            await asyncio.sleep(delay)

    async def aclose(self) -> None:
        await self._transport.aclose()


def create_http_client(
    base_url: str = "",
    headers: Optional[dict] = None,
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    max_retries: Optional[int] = None,
    **kwargs,
) -> httpx.AsyncClient:
    """
    Build the AsyncClient plugins should use for outbound calls.
    `transport` is the inner transport the retry layer wraps (tests pass an httpx.MockTransport).
    """
    merged_headers = {
        "User-Agent": settings.user_agent,
        "X-Plugin-Version": settings.sdk_version,
    }
    if headers:
        merged_headers.update(headers)

    retry = RetryTransport(
        transport=transport,
        max_retries=settings.http_max_retries if max_retries is None else max_retries,
    )
    return httpx.AsyncClient(
        base_url=base_url,
        headers=merged_headers,
        timeout=settings.http_timeout_seconds if timeout is None else timeout,
        transport=retry,
        **kwargs,
    )
