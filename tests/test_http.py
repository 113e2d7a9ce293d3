import unittest
from unittest.mock import AsyncMock, patch

import httpx

from plugin_sdk.http import create_http_client


class Responder:
    """MockTransport handler replaying a fixed sequence of outcomes."""
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return httpx.Response(outcome, json={"status": outcome})


class HttpClientTests(unittest.IsolatedAsyncioTestCase):
    async def request(self, responder, method="GET", **kwargs):
        async with create_http_client(base_url="https://api.example.com", transport=httpx.MockTransport(responder)) as client:
            return await client.request(method, "/v1/prices", **kwargs)

    async def test_sets_plugin_headers(self):
        responder = Responder([200])
        with patch("plugin_sdk.http.asyncio.sleep", new=AsyncMock()):
            res = await self.request(responder)
        self.assertEqual(res.status_code, 200)
        sent = responder.requests[0]
        self.assertEqual(sent.headers["User-Agent"], "MyBitcoinFuture-Plugin/1.0.0")
        self.assertEqual(sent.headers["X-Plugin-Version"], "1.0.0")

    async def test_default_timeout(self):
        client = create_http_client()
        try:
            self.assertEqual(client.timeout.connect, 10.0)
        finally:
            await client.aclose()

    async def test_retries_5xx_with_exponential_backoff(self):
        responder = Responder([502, 503, 200])
        with patch("plugin_sdk.http.asyncio.sleep", new=AsyncMock()) as sleep:
            res = await self.request(responder)
        self.assertEqual(res.status_code, 200)
        self.assertEqual(len(responder.requests), 3)
        self.assertEqual([c.args[0] for c in sleep.await_args_list], [2.0, 4.0])

    async def test_retries_network_errors(self):
        responder = Responder([httpx.ConnectError("boom"), 200])
        with patch("plugin_sdk.http.asyncio.sleep", new=AsyncMock()):
            res = await self.request(responder)
        self.assertEqual(res.status_code, 200)
        self.assertEqual(len(responder.requests), 2)

    async def test_gives_up_after_three_retries(self):
        responder = Responder([500, 500, 500, 500])
        with patch("plugin_sdk.http.asyncio.sleep", new=AsyncMock()) as sleep:
            res = await self.request(responder)
        self.assertEqual(res.status_code, 500)
        self.assertEqual(len(responder.requests), 4)
        self.assertEqual([c.args[0] for c in sleep.await_args_list], [2.0, 4.0, 8.0])

    async def test_reraises_last_network_error(self):
        responder = Responder([httpx.ReadTimeout("slow")] * 4)
        with patch("plugin_sdk.http.asyncio.sleep", new=AsyncMock()):
            with self.assertRaises(httpx.ReadTimeout):
                await self.request(responder)
        self.assertEqual(len(responder.requests), 4)

    async def test_client_errors_are_not_retried(self):
        responder = Responder([404])
        with patch("plugin_sdk.http.asyncio.sleep", new=AsyncMock()) as sleep:
            res = await self.request(responder)
        self.assertEqual(res.status_code, 404)
        sleep.assert_not_awaited()

    async def test_post_body_is_resent(self):
        responder = Responder([503, 201])
        with patch("plugin_sdk.http.asyncio.sleep", new=AsyncMock()):
            res = await self.request(responder, method="POST", json={"amount": "0.1"})
        self.assertEqual(res.status_code, 201)
        first, second = responder.requests
        self.assertEqual(first.content, second.content)
        self.assertIn(b"0.1", second.content)


if __name__ == "__main__":
    unittest.main()
