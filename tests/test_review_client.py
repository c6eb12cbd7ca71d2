import json

import httpx
import pytest

from code_reviewer.config import ReviewServiceCredentials
from code_reviewer.review_client import ANTHROPIC_VERSION, ReviewServiceClient, ReviewServiceError

CREDENTIALS = ReviewServiceCredentials(api_key="sk-test", model="test-model", max_tokens=1234)


def make_client(handler):
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        base_url="https://api.anthropic.com",
        headers={"x-api-key": CREDENTIALS.api_key, "anthropic-version": ANTHROPIC_VERSION},
    )
    return ReviewServiceClient(CREDENTIALS, client=http_client)


class TestComplete:
    async def test_returns_first_text_block(self):
        captured = {}

        def handler(request):
            captured["path"] = request.url.path
            captured["payload"] = json.loads(request.content)
            captured["api_key"] = request.headers["x-api-key"]
            return httpx.Response(200, json={"content": [{"type": "text", "text": "OVERALL_SCORE: 90"}]})

        reply = await make_client(handler).complete("review this")

        assert reply == "OVERALL_SCORE: 90"
        assert captured["path"] == "/v1/messages"
        assert captured["api_key"] == "sk-test"
        assert captured["payload"] == {
            "model": "test-model",
            "max_tokens": 1234,
            "messages": [{"role": "user", "content": "review this"}],
        }

    async def test_non_text_block_is_an_error(self):
        def handler(request):
            return httpx.Response(200, json={"content": [{"type": "tool_use", "id": "x"}]})

        with pytest.raises(ReviewServiceError):
            await make_client(handler).complete("p")

    async def test_empty_content_is_an_error(self):
        def handler(request):
            return httpx.Response(200, json={"content": []})

        with pytest.raises(ReviewServiceError):
            await make_client(handler).complete("p")

    async def test_http_error_status(self):
        def handler(request):
            return httpx.Response(529, json={"type": "error", "error": {"type": "overloaded_error"}})

        with pytest.raises(ReviewServiceError, match="status=529"):
            await make_client(handler).complete("p")

    async def test_transport_error(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(ReviewServiceError):
            await make_client(handler).complete("p")
