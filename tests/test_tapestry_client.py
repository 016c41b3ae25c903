import asyncio
import json

import httpx
import pytest

from socialapi.providers.tapestry import TapestryClient, TapestryError


def _client(test_settings, handler):
    return TapestryClient(test_settings, transport=httpx.MockTransport(handler))


class TestTapestryClient:
    """외부 소셜 그래프 클라이언트 테스트 (MockTransport)"""

    def test_api_key_sent_as_query_param(self, test_settings):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "alice"})

        client = _client(test_settings, handler)
        result = asyncio.run(client.follow("alice", "bob"))

        assert result == {"id": "alice"}
        assert seen["url"].params["apiKey"] == "test-tapestry-key"
        assert seen["url"].path.endswith("/followers/add")
        assert seen["body"] == {"startId": "alice", "endId": "bob"}

    def test_find_or_create_drops_empty_fields(self, test_settings):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"profile": {"id": "alice"}})

        client = _client(test_settings, handler)
        asyncio.run(client.find_or_create_profile("wallet-1", "alice"))

        assert seen["body"]["walletAddress"] == "wallet-1"
        assert seen["body"]["username"] == "alice"
        assert "bio" not in seen["body"]

    def test_error_status_raises(self, test_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="unavailable")

        client = _client(test_settings, handler)

        with pytest.raises(TapestryError) as exc_info:
            asyncio.run(client.unfollow("alice", "bob"))

        assert exc_info.value.status_code == 503

    def test_network_error_raises(self, test_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(test_settings, handler)

        with pytest.raises(TapestryError):
            asyncio.run(client.get_profile("alice"))

    def test_timeout_raises(self, test_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client = _client(test_settings, handler)

        with pytest.raises(TapestryError) as exc_info:
            asyncio.run(client.ping())

        assert "timeout" in exc_info.value.message

    def test_invalid_json_raises(self, test_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"not json")

        client = _client(test_settings, handler)

        with pytest.raises(TapestryError):
            asyncio.run(client.get_profile("alice"))

    def test_follow_state(self, test_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["startId"] == "alice"
            assert request.url.params["endId"] == "bob"
            return httpx.Response(200, json={"isFollowing": True})

        client = _client(test_settings, handler)

        assert asyncio.run(client.get_follow_state("alice", "bob")) is True

    def test_followers_list_unwrapped(self, test_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"profiles": [{"username": "bob"}]})

        client = _client(test_settings, handler)

        assert asyncio.run(client.get_followers("alice")) == [{"username": "bob"}]

    def test_delete_like_sends_body(self, test_settings):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(204)

        client = _client(test_settings, handler)
        result = asyncio.run(client.delete_like("bob", "tp-comment-1"))

        assert seen["method"] == "DELETE"
        assert seen["body"] == {"startId": "bob"}
        assert result == {}

    def test_configured(self, test_settings):
        assert TapestryClient(test_settings).configured is True
        assert TapestryClient(test_settings.model_copy(update={"TAPESTRY_API_KEY": ""})).configured is False
