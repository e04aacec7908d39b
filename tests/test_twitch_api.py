"""Tests for the Twitch API client against a mocked transport."""

import json

import httpx
import pytest

from giveaway.core.errors import UpstreamError
from giveaway.services import TwitchAPIClient


def make_client(handler) -> TwitchAPIClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TwitchAPIClient("client-id", "client-secret", http=http)


class TestTwitchAPIClient:
    def test_requires_credentials(self):
        with pytest.raises(ValueError):
            TwitchAPIClient("", "secret")

    @pytest.mark.asyncio
    async def test_exchange_code_for_token(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.url.path == "/oauth2/token":
                return httpx.Response(200, json={"access_token": "tok", "refresh_token": "ref"})
            return httpx.Response(200, json={"data": [{"id": "u1", "login": "streamer"}]})

        client = make_client(handler)
        result = await client.exchange_code_for_token("code", "http://localhost/callback")
        await client.close()

        assert result.success
        assert result.access_token == "tok"
        assert result.user["id"] == "u1"
        token_form = requests[0].content.decode()
        assert "grant_type=authorization_code" in token_form
        assert requests[1].headers["Authorization"] == "Bearer tok"
        assert requests[1].headers["Client-Id"] == "client-id"

    @pytest.mark.asyncio
    async def test_exchange_rejected(self):
        client = make_client(lambda request: httpx.Response(400, json={"message": "bad code"}))

        result = await client.exchange_code_for_token("code", "http://localhost/callback")
        await client.close()

        assert not result.success
        assert result.error == "token_exchange_failed"

    @pytest.mark.asyncio
    async def test_create_custom_reward(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["params"] = dict(request.url.params)
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"data": [{"id": "r1", "title": "Giveaway"}]})

        client = make_client(handler)
        reward = await client.create_custom_reward("u1", "tok", title="Giveaway", cost=500)
        await client.close()

        assert reward["id"] == "r1"
        assert captured["params"] == {"broadcaster_id": "u1"}
        assert captured["body"]["cost"] == 500
        assert captured["body"]["is_enabled"] is False
        assert captured["body"]["max_per_user_per_stream"] == 1

    @pytest.mark.asyncio
    async def test_set_reward_enabled(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["method"] = request.method
            captured["params"] = dict(request.url.params)
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"data": [{"id": "r1", "is_enabled": False}]})

        client = make_client(handler)
        await client.set_reward_enabled("u1", "r1", "tok", False)
        await client.close()

        assert captured["method"] == "PATCH"
        assert captured["params"] == {"broadcaster_id": "u1", "id": "r1"}
        assert captured["body"] == {"is_enabled": False, "is_paused": True}

    @pytest.mark.asyncio
    async def test_create_redemption_subscription(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["body"] = json.loads(request.content)
            return httpx.Response(202, json={"data": [{"id": "sub-1", "status": "pending"}]})

        client = make_client(handler)
        subscription = await client.create_redemption_subscription(
            "u1",
            "r1",
            "tok",
            callback_url="https://relay.example.com/webhook/eventsub",
            secret="s3cret-value",
        )
        await client.close()

        assert subscription["id"] == "sub-1"
        body = captured["body"]
        assert body["type"] == "channel.channel_points_custom_reward_redemption.add"
        assert body["condition"] == {"broadcaster_user_id": "u1", "reward_id": "r1"}
        assert body["transport"]["secret"] == "s3cret-value"

    @pytest.mark.asyncio
    async def test_helix_error_raises(self):
        client = make_client(lambda request: httpx.Response(403, json={"message": "forbidden"}))

        with pytest.raises(UpstreamError) as exc_info:
            await client.create_custom_reward("u1", "tok", title="Giveaway", cost=500)
        await client.close()

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_empty_data_raises(self):
        client = make_client(lambda request: httpx.Response(200, json={"data": []}))

        with pytest.raises(UpstreamError):
            await client.set_reward_enabled("u1", "r1", "tok", True)
        await client.close()
