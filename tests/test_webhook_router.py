"""Tests for the EventSub webhook endpoint."""

from fastapi.testclient import TestClient

from giveaway import app as app_module
from giveaway.models import LiveConnection, TenantSession
from giveaway.schemas.eventsub import HEADER_MESSAGE_SIGNATURE, HEADER_MESSAGE_TYPE, MessageType
from tests.factories import (
    challenge_payload,
    drain,
    encode,
    redemption_payload,
    revocation_payload,
    subscription,
    webhook_headers,
)

WEBHOOK_URL = "/webhook/eventsub"


def post_webhook(client, payload, message_type=MessageType.NOTIFICATION.value, **kwargs):
    body = encode(payload)
    return client.post(WEBHOOK_URL, content=body, headers=webhook_headers(body, message_type, **kwargs))


class TestEventSubWebhook:
    """Test status codes and side effects of webhook deliveries."""

    def test_challenge_is_echoed(self, client, container):
        response = post_webhook(client, challenge_payload("xyz123"), MessageType.VERIFICATION.value)

        assert response.status_code == 200
        assert response.text == "xyz123"
        assert response.headers["content-type"].startswith("text/plain")
        assert len(container.campaigns) == 0

    def test_missing_headers(self, client):
        response = client.post(WEBHOOK_URL, content=encode(redemption_payload()))

        assert response.status_code == 400
        assert response.text == "Missing required headers"

    def test_bad_signature(self, client, container):
        container.campaigns.provision("u1", "r1")
        container.campaigns.start("u1")
        body = encode(redemption_payload())
        headers = webhook_headers(body, MessageType.NOTIFICATION.value)
        headers[HEADER_MESSAGE_SIGNATURE] = "sha256=" + "0" * 64

        response = client.post(WEBHOOK_URL, content=body, headers=headers)

        assert response.status_code == 403
        assert response.text == "Invalid signature"
        assert container.campaigns.stats("u1").total_entries == 0

    def test_invalid_json(self, client):
        body = b"{not json"
        headers = webhook_headers(body, MessageType.NOTIFICATION.value)

        response = client.post(WEBHOOK_URL, content=body, headers=headers)

        assert response.status_code == 400
        assert response.text == "Invalid JSON"

    def test_malformed_envelope(self, client):
        response = post_webhook(client, {"event": {}})

        assert response.status_code == 400
        assert response.text == "Malformed payload"

    def test_redemption_recorded(self, client, container):
        container.campaigns.provision("u1", "r1")
        container.campaigns.start("u1")
        viewer = LiveConnection("u1")
        container.connections.register(viewer)

        response = post_webhook(client, redemption_payload(user_name="alice", cost=500))

        assert response.status_code == 200
        assert response.text == "OK"
        stats = container.campaigns.stats("u1")
        assert (stats.total_entries, stats.unique_participants, stats.total_points_spent) == (
            1,
            1,
            500,
        )
        [event] = drain(viewer)
        assert event["type"] == "entry_added"
        assert event["username"] == "alice"

    def test_dropped_notification_still_acknowledged(self, client, container):
        container.campaigns.provision("u1", "r1")
        container.campaigns.start("u1")

        response = post_webhook(client, redemption_payload(reward_id="r2"))

        assert response.status_code == 200
        assert response.text == "OK"
        assert container.campaigns.stats("u1").total_entries == 0

    def test_unrecognized_subtype_acknowledged(self, client):
        payload = {
            "subscription": subscription("channel.ban", condition={"broadcaster_user_id": "u1"}),
            "event": {},
        }

        response = post_webhook(client, payload)

        assert response.status_code == 200
        assert response.text == "OK"

    def test_unknown_message_type_acknowledged(self, client):
        body = b'{"foo": "bar"}'
        headers = webhook_headers(body, "future_message_type")

        response = client.post(WEBHOOK_URL, content=body, headers=headers)

        assert response.status_code == 200
        assert response.text == "OK"

    def test_revocation_reaches_owning_tenant(self, client, container):
        for tenant_id, subscription_id in (("u1", "sub-1"), ("u2", "sub-2")):
            container.sessions.create(
                TenantSession(
                    tenant_id=tenant_id,
                    access_token=f"t-{tenant_id}",
                    refresh_token="",
                    subscription_id=subscription_id,
                )
            )
        first = LiveConnection("u1")
        second = LiveConnection("u2")
        container.connections.register(first)
        container.connections.register(second)

        response = post_webhook(
            client, revocation_payload("sub-1"), MessageType.REVOCATION.value
        )

        assert response.status_code == 200
        [event] = drain(first)
        assert event["type"] == "subscription_revoked"
        assert event["subscription_id"] == "sub-1"
        assert drain(second) == []

    def test_message_type_header_is_required(self, client):
        body = encode(redemption_payload())
        headers = webhook_headers(body, MessageType.NOTIFICATION.value)
        del headers[HEADER_MESSAGE_TYPE]

        response = client.post(WEBHOOK_URL, content=body, headers=headers)

        assert response.status_code == 400


class TestWebhookBodyLimit:
    """Test the cap on raw delivery size."""

    @staticmethod
    def capped_client(settings, twitch_api, monkeypatch, limit=64):
        monkeypatch.setattr(app_module, "setup_logging", lambda settings: None)
        capped = settings.model_copy(update={"webhook_max_body_bytes": limit})
        app = app_module.create_app(capped, twitch_api=twitch_api)
        return TestClient(app), app.state.container

    def test_oversized_body_rejected(self, settings, twitch_api, monkeypatch):
        client, container = self.capped_client(settings, twitch_api, monkeypatch)
        container.campaigns.provision("u1", "r1")
        container.campaigns.start("u1")

        response = post_webhook(client, redemption_payload())

        assert response.status_code == 413
        assert response.text == "Payload too large"
        assert container.campaigns.stats("u1").total_entries == 0

    def test_oversized_stream_without_length_rejected(self, settings, twitch_api, monkeypatch):
        client, _ = self.capped_client(settings, twitch_api, monkeypatch)
        body = b'{"pad": "' + b"x" * 100 + b'"}'
        headers = webhook_headers(body, MessageType.NOTIFICATION.value)

        response = client.post(WEBHOOK_URL, content=iter([body[:50], body[50:]]), headers=headers)

        assert response.status_code == 413

    def test_body_at_limit_accepted(self, settings, twitch_api, monkeypatch):
        body = encode(challenge_payload("xyz123"))
        client, _ = self.capped_client(settings, twitch_api, monkeypatch, limit=len(body))

        response = client.post(
            WEBHOOK_URL, content=body, headers=webhook_headers(body, MessageType.VERIFICATION.value)
        )

        assert response.status_code == 200
        assert response.text == "xyz123"
