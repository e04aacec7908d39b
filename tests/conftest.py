import os
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from tests.factories import WEBHOOK_SECRET

# Required settings must exist before anything calls get_settings()
os.environ.update(
    {
        "TWITCH_CLIENT_ID": "test-client-id",
        "TWITCH_CLIENT_SECRET": "test-client-secret",
        "TWITCH_WEBHOOK_SECRET": WEBHOOK_SECRET,
    }
)

from giveaway import app as app_module  # noqa: E402
from giveaway.core.config import Settings  # noqa: E402
from giveaway.repositories import CampaignRegistry, ConnectionRegistry, SessionRegistry  # noqa: E402
from giveaway.services import (  # noqa: E402
    BroadcastService,
    MessageDispatcher,
    SignatureVerifier,
    TwitchAPIClient,
)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        twitch_client_id="test-client-id",
        twitch_client_secret="test-client-secret",
        twitch_webhook_secret=WEBHOOK_SECRET,
        environment="development",
        public_url="https://relay.example.com",
        _env_file=None,  # type: ignore[call-arg]
    )


@pytest.fixture
def sessions() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def campaigns() -> CampaignRegistry:
    return CampaignRegistry()


@pytest.fixture
def connections() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def broadcaster(connections) -> BroadcastService:
    return BroadcastService(connections, heartbeat_interval=30.0, buffer_size=10)


@pytest.fixture
def dispatcher(sessions, campaigns, broadcaster) -> MessageDispatcher:
    return MessageDispatcher(sessions, campaigns, broadcaster)


@pytest.fixture
def verifier() -> SignatureVerifier:
    return SignatureVerifier(WEBHOOK_SECRET)


@pytest.fixture
def twitch_api() -> AsyncMock:
    return AsyncMock(spec=TwitchAPIClient)


@pytest.fixture
def app(settings, twitch_api, monkeypatch):
    # Keep pytest's log capture handlers on the root logger
    monkeypatch.setattr(app_module, "setup_logging", lambda settings: None)
    return app_module.create_app(settings, twitch_api=twitch_api)


@pytest.fixture
def container(app):
    return app.state.container


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
