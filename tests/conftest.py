"""
Pytest configuration and shared fixtures for all tests
"""

import os
import sys
from datetime import datetime, timezone

import pytest

# Add project root to Python path
project_root = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, os.path.dirname(project_root))

from live_notifier.config import AppConfig  # noqa: E402
from live_notifier.models import Credential, LiveBroadcast, LiveSet, SessionState  # noqa: E402


THUMBNAIL_TEMPLATE = (
    "https://static-cdn.jtvnw.net/previews-ttv/live_user_{login}-{{width}}x{{height}}.jpg"
)


def make_broadcast(broadcast_id: str, login: str = "test_streamer", **overrides) -> LiveBroadcast:
    """Build a LiveBroadcast with realistic defaults."""
    data = {
        "id": broadcast_id,
        "user_id": "141981764",
        "user_login": login,
        "user_name": login.title(),
        "game_id": "509658",
        "game_name": "Just Chatting",
        "type": "live",
        "title": f"Stream {broadcast_id}",
        "viewer_count": 42,
        "started_at": datetime(2025, 3, 10, 3, 18, 11, tzinfo=timezone.utc),
        "thumbnail_url": THUMBNAIL_TEMPLATE.format(login=login),
        "is_mature": False,
    }
    data.update(overrides)
    return LiveBroadcast(**data)


@pytest.fixture
def broadcast_factory():
    """Factory for LiveBroadcast instances."""
    return make_broadcast


@pytest.fixture
def credential():
    """A stored app access token."""
    return Credential(access_token="stored-token", expires_in=5011271, token_type="bearer")


@pytest.fixture
def fresh_credential():
    """A newly issued app access token."""
    return Credential(access_token="fresh-token", expires_in=5011271, token_type="bearer")


@pytest.fixture
def app_config(tmp_path):
    """Valid configuration writing state into a temporary directory."""
    return AppConfig(
        client_id="test-client-id",
        client_secret="test-client-secret",
        discord="https://discord.com/api/webhooks/123/abc",
        target_user="test_streamer",
        state_path=tmp_path / "state.json",
    )


@pytest.fixture
def live_set_ab():
    """Live-set with two broadcasts, A and B."""
    return LiveSet(data=[make_broadcast("A"), make_broadcast("B", login="other_streamer")])


@pytest.fixture
def state_with_a(credential):
    """State from a previous run that announced broadcast A."""
    return SessionState(auth=credential, lives=LiveSet(data=[make_broadcast("A")]))
