"""Pytest fixtures for OAuth tests.

Provides a free loopback port for tests that run the real callback
listener, and configs and tokens shared across the OAuth test modules.
"""

import socket
from datetime import datetime, timedelta, timezone

import pytest

from src.oauth.config import SpotifyOAuthConfig
from src.oauth.token_store import Token


@pytest.fixture
def free_port():
    """Find a free TCP port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def config():
    """Create test OAuth config."""
    return SpotifyOAuthConfig(
        client_id="test_client_id",
        callback_port=9069,
        token_url="https://accounts.example.com/api/token",
        authorization_url="https://accounts.example.com/authorize",
        refresh_max_retries=0,
    )


@pytest.fixture
def live_config(free_port):
    """Config for tests that bind the real callback listener."""
    return SpotifyOAuthConfig(
        client_id="test_client_id",
        callback_port=free_port,
        token_url="https://accounts.example.com/api/token",
        authorization_url="https://accounts.example.com/authorize",
        login_timeout_seconds=5,
        shutdown_grace_seconds=2,
        refresh_max_retries=0,
    )


def _make_token(expires_in_seconds: float, access="access_token", refresh="refresh_token"):
    """Build a token expiring the given number of seconds from now."""
    return Token(
        access_token=access,
        token_type="Bearer",
        refresh_token=refresh,
        expiry=datetime.now(timezone.utc) + timedelta(seconds=expires_in_seconds),
        scope="playlist-read-private",
    )


@pytest.fixture
def fresh_token():
    """Token valid for another hour."""
    return _make_token(3600, access="cached_access", refresh="cached_refresh")


@pytest.fixture
def stale_token():
    """Token inside the 5 minute refresh buffer."""
    return _make_token(60, access="stale_access", refresh="stale_refresh")


@pytest.fixture
def token_factory():
    """Factory for tokens expiring N seconds from now."""
    return _make_token
