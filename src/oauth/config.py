"""
OAuth configuration for Spotify API integration.

This module provides configuration management for the OAuth 2.0
Authorization Code flow with PKCE. Configuration can be loaded from
environment variables or provided programmatically.
"""

import os
import re
from dataclasses import dataclass, field
from typing import List

from .exceptions import ConfigurationError

DEFAULT_CLIENT_ID = "e2d7b802ac6a4132a265fab71f0645d0"

DEFAULT_SCOPES = [
    "playlist-read-private",
    "playlist-read-collaborative",
    "user-library-read",
]


@dataclass
class SpotifyOAuthConfig:
    """
    Configuration for Spotify OAuth 2.0 with PKCE.

    Spotify treats this application as a public client: there is no client
    secret, the code exchange is bound to the PKCE verifier instead.

    Attributes:
        client_id: Spotify application client ID
        callback_host: Loopback host the callback listener binds to
        callback_port: Port registered with the redirect URI
        callback_path: Path of the registered redirect URI (listener accepts any path)
        authorization_url: Spotify authorization endpoint
        token_url: Spotify token endpoint
        scopes: Scopes requested during authorization
        refresh_buffer_seconds: Treat tokens as stale this many seconds before expiry
        login_timeout_seconds: How long to wait for the browser callback
        shutdown_grace_seconds: Grace period for stopping the callback listener
        request_timeout_seconds: Timeout for token endpoint requests
        refresh_max_retries: Retries for refresh on server or network errors
    """

    client_id: str = DEFAULT_CLIENT_ID

    # Callback configuration (must match the registered redirect URI)
    callback_host: str = "127.0.0.1"
    callback_port: int = 1069
    callback_path: str = ""

    # Spotify OAuth endpoints
    authorization_url: str = "https://accounts.spotify.com/authorize"
    token_url: str = "https://accounts.spotify.com/api/token"

    scopes: List[str] = field(default_factory=lambda: list(DEFAULT_SCOPES))

    # Token lifecycle settings
    refresh_buffer_seconds: int = 300  # Refresh 5 min before expiry
    login_timeout_seconds: float = 300
    shutdown_grace_seconds: float = 5
    request_timeout_seconds: float = 30
    refresh_max_retries: int = 2

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.client_id:
            raise ConfigurationError("client_id cannot be empty")

        if not self.callback_host:
            raise ConfigurationError("callback_host cannot be empty")

        if not isinstance(self.callback_port, int) or not (
            1 <= self.callback_port <= 65535
        ):
            raise ConfigurationError(
                f"callback_port must be between 1 and 65535, got {self.callback_port}"
            )

        if self.callback_path and not self.callback_path.startswith("/"):
            raise ConfigurationError(
                f"callback_path must start with '/', got {self.callback_path!r}"
            )

        if self.refresh_buffer_seconds < 0:
            raise ConfigurationError("refresh_buffer_seconds cannot be negative")

        if self.login_timeout_seconds <= 0:
            raise ConfigurationError("login_timeout_seconds must be positive")

        if self.shutdown_grace_seconds <= 0:
            raise ConfigurationError("shutdown_grace_seconds must be positive")

        if self.request_timeout_seconds <= 0:
            raise ConfigurationError("request_timeout_seconds must be positive")

        if self.refresh_max_retries < 0:
            raise ConfigurationError("refresh_max_retries cannot be negative")

    @property
    def callback_url(self) -> str:
        """
        Full redirect URI sent to Spotify.

        Returns:
            Loopback callback URL (e.g., http://127.0.0.1:1069)
        """
        return f"http://{self.callback_host}:{self.callback_port}{self.callback_path}"

    @classmethod
    def from_env(cls) -> "SpotifyOAuthConfig":
        """
        Load configuration from environment variables.

        Optional environment variables:
            SPOTIFY_CLIENT_ID: Spotify application client ID
            SPOTIFY_CALLBACK_HOST: Callback host (default: 127.0.0.1)
            SPOTIFY_CALLBACK_PORT: Callback port (default: 1069)
            SPOTIFY_SCOPES: Comma or space separated scopes
            SPOTIFY_LOGIN_TIMEOUT: Seconds to wait for authorization (default: 300)

        Returns:
            SpotifyOAuthConfig instance

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed
        """
        port_value = os.environ.get("SPOTIFY_CALLBACK_PORT", "1069")
        try:
            callback_port = int(port_value)
        except ValueError:
            raise ConfigurationError(
                f"SPOTIFY_CALLBACK_PORT must be an integer, got {port_value!r}"
            ) from None

        timeout_value = os.environ.get("SPOTIFY_LOGIN_TIMEOUT", "300")
        try:
            login_timeout = float(timeout_value)
        except ValueError:
            raise ConfigurationError(
                f"SPOTIFY_LOGIN_TIMEOUT must be a number, got {timeout_value!r}"
            ) from None

        scopes_value = os.environ.get("SPOTIFY_SCOPES")
        scopes = (
            [s for s in re.split(r"[,\s]+", scopes_value) if s]
            if scopes_value
            else list(DEFAULT_SCOPES)
        )

        return cls(
            client_id=os.environ.get("SPOTIFY_CLIENT_ID", DEFAULT_CLIENT_ID),
            callback_host=os.environ.get("SPOTIFY_CALLBACK_HOST", "127.0.0.1"),
            callback_port=callback_port,
            scopes=scopes,
            login_timeout_seconds=login_timeout,
        )
