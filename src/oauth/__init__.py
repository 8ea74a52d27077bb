"""
OAuth 2.0 module for Spotify API integration.

This module provides the OAuth 2.0 Authorization Code flow with PKCE for
authenticating a local process with Spotify, and an in-memory token cache
that refreshes the access token transparently.

Public API:
    SpotifyOAuthConfig: OAuth configuration management
    PKCEAttempt: One-time PKCE parameters
    OAuthCallbackServer: Loopback listener for the authorization redirect
    Token: Token value with absolute expiry
    MemoryTokenStore: In-memory token cache
    TokenExchanger: Token endpoint client
    OAuthCoordinator: High-level OAuth interface

Exceptions:
    SpotifyOAuthError: Base exception
    ConfigurationError: Configuration error
    AuthorizationError: Authorization flow error
    AuthenticationTimeoutError: No callback before the timeout
    AuthenticationDeniedError: Callback reported a failure
    TokenExchangeError: Token exchange failed
    TokenRefreshError: Token refresh failed
    BrowserLaunchWarning: Browser could not be opened (warning)
"""

from .auth_server import (
    AuthorizationResult,
    OAuthCallbackServer,
    build_authorization_url,
    run_authorization_flow,
)
from .config import SpotifyOAuthConfig
from .coordinator import OAuthCoordinator
from .exceptions import (
    AuthenticationDeniedError,
    AuthenticationTimeoutError,
    AuthorizationError,
    BrowserLaunchWarning,
    ConfigurationError,
    SpotifyOAuthError,
    TokenExchangeError,
    TokenRefreshError,
)
from .pkce import PKCEAttempt, code_challenge, generate_attempt
from .token_exchanger import TokenExchanger
from .token_store import MemoryTokenStore, Token, TokenStore

__all__ = [
    # Configuration
    "SpotifyOAuthConfig",
    # PKCE
    "PKCEAttempt",
    "generate_attempt",
    "code_challenge",
    # Token cache
    "Token",
    "TokenStore",
    "MemoryTokenStore",
    # Token endpoint
    "TokenExchanger",
    # Authorization Server
    "OAuthCallbackServer",
    "AuthorizationResult",
    "build_authorization_url",
    "run_authorization_flow",
    # Coordinator
    "OAuthCoordinator",
    # Exceptions
    "SpotifyOAuthError",
    "ConfigurationError",
    "AuthorizationError",
    "AuthenticationTimeoutError",
    "AuthenticationDeniedError",
    "TokenExchangeError",
    "TokenRefreshError",
    "BrowserLaunchWarning",
]
