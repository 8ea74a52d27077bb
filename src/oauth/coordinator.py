"""
OAuth coordinator for high-level OAuth operations.

This module provides the main interface for OAuth operations in the
application. It owns the token cache, decides between reusing, refreshing
and re-authorizing, and provides simple methods for obtaining valid
access tokens.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from .auth_server import ERROR_TIMEOUT, run_authorization_flow
from .config import SpotifyOAuthConfig
from .exceptions import (
    AuthenticationDeniedError,
    AuthenticationTimeoutError,
    TokenRefreshError,
)
from .pkce import generate_attempt
from .token_exchanger import TokenExchanger
from .token_store import MemoryTokenStore, Token, TokenStore

logger = logging.getLogger(__name__)


class OAuthCoordinator:
    """
    High-level coordinator for OAuth operations.

    This is the main interface that applications should use for OAuth.
    API clients call ``get_access_token()`` (or ``login()``) before each
    request instead of holding on to a token themselves.

    ``login()`` is serialized by an internal lock, so one coordinator can
    be shared between threads; only one interactive login runs at a time.

    Example:
        coordinator = OAuthCoordinator()
        access_token, refresh_token = coordinator.login()
    """

    def __init__(
        self,
        config: Optional[SpotifyOAuthConfig] = None,
        store: Optional[TokenStore] = None,
        exchanger: Optional[TokenExchanger] = None,
        open_browser: bool = True,
        browser_opener: Optional[Callable[[str], bool]] = None,
    ):
        """
        Initialize OAuth coordinator.

        Args:
            config: OAuth configuration (loads from environment if not provided)
            store: Token cache (in-memory store if not provided)
            exchanger: Token endpoint client (creates default if not provided)
            open_browser: Whether to open the browser during interactive login
            browser_opener: Browser launcher (default: webbrowser.open)
        """
        self.config = config or SpotifyOAuthConfig.from_env()
        self.store = store or MemoryTokenStore()
        self.exchanger = exchanger or TokenExchanger(self.config)
        self.open_browser = open_browser
        self.browser_opener = browser_opener
        self._lock = threading.RLock()

    def login(self) -> Tuple[str, str]:
        """
        Return a usable (access_token, refresh_token) pair.

        1. A cached token that is not within the refresh buffer of its
           expiry is returned without any network call.
        2. A stale cached token is refreshed once. If the refresh fails,
           the failure is logged and a full interactive login follows.
        3. Otherwise the interactive PKCE flow runs: browser, callback,
           code exchange.

        Returns:
            Tuple of (access_token, refresh_token)

        Raises:
            AuthenticationTimeoutError: If no callback arrived in time
            AuthenticationDeniedError: If the callback reported an error,
                                       carried a wrong state or no code
            TokenExchangeError: If the authorization code exchange failed
            AuthorizationError: If PKCE parameters could not be generated
            OSError: If the callback port cannot be bound
        """
        with self._lock:
            token = self.store.get()

            if token is not None:
                if not token.expires_within(self.config.refresh_buffer_seconds):
                    logger.debug("Using cached access token")
                    return token.credentials

                logger.info(
                    f"Token expires soon "
                    f"(within {self.config.refresh_buffer_seconds}s), refreshing..."
                )
                try:
                    token = self.exchanger.refresh(token)
                except TokenRefreshError as e:
                    logger.warning(
                        f"Token refresh failed, falling back to interactive login: {e}"
                    )
                else:
                    self.store.set(token)
                    return token.credentials

            token = self._interactive_login()
            self.store.set(token)
            return token.credentials

    def _interactive_login(self) -> Token:
        """
        Run the complete interactive authorization flow.

        This orchestrates the full authorization process:
        1. Generates a fresh PKCE attempt
        2. Starts the loopback callback server
        3. Opens browser for user authorization
        4. Receives authorization code from callback (server is stopped)
        5. Exchanges code and verifier for tokens

        Returns:
            Newly issued Token
        """
        logger.info("No usable token, starting authorization flow")
        attempt = generate_attempt()

        result = run_authorization_flow(
            self.config,
            attempt,
            open_browser=self.open_browser,
            timeout=self.config.login_timeout_seconds,
            opener=self.browser_opener,
        )

        if not result.success:
            if result.error == ERROR_TIMEOUT:
                raise AuthenticationTimeoutError(
                    f"Authentication timeout after {self.config.login_timeout_seconds} seconds"
                )
            raise AuthenticationDeniedError(result.error, result.error_description)

        token = self.exchanger.exchange_code(result.authorization_code, attempt.verifier)
        logger.info("✅ Authorization complete!")
        return token

    def get_access_token(self) -> str:
        """
        Get a valid access token for API calls.

        Returns:
            Valid access token string
        """
        access_token, _ = self.login()
        return access_token

    def get_authorization_header(self) -> dict:
        """
        Get Authorization header dict for API requests.

        Returns:
            Dict with Authorization header: {"Authorization": "Bearer <token>"}

        Example:
            headers = coordinator.get_authorization_header()
            response = requests.get(url, headers=headers)
        """
        return {"Authorization": f"Bearer {self.get_access_token()}"}

    def is_authorized(self) -> bool:
        """
        Check if a token is cached (valid or refreshable).

        Returns:
            True if a token is cached, False otherwise
        """
        return self.store.get() is not None

    def get_status(self) -> dict:
        """
        Get current authorization status for diagnostics.

        Returns:
            Dictionary with status information including:
            - authorized: bool
            - expired: bool (if authorized)
            - expires_at: ISO timestamp (if authorized)
            - expires_in_seconds: float (if authorized)
            - needs_refresh: bool (if authorized)
            - scope: str (if authorized)
            - checked_at: ISO timestamp of this check (if authorized)
            - message: str (if not authorized)
        """
        token = self.store.get()

        if token is None:
            return {"authorized": False, "message": "No token cached"}

        return {
            "authorized": True,
            "expired": token.is_expired,
            "expires_at": token.expiry.astimezone(timezone.utc).isoformat(),
            "expires_in_seconds": token.seconds_remaining,
            "needs_refresh": token.expires_within(self.config.refresh_buffer_seconds),
            "scope": token.scope,
            "checked_at": datetime.now(timezone.utc).isoformat(),
        }

    def revoke(self) -> None:
        """
        Forget the cached token.

        This does NOT revoke the token on Spotify's servers. The next
        login() runs the interactive flow again.
        """
        with self._lock:
            self.store.clear()
        logger.info("Cached token discarded. Re-authorization required.")
