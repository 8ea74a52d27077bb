"""
Token endpoint client for Spotify OAuth integration.

This module performs the two token-bearing calls of the flow:
- Token exchange (authorization code + PKCE verifier -> tokens)
- Token refresh (refresh token -> new access token)

Both normalize the JSON response into a Token whose expiry is computed
when the response is parsed.
"""

import logging
import time
from typing import Optional

import requests

from .config import SpotifyOAuthConfig
from .exceptions import TokenExchangeError, TokenRefreshError
from .token_store import Token

logger = logging.getLogger(__name__)


class TokenExchanger:
    """
    Client for the authorization server's token endpoint.

    Spotify's PKCE flow uses a public client: requests carry the
    ``client_id`` in the form body and no client secret.
    """

    def __init__(
        self, config: SpotifyOAuthConfig, session: Optional[requests.Session] = None
    ):
        """
        Initialize token exchanger.

        Args:
            config: OAuth configuration
            session: HTTP session (creates default if not provided)
        """
        self.config = config
        self.session = session or requests.Session()

    def _post(self, data: dict) -> requests.Response:
        return self.session.post(
            self.config.token_url,
            data=data,
            headers={"Accept": "application/json"},
            timeout=self.config.request_timeout_seconds,
        )

    def exchange_code(self, authorization_code: str, verifier: str) -> Token:
        """
        Exchange authorization code for access and refresh tokens.

        Args:
            authorization_code: Code received from OAuth callback
            verifier: PKCE code verifier of the attempt that produced the code

        Returns:
            Token with access and refresh tokens

        Raises:
            TokenExchangeError: If exchange fails
        """
        logger.info("Exchanging authorization code for tokens")

        try:
            response = self._post(
                {
                    "client_id": self.config.client_id,
                    "grant_type": "authorization_code",
                    "code": authorization_code,
                    "redirect_uri": self.config.callback_url,
                    "code_verifier": verifier,
                }
            )
        except requests.RequestException as e:
            logger.error(f"Network error during token exchange: {e}")
            raise TokenExchangeError(f"Network error during token exchange: {e}") from e

        if response.status_code != 200:
            logger.error(
                f"Token exchange failed: {response.status_code} - {response.text}"
            )
            raise TokenExchangeError(
                f"Token exchange failed (status {response.status_code}): {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            token = Token.from_response(response.json())
        except (KeyError, ValueError, TypeError) as e:
            logger.error(f"Invalid response from token endpoint: {e}")
            raise TokenExchangeError(
                f"Invalid response from token endpoint: {e}",
                status_code=response.status_code,
                body=response.text,
            ) from e

        logger.info("Successfully obtained tokens")
        return token

    def refresh(self, token: Token, retry_count: int = 0) -> Token:
        """
        Refresh access token using the token's refresh token.

        Client errors (4xx) fail immediately. Server errors and network
        errors are retried with exponential backoff up to
        ``config.refresh_max_retries`` times. If the response omits a new
        refresh token, the previous one is kept.

        Args:
            token: Current (stale) token
            retry_count: Current retry attempt (used internally)

        Returns:
            New Token with fresh access token

        Raises:
            TokenRefreshError: If refresh fails after all retries
        """
        if not token.refresh_token:
            raise TokenRefreshError("No refresh token available")

        max_retries = self.config.refresh_max_retries
        logger.info(f"Refreshing access token (attempt {retry_count + 1}/{max_retries + 1})")

        try:
            response = self._post(
                {
                    "client_id": self.config.client_id,
                    "grant_type": "refresh_token",
                    "refresh_token": token.refresh_token,
                }
            )
        except requests.RequestException as e:
            logger.warning(f"Network error during token refresh: {e}")

            if retry_count < max_retries:
                delay = 2**retry_count  # Exponential backoff: 1s, 2s, 4s
                logger.warning(f"Retrying after {delay}s due to network error")
                time.sleep(delay)
                return self.refresh(token, retry_count + 1)

            raise TokenRefreshError(
                f"Network error during token refresh after {max_retries + 1} attempts: {e}"
            ) from e

        if response.status_code != 200:
            logger.error(f"Token refresh failed: {response.status_code} - {response.text}")

            if response.status_code >= 500 and retry_count < max_retries:
                delay = 2**retry_count
                logger.warning(f"Retrying after {delay}s due to server error")
                time.sleep(delay)
                return self.refresh(token, retry_count + 1)

            raise TokenRefreshError(
                f"Token refresh failed (status {response.status_code}): {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            new_token = Token.from_response(
                response.json(), previous_refresh_token=token.refresh_token
            )
        except (KeyError, ValueError, TypeError) as e:
            logger.error(f"Invalid response from token endpoint: {e}")
            raise TokenRefreshError(
                f"Invalid response from token endpoint: {e}",
                status_code=response.status_code,
                body=response.text,
            ) from e

        logger.info("Successfully refreshed tokens")
        return new_token
