"""
OAuth exception classes for Spotify API integration.

This module defines the exception hierarchy for all OAuth-related errors,
providing clear error messages and recovery guidance.
"""

from typing import Optional


class SpotifyOAuthError(Exception):
    """Base exception for all Spotify OAuth errors."""

    pass


class ConfigurationError(SpotifyOAuthError):
    """OAuth configuration error (missing or invalid configuration)."""

    pass


class AuthorizationError(SpotifyOAuthError):
    """Interactive authorization flow could not complete."""

    pass


class AuthenticationTimeoutError(AuthorizationError):
    """No authorization callback arrived before the login timeout."""

    pass


class AuthenticationDeniedError(AuthorizationError):
    """
    Authorization callback reported a failure.

    Covers a server-reported error (e.g. ``access_denied``), a state
    mismatch and a callback without an authorization code.

    Attributes:
        error: OAuth error code (or ``state_mismatch`` / ``missing_code``)
        error_description: Human-readable description, if any
    """

    def __init__(self, error: str, error_description: Optional[str] = None):
        message = f"Authorization denied: {error}"
        if error_description:
            message += f" - {error_description}"
        super().__init__(message)
        self.error = error
        self.error_description = error_description


class _TokenEndpointError(SpotifyOAuthError):
    """Token endpoint failure carrying the HTTP status and response body."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TokenExchangeError(_TokenEndpointError):
    """Failed to exchange authorization code for tokens."""

    pass


class TokenRefreshError(_TokenEndpointError):
    """Failed to refresh access token using refresh token."""

    pass


class BrowserLaunchWarning(UserWarning):
    """The authorization URL could not be opened in a browser."""

    pass
