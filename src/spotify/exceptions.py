"""Exceptions for Spotify Web API client."""

from typing import Optional


class SpotifyAPIError(Exception):
    """Base exception for Spotify API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SpotifyAuthenticationError(SpotifyAPIError):
    """
    Authentication failure with Spotify API.

    Raised when no access token could be obtained (login timed out, was
    denied, or the code exchange failed) or when the API rejects the token.
    """

    pass


class SpotifyNotFoundError(SpotifyAPIError):
    """Requested resource (or named playlist) does not exist."""

    pass
