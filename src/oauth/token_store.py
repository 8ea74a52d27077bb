"""
In-memory token cache for Spotify OAuth integration.

This module provides the Token value and the store that holds the single
current token. Tokens are kept in process memory only; nothing is written
to disk and the cache starts empty on every run.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Token:
    """
    OAuth token issued by the authorization server.

    Attributes:
        access_token: Short-lived bearer credential for API calls
        token_type: Token type (typically "Bearer")
        refresh_token: Long-lived token for obtaining new access tokens
        expiry: Absolute expiry time (timezone-aware UTC)
        scope: Granted OAuth scopes
    """

    access_token: str = field(repr=False)
    token_type: str
    refresh_token: str = field(repr=False)
    expiry: datetime
    scope: str = ""

    @classmethod
    def from_response(
        cls, data: Dict[str, Any], previous_refresh_token: Optional[str] = None
    ) -> "Token":
        """
        Build a Token from a token endpoint JSON response.

        The expiry is computed now, when the response is parsed, from the
        server-declared ``expires_in``.

        Args:
            data: Parsed JSON body of the token response
            previous_refresh_token: Refresh token to keep when the response
                                    does not carry a new one

        Returns:
            Token instance

        Raises:
            KeyError: If access_token or expires_in is missing
            ValueError: If expires_in is not a number
        """
        expires_in = float(data["expires_in"])
        return cls(
            access_token=data["access_token"],
            token_type=data.get("token_type") or "Bearer",
            refresh_token=data.get("refresh_token") or previous_refresh_token or "",
            expiry=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
            scope=data.get("scope") or "",
        )

    @property
    def is_expired(self) -> bool:
        """True if the access token has expired."""
        return datetime.now(timezone.utc) >= self.expiry

    def expires_within(self, seconds: float) -> bool:
        """
        Check if token expires within given seconds.

        Args:
            seconds: Safety margin in seconds

        Returns:
            True if the token will expire within the margin
        """
        return datetime.now(timezone.utc) + timedelta(seconds=seconds) >= self.expiry

    @property
    def seconds_remaining(self) -> float:
        """Seconds until expiry (never negative)."""
        return max(0.0, (self.expiry - datetime.now(timezone.utc)).total_seconds())

    @property
    def credentials(self) -> Tuple[str, str]:
        """(access_token, refresh_token) snapshot."""
        return self.access_token, self.refresh_token


class TokenStore(ABC):
    """Single-slot token cache owned by the OAuth coordinator."""

    @abstractmethod
    def get(self) -> Optional[Token]:
        """Return the current token, if any."""
        ...

    @abstractmethod
    def set(self, token: Token) -> None:
        """Replace the current token."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Drop the current token."""
        ...


class MemoryTokenStore(TokenStore):
    """Process-memory token cache. Replacement is atomic."""

    def __init__(self, token: Optional[Token] = None):
        self._lock = threading.Lock()
        self._token = token

    def get(self) -> Optional[Token]:
        with self._lock:
            return self._token

    def set(self, token: Token) -> None:
        with self._lock:
            self._token = token
        logger.debug(f"Cached token valid until {token.expiry.isoformat()}")

    def clear(self) -> None:
        with self._lock:
            self._token = None
