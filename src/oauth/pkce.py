"""
PKCE parameter generation (RFC 7636).

Each interactive login gets a fresh ``PKCEAttempt``: a random ``state`` for
CSRF protection, a random ``verifier`` that never leaves the process, and
the S256 ``challenge`` derived from it, which is the only PKCE value sent
to the authorization server up front.
"""

import base64
import hashlib
import logging
import secrets
from dataclasses import dataclass, field

from .exceptions import AuthorizationError

logger = logging.getLogger(__name__)

STATE_BYTES = 16
VERIFIER_BYTES = 32


def _urlsafe_b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def code_challenge(verifier: str) -> str:
    """
    Derive the S256 code challenge for a verifier.

    Args:
        verifier: PKCE code verifier

    Returns:
        URL-safe base64 (no padding) of SHA-256(verifier)
    """
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return _urlsafe_b64(digest)


@dataclass(frozen=True)
class PKCEAttempt:
    """
    One-time PKCE parameters for a single authorization attempt.

    Attributes:
        state: Random value echoed back in the callback
        verifier: Secret sent only with the code exchange
        challenge: S256 challenge of the verifier
    """

    state: str
    verifier: str = field(repr=False)
    challenge: str


def generate_attempt() -> PKCEAttempt:
    """
    Generate a fresh PKCE attempt.

    Returns:
        PKCEAttempt with independent random state and verifier

    Raises:
        AuthorizationError: If the system entropy source is unavailable
    """
    try:
        state = _urlsafe_b64(secrets.token_bytes(STATE_BYTES))
        verifier = _urlsafe_b64(secrets.token_bytes(VERIFIER_BYTES))
    except (NotImplementedError, OSError) as e:
        logger.error(f"Secure random source unavailable: {e}")
        raise AuthorizationError(
            f"Cannot generate PKCE parameters, secure random source unavailable: {e}"
        ) from e

    return PKCEAttempt(state=state, verifier=verifier, challenge=code_challenge(verifier))
