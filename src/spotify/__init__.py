"""
Spotify Web API client module.

This module provides read-only access to the user's Spotify library:

- SpotifyClient: Authenticated HTTP client with automatic pagination
- Data models: User, Playlist, Track, SavedTrack

Authentication is handled automatically via the OAuth module.
"""

from .client import SpotifyClient
from .exceptions import SpotifyAPIError, SpotifyAuthenticationError, SpotifyNotFoundError
from .models import Playlist, SavedTrack, Track, User

__all__ = [
    "SpotifyClient",
    "SpotifyAPIError",
    "SpotifyAuthenticationError",
    "SpotifyNotFoundError",
    "User",
    "Playlist",
    "Track",
    "SavedTrack",
]
