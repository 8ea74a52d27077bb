"""
Spotify Web API client with OAuth authentication.

This module provides an authenticated HTTP client for the read-only
library endpoints Organizify uses. It handles:

- Bearer authentication through the OAuth coordinator
- Offset/limit pagination until the API reports no next page
- Error handling and logging

The client never keeps the access token itself: every request asks the
coordinator, which returns the cached token or refreshes it.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional

import requests

from src.oauth.coordinator import OAuthCoordinator
from src.oauth.exceptions import SpotifyOAuthError

from .exceptions import SpotifyAPIError, SpotifyAuthenticationError, SpotifyNotFoundError
from .models import Playlist, SavedTrack, Track, User

logger = logging.getLogger(__name__)


class SpotifyClient:
    """
    Authenticated HTTP client for the Spotify Web API.

    Example:
        from src.oauth.coordinator import OAuthCoordinator
        from src.spotify.client import SpotifyClient

        client = SpotifyClient(OAuthCoordinator())
        user = client.get_current_user()
        playlists = client.get_all_playlists()
    """

    BASE_URL = "https://api.spotify.com/v1"

    def __init__(
        self,
        oauth_coordinator: Optional[OAuthCoordinator] = None,
        session: Optional[requests.Session] = None,
        base_url: str = BASE_URL,
        page_size: int = 50,
        timeout: float = 30,
    ):
        """
        Initialize Spotify API client.

        Args:
            oauth_coordinator: OAuth coordinator for authentication
                              (creates default if not provided)
            session: HTTP session (creates default if not provided)
            base_url: API base URL
            page_size: Items per page for library endpoints (max 50)
            timeout: Request timeout in seconds
        """
        self.oauth = oauth_coordinator or OAuthCoordinator()
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size
        self.timeout = timeout

    def _request(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Make authenticated GET request to the Spotify API.

        Args:
            endpoint: API endpoint path (e.g., "/me/playlists")
            params: Query parameters

        Returns:
            Parsed JSON body

        Raises:
            SpotifyAuthenticationError: If no token is available or the API returns 401
            SpotifyNotFoundError: If the API returns 404
            SpotifyAPIError: For other API or network errors
        """
        try:
            headers = self.oauth.get_authorization_header()
        except (SpotifyOAuthError, OSError) as e:
            # OSError: callback port could not be bound
            logger.error(f"Not authenticated: {e}")
            raise SpotifyAuthenticationError(f"Failed to get access token: {e}") from e

        headers["Accept"] = "application/json"
        url = f"{self.base_url}{endpoint}"
        logger.debug(f"GET {url}")
        if params:
            logger.debug(f"  Params: {params}")

        try:
            response = self.session.get(
                url, headers=headers, params=params, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Network error: {e}")
            raise SpotifyAPIError(f"Network error: {e}") from e

        if response.status_code == 401:
            logger.error(f"Authentication failed (401): {response.text}")
            raise SpotifyAuthenticationError(
                "Authentication failed. Access token may be expired or revoked.",
                status_code=401,
            )
        if response.status_code == 404:
            logger.warning(f"Resource not found (404): {url}")
            raise SpotifyNotFoundError(f"Resource not found: {endpoint}", status_code=404)
        if response.status_code != 200:
            logger.error(f"API error ({response.status_code}): {response.text}")
            raise SpotifyAPIError(
                f"API request failed (status {response.status_code}): {response.text}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise SpotifyAPIError(f"Invalid JSON from {endpoint}: {e}") from e

    def _paginate(self, endpoint: str, limit: Optional[int] = None) -> Iterator[Dict[str, Any]]:
        """
        Yield every item of a paged endpoint.

        Stops when the page has no ``next`` link or is shorter than the limit.
        """
        limit = limit or self.page_size
        offset = 0

        while True:
            page = self._request(endpoint, params={"limit": limit, "offset": offset})
            items = page.get("items") or []
            yield from items

            if page.get("next") is None or len(items) < limit:
                break
            offset += limit

    def _total(self, endpoint: str) -> int:
        page = self._request(endpoint, params={"limit": 1})
        return int(page.get("total", 0))

    def get_current_user(self) -> User:
        """Fetch the current user's profile."""
        return User.from_dict(self._request("/me"))

    def get_playlists_count(self) -> int:
        """Return the total number of playlists."""
        return self._total("/me/playlists")

    def get_liked_songs_count(self) -> int:
        """Return the total number of liked songs."""
        return self._total("/me/tracks")

    def get_all_playlists(self) -> List[Playlist]:
        """Fetch all user playlists."""
        return [Playlist.from_dict(item) for item in self._paginate("/me/playlists")]

    def get_liked_songs(self) -> List[SavedTrack]:
        """Fetch all of the user's liked songs."""
        return [
            SavedTrack.from_dict(item)
            for item in self._paginate("/me/tracks")
            if item.get("track")
        ]

    def get_playlist_tracks(self, playlist_id: str) -> List[Track]:
        """
        Fetch all tracks of a playlist.

        Entries whose track is no longer available are skipped.
        """
        return [
            Track.from_dict(item["track"])
            for item in self._paginate(f"/playlists/{playlist_id}/tracks", limit=100)
            if item.get("track")
        ]

    def get_playlist_by_name(self, name: str) -> Playlist:
        """
        Find a playlist by exact name.

        Raises:
            SpotifyNotFoundError: If no playlist has that name
        """
        for playlist in self.get_all_playlists():
            if playlist.name == name:
                return playlist
        raise SpotifyNotFoundError(f"Playlist '{name}' not found")
