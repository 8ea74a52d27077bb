"""
Spotify-specific data models.

This module defines data models for the parts of the Spotify Web API
response format Organizify reads: the current user, playlists and tracks.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class User:
    """
    Represents the current Spotify user.

    Attributes:
        id: Spotify user ID
        display_name: Name shown in the Spotify apps
        email: Account email (only with the user-read-email scope)
    """

    id: str
    display_name: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=data["id"],
            display_name=data.get("display_name"),
            email=data.get("email"),
        )


@dataclass
class Playlist:
    """
    Represents a playlist owned by or followed by the user.

    Attributes:
        id: Spotify playlist ID
        name: Playlist name
        track_count: Number of tracks in the playlist
        owner: Display name of the owner
        public: Whether the playlist is public
        collaborative: Whether the playlist is collaborative
    """

    id: str
    name: str
    track_count: int = 0
    owner: Optional[str] = None
    public: bool = False
    collaborative: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Playlist":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            track_count=(data.get("tracks") or {}).get("total", 0),
            owner=(data.get("owner") or {}).get("display_name"),
            public=bool(data.get("public")),
            collaborative=bool(data.get("collaborative")),
        )


@dataclass
class Track:
    """
    Represents a track.

    Attributes:
        id: Spotify track ID (None for local files)
        name: Track name
        artists: Artist names in credit order
        album: Album name
        duration_ms: Track length in milliseconds
    """

    id: Optional[str]
    name: str
    artists: List[str] = field(default_factory=list)
    album: Optional[str] = None
    duration_ms: int = 0

    @property
    def artist_names(self) -> str:
        """Artists joined for display."""
        return ", ".join(self.artists)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Track":
        return cls(
            id=data.get("id"),
            name=data.get("name", ""),
            artists=[a.get("name", "") for a in data.get("artists") or []],
            album=(data.get("album") or {}).get("name"),
            duration_ms=data.get("duration_ms") or 0,
        )


@dataclass
class SavedTrack:
    """
    A track in the user's Liked Songs.

    Attributes:
        added_at: ISO timestamp of when the track was liked
        track: The liked track
    """

    added_at: str
    track: Track

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SavedTrack":
        return cls(added_at=data.get("added_at", ""), track=Track.from_dict(data["track"]))
