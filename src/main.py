#!/usr/bin/env python3
"""
Organizify CLI Application.

Authenticates with Spotify and prints a summary of the user's library:
profile, playlist and liked-song totals, and the first entries of each.
"""

import argparse
import logging
import sys
from typing import List, Optional

from .oauth.config import SpotifyOAuthConfig
from .oauth.coordinator import OAuthCoordinator
from .oauth.exceptions import ConfigurationError
from .spotify.client import SpotifyClient
from .spotify.exceptions import SpotifyAPIError, SpotifyAuthenticationError
from .spotify.models import Playlist, SavedTrack

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_AUTH_ERROR = 2
EXIT_API_ERROR = 3
EXIT_INTERRUPTED = 130


# Configure logging
logging.basicConfig(
    level=logging.WARNING, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


def format_playlists(playlists: List[Playlist], limit: int) -> str:
    """Format the first ``limit`` playlists as a numbered list."""
    lines = [f"Your Playlists ({len(playlists)} total):"]
    for i, playlist in enumerate(playlists[:limit], start=1):
        lines.append(f"  {i}. {playlist.name} - {playlist.track_count} tracks")
    if len(playlists) > limit:
        lines.append(f"... and {len(playlists) - limit} more")
    return "\n".join(lines)


def format_liked_songs(songs: List[SavedTrack], limit: int) -> str:
    """Format the first ``limit`` liked songs as a numbered list."""
    shown = min(limit, len(songs))
    lines = [f"Your Liked Songs (showing {shown} of {len(songs)}):"]
    for i, item in enumerate(songs[:limit], start=1):
        lines.append(f"  {i}. {item.track.name} - {item.track.artist_names}")
    return "\n".join(lines)


def run(client: SpotifyClient, limit: int) -> None:
    """Print the library summary using an authenticated client."""
    user = client.get_current_user()
    print(f"\n✓ Logged in as: {user.display_name or user.id}")
    print(f"✓ Total playlists: {client.get_playlists_count()}")
    print(f"✓ Total liked songs: {client.get_liked_songs_count()}")

    print("\nFetching all playlists...")
    print(format_playlists(client.get_all_playlists(), limit))

    print("\nFetching liked songs...")
    print(format_liked_songs(client.get_liked_songs(), limit))


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    parser = argparse.ArgumentParser(
        description="Summarize your Spotify library",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                   # Authenticate and print a summary
  %(prog)s --limit 20        # Show the first 20 playlists and songs
  %(prog)s --no-browser      # Print the authorization URL instead of opening it

Configuration:
  SPOTIFY_CLIENT_ID       Spotify application client ID
  SPOTIFY_CALLBACK_PORT   Loopback port of the registered redirect URI (default: 1069)
  SPOTIFY_SCOPES          Comma separated scopes
  SPOTIFY_LOGIN_TIMEOUT   Seconds to wait for authorization (default: 300)
        """,
    )

    parser.add_argument(
        "--limit", type=int, default=10, help="Number of entries to list (default: 10)"
    )
    parser.add_argument(
        "--no-browser", action="store_true", help="Do not open the browser automatically"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    args = parser.parse_args(argv)

    # Set log level
    if args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    try:
        config = SpotifyOAuthConfig.from_env()
        coordinator = OAuthCoordinator(config, open_browser=not args.no_browser)
        client = SpotifyClient(coordinator)

        print("=== Organizify ===")
        print("Authenticating with Spotify...", file=sys.stderr)
        run(client, args.limit)

    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    except SpotifyAuthenticationError as e:
        print(f"Failed to authenticate: {e}", file=sys.stderr)
        return EXIT_AUTH_ERROR

    except SpotifyAPIError as e:
        print(f"API error: {e}", file=sys.stderr)
        return EXIT_API_ERROR

    except KeyboardInterrupt:
        print("\n\nInterrupted by user", file=sys.stderr)
        return EXIT_INTERRUPTED

    print("\n✓ Done!")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
