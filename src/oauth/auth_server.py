"""
OAuth callback server for Spotify API integration.

This module provides the transient loopback HTTP listener that receives
the authorization redirect during an interactive login. One server is
created per login attempt; it validates the redirect against the attempt's
``state``, hands exactly one result to the waiting caller and is stopped
when the attempt resolves, fails or times out.

IMPORTANT: This server is designed for single-user, personal use. It binds
to the loopback interface only and never outlives its login attempt.
"""

import hmac
import logging
import socketserver
import threading
import warnings
import webbrowser
from dataclasses import dataclass
from typing import Callable, Optional, Tuple
from urllib.parse import urlencode
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from flask import Flask, Response, request
from markupsafe import escape

from .config import SpotifyOAuthConfig
from .exceptions import BrowserLaunchWarning
from .pkce import PKCEAttempt

logger = logging.getLogger(__name__)

ERROR_STATE_MISMATCH = "state_mismatch"
ERROR_MISSING_CODE = "missing_code"
ERROR_TIMEOUT = "timeout"


@dataclass
class AuthorizationResult:
    """
    Result of OAuth authorization flow.

    Attributes:
        success: Whether authorization succeeded
        authorization_code: Authorization code from callback (if successful)
        error: Error code from OAuth provider or listener (if failed)
        error_description: Human-readable error description (if failed)
    """

    success: bool
    authorization_code: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None


class _CallbackRequestHandler(WSGIRequestHandler):
    """Request handler that routes access logs to the module logger."""

    # Idle connections (browser preconnects) are dropped after this many seconds
    timeout = 5

    def log_message(self, format: str, *args) -> None:
        logger.debug("callback listener: " + format, *args)


class _ThreadingWSGIServer(socketserver.ThreadingMixIn, WSGIServer):
    """WSGI server that handles each connection on its own thread."""

    daemon_threads = True


def _render_page(title: str, heading: str, color: str, *paragraphs: str) -> str:
    body = "\n".join(f"    <p>{escape(p)}</p>" for p in paragraphs)
    return f"""<html>
<head><title>{escape(title)}</title></head>
<body style="font-family: Arial, sans-serif; max-width: 600px; margin: 50px auto; padding: 20px;">
    <h1 style="color: {color};">{escape(heading)}</h1>
{body}
    <p style="margin-top: 30px; color: #666;">You can close this window and return to the terminal.</p>
</body>
</html>"""


def _failure_page(*paragraphs: str) -> str:
    return _render_page("Authorization Failed", "Authorization Failed", "#d32f2f", *paragraphs)


class OAuthCallbackServer:
    """
    Local HTTP server to handle the OAuth redirect for one login attempt.

    The server:
    1. Binds to the configured loopback host and port
    2. Serves requests on a background thread
    3. Validates the first redirect against the expected state
    4. Delivers a single AuthorizationResult to the waiting caller
    5. Shuts down gracefully within a bounded grace period

    Requests are accepted on any path, the registered redirect URI decides
    which path Spotify uses. Requests carrying none of ``code``, ``state``
    or ``error`` (such as /favicon.ico) get a 404 and are not treated as
    callbacks. Each connection is served on its own thread, so an idle
    browser preconnect cannot hold up the redirect. Once a result has been
    delivered (or the waiter has given up) further callbacks are rejected
    and never replace the delivered result.
    """

    def __init__(self, config: SpotifyOAuthConfig, expected_state: str):
        """
        Initialize callback server.

        Args:
            config: OAuth configuration with callback host and port
            expected_state: State generated for this login attempt
        """
        self.config = config
        self.expected_state = expected_state
        self.app = Flask(__name__)
        self.app.logger.setLevel(logging.WARNING)  # Suppress Flask logs
        self.server: Optional[threading.Thread] = None
        self.result: Optional[AuthorizationResult] = None
        self._httpd: Optional[WSGIServer] = None
        self._result_lock = threading.Lock()
        self._result_ready = threading.Event()
        self._resolved = False

        # Path-agnostic: the root rule plus a catch-all
        self.app.add_url_rule(
            "/",
            "oauth_callback",
            self._handle_callback,
            methods=["GET"],
            defaults={"path": ""},
        )
        self.app.add_url_rule(
            "/<path:path>", "oauth_callback", self._handle_callback, methods=["GET"]
        )

    @property
    def is_running(self) -> bool:
        """Whether the listener is currently accepting connections."""
        return (
            self._httpd is not None
            and self.server is not None
            and self.server.is_alive()
        )

    @property
    def server_address(self) -> Optional[Tuple[str, int]]:
        """Bound (host, port) while running, None otherwise."""
        if self._httpd is None:
            return None
        host, port = self._httpd.server_address[:2]
        return host, port

    def _deliver(self, result: AuthorizationResult) -> bool:
        """
        Hand a result to the waiter.

        Only the first delivery is accepted; later ones (a second browser
        request, or a callback arriving after the waiter timed out) are
        dropped.

        Returns:
            True if the result was accepted
        """
        with self._result_lock:
            if self._resolved:
                return False
            self.result = result
            self._resolved = True
        self._result_ready.set()
        return True

    def _handle_callback(self, path: str = "") -> Response:
        """Handle OAuth redirect from Spotify."""
        args = request.args
        if not any(key in args for key in ("code", "state", "error")):
            # e.g. /favicon.ico requested by the browser after the result page
            logger.debug(f"Ignoring non-callback request: /{path}")
            return Response("Not Found", status=404, content_type="text/plain")

        logger.info("Received OAuth callback")

        error = args.get("error")
        if error:
            error_desc = args.get("error_description") or None
            result = AuthorizationResult(
                success=False, error=error, error_description=error_desc
            )
            status = 400
            page = _failure_page(
                f"Error: {error}", f"Description: {error_desc or 'none provided'}"
            )
        elif not hmac.compare_digest(
            args.get("state", "").encode("utf-8"), self.expected_state.encode("utf-8")
        ):
            result = AuthorizationResult(
                success=False,
                error=ERROR_STATE_MISMATCH,
                error_description="State parameter does not match this login attempt",
            )
            status = 403
            page = _failure_page("Invalid state parameter.")
        elif not args.get("code"):
            result = AuthorizationResult(
                success=False,
                error=ERROR_MISSING_CODE,
                error_description="No authorization code received",
            )
            status = 400
            page = _failure_page("No authorization code received from Spotify.")
        else:
            result = AuthorizationResult(success=True, authorization_code=args["code"])
            status = 200
            page = _render_page(
                "Organizify - Authentication Successful",
                "Authentication Successful!",
                "#1DB954",
                "Organizify has been authorized to read your Spotify library.",
            )

        if not self._deliver(result):
            logger.warning("Ignoring OAuth callback: login attempt already resolved")
            return Response(
                _failure_page("This login attempt has already completed."),
                status=409,
                content_type="text/html",
            )

        if result.success:
            logger.info("Authorization code received successfully")
        else:
            logger.error(
                f"OAuth callback rejected: {result.error} - {result.error_description}"
            )
        return Response(page, status=status, content_type="text/html")

    def start(self) -> None:
        """
        Bind the listener and start serving on a background thread.

        The socket is bound before this method returns, so the redirect
        can never arrive before the listener is ready.

        Raises:
            OSError: If the callback port cannot be bound
        """
        host, port = self.config.callback_host, self.config.callback_port
        logger.info(f"Starting OAuth callback server on {host}:{port}")

        self._httpd = make_server(
            host,
            port,
            self.app,
            server_class=_ThreadingWSGIServer,
            handler_class=_CallbackRequestHandler,
        )
        self.server = threading.Thread(
            target=self._httpd.serve_forever,
            kwargs={"poll_interval": 0.1},
            name="oauth-callback-server",
            daemon=True,
        )
        self.server.start()

        logger.info("OAuth callback server started successfully")

    def wait_for_callback(self, timeout: Optional[float] = None) -> AuthorizationResult:
        """
        Wait for the OAuth callback.

        Whichever comes first wins: the callback result or the timeout.
        After a timeout the result slot is closed so a late callback is
        rejected instead of being delivered to nobody.

        Args:
            timeout: Maximum seconds to wait (default: config.login_timeout_seconds)

        Returns:
            AuthorizationResult with code or error
        """
        if timeout is None:
            timeout = self.config.login_timeout_seconds
        logger.info(f"Waiting for OAuth callback (timeout: {timeout}s)")

        if not self._result_ready.wait(timeout=timeout):
            with self._result_lock:
                self._resolved = True
                timed_out = self.result is None

            if timed_out:
                logger.warning(f"Timeout waiting for callback after {timeout}s")
                return AuthorizationResult(
                    success=False,
                    error=ERROR_TIMEOUT,
                    error_description=f"No callback received within {timeout} seconds. "
                    f"Please ensure you completed the authorization in your browser.",
                )

        return self.result

    def stop(self) -> None:
        """
        Stop the callback server.

        Waits up to ``shutdown_grace_seconds`` for an in-flight response to
        finish, then closes the listening socket regardless. Safe to call
        more than once.
        """
        with self._result_lock:
            self._resolved = True

        httpd, self._httpd = self._httpd, None
        if httpd is None:
            return

        logger.info("OAuth callback server shutting down")
        grace = self.config.shutdown_grace_seconds

        stopper = threading.Thread(target=httpd.shutdown, daemon=True)
        stopper.start()
        stopper.join(grace)
        if stopper.is_alive():
            logger.warning(f"Callback server did not stop within {grace}s, closing socket")

        httpd.server_close()
        if self.server is not None:
            self.server.join(grace)


def build_authorization_url(config: SpotifyOAuthConfig, attempt: PKCEAttempt) -> str:
    """
    Generate the Spotify authorization URL for a PKCE attempt.

    Args:
        config: OAuth configuration
        attempt: PKCE parameters of the current login attempt

    Returns:
        Complete authorization URL with query parameters
    """
    params = {
        "client_id": config.client_id,
        "response_type": "code",
        "redirect_uri": config.callback_url,
        "state": attempt.state,
        "scope": " ".join(config.scopes),
        "code_challenge_method": "S256",
        "code_challenge": attempt.challenge,
    }
    return f"{config.authorization_url}?{urlencode(params)}"


def present_authorization_url(
    auth_url: str,
    open_browser: bool = True,
    opener: Optional[Callable[[str], bool]] = None,
) -> bool:
    """
    Show the authorization URL and try to open it in the browser.

    Failing to launch a browser is not fatal: a BrowserLaunchWarning is
    emitted and the URL is printed for the user to copy.

    Args:
        auth_url: Authorization URL to present
        open_browser: Whether to try opening the browser at all
        opener: Browser launcher (default: webbrowser.open)

    Returns:
        True if a browser was launched
    """
    opener = opener or webbrowser.open

    print("\n" + "=" * 70)
    print("SPOTIFY AUTHENTICATION REQUIRED")
    print("=" * 70)

    opened = False
    if open_browser:
        reason = "no runnable browser found"
        try:
            opened = bool(opener(auth_url))
        except (webbrowser.Error, OSError) as e:
            reason = str(e)

        if not opened:
            message = f"Could not open browser automatically: {reason}"
            logger.warning(message)
            warnings.warn(message, BrowserLaunchWarning, stacklevel=2)

    if opened:
        print("\n🌐 Opening browser for authentication...")
        print("   If the browser doesn't open, visit this URL:")
    else:
        print("\n📋 Please visit this URL to authorize Organizify:")
    print(f"\n  {auth_url}\n")
    print("⏳ Waiting for authentication...")
    print("=" * 70 + "\n")

    return opened


def run_authorization_flow(
    config: SpotifyOAuthConfig,
    attempt: PKCEAttempt,
    open_browser: bool = True,
    timeout: Optional[float] = None,
    opener: Optional[Callable[[str], bool]] = None,
) -> AuthorizationResult:
    """
    Run the interactive part of the authorization flow.

    This function:
    1. Starts the loopback callback server
    2. Builds the authorization URL for the attempt
    3. Opens the browser (or displays the URL)
    4. Waits for the user to authorize
    5. Stops the server, whatever the outcome

    Args:
        config: OAuth configuration
        attempt: PKCE parameters for this login attempt
        open_browser: Whether to automatically open browser (default: True)
        timeout: Seconds to wait for callback (default: config value)
        opener: Browser launcher (default: webbrowser.open)

    Returns:
        AuthorizationResult with authorization code or error

    Raises:
        OSError: If the callback port cannot be bound
    """
    server = OAuthCallbackServer(config, expected_state=attempt.state)

    try:
        server.start()

        auth_url = build_authorization_url(config, attempt)
        present_authorization_url(auth_url, open_browser=open_browser, opener=opener)

        result = server.wait_for_callback(timeout)

        if result.success:
            print("✅ Authorization successful!")
            logger.info("Authorization flow completed successfully")
        else:
            print(f"❌ Authorization failed: {result.error}")
            if result.error_description:
                print(f"   {result.error_description}")
            logger.error(
                f"Authorization flow failed: {result.error} - {result.error_description}"
            )

        return result

    finally:
        server.stop()
