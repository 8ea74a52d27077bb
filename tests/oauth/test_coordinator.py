"""Tests for OAuth coordinator module."""

import threading
from unittest import mock

import pytest

from src.oauth.auth_server import (
    ERROR_MISSING_CODE,
    ERROR_STATE_MISMATCH,
    ERROR_TIMEOUT,
    AuthorizationResult,
)
from src.oauth.coordinator import OAuthCoordinator
from src.oauth.exceptions import (
    AuthenticationDeniedError,
    AuthenticationTimeoutError,
    TokenExchangeError,
    TokenRefreshError,
)
from src.oauth.token_exchanger import TokenExchanger
from src.oauth.token_store import MemoryTokenStore


class FailingExchanger:
    """Exchanger that fails the test if any network call is attempted."""

    def exchange_code(self, *args, **kwargs):
        pytest.fail("exchange_code must not be called")

    def refresh(self, *args, **kwargs):
        pytest.fail("refresh must not be called")


@pytest.fixture
def exchanger():
    return mock.Mock(spec=TokenExchanger)


class TestOAuthCoordinator:
    """Tests for OAuthCoordinator construction and helpers."""

    def test_coordinator_initialization(self, config):
        """OAuthCoordinator initializes with its own store and exchanger."""
        coordinator = OAuthCoordinator(config)

        assert coordinator.config == config
        assert isinstance(coordinator.store, MemoryTokenStore)
        assert isinstance(coordinator.exchanger, TokenExchanger)
        assert coordinator.store.get() is None

    @mock.patch.dict("os.environ", {"SPOTIFY_CLIENT_ID": "env_id"}, clear=True)
    def test_coordinator_loads_config_from_env(self):
        """OAuthCoordinator loads config from environment if not provided."""
        coordinator = OAuthCoordinator()

        assert coordinator.config.client_id == "env_id"

    def test_coordinators_do_not_share_cache(self, config, fresh_token):
        """Each coordinator owns an independent token cache."""
        first = OAuthCoordinator(config)
        second = OAuthCoordinator(config)
        first.store.set(fresh_token)

        assert second.store.get() is None

    def test_is_authorized(self, config, fresh_token):
        """is_authorized reflects whether a token is cached."""
        coordinator = OAuthCoordinator(config)
        assert coordinator.is_authorized() is False

        coordinator.store.set(fresh_token)
        assert coordinator.is_authorized() is True

    def test_get_status_without_token(self, config):
        """get_status reports missing authorization."""
        status = OAuthCoordinator(config).get_status()

        assert status["authorized"] is False
        assert "message" in status

    def test_get_status_with_token(self, config, fresh_token):
        """get_status reports expiry details."""
        coordinator = OAuthCoordinator(config, store=MemoryTokenStore(fresh_token))

        status = coordinator.get_status()

        assert status["authorized"] is True
        assert status["expired"] is False
        assert status["needs_refresh"] is False
        assert 3500 < status["expires_in_seconds"] <= 3600
        assert status["scope"] == "playlist-read-private"
        assert "checked_at" in status

    def test_revoke_clears_cache(self, config, fresh_token):
        """revoke drops the cached token."""
        coordinator = OAuthCoordinator(config, store=MemoryTokenStore(fresh_token))

        coordinator.revoke()

        assert coordinator.store.get() is None

    def test_get_authorization_header(self, config, fresh_token):
        """get_authorization_header returns a bearer header."""
        coordinator = OAuthCoordinator(
            config, store=MemoryTokenStore(fresh_token), exchanger=FailingExchanger()
        )

        assert coordinator.get_authorization_header() == {
            "Authorization": "Bearer cached_access"
        }


class TestLoginCache:
    """Tests for the cached and refresh paths of login()."""

    def test_fresh_token_returned_without_network(self, config, fresh_token):
        """A token outside the refresh buffer is returned as is."""
        coordinator = OAuthCoordinator(
            config, store=MemoryTokenStore(fresh_token), exchanger=FailingExchanger()
        )

        with mock.patch("src.oauth.coordinator.run_authorization_flow") as mock_flow:
            assert coordinator.login() == ("cached_access", "cached_refresh")
            assert coordinator.get_access_token() == "cached_access"

        mock_flow.assert_not_called()

    def test_token_inside_buffer_is_stale(self, config, token_factory, exchanger):
        """A token expiring exactly at the buffer boundary is refreshed."""
        stale = token_factory(config.refresh_buffer_seconds - 1)
        exchanger.refresh.return_value = token_factory(3600, access="new", refresh="r")
        coordinator = OAuthCoordinator(
            config, store=MemoryTokenStore(stale), exchanger=exchanger
        )

        coordinator.login()

        exchanger.refresh.assert_called_once_with(stale)

    def test_stale_token_refreshed_once(self, config, stale_token, token_factory, exchanger):
        """A stale token triggers exactly one refresh which replaces the cache."""
        new_token = token_factory(3600, access="refreshed_access", refresh="refreshed_refresh")
        exchanger.refresh.return_value = new_token
        store = MemoryTokenStore(stale_token)
        coordinator = OAuthCoordinator(config, store=store, exchanger=exchanger)

        with mock.patch("src.oauth.coordinator.run_authorization_flow") as mock_flow:
            result = coordinator.login()

        assert result == ("refreshed_access", "refreshed_refresh")
        exchanger.refresh.assert_called_once_with(stale_token)
        exchanger.exchange_code.assert_not_called()
        mock_flow.assert_not_called()
        assert store.get() is new_token

    def test_refresh_without_new_refresh_token_keeps_old(self, config, stale_token):
        """The cached refresh token survives a refresh response without one."""
        session = mock.Mock()
        response = mock.Mock(status_code=200, text="")
        response.json.return_value = {
            "access_token": "refreshed_access",
            "token_type": "Bearer",
            "expires_in": 3600,
        }
        session.post.return_value = response
        store = MemoryTokenStore(stale_token)
        coordinator = OAuthCoordinator(
            config, store=store, exchanger=TokenExchanger(config, session=session)
        )

        assert coordinator.login() == ("refreshed_access", "stale_refresh")
        assert store.get().refresh_token == "stale_refresh"
        session.post.assert_called_once()

    @mock.patch("src.oauth.coordinator.run_authorization_flow")
    def test_refresh_failure_falls_back_to_interactive_login(
        self, mock_flow, config, stale_token, token_factory, exchanger, caplog
    ):
        """A failed refresh is logged and followed by a full login."""
        exchanger.refresh.side_effect = TokenRefreshError("invalid_grant", status_code=400)
        exchanger.exchange_code.return_value = token_factory(
            3600, access="login_access", refresh="login_refresh"
        )
        mock_flow.return_value = AuthorizationResult(success=True, authorization_code="code_123")
        coordinator = OAuthCoordinator(
            config, store=MemoryTokenStore(stale_token), exchanger=exchanger
        )

        with caplog.at_level("WARNING", logger="src.oauth.coordinator"):
            result = coordinator.login()

        assert result == ("login_access", "login_refresh")
        exchanger.refresh.assert_called_once()
        mock_flow.assert_called_once()
        assert "falling back to interactive login" in caplog.text


class TestInteractiveLogin:
    """Tests for the interactive path of login()."""

    @mock.patch("src.oauth.coordinator.run_authorization_flow")
    def test_login_exchanges_code_with_attempt_verifier(
        self, mock_flow, config, token_factory, exchanger
    ):
        """The code is exchanged with the verifier of the same attempt."""
        mock_flow.return_value = AuthorizationResult(success=True, authorization_code="code_123")
        exchanger.exchange_code.return_value = token_factory(3600, access="a", refresh="r")
        store = MemoryTokenStore()
        coordinator = OAuthCoordinator(config, store=store, exchanger=exchanger)

        assert coordinator.login() == ("a", "r")

        attempt = mock_flow.call_args[0][1]
        exchanger.exchange_code.assert_called_once_with("code_123", attempt.verifier)
        assert mock_flow.call_args[1]["timeout"] == config.login_timeout_seconds
        assert store.get().access_token == "a"

    @mock.patch("src.oauth.coordinator.run_authorization_flow")
    def test_each_login_uses_a_fresh_attempt(self, mock_flow, config, token_factory, exchanger):
        """A new PKCE attempt is generated for every interactive login."""
        mock_flow.return_value = AuthorizationResult(success=True, authorization_code="code")
        exchanger.exchange_code.return_value = token_factory(3600)
        coordinator = OAuthCoordinator(config, exchanger=exchanger)

        coordinator.login()
        coordinator.revoke()
        coordinator.login()

        first, second = (c[0][1] for c in mock_flow.call_args_list)
        assert first.state != second.state
        assert first.verifier != second.verifier

    @mock.patch("src.oauth.coordinator.run_authorization_flow")
    def test_timeout_raises_timeout_error(self, mock_flow, config, exchanger):
        """A timed out callback surfaces AuthenticationTimeoutError."""
        mock_flow.return_value = AuthorizationResult(success=False, error=ERROR_TIMEOUT)
        coordinator = OAuthCoordinator(config, exchanger=exchanger)

        with pytest.raises(AuthenticationTimeoutError, match="timeout"):
            coordinator.login()

        exchanger.exchange_code.assert_not_called()
        assert coordinator.store.get() is None

    @pytest.mark.parametrize(
        "error", ["access_denied", ERROR_STATE_MISMATCH, ERROR_MISSING_CODE]
    )
    @mock.patch("src.oauth.coordinator.run_authorization_flow")
    def test_failed_callback_raises_denied_error(self, mock_flow, error, config, exchanger):
        """Callback failures surface as AuthenticationDeniedError without exchange."""
        mock_flow.return_value = AuthorizationResult(
            success=False, error=error, error_description="details"
        )
        coordinator = OAuthCoordinator(config, exchanger=exchanger)

        with pytest.raises(AuthenticationDeniedError, match=error) as exc_info:
            coordinator.login()

        assert exc_info.value.error == error
        exchanger.exchange_code.assert_not_called()

    @mock.patch("src.oauth.coordinator.run_authorization_flow")
    def test_exchange_failure_leaves_cache_unchanged(
        self, mock_flow, config, stale_token, exchanger
    ):
        """A failed exchange propagates and keeps the previous cache."""
        exchanger.refresh.side_effect = TokenRefreshError("expired")
        exchanger.exchange_code.side_effect = TokenExchangeError(
            "Token exchange failed", status_code=400, body="invalid_grant"
        )
        mock_flow.return_value = AuthorizationResult(success=True, authorization_code="code")
        store = MemoryTokenStore(stale_token)
        coordinator = OAuthCoordinator(config, store=store, exchanger=exchanger)

        with pytest.raises(TokenExchangeError) as exc_info:
            coordinator.login()

        assert exc_info.value.status_code == 400
        assert store.get() is stale_token

    @mock.patch("src.oauth.coordinator.run_authorization_flow")
    def test_browser_settings_are_forwarded(self, mock_flow, config, token_factory, exchanger):
        """open_browser and the opener reach the authorization flow."""
        mock_flow.return_value = AuthorizationResult(success=True, authorization_code="code")
        exchanger.exchange_code.return_value = token_factory(3600)
        opener = mock.Mock()
        coordinator = OAuthCoordinator(
            config, exchanger=exchanger, open_browser=False, browser_opener=opener
        )

        coordinator.login()

        assert mock_flow.call_args[1]["open_browser"] is False
        assert mock_flow.call_args[1]["opener"] is opener

    @mock.patch("src.oauth.coordinator.run_authorization_flow")
    def test_concurrent_logins_run_one_interactive_flow(
        self, mock_flow, config, token_factory, exchanger
    ):
        """login() is serialized; the second caller reuses the new token."""
        entered = threading.Event()
        release = threading.Event()

        def slow_flow(*args, **kwargs):
            entered.set()
            release.wait(5)
            return AuthorizationResult(success=True, authorization_code="code")

        mock_flow.side_effect = slow_flow
        exchanger.exchange_code.return_value = token_factory(3600, access="shared")
        coordinator = OAuthCoordinator(config, exchanger=exchanger)
        results = []

        threads = [
            threading.Thread(target=lambda: results.append(coordinator.login()))
            for _ in range(2)
        ]
        threads[0].start()
        assert entered.wait(5)
        threads[1].start()
        release.set()
        for thread in threads:
            thread.join(5)

        assert mock_flow.call_count == 1
        assert [r[0] for r in results] == ["shared", "shared"]
