"""
Tests for magic-link login and session resolution.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from supabase import AuthError

from services.auth import AuthService


def _user(user_id="alice", email="alice@example.com"):
    return SimpleNamespace(id=user_id, email=email)


def _session(access="new-access", refresh="new-refresh"):
    return SimpleNamespace(access_token=access, refresh_token=refresh, expires_in=3600, user=_user())


@pytest.fixture
def anon():
    return MagicMock()


@pytest.fixture
def auth_service(anon):
    database = MagicMock()
    database.anonymous.return_value = anon
    return AuthService(database)


def test_send_magic_link_targets_callback(auth_service, anon):
    with patch("services.auth.get_settings") as settings:
        settings.return_value.auth_callback_url = "https://play.test/auth/callback"
        auth_service.send_magic_link("ava@example.com")

    anon.auth.sign_in_with_otp.assert_called_once_with({
        "email": "ava@example.com",
        "options": {"email_redirect_to": "https://play.test/auth/callback"},
    })


def test_send_magic_link_propagates_provider_error(auth_service, anon):
    anon.auth.sign_in_with_otp.side_effect = AuthError("Email rate limit exceeded", None)
    with pytest.raises(AuthError):
        auth_service.send_magic_link("ava@example.com")


def test_complete_magic_link(auth_service, anon):
    anon.auth.verify_otp.return_value = SimpleNamespace(session=_session(), user=_user())

    session = auth_service.complete_magic_link("hash-123", "magiclink")

    anon.auth.verify_otp.assert_called_once_with({"token_hash": "hash-123", "type": "magiclink"})
    assert session.user_id == "alice"
    assert session.access_token == "new-access"
    assert session.refresh_token == "new-refresh"


def test_complete_magic_link_unknown_type_falls_back_to_email(auth_service, anon):
    anon.auth.verify_otp.return_value = SimpleNamespace(session=_session(), user=_user())
    auth_service.complete_magic_link("hash-123", "sms")
    assert anon.auth.verify_otp.call_args[0][0]["type"] == "email"


def test_complete_magic_link_invalid(auth_service, anon):
    anon.auth.verify_otp.side_effect = AuthError("Token has expired or is invalid", None)
    assert auth_service.complete_magic_link("stale") is None


def test_resolve_valid_access_token(auth_service, anon):
    anon.auth.get_user.return_value = SimpleNamespace(user=_user())

    session = auth_service.resolve_session("access-1", "refresh-1")

    assert session.user_id == "alice"
    assert session.access_token == "access-1"
    assert session.refreshed is False
    anon.auth.refresh_session.assert_not_called()


def test_resolve_refreshes_expired_token(auth_service, anon):
    anon.auth.get_user.side_effect = AuthError("JWT expired", None)
    anon.auth.refresh_session.return_value = SimpleNamespace(session=_session(), user=_user())

    session = auth_service.resolve_session("expired", "refresh-1")

    anon.auth.refresh_session.assert_called_once_with("refresh-1")
    assert session.access_token == "new-access"
    assert session.refreshed is True


def test_resolve_without_refresh_token(auth_service, anon):
    anon.auth.get_user.side_effect = AuthError("JWT expired", None)
    assert auth_service.resolve_session("expired") is None


def test_resolve_failed_refresh(auth_service, anon):
    anon.auth.refresh_session.side_effect = AuthError("Invalid Refresh Token", None)
    assert auth_service.resolve_session(None, "refresh-1") is None
