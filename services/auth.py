"""
Passwordless email login through Supabase Auth.

The app sends a magic link whose target is /auth/callback. The link carries a
token hash that is verified server-side and traded for an access/refresh
token pair, which the pages keep in HttpOnly cookies. Every auth call uses a
fresh anonymous client so no session state is shared between requests.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from supabase import AuthError

from config import get_settings
from db.client import DatabaseClient

logger = logging.getLogger(__name__)


OTP_TYPES = {"email", "magiclink", "signup", "invite", "recovery", "email_change"}


@dataclass
class AuthSession:
    """The signed-in user behind a request."""
    user_id: str
    email: Optional[str]
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    refreshed: bool = False


def _session_from_response(response, refreshed: bool = False) -> Optional[AuthSession]:
    session = getattr(response, "session", None)
    user = getattr(response, "user", None) or getattr(session, "user", None)
    if session is None or user is None:
        return None
    return AuthSession(
        user_id=str(user.id),
        email=user.email,
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=session.expires_in,
        refreshed=refreshed,
    )


class AuthService:
    """Magic-link login and session resolution."""

    def __init__(self, database: DatabaseClient):
        self.database = database

    def send_magic_link(self, email: str) -> None:
        """
        Email a login link that lands on /auth/callback.

        Raises:
            AuthError: If the provider rejects the request
        """
        self.database.anonymous().auth.sign_in_with_otp({
            "email": email,
            "options": {"email_redirect_to": get_settings().auth_callback_url},
        })
        logger.info("[Auth] Magic link requested for %s", email)

    def complete_magic_link(self, token_hash: str, otp_type: str = "email") -> Optional[AuthSession]:
        """
        Verify the token hash from a magic link.

        Returns:
            The new session, or None if the link is invalid or expired
        """
        if otp_type not in OTP_TYPES:
            otp_type = "email"
        try:
            response = self.database.anonymous().auth.verify_otp({
                "token_hash": token_hash,
                "type": otp_type,
            })
        except AuthError as e:
            logger.warning("[Auth] Magic link verification failed: %s", e)
            return None
        return _session_from_response(response)

    def resolve_session(
        self,
        access_token: Optional[str],
        refresh_token: Optional[str] = None,
    ) -> Optional[AuthSession]:
        """
        Turn session cookies into an AuthSession.

        The access token is checked first; if it is missing or rejected and a
        refresh token is present, the pair is refreshed and the result is
        flagged so the caller rewrites its cookies.
        """
        client = self.database.anonymous()

        if access_token:
            try:
                response = client.auth.get_user(access_token)
            except AuthError as e:
                logger.info("[Auth] Access token rejected: %s", e)
                response = None
            user = getattr(response, "user", None)
            if user is not None:
                return AuthSession(
                    user_id=str(user.id),
                    email=user.email,
                    access_token=access_token,
                    refresh_token=refresh_token,
                )

        if not refresh_token:
            return None

        try:
            response = client.auth.refresh_session(refresh_token)
        except AuthError as e:
            logger.info("[Auth] Session refresh failed: %s", e)
            return None
        return _session_from_response(response, refreshed=True)
