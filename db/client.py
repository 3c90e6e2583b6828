"""
Supabase client factory.

Three kinds of client are handed out:
- the service-role client, which bypasses row-level security (health checks
  and diagnostics only),
- token-scoped clients, which carry the caller's access token so every query
  and upload runs under their row-level security policies,
- anonymous clients for auth calls (magic link, OTP verification, refresh).

Token-scoped and anonymous clients are created per request and never persist
a session, so no identity leaks between requests.
"""

from typing import Optional
from supabase import create_client, Client, ClientOptions
from config import require_secret


class DatabaseClient:
    """Builds Supabase clients from the configured project credentials."""

    def __init__(
        self,
        url: Optional[str] = None,
        service_key: Optional[str] = None,
        anon_key: Optional[str] = None,
    ):
        """
        Initialize database client.

        Credentials left out are read from the secret manager when the first
        client is built, so a missing key surfaces in the request that needs it.

        Args:
            url: Supabase URL (defaults to SUPABASE_URL)
            service_key: Service-role key (defaults to SUPABASE_SERVICE_ROLE_KEY)
            anon_key: Public anon key (defaults to SUPABASE_ANON_KEY)
        """
        self._url = url
        self._service_key = service_key
        self._anon_key = anon_key

        self._service_client: Optional[Client] = None

    @property
    def url(self) -> str:
        return self._url or require_secret("SUPABASE_URL")

    @property
    def service_key(self) -> str:
        return self._service_key or require_secret("SUPABASE_SERVICE_ROLE_KEY")

    @property
    def anon_key(self) -> str:
        return self._anon_key or require_secret("SUPABASE_ANON_KEY")

    def get_client(self) -> Client:
        """Get the shared service-role client (bypasses row-level security)."""
        if self._service_client is None:
            self._service_client = create_client(self.url, self.service_key)
        return self._service_client

    def for_token(self, access_token: str) -> Client:
        """Get a client whose queries run as the owner of access_token."""
        options = ClientOptions(
            headers={"Authorization": f"Bearer {access_token}"},
            auto_refresh_token=False,
            persist_session=False,
        )
        return create_client(self.url, self.anon_key, options=options)

    def anonymous(self) -> Client:
        """Get a fresh client for auth calls."""
        options = ClientOptions(auto_refresh_token=False, persist_session=False)
        return create_client(self.url, self.anon_key, options=options)
