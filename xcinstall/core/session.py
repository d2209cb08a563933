"""Authenticated developer portal session."""

from __future__ import annotations

from typing import Any, Protocol

import httpx
import structlog

from xcinstall import __version__
from xcinstall.core.config import AppConfig, Credentials
from xcinstall.core.errors import AuthenticationError

logger = structlog.get_logger()


class AuthSession(Protocol):
    """Session able to issue authorized requests against the portal."""

    def request(self, method: str, url: str, params: dict[str, Any] | None = None) -> httpx.Response:
        ...

    def cookie_header(self) -> str | None:
        ...


class DeveloperSession:
    """Developer portal session backed by httpx.

    The session signs in lazily on the first request and keeps the
    resulting cookies for every later request, including downloads.
    """

    def __init__(
        self,
        credentials: Credentials | None = None,
        config: AppConfig | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize session.

        Args:
            credentials: Developer account credentials, read from the
                environment on first sign-in when omitted
            config: Application configuration
            transport: Optional httpx transport (used by tests)
        """
        self.credentials = credentials
        self.config = config or AppConfig()
        self._transport = transport
        self._client: httpx.Client | None = None
        self._authenticated = False

    @property
    def client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.config.auth_base_url,
                timeout=self.config.request_timeout,
                follow_redirects=True,
                transport=self._transport,
                headers={"User-Agent": f"xcinstall/{__version__}"},
            )
        return self._client

    def login(self) -> None:
        """Sign in with the configured credentials.

        Raises:
            AuthenticationError: If the credentials are missing or rejected
            httpx.HTTPError: On transport or unexpected server errors
        """
        if self.credentials is None:
            self.credentials = Credentials.from_env()

        response = self.client.post(
            self.config.signin_url,
            json={
                "accountName": self.credentials.user,
                "password": self.credentials.password,
                "rememberMe": False,
            },
            headers={"Accept": "application/json"},
        )
        if response.status_code in (401, 403):
            raise AuthenticationError("The specified Apple developer account credentials are incorrect.")
        response.raise_for_status()

        if self.credentials.team_id:
            self.client.cookies.set("teamId", self.credentials.team_id)

        self._authenticated = True
        logger.info("session_authenticated", user=self.credentials.user, team_id=self.credentials.team_id)

    def request(self, method: str, url: str, params: dict[str, Any] | None = None) -> httpx.Response:
        """Issue an authorized request.

        Args:
            method: HTTP method
            url: Absolute URL or path relative to the portal base URL
            params: Query parameters

        Returns:
            Successful response

        Raises:
            AuthenticationError: If the session is not authorized
            httpx.HTTPError: On transport or server errors
        """
        if not self._authenticated:
            self.login()

        query = dict(params or {})
        if self.credentials.team_id:
            query.setdefault("teamId", self.credentials.team_id)

        response = self.client.request(method, url, params=query)
        if response.status_code in (401, 403):
            raise AuthenticationError(f"Request to {url} was not authorized (HTTP {response.status_code}).")
        response.raise_for_status()
        return response

    def cookie_header(self) -> str | None:
        """Render session cookies as a Cookie header value.

        Signs in first when the session is not authenticated yet, so a
        download never starts without the account cookies.

        Raises:
            AuthenticationError: If the credentials are missing or rejected
        """
        if not self._authenticated:
            self.login()
        if not self.client.cookies:
            return None
        return "; ".join(f"{cookie.name}={cookie.value}" for cookie in self._client.cookies.jar)

    def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self) -> DeveloperSession:
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()
