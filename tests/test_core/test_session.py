"""Tests for session.py module."""

import json

import httpx
import pytest

from xcinstall.core.config import Credentials
from xcinstall.core.errors import AuthenticationError
from xcinstall.core.session import DeveloperSession


class PortalStub:
    """Minimal portal answering sign-in and listing requests."""

    def __init__(self, signin_status: int = 200, listing_status: int = 200):
        self.signin_status = signin_status
        self.listing_status = listing_status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/signin"):
            return httpx.Response(
                self.signin_status,
                headers={"Set-Cookie": "myacinfo=token123; Path=/"},
                json={},
            )
        return httpx.Response(self.listing_status, json={"downloads": []})


@pytest.fixture
def credentials():
    return Credentials(user="dev@example.com", password="secret", team_id="ABCDE12345")


class TestDeveloperSession:
    """Test DeveloperSession class."""

    def test_login_on_first_request(self, test_config, credentials):
        """Test that the first request signs in."""
        portal = PortalStub()
        with DeveloperSession(credentials, test_config, transport=httpx.MockTransport(portal)) as session:
            response = session.request("GET", test_config.listing_url)

        assert response.json() == {"downloads": []}
        signin, listing = portal.requests
        assert str(signin.url) == test_config.signin_url
        assert json.loads(signin.content) == {
            "accountName": "dev@example.com",
            "password": "secret",
            "rememberMe": False,
        }
        assert listing.url.params["teamId"] == "ABCDE12345"

    def test_login_once(self, test_config, credentials):
        portal = PortalStub()
        session = DeveloperSession(credentials, test_config, transport=httpx.MockTransport(portal))

        session.request("GET", test_config.listing_url)
        session.request("GET", test_config.prerelease_url)

        assert len(portal.requests) == 3
        session.close()

    def test_rejected_credentials(self, test_config, credentials):
        """Test that a rejected sign-in raises AuthenticationError."""
        session = DeveloperSession(credentials, test_config, transport=httpx.MockTransport(PortalStub(signin_status=401)))

        with pytest.raises(AuthenticationError, match="incorrect"):
            session.request("GET", test_config.listing_url)

    def test_unauthorized_request(self, test_config, credentials):
        session = DeveloperSession(
            credentials, test_config, transport=httpx.MockTransport(PortalStub(listing_status=403))
        )

        with pytest.raises(AuthenticationError):
            session.request("GET", test_config.listing_url)

    def test_server_error(self, test_config, credentials):
        session = DeveloperSession(
            credentials, test_config, transport=httpx.MockTransport(PortalStub(listing_status=500))
        )

        with pytest.raises(httpx.HTTPStatusError):
            session.request("GET", test_config.listing_url)

    def test_credentials_from_environment(self, test_config, monkeypatch):
        """Test that missing environment credentials fail before any request."""
        monkeypatch.delenv("ACCOUNT_USER", raising=False)
        monkeypatch.delenv("ACCOUNT_PASSWORD", raising=False)
        portal = PortalStub()
        session = DeveloperSession(config=test_config, transport=httpx.MockTransport(portal))

        with pytest.raises(AuthenticationError):
            session.request("GET", test_config.listing_url)
        assert portal.requests == []

    def test_cookie_header_signs_in(self, test_config, credentials):
        """Test that reading the cookie header signs in first."""
        portal = PortalStub()
        session = DeveloperSession(credentials, test_config, transport=httpx.MockTransport(portal))

        header = session.cookie_header()

        assert [r.url.path for r in portal.requests] == ["/appleauth/auth/signin"]
        assert "myacinfo=token123" in header
        assert "teamId=ABCDE12345" in header

        session.cookie_header()
        assert len(portal.requests) == 1

    def test_cookie_header_rejected_credentials(self, test_config, credentials):
        session = DeveloperSession(
            credentials, test_config, transport=httpx.MockTransport(PortalStub(signin_status=403))
        )

        with pytest.raises(AuthenticationError):
            session.cookie_header()
