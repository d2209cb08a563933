"""Pytest configuration and shared fixtures for xcinstall tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from xcinstall.core.command import CommandResult, SystemCommand
from xcinstall.core.config import AppConfig

Handler = Callable[[list[str]], CommandResult]


class FakeCommand(SystemCommand):
    """SystemCommand double that records calls and returns scripted results.

    Responses are keyed by the program (argv[0]); a response is either a
    CommandResult or a callable receiving argv. Unknown programs succeed
    with empty output.
    """

    def __init__(self, responses: dict[str, CommandResult | Handler] | None = None):
        super().__init__()
        self.responses: dict[str, CommandResult | Handler] = responses or {}
        self.calls: list[list[str]] = []
        self.privileged: list[bool] = []
        self.envs: list[dict[str, str] | None] = []

    def run(self, argv, *, privileged=False, env=None) -> CommandResult:
        argv_list = [str(a) for a in argv]
        self.calls.append(argv_list)
        self.privileged.append(privileged)
        self.envs.append(dict(env) if env is not None else None)

        response = self.responses.get(argv_list[0])
        if response is None:
            return CommandResult(argv=argv_list, returncode=0, stdout="", stderr="")
        if callable(response):
            return response(argv_list)
        return response

    def programs(self) -> list[str]:
        return [call[0] for call in self.calls]

    def calls_to(self, program: str) -> list[list[str]]:
        return [call for call in self.calls if call[0] == program]


def ok(stdout: str = "", argv: list[str] | None = None) -> CommandResult:
    """Successful command result."""
    return CommandResult(argv=argv or [], returncode=0, stdout=stdout, stderr="")


def failed(returncode: int = 1, stderr: str = "", argv: list[str] | None = None) -> CommandResult:
    """Failed command result."""
    return CommandResult(argv=argv or [], returncode=returncode, stdout="", stderr=stderr)


class FakeSession:
    """AuthSession double serving a listing and a prerelease page."""

    def __init__(
        self,
        config: AppConfig,
        listing: dict[str, Any] | None = None,
        prerelease_html: str = "",
        cookie: str | None = "myacinfo=abc123",
    ):
        self.config = config
        self.listing = listing if listing is not None else {"downloads": []}
        self.prerelease_html = prerelease_html
        self.cookie = cookie
        self.requests: list[tuple[str, str, dict[str, Any] | None]] = []
        self.error: Exception | None = None

    def request(self, method: str, url: str, params: dict[str, Any] | None = None) -> httpx.Response:
        self.requests.append((method, url, params))
        if self.error is not None:
            raise self.error
        if url == self.config.listing_url:
            return httpx.Response(200, json=self.listing)
        return httpx.Response(200, text=self.prerelease_html)

    def cookie_header(self) -> str | None:
        return self.cookie


@pytest.fixture
def test_config(tmp_path: Path) -> AppConfig:
    """Configuration with every path inside a temporary directory."""
    config = AppConfig(
        cache_dir=tmp_path / "cache",
        temp_dir=tmp_path / "tmp",
        applications_dir=tmp_path / "Applications",
        volume_path=tmp_path / "Volumes" / "Xcode",
        license_plist=tmp_path / "Preferences" / "com.apple.dt.Xcode.plist",
    )
    config.temp_dir.mkdir(parents=True, exist_ok=True)
    config.applications_dir.mkdir(parents=True, exist_ok=True)
    return config


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Configuration file for CLI invocations."""
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "cache_dir": str(tmp_path / "cache"),
                "temp_dir": str(tmp_path),
                "applications_dir": str(tmp_path / "Applications"),
            }
        )
    )
    return path


@pytest.fixture
def fake_command() -> FakeCommand:
    """Scripted process runner."""
    return FakeCommand()


@pytest.fixture
def sample_listing() -> dict[str, Any]:
    """Listing response, newest first as the portal sorts it."""
    return {
        "downloads": [
            {
                "name": "Xcode 11.3",
                "dateModified": 1576000000,
                "files": [{"remotePath": "/Developer_Tools/Xcode_11.3/Xcode_11.3.dmg"}],
                "release_notes_path": "/Developer_Tools/Xcode_11.3/Xcode_11.3_Release_Notes.pdf",
            },
            {
                "name": "Command Line Tools for Xcode 11.3",
                "dateModified": 1575900000,
                "files": [{"remotePath": "/Developer_Tools/CLT_11.3/Command_Line_Tools_11.3.dmg"}],
            },
            {
                "name": "Xcode 11.2",
                "dateModified": 1572000000,
                "files": [{"remotePath": "/Developer_Tools/Xcode_11.2/Xcode_11.2.dmg"}],
            },
            {
                "name": "Xcode 10.3",
                "dateModified": 1563000000,
                "files": [{"remotePath": "/Developer_Tools/Xcode_10.3/Xcode_10.3.xip"}],
            },
            {
                "name": "Xcode 9.x",
                "dateModified": 1510000000,
                "files": [{"remotePath": "/Developer_Tools/Xcode_9/Xcode_9.dmg"}],
            },
            {
                "name": "Xcode 10.1",
                "dateModified": 1540000000,
            },
            {
                "name": "Xcode 4.2",
                "dateModified": 1320000000,
                "files": [{"remotePath": "/Developer_Tools/xcode_4.2/xcode_4.2.dmg"}],
            },
        ]
    }


@pytest.fixture
def sample_prerelease_html() -> str:
    """Prerelease page with one new beta and one name already in the listing."""
    return """
<html><body>
<div class="downloads">
  <p><a class="button" href="/services-account/download?path=/Developer_Tools/Xcode_12_beta_2/Xcode_12_beta_2.dmg">Download Xcode 12 beta 2</a></p>
  <p><a href="/services-account/download?path=/Developer_Tools/Xcode_12_beta_2/Xcode_12_beta_2_Release_Notes.pdf">Release Notes</a></p>
  <p><a href="/services-account/download?path=/Developer_Tools/Xcode_11.3_alt/Xcode_11.3.dmg">Xcode 11.3</a></p>
  <p><a href="/download/more/">More downloads</a></p>
</div>
</body></html>
"""


# Pytest configuration
def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest settings."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
