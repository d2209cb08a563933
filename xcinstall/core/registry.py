"""Installed Xcode bundles discovered through Spotlight."""

from __future__ import annotations

import os
from pathlib import Path

import structlog

from xcinstall.core.command import SystemCommand
from xcinstall.core.config import AppConfig
from xcinstall.core.errors import IndexDisabledError
from xcinstall.core.types import FALLBACK_INSTALLED_VERSION, InstalledVersionEntity

logger = structlog.get_logger()


class InstalledVersionRegistry:
    """Lists installed bundles and the active-version symlink.

    Installs are found with the system content index, so the index must be
    enabled; falling back to a directory scan would silently miss bundles
    outside the applications directory.
    """

    def __init__(self, command: SystemCommand, config: AppConfig | None = None):
        self.command = command
        self.config = config or AppConfig()
        self._installed: list[InstalledVersionEntity] | None = None

    def list_installed(self) -> list[InstalledVersionEntity]:
        """Get installed versions sorted ascending by version.

        Raises:
            IndexDisabledError: If Spotlight indexing is disabled
        """
        if self._installed is None:
            entries = [
                InstalledVersionEntity(path=path, version=self.version_for(path))
                for path in self._bundle_paths()
            ]
            self._installed = sorted(entries, key=lambda e: e.sort_key)
            logger.debug("installed_versions", versions=[e.version for e in self._installed])
        return self._installed

    def refresh(self) -> None:
        """Forget the cached listing."""
        self._installed = None

    def _bundle_paths(self) -> list[Path]:
        status = self.command.run(["mdutil", "-s", "/"])
        if "disabled" in status.stdout:
            raise IndexDisabledError("Please enable Spotlight indexing for /Applications.")

        query = f"kMDItemCFBundleIdentifier == '{self.config.bundle_identifier}'"
        result = self.command.run(["mdfind", query])
        return [Path(line) for line in result.stdout.splitlines() if line.strip()]

    def version_for(self, path: Path) -> str:
        """Ask a bundle for its version.

        DEVELOPER_DIR is cleared because a stale value makes xcodebuild
        report the version of another install.

        Returns:
            Second token of the first output line, or "0.0" without output
        """
        xcodebuild = InstalledVersionEntity(path=path).xcodebuild
        result = self.command.run([str(xcodebuild), "-version"], env={"DEVELOPER_DIR": ""})

        lines = result.stdout.strip().splitlines()
        tokens = lines[0].split() if lines else []
        if len(tokens) < 2:
            logger.debug("version_unavailable", path=str(path))
            return FALLBACK_INSTALLED_VERSION
        return tokens[1]

    def find(self, version: str) -> InstalledVersionEntity | None:
        for entry in self.list_installed():
            if entry.version == version:
                return entry
        return None

    def is_installed(self, version: str) -> bool:
        return self.find(version) is not None

    def current_symlink(self) -> Path | None:
        """Active-version symlink, if one exists."""
        path = self.config.symlink_path
        return path if path.is_symlink() else None

    def symlinks_to(self) -> Path | None:
        """Absolute target of the active-version symlink."""
        link = self.current_symlink()
        if link is None:
            return None
        return Path(os.path.abspath(link.parent / os.readlink(link)))
