"""Installer facade composing catalog, downloads and the pipeline."""

from __future__ import annotations

import re
from pathlib import Path

import structlog
from rich.console import Console

from xcinstall.core.catalog import CatalogClient
from xcinstall.core.command import SystemCommand
from xcinstall.core.config import AppConfig
from xcinstall.core.downloader import Downloader, DownloadResult
from xcinstall.core.errors import DownloadFailure
from xcinstall.core.pipeline import InstallationPipeline, PipelineResult
from xcinstall.core.registry import InstalledVersionRegistry
from xcinstall.core.session import AuthSession, DeveloperSession
from xcinstall.core.types import major_of, parse_version

logger = structlog.get_logger()

_BETA = re.compile(r"beta", re.IGNORECASE)


def select_current(names: list[str]) -> list[str]:
    """Select the versions of the latest stable major release.

    Majors are compared as integers, so a three digit major sorts above a
    two digit one. Beta labels never count as stable and are not returned.

    Example:
        >>> select_current(["9.0", "9.1", "10.0", "10.1", "11.0 beta"])
        ['10.0', '10.1']
    """
    stable = [name for name in names if not _BETA.search(name)]
    majors = [m for m in (major_of(name) for name in stable) if m is not None]
    if not majors:
        return []

    latest = max(majors)
    current = [name for name in stable if (major_of(name) or 0) >= latest]
    return sorted(current, key=lambda n: (parse_version(n), n))


class Installer:
    """High level operations used by the command line."""

    def __init__(
        self,
        session: AuthSession,
        config: AppConfig | None = None,
        command: SystemCommand | None = None,
        catalog: CatalogClient | None = None,
        downloader: Downloader | None = None,
        registry: InstalledVersionRegistry | None = None,
        pipeline: InstallationPipeline | None = None,
    ) -> None:
        self.session = session
        self.config = config or AppConfig()
        self.command = command or SystemCommand()
        self.catalog = catalog or CatalogClient(session, self.config)
        self.downloader = downloader or Downloader(self.config)
        self.registry = registry or InstalledVersionRegistry(self.command, self.config)
        self.pipeline = pipeline or InstallationPipeline(self.command, self.registry, self.config)

    @classmethod
    def create(cls, config: AppConfig, console: Console | None = None) -> Installer:
        """Build an installer with a developer portal session.

        Credentials are read from the environment on the first request
        that needs the portal.
        """
        session = DeveloperSession(config=config)
        return cls(session, config, downloader=Downloader(config, console=console))

    def list_all(self) -> list[str]:
        return self.catalog.names()

    def list_versions(self) -> list[str]:
        """Catalog versions that are not installed yet."""
        installed = {entry.version for entry in self.registry.list_installed()}
        return [name for name in self.catalog.names() if name not in installed]

    def list_current(self) -> list[str]:
        return select_current(self.list_versions())

    def exists(self, version: str) -> bool:
        return version in self.list_versions()

    def installed(self, version: str) -> bool:
        return self.registry.is_installed(version)

    def rm_list_cache(self) -> bool:
        return self.catalog.purge()

    def update(self) -> list[str]:
        """Purge the catalog cache and fetch a fresh catalog."""
        self.catalog.purge()
        return [entry.name for entry in self.catalog.fetch_catalog()]

    def download(self, version: str, show_progress: bool = True, url: str | None = None) -> DownloadResult:
        """Download the disk image for a version into the cache directory.

        Args:
            version: Catalog version name
            show_progress: Show a progress bar
            url: Explicit download URL overriding the catalog

        Returns:
            DownloadResult; failed when the version is unknown
        """
        entry = None if url is not None else self.catalog.find(version)
        if url is not None:
            source_url = url
            dmg_name = Path(url).name
        elif entry is not None and self.exists(version):
            source_url = entry.download_url
            dmg_name = Path(entry.remote_path).name
        else:
            logger.warning("version_not_available", version=version)
            return DownloadResult(path=None, error=f"Version {version} is not available.")

        return self.downloader.fetch(
            source_url,
            self.config.cache_dir,
            self.session.cookie_header(),
            dmg_name,
            show_progress,
        )

    def get_artifact(self, version: str, show_progress: bool = True, url: str | None = None) -> DownloadResult:
        """Locate or download the disk image for a version.

        A url naming an existing local file is used directly, then a
        pre-downloaded xcode-<version>.dmg in the download cache directory.
        """
        if url:
            local = Path(url)
            if local.exists():
                return DownloadResult(path=local)

        if self.config.download_cache_dir is not None:
            cached = self.config.download_cache_dir / f"xcode-{version}.dmg"
            if cached.exists():
                logger.info("artifact_cache_hit", path=str(cached))
                return DownloadResult(path=cached)

        return self.download(version, show_progress, url)

    def install_version(
        self,
        version: str,
        switch: bool = True,
        clean: bool = True,
        install: bool = True,
        show_progress: bool = True,
        url: str | None = None,
        open_release_notes: bool = False,
    ) -> PipelineResult | None:
        """Download and install a version.

        Returns:
            Pipeline result, or None when install is False

        Raises:
            DownloadFailure: If no disk image could be obtained
            InstallError: If the pipeline fails
        """
        artifact = self.get_artifact(version, show_progress, url)
        if not artifact.ok:
            raise DownloadFailure(version, artifact.error)

        result = None
        if install:
            result = self.pipeline.run(
                artifact.path,  # type: ignore[arg-type]
                self.config.install_path(version),
                switch=switch,
                clean=clean,
            )

        if open_release_notes:
            self.open_release_notes_url(version)
        return result

    def open_release_notes_url(self, version: str) -> bool:
        entry = self.catalog.find(version)
        if entry is None or entry.release_notes_url is None:
            return False
        return self.command.run(["open", entry.release_notes_url]).ok

    def symlink(self, version: str) -> bool:
        """Point the active-version symlink at an installed version.

        Returns:
            False if the version is not installed
        """
        entry = self.registry.find(version)
        if entry is None:
            logger.warning("version_not_installed", version=version)
            return False

        self.pipeline.switch_active(entry.path, select=False)
        return True

    def current_symlink(self) -> Path | None:
        return self.registry.current_symlink()

    def symlinks_to(self) -> Path | None:
        return self.registry.symlinks_to()
