"""Error taxonomy for xcinstall.

Credential and index-availability failures cannot be recovered locally and
end the process from the CLI layer. Pipeline failures are raised after the
pipeline has released the mounted volume and removed partial copies.
"""

from __future__ import annotations

from pathlib import Path


class XcinstallError(Exception):
    """Base class for all xcinstall errors."""


class AuthenticationError(XcinstallError):
    """Raised when developer account credentials are missing or rejected."""


class CatalogFetchError(XcinstallError):
    """Raised when the catalog cannot be fetched or decoded."""


class DownloadFailure(XcinstallError):
    """Raised when an artifact could not be obtained for a version.

    Attributes:
        version: Version that was requested
        reason: Transfer error reported by the downloader, if any
    """

    def __init__(self, version: str, reason: str | None = None):
        self.version = version
        self.reason = reason
        message = f"Failed to download Xcode {version}."
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)


class IndexDisabledError(XcinstallError):
    """Raised when the Spotlight index needed to find installs is disabled."""


class InstallError(XcinstallError):
    """Raised when the installation pipeline cannot complete."""


class MountError(InstallError):
    """Raised when the disk image cannot be mounted."""


class SourceNotFoundError(InstallError):
    """Raised when the mounted volume holds no application bundle.

    Attributes:
        artifact: Disk image that was mounted
    """

    def __init__(self, artifact: Path):
        self.artifact = artifact
        super().__init__(
            f"No `Xcode.app` found in DMG. Please remove {artifact} if you suspect "
            "a corrupted download or run `xcinstall update` to see if the version "
            "you tried to install has been pulled by Apple."
        )


class IntegrityError(InstallError):
    """Raised when the copied bundle fails the code signing assessment.

    Attributes:
        path: Bundle that failed assessment (already removed)
        output: Assessment tool output
    """

    def __init__(self, path: Path, output: str = ""):
        self.path = path
        self.output = output
        super().__init__(f"Code signing assessment failed for {path}")
