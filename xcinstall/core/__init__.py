"""Core functionality for xcinstall.

This module provides the pieces the command line composes:
- Configuration management and credentials
- Catalog retrieval and the persisted catalog cache
- Resumable downloads
- Installed version discovery
- The installation pipeline
"""

from xcinstall.core.errors import (
    AuthenticationError,
    CatalogFetchError,
    DownloadFailure,
    IndexDisabledError,
    InstallError,
    IntegrityError,
    MountError,
    SourceNotFoundError,
    XcinstallError,
)
from xcinstall.core.types import (
    InstalledVersionEntity,
    VersionEntity,
)

__all__ = [
    # Types
    "InstalledVersionEntity",
    "VersionEntity",
    # Errors
    "XcinstallError",
    "AuthenticationError",
    "CatalogFetchError",
    "DownloadFailure",
    "IndexDisabledError",
    "InstallError",
    "MountError",
    "SourceNotFoundError",
    "IntegrityError",
]
