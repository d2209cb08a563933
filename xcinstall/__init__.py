"""xcinstall - install and switch between Xcode releases.

This package retrieves the catalog of Xcode builds published on the Apple
developer portal, downloads the disk images with resumable transfers and
drives the installation pipeline that mounts, copies, verifies and activates
a release.

Key modules:
- core: Shared functionality (config, types, catalog, downloads, pipeline)
- commands: CLI command implementations
"""

__version__ = "0.1.0"
__author__ = "xcinstall Team"

# Re-export commonly used types
from xcinstall.core.types import (
    InstalledVersionEntity,
    VersionEntity,
)

__all__ = [
    "__version__",
    "__author__",
    "InstalledVersionEntity",
    "VersionEntity",
]
