"""CLI command implementations for xcinstall.

This module contains all command-line interface implementations:
- list: List versions available to install
- update: Refresh the catalog cache
- installed: List installed versions
- selected: Show the active version
- select: Switch the active version
- install: Download and install a version
"""

from xcinstall.commands.install import install
from xcinstall.commands.versions import installed, list_versions, select, selected, update

__all__ = ["install", "installed", "list_versions", "select", "selected", "update"]
