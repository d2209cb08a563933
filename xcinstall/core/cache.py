"""Persisted catalog snapshot.

The catalog file has no expiry. It stays authoritative until the caller
purges it, at which point the next catalog access fetches from the network.
Writes go to a unique temp file in the cache directory and are moved into
place with os.replace, so readers never see a partial document and two
writers never share a temp file.
"""

from __future__ import annotations

import json
import os
import tempfile
import time
from pathlib import Path

import structlog
from pydantic import BaseModel, Field, ValidationError

from xcinstall.core.types import VersionEntity

logger = structlog.get_logger()


class PersistedCatalog(BaseModel):
    """On-disk catalog document."""

    format_version: int = Field(default=1, description="Document layout version")
    fetched_at: float = Field(default_factory=time.time, description="Fetch time (epoch)")
    stable_count: int = Field(default=0, description="Entries from the stable listing")
    prerelease_count: int = Field(default=0, description="Entries from the prerelease page")
    entries: list[VersionEntity] = Field(default_factory=list)


class CatalogCache:
    """Owns the persisted catalog file."""

    def __init__(self, path: Path):
        """Initialize catalog cache.

        Args:
            path: Catalog file location
        """
        self.path = path

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> PersistedCatalog | None:
        """Read the full catalog document, or None if absent or unreadable."""
        if not self.path.exists():
            return None

        try:
            with open(self.path, encoding="utf-8") as f:
                return PersistedCatalog.model_validate(json.load(f))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("catalog_cache_unreadable", path=str(self.path), error=str(e))
            return None

    def load(self) -> list[VersionEntity] | None:
        """Load cached entries.

        Returns:
            Entries in stored order, or None when no usable cache exists
        """
        document = self.read()
        if document is None:
            return None

        logger.debug("catalog_cache_loaded", entries=len(document.entries))
        return list(document.entries)

    def save(
        self,
        entries: list[VersionEntity],
        *,
        stable_count: int | None = None,
        prerelease_count: int = 0,
    ) -> None:
        """Atomically overwrite the cached catalog.

        Args:
            entries: Entries to persist, in order
            stable_count: Number of entries from the stable listing
            prerelease_count: Number of entries from the prerelease page
        """
        document = PersistedCatalog(
            stable_count=len(entries) - prerelease_count if stable_count is None else stable_count,
            prerelease_count=prerelease_count,
            entries=entries,
        )

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        temp_path = Path(temp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document.model_dump(mode="json"), f, indent=2)
            os.replace(temp_path, self.path)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise

        logger.debug("catalog_cache_saved", path=str(self.path), entries=len(entries))

    def purge(self) -> bool:
        """Remove the cached catalog.

        Returns:
            True if a file was removed
        """
        if not self.path.exists():
            return False

        self.path.unlink()
        logger.info("catalog_cache_purged", path=str(self.path))
        return True
