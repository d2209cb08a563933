"""Catalog of Xcode releases published on the developer portal."""

from __future__ import annotations

import re
import time
from typing import Any

import httpx
import structlog
from packaging.version import Version
from pydantic import ValidationError

from xcinstall.core.cache import CatalogCache
from xcinstall.core.config import AppConfig
from xcinstall.core.errors import AuthenticationError, CatalogFetchError
from xcinstall.core.prerelease import PrereleaseCatalogAdapter
from xcinstall.core.session import AuthSession
from xcinstall.core.types import ListingRecord, VersionEntity

logger = structlog.get_logger()


class CatalogClient:
    """Builds, caches and serves the merged release catalog.

    The catalog is loaded at most once per instance: from memory, then from
    the persisted cache, then from the network. There is no expiry; callers
    call purge() to force a refetch.
    """

    LISTING_PARAMS = {
        "start": "0",
        "limit": "1000",
        "sort": "dateModified",
        "dir": "DESC",
        "searchTextField": "",
        "searchCategories": "",
        "search": "false",
    }

    def __init__(
        self,
        session: AuthSession,
        config: AppConfig | None = None,
        cache: CatalogCache | None = None,
        prerelease_adapter: PrereleaseCatalogAdapter | None = None,
    ) -> None:
        """Initialize catalog client.

        Args:
            session: Authenticated portal session
            config: Application configuration
            cache: Catalog cache, defaults to the configured catalog file
            prerelease_adapter: Prerelease page parser
        """
        self.session = session
        self.config = config or AppConfig()
        self.cache = cache or CatalogCache(self.config.catalog_file)
        self.prerelease_adapter = prerelease_adapter or PrereleaseCatalogAdapter(self.config.product_name)
        self._entries: list[VersionEntity] | None = None
        self._name_pattern = re.compile(rf"^{re.escape(self.config.product_name)} [0-9]")

    def catalog(self) -> list[VersionEntity]:
        """Get the merged catalog, fetching only on a cold cache."""
        if self._entries is None:
            self._entries = self.cache.load()
        if self._entries is None:
            return self.fetch_catalog()
        return self._entries

    def names(self) -> list[str]:
        return [entry.name for entry in self.catalog()]

    def find(self, name: str) -> VersionEntity | None:
        """Find a catalog entry by display name."""
        for entry in self.catalog():
            if entry.name == name:
                return entry
        return None

    def purge(self) -> bool:
        """Forget the in-memory catalog and remove the cache file."""
        self._entries = None
        return self.cache.purge()

    def fetch_catalog(self) -> list[VersionEntity]:
        """Fetch stable and prerelease listings, merge and persist them.

        Returns:
            Stable entries ascending by modification date, followed by
            prereleases whose names are not in the stable listing

        Raises:
            AuthenticationError: If the session is not authorized
            CatalogFetchError: On network or decoding failures
        """
        logger.info("catalog_fetch_started")

        try:
            stable = self.parse_listing(self._request_listing())
            prereleases = self.fetch_prereleases()
        except AuthenticationError:
            raise
        except (httpx.HTTPError, ValueError) as e:
            logger.error("catalog_fetch_failed", error=str(e))
            raise CatalogFetchError(f"Failed to fetch the Xcode catalog: {e}") from e

        merged = self.merge(stable, prereleases)
        prerelease_count = len(merged) - len(stable)
        self.cache.save(merged, stable_count=len(stable), prerelease_count=prerelease_count)
        self._entries = merged

        logger.info("catalog_fetched", stable=len(stable), prereleases=prerelease_count)
        return merged

    def _request_listing(self) -> dict[str, Any]:
        response = self.session.request("GET", self.config.listing_url, params=dict(self.LISTING_PARAMS))
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected listing payload: {type(data).__name__}")
        return data

    def parse_listing(self, listing: dict[str, Any]) -> list[VersionEntity]:
        """Filter and order the stable listing.

        Args:
            listing: Decoded listing response

        Returns:
            Disk image entries at or above the minimum version, ascending by
            modification date
        """
        minimum = Version(self.config.minimum_version)
        entries: list[VersionEntity] = []

        for item in listing.get("downloads") or []:
            if not isinstance(item, dict) or not self._name_pattern.match(str(item.get("name", ""))):
                continue

            try:
                record = ListingRecord.model_validate(item)
            except ValidationError as e:
                logger.warning("listing_record_rejected", name=item.get("name"), error=str(e))
                continue

            entry = VersionEntity.from_listing(
                record,
                url_prefix=self.config.download_prefix,
                minimum_version=self.config.minimum_version,
                product_name=self.config.product_name,
            )
            if entry.version < minimum:
                continue
            entries.append(entry)

        entries.sort(key=lambda e: e.date_modified)
        return [e for e in entries if e.is_dmg]

    def fetch_prereleases(self) -> list[VersionEntity]:
        """Scrape the prerelease page into catalog entries at or above the minimum version."""
        response = self.session.request("GET", self.config.prerelease_url)
        minimum = Version(self.config.minimum_version)
        now = int(time.time())

        entries = [
            VersionEntity.build(
                name=record.name,
                date_modified=now,
                remote_path=record.remote_path,
                url_prefix=self.config.download_prefix,
                minimum_version=self.config.minimum_version,
                release_notes_path=record.release_notes_path,
                product_name=self.config.product_name,
            )
            for record in self.prerelease_adapter.parse(response.text)
        ]
        return [entry for entry in entries if entry.version >= minimum]

    @staticmethod
    def merge(stable: list[VersionEntity], prereleases: list[VersionEntity]) -> list[VersionEntity]:
        """Append prereleases whose names are not already present.

        Stable entries take precedence on a name collision, and duplicate
        names within the prerelease page are dropped after their first use.
        """
        merged = list(stable)
        seen = {entry.name for entry in stable}
        for entry in prereleases:
            if entry.name in seen:
                continue
            seen.add(entry.name)
            merged.append(entry)
        return merged
