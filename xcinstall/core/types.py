"""Core type definitions for xcinstall."""

from __future__ import annotations

import re
from pathlib import Path

from packaging.version import InvalidVersion, Version
from pydantic import BaseModel, ConfigDict, Field

FALLBACK_INSTALLED_VERSION = "0.0"

_LEADING_DIGITS = re.compile(r"^(\d+)")


def parse_version(value: str, fallback: str = FALLBACK_INSTALLED_VERSION) -> Version:
    """Parse the first whitespace token of a version label.

    Args:
        value: Version label such as "11.3" or "12.0 beta 2"
        fallback: Version used when the label is not parseable

    Returns:
        Parsed version
    """
    token = value.strip().split(" ")[0] if value.strip() else ""
    try:
        return Version(token)
    except InvalidVersion:
        return Version(fallback)


def major_of(name: str) -> int | None:
    """Get the integer major component of a version label.

    Example:
        >>> major_of("12.0 beta 2")
        12
    """
    match = _LEADING_DIGITS.match(name.strip())
    return int(match.group(1)) if match else None


class ListingFile(BaseModel):
    """File attached to a listing record."""

    remote_path: str = Field(..., alias="remotePath", min_length=1)

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ListingRecord(BaseModel):
    """Raw download record from the developer portal listing."""

    name: str = Field(..., description="Display name, e.g. 'Xcode 11.3'")
    date_modified: int = Field(..., alias="dateModified")
    files: list[ListingFile] = Field(..., min_length=1)
    release_notes_path: str | None = Field(None)

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class VersionEntity(BaseModel):
    """A release build available from the catalog."""

    name: str = Field(..., description="Release label without product prefix")
    semantic_version: str = Field(..., description="Normalized ordering key")
    date_modified: int = Field(..., description="Modification timestamp")
    remote_path: str = Field(..., description="Vendor relative path")
    download_url: str = Field(..., description="Full download URL")
    release_notes_url: str | None = Field(None, description="Release notes URL")

    model_config = ConfigDict(frozen=True)

    @property
    def version(self) -> Version:
        """Parsed semantic version."""
        return Version(self.semantic_version)

    @property
    def is_dmg(self) -> bool:
        """Whether the artifact is a disk image."""
        return self.download_url.endswith(".dmg")

    @classmethod
    def build(
        cls,
        name: str,
        date_modified: int,
        remote_path: str,
        url_prefix: str,
        minimum_version: str,
        release_notes_path: str | None = None,
        product_name: str = "Xcode",
    ) -> VersionEntity:
        """Create an entity, deriving URLs and the ordering key.

        Args:
            name: Display name, with or without the product prefix
            date_modified: Modification timestamp
            remote_path: Vendor relative path of the disk image
            url_prefix: Download URL prefix
            minimum_version: Fallback ordering key for unparseable names
            release_notes_path: Optional vendor relative release notes path
            product_name: Product prefix stripped from the name

        Returns:
            Version entity
        """
        label = re.sub(rf"^{re.escape(product_name)} ", "", name.strip())
        return cls(
            name=label,
            semantic_version=str(parse_version(label, fallback=minimum_version)),
            date_modified=date_modified,
            remote_path=remote_path,
            download_url=f"{url_prefix}{remote_path}",
            release_notes_url=f"{url_prefix}{release_notes_path}" if release_notes_path else None,
        )

    @classmethod
    def from_listing(
        cls,
        record: ListingRecord,
        url_prefix: str,
        minimum_version: str,
        product_name: str = "Xcode",
    ) -> VersionEntity:
        """Create an entity from a validated listing record."""
        return cls.build(
            name=record.name,
            date_modified=record.date_modified,
            remote_path=record.files[0].remote_path,
            url_prefix=url_prefix,
            minimum_version=minimum_version,
            release_notes_path=record.release_notes_path,
            product_name=product_name,
        )


class InstalledVersionEntity(BaseModel):
    """An application bundle found on disk."""

    path: Path = Field(..., description="Application bundle location")
    version: str = Field(
        default=FALLBACK_INSTALLED_VERSION,
        description="Version reported by the bundle's xcodebuild",
    )

    model_config = ConfigDict(frozen=True)

    @property
    def sort_key(self) -> Version:
        """Ordering key; unparseable versions sort as 0.0."""
        return parse_version(self.version)

    @property
    def license_path(self) -> Path:
        return self.path / "Contents" / "Resources" / "English.lproj" / "License.rtf"

    @property
    def components_package(self) -> Path:
        return self.path / "Contents" / "Resources" / "Packages" / "MobileDevice.pkg"

    @property
    def version_plist(self) -> Path:
        return self.path / "Contents" / "version.plist"

    @property
    def xcodebuild(self) -> Path:
        return self.path / "Contents" / "Developer" / "usr" / "bin" / "xcodebuild"
