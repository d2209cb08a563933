"""Configuration management for xcinstall."""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path

from packaging.version import InvalidVersion, Version
from pydantic import BaseModel, Field, field_validator

from xcinstall.core.errors import AuthenticationError

ENV_USER = "ACCOUNT_USER"
ENV_PASSWORD = "ACCOUNT_PASSWORD"
ENV_TEAM_ID = "TEAM_ID"
ENV_DOWNLOAD_CACHE_DIR = "DOWNLOAD_CACHE_DIR"


class Credentials(BaseModel):
    """Developer account credentials."""

    user: str = Field(..., min_length=1, description="Account user name")
    password: str = Field(..., min_length=1, description="Account password")
    team_id: str | None = Field(default=None, description="Developer team to select")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Credentials:
        """Read credentials from the environment.

        Args:
            environ: Environment mapping, defaults to os.environ

        Returns:
            Credentials

        Raises:
            AuthenticationError: If user or password is missing
        """
        env = os.environ if environ is None else environ
        user = env.get(ENV_USER, "")
        password = env.get(ENV_PASSWORD, "")
        if not user or not password:
            raise AuthenticationError(
                "Please provide your Apple developer account credentials via the "
                f"{ENV_USER} and {ENV_PASSWORD} environment variables."
            )
        return cls(user=user, password=password, team_id=env.get(ENV_TEAM_ID) or None)


class AppConfig(BaseModel):
    """Application configuration."""

    # Directory settings
    cache_dir: Path = Field(
        default=Path.home() / "Library" / "Caches" / "XcodeInstall",
        description="Catalog and download cache directory"
    )
    temp_dir: Path = Field(
        default=Path(tempfile.gettempdir()),
        description="Directory for per-invocation cookie jars"
    )
    download_cache_dir: Path | None = Field(
        default=None,
        description="Directory checked for pre-downloaded xcode-<version>.dmg files"
    )

    # Install layout
    applications_dir: Path = Field(
        default=Path("/Applications"),
        description="Directory receiving installed bundles"
    )
    volume_path: Path = Field(
        default=Path("/Volumes/Xcode"),
        description="Mount point of the disk image volume"
    )
    product_name: str = Field(default="Xcode", description="Product display prefix")
    bundle_identifier: str = Field(
        default="com.apple.dt.Xcode",
        description="Bundle identifier used to find installs"
    )
    license_plist: Path = Field(
        default=Path("/Library/Preferences/com.apple.dt.Xcode.plist"),
        description="Preferences file receiving license acceptance"
    )
    minimum_version: str = Field(default="4.3", description="Lowest retained catalog version")

    # Remote endpoints
    auth_base_url: str = Field(
        default="https://developer.apple.com",
        description="Developer portal base URL"
    )
    signin_url: str = Field(
        default="https://idmsa.apple.com/appleauth/auth/signin",
        description="Account sign-in endpoint"
    )
    listing_url: str = Field(
        default="/services-account/QH65B2/downloadws/listDownloads.action",
        description="Stable catalog listing endpoint"
    )
    prerelease_url: str = Field(
        default="/xcode/download/",
        description="Prerelease index page"
    )
    download_prefix: str = Field(
        default="https://developer.apple.com/devcenter/download.action?path=",
        description="Download URL prefix"
    )
    request_timeout: float = Field(default=30.0, description="Catalog request timeout")

    # Output settings
    output_format: str = Field(
        default="rich",
        description="Output format (rich, json, plain)"
    )
    log_level: str = Field(
        default="WARNING",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    def model_post_init(self, __context) -> None:
        """Ensure the cache directory exists."""
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    @property
    def catalog_file(self) -> Path:
        """Persisted catalog location."""
        return self.cache_dir / "catalog.json"

    @property
    def lock_file(self) -> Path:
        """Advisory lock held while installing."""
        return self.cache_dir / "install.lock"

    @property
    def symlink_path(self) -> Path:
        """Active-version symlink location."""
        return self.applications_dir / f"{self.product_name}.app"

    def install_path(self, version: str) -> Path:
        """Installation target for a version label.

        Example:
            >>> AppConfig().install_path("12.0 beta 2")
            PosixPath('/Applications/Xcode-12.0.app')
        """
        suffix = version.split(" ")[0]
        return self.applications_dir / f"{self.product_name}-{suffix}.app"

    @classmethod
    def load(
        cls,
        config_file: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> AppConfig:
        """Load configuration from file, then apply environment overrides.

        Args:
            config_file: Path to config file, uses default if None
            environ: Environment mapping, defaults to os.environ

        Returns:
            Application configuration
        """
        if config_file is None:
            config_file = Path.home() / ".config" / "xcinstall" / "config.json"

        data: dict = {}
        if config_file.exists():
            with open(config_file) as f:
                data = json.load(f)

        env = os.environ if environ is None else environ
        if env.get(ENV_DOWNLOAD_CACHE_DIR):
            data["download_cache_dir"] = env[ENV_DOWNLOAD_CACHE_DIR]

        return cls(**data)

    @field_validator("output_format")
    @classmethod
    def validate_output_format(cls, v: str) -> str:
        """Validate output format."""
        valid_formats = {"rich", "json", "plain"}
        if v not in valid_formats:
            raise ValueError(f"Invalid output format: {v}. Valid formats: {valid_formats}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Valid levels: {valid_levels}")
        return v

    @field_validator("minimum_version")
    @classmethod
    def validate_minimum_version(cls, v: str) -> str:
        """Validate minimum version is parseable."""
        try:
            Version(v)
        except InvalidVersion as e:
            raise ValueError(f"Invalid minimum version: {v}") from e
        return v

    @field_validator("request_timeout")
    @classmethod
    def validate_request_timeout(cls, v: float) -> float:
        """Validate request timeout value."""
        if v <= 0:
            raise ValueError("Request timeout must be positive")
        return v
