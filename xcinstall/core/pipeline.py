"""Installation pipeline for a downloaded Xcode disk image.

A run walks through the states below, in order:

    DOWNLOADED -> MOUNTED -> SOURCE_LOCATED -> COPIED -> VERIFIED
    -> LICENSE_APPROVED -> COMPONENTS_INSTALLED -> SYMLINKED -> CLEANED_UP

SYMLINKED and CLEANED_UP only happen when switching and cleaning are
requested. The volume is unmounted on every path that mounted it, and a copy
that fails signature assessment is deleted before the error is raised. The
whole run holds an advisory lock because the volume name and the
active-version symlink are host-wide.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

import structlog
from filelock import FileLock, Timeout

from xcinstall.core.command import SystemCommand
from xcinstall.core.config import AppConfig
from xcinstall.core.errors import InstallError, IntegrityError, MountError, SourceNotFoundError
from xcinstall.core.registry import InstalledVersionRegistry
from xcinstall.core.types import InstalledVersionEntity

logger = structlog.get_logger()

LICENSE_ID = re.compile(r"^[A-Z]{2}\d{4}", re.MULTILINE)
PLIST_BUDDY = "/usr/libexec/PlistBuddy"


class PipelineState(StrEnum):
    """Installation progress."""
    DOWNLOADED = "downloaded"
    MOUNTED = "mounted"
    SOURCE_LOCATED = "source_located"
    COPIED = "copied"
    VERIFIED = "verified"
    LICENSE_APPROVED = "license_approved"
    COMPONENTS_INSTALLED = "components_installed"
    SYMLINKED = "symlinked"
    CLEANED_UP = "cleaned_up"


@dataclass
class PipelineResult:
    """Outcome of a completed pipeline run."""

    install_path: Path
    state: PipelineState = PipelineState.DOWNLOADED
    history: list[PipelineState] = field(default_factory=list)

    def advance(self, state: PipelineState) -> None:
        self.state = state
        self.history.append(state)
        logger.info("pipeline_state", state=state.value, install_path=str(self.install_path))


class InstallationPipeline:
    """Installs one disk image using OS utilities."""

    def __init__(
        self,
        command: SystemCommand,
        registry: InstalledVersionRegistry | None = None,
        config: AppConfig | None = None,
    ) -> None:
        """Initialize pipeline.

        Args:
            command: Process runner for OS utilities
            registry: Registry used to read the installed bundle version
            config: Application configuration
        """
        self.command = command
        self.config = config or AppConfig()
        self.registry = registry or InstalledVersionRegistry(command, self.config)

    def run(
        self,
        artifact: Path,
        install_path: Path,
        switch: bool = True,
        clean: bool = True,
    ) -> PipelineResult:
        """Install a disk image.

        Args:
            artifact: Downloaded disk image
            install_path: Target application bundle path
            switch: Make the new bundle the active version
            clean: Delete the disk image afterwards

        Returns:
            Pipeline result with the final state

        Raises:
            InstallError: If another install holds the lock
            MountError: If the image cannot be mounted
            SourceNotFoundError: If the volume holds no application bundle
            IntegrityError: If the copied bundle fails assessment
        """
        try:
            with FileLock(str(self.config.lock_file), timeout=0):
                return self._run(artifact, install_path, switch, clean)
        except Timeout as e:
            raise InstallError(
                f"Another installation is in progress (lock held on {self.config.lock_file})."
            ) from e

    def _run(self, artifact: Path, install_path: Path, switch: bool, clean: bool) -> PipelineResult:
        result = PipelineResult(install_path=install_path)
        result.advance(PipelineState.DOWNLOADED)

        self.mount(artifact)
        result.advance(PipelineState.MOUNTED)
        try:
            source = self.locate_source()
            if source is None:
                logger.error("source_not_found", artifact=str(artifact), volume=str(self.config.volume_path))
                raise SourceNotFoundError(artifact)
            result.advance(PipelineState.SOURCE_LOCATED)

            self.copy(source, install_path)
            result.advance(PipelineState.COPIED)
        finally:
            self.unmount()

        self.verify(install_path)
        result.advance(PipelineState.VERIFIED)

        self.enable_developer_mode()
        bundle = InstalledVersionEntity(path=install_path, version=self.registry.version_for(install_path))

        self.approve_license(bundle)
        result.advance(PipelineState.LICENSE_APPROVED)

        self.install_components(bundle)
        result.advance(PipelineState.COMPONENTS_INSTALLED)

        if switch:
            self.switch_active(install_path)
            result.advance(PipelineState.SYMLINKED)

        if clean:
            artifact.unlink(missing_ok=True)
            result.advance(PipelineState.CLEANED_UP)

        self.registry.refresh()
        return result

    def mount(self, artifact: Path) -> None:
        """Mount the image read-only without the mount tool's own verification."""
        result = self.command.run(["hdiutil", "mount", "-nobrowse", "-noverify", str(artifact)])
        if not result.ok:
            raise MountError(f"Failed to mount {artifact}: {result.stderr.strip()}")

    def unmount(self) -> None:
        result = self.command.run(["umount", str(self.config.volume_path)])
        if not result.ok:
            logger.warning("unmount_failed", volume=str(self.config.volume_path), error=result.stderr.strip())

    def locate_source(self) -> Path | None:
        """First application bundle on the mounted volume."""
        candidates = sorted(self.config.volume_path.glob(f"{self.config.product_name}*.app"))
        return candidates[0] if candidates else None

    def copy(self, source: Path, install_path: Path) -> None:
        logger.info("copying_bundle", source=str(source), target=str(install_path))
        result = self.command.run(["ditto", str(source), str(install_path)], privileged=True)
        if not result.ok:
            self.remove_bundle(install_path)
            raise InstallError(f"Failed to copy {source} to {install_path}: {result.stderr.strip()}")

    def verify(self, install_path: Path) -> None:
        """Run the code signing policy assessment on the copied bundle.

        Raises:
            IntegrityError: If assessment fails; the bundle is removed first
        """
        result = self.command.run(
            ["/usr/sbin/spctl", "--assess", "--verbose=4", "--type", "execute", str(install_path)]
        )
        output = (result.stdout + result.stderr).strip()
        if not result.ok:
            logger.error("integrity_check_failed", path=str(install_path), output=output)
            self.remove_bundle(install_path)
            raise IntegrityError(install_path, output)
        logger.info("integrity_check_passed", path=str(install_path), output=output)

    def remove_bundle(self, install_path: Path) -> None:
        self.command.run(["rm", "-rf", str(install_path)], privileged=True)

    def enable_developer_mode(self) -> None:
        self.command.run(["/usr/sbin/DevToolsSecurity", "-enable"], privileged=True)
        self.command.run(
            ["/usr/sbin/dseditgroup", "-o", "edit", "-t", "group", "-a", "staff", "_developer"],
            privileged=True,
        )

    def approve_license(self, bundle: InstalledVersionEntity) -> None:
        """Record the bundled license as accepted.

        The preferences file is replaced wholesale with the license id and
        the bundle version.
        """
        try:
            text = bundle.license_path.read_text(encoding="utf-8", errors="ignore")
        except OSError as e:
            logger.warning("license_unreadable", path=str(bundle.license_path), error=str(e))
            return

        match = LICENSE_ID.search(text)
        if match is None:
            logger.warning("license_id_not_found", path=str(bundle.license_path))
            return

        plist = str(self.config.license_plist)
        self.command.run(["rm", "-rf", plist], privileged=True)
        self.command.run(
            [PLIST_BUDDY, "-c", f"add :IDELastGMLicenseAgreedTo string {match.group(0)}", plist],
            privileged=True,
        )
        self.command.run(
            [PLIST_BUDDY, "-c", f"add :IDEXcodeVersionForAgreedToGMLicense string {bundle.version}", plist],
            privileged=True,
        )
        logger.info("license_approved", license_id=match.group(0), version=bundle.version)

    def install_components(self, bundle: InstalledVersionEntity) -> None:
        """Install device support and mark the first-run check as done."""
        self.command.run(["installer", "-pkg", str(bundle.components_package), "-target", "/"], privileged=True)

        host_build = self.command.run(["sw_vers", "-buildVersion"]).stdout.strip()
        tools_build = self.command.run(
            [PLIST_BUDDY, "-c", "Print :ProductBuildVersion", str(bundle.version_plist)]
        ).stdout.strip()
        cache_dir = self.command.run(["getconf", "DARWIN_USER_CACHE_DIR"]).stdout.strip()

        marker = f"{cache_dir}{self.config.bundle_identifier}.InstallCheckCache_{host_build}_{tools_build}"
        self.command.run(["touch", marker])
        logger.info("components_installed", host_build=host_build, tools_build=tools_build)

    def switch_active(self, bundle_path: Path, select: bool = True) -> None:
        """Point the active-version symlink at a bundle.

        An existing symlink is replaced. A real bundle occupying the symlink
        path is left alone. With select, the toolchain selection is switched
        to the bundle as well.
        """
        link = self.config.symlink_path
        if link.is_symlink():
            self.command.run(["rm", "-f", str(link)], privileged=True)

        if os.path.lexists(link) and not link.is_symlink():
            logger.warning("symlink_path_occupied", path=str(link))
        else:
            self.command.run(["ln", "-sfn", str(bundle_path), str(link)], privileged=True)

        if select:
            self.command.run(["xcode-select", "--switch", str(bundle_path)], privileged=True)
            reported = self.command.run(["xcodebuild", "-version"]).stdout.strip()
            logger.info("active_version_switched", path=str(bundle_path), xcodebuild=reported)
