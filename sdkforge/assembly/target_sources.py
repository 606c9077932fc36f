"""Target toolchain acquisition: two interchangeable variants.

Both variants populate the sysroot (``sdk_dir_path``) with the target's
headers, libraries and Swift runtime. The variant is chosen once per run by
:func:`select_target_source`.
"""

from __future__ import annotations

import logging
import subprocess
from typing import Protocol

from sdkforge.assembly.archives import extract_archive
from sdkforge.assembly.packages import CommandRunner, DebianPackageUnpacker
from sdkforge.errors import AssemblyError, ConfigurationError
from sdkforge.models.artifacts import DownloadableArtifactSet
from sdkforge.models.config import GeneratorConfig

logger = logging.getLogger(__name__)

# Parts of the target toolchain archive that belong in the sysroot.
_SWIFT_RUNTIME_PREFIXES = ("usr/lib/swift/", "usr/lib/swift_static/")


class TargetToolchainSource(Protocol):
    """Populates the sysroot with the target toolchain."""

    kind: str

    def populate(self, config: GeneratorConfig, artifacts: DownloadableArtifactSet) -> list[str]:
        """Fill ``config.paths.sdk_dir_path``. Returns a list of the steps performed."""
        ...


class ArchiveTargetSource:
    """Direct-download variant: OS packages plus the target toolchain archive."""

    kind = "archive"

    def __init__(self, unpacker: DebianPackageUnpacker | None = None) -> None:
        self._unpacker = unpacker or DebianPackageUnpacker()

    def populate(self, config: GeneratorConfig, artifacts: DownloadableArtifactSet) -> list[str]:
        sdk_dir = config.paths.sdk_dir_path
        target = artifacts.target_toolchain
        if target is None:
            raise ConfigurationError(
                "Direct-download mode requires a target toolchain artifact",
                context={"artifact_id": config.versions.artifact_id},
            )

        steps: list[str] = []
        for package in artifacts.os_packages:
            logger.info("Unpacking %s...", package.identifier)
            self._unpacker.unpack(package.local_path, sdk_dir)
            steps.append(package.identifier)

        logger.info("Unpacking target Swift runtime from %s...", target.identifier)
        extract_archive(
            target.local_path,
            sdk_dir,
            strip_components=1,
            include=lambda name: name.startswith(_SWIFT_RUNTIME_PREFIXES),
        )
        steps.append(target.identifier)
        return steps


class ContainerTargetSource:
    """Container variant: copy the sysroot out of a Swift container image."""

    kind = "container"

    def __init__(self, runtime: str = "docker", runner: CommandRunner = subprocess.run) -> None:
        self._runtime = runtime
        self._runner = runner

    def _run(self, *args: str) -> str:
        command = [self._runtime, *args]
        try:
            result = self._runner(command, check=True, capture_output=True, text=True)
        except (subprocess.CalledProcessError, OSError) as exc:
            raise AssemblyError(
                f"Container command failed: {' '.join(command)}",
                context={"reason": str(exc)},
            ) from exc
        return (result.stdout or "").strip()

    @staticmethod
    def copied_paths(config: GeneratorConfig) -> list[str]:
        paths = ["usr/include", "usr/lib"]
        if not config.versions.linux_distribution.is_ubuntu:
            paths.append("usr/lib64")
        return paths

    def populate(self, config: GeneratorConfig, artifacts: DownloadableArtifactSet) -> list[str]:
        image = config.versions.container_image
        sdk_dir = config.paths.sdk_dir_path
        logger.info("Copying target Swift from container image %s...", image)

        container_id = self._run("create", image)
        steps: list[str] = []
        try:
            for relative in self.copied_paths(config):
                destination = sdk_dir / relative
                try:
                    destination.mkdir(parents=True, exist_ok=True)
                except OSError as exc:
                    raise AssemblyError(
                        "Cannot create sysroot directory",
                        context={"path": str(destination)},
                    ) from exc
                self._run("cp", f"{container_id}:/{relative}/.", str(destination))
                steps.append(f"/{relative}")
        except AssemblyError:
            # Report the copy error, not the cleanup error.
            try:
                self._run("rm", container_id)
            except AssemblyError as cleanup_exc:
                logger.warning("Could not remove container %s: %s", container_id, cleanup_exc)
            raise
        self._run("rm", container_id)
        return steps


def select_target_source(
    config: GeneratorConfig,
    *,
    container_runtime: str = "docker",
    runner: CommandRunner = subprocess.run,
) -> TargetToolchainSource:
    """Pick the acquisition variant for this run."""
    if config.use_container:
        return ContainerTargetSource(runtime=container_runtime, runner=runner)
    return ArchiveTargetSource(DebianPackageUnpacker(runner=runner))
