"""Artifact descriptor set: which files a run downloads, and from where.

Locators are derived from ``VersionsConfiguration``; expected checksums (and
optional URL overrides) come from the artifact lock file. OS package locators
also come from the lock: the generator does not parse distribution package
indexes.

A missing checksum is rejected here, at configuration-build time, before any
network activity.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError

from sdkforge.errors import ConfigurationError
from sdkforge.models.artifacts import ArtifactDescriptor, ArtifactRole, DownloadableArtifactSet
from sdkforge.models.config import GeneratorConfig, Triple, VersionsConfiguration

logger = logging.getLogger(__name__)

SWIFT_DOWNLOAD_BASE = "https://download.swift.org"
LLVM_DOWNLOAD_BASE = "https://github.com/llvm/llvm-project/releases/download"
HOST_DOWNLOAD_PLATFORM = "ubuntu22.04"


class LockEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    sha256: str | None = None
    url: str | None = None


class ArtifactLock(BaseModel):
    """Parsed ``sdkforge.lock.json``."""

    model_config = ConfigDict(frozen=True)

    artifacts: dict[ArtifactRole, LockEntry] = {}
    packages: dict[str, LockEntry] = {}

    @classmethod
    def load(cls, path: Path | None) -> ArtifactLock:
        """Read a lock file. A missing file yields an empty lock."""
        if path is None or not path.exists():
            logger.debug("No artifact lock at %s", path)
            return cls()
        try:
            return cls.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise ConfigurationError(
                "Artifact lock file is not valid",
                context={"path": str(path), "reason": str(exc).splitlines()[0]},
            ) from exc


# ----------------------------------------------------------------------
# Locators
# ----------------------------------------------------------------------


def _swift_platform_dir(platform: str, triple: Triple) -> tuple[str, str]:
    """Return the (directory, file) platform components of a swift.org download."""
    suffix = "-aarch64" if triple.cpu.linux_convention_name == "aarch64" else ""
    return platform.replace(".", "") + suffix, platform + suffix


def swift_toolchain_url(
    versions: VersionsConfiguration, triple: Triple, platform: str | None = None
) -> str:
    """``https://download.swift.org/swift-5.9.2-release/ubuntu2204-aarch64/swift-5.9.2-RELEASE/swift-5.9.2-RELEASE-ubuntu22.04-aarch64.tar.gz``

    *platform* defaults to the target distribution's download platform.
    """
    platform = platform or versions.linux_distribution.download_platform
    directory, platform = _swift_platform_dir(platform, triple)
    release = versions.swift_release
    return (
        f"{SWIFT_DOWNLOAD_BASE}/{versions.swift_branch}/{directory}/{release}/"
        f"{release}-{platform}.tar.gz"
    )


def lld_url(versions: VersionsConfiguration) -> str:
    cpu = versions.host_triple.cpu.linux_convention_name
    version = versions.lld_version
    return (
        f"{LLVM_DOWNLOAD_BASE}/llvmorg-{version}/"
        f"clang+llvm-{version}-{cpu}-linux-gnu-ubuntu-22.04.tar.xz"
    )


# ----------------------------------------------------------------------
# Set construction
# ----------------------------------------------------------------------


def build_artifact_set(
    config: GeneratorConfig, lock: ArtifactLock | None = None
) -> DownloadableArtifactSet:
    """Build the descriptor set for *config*.

    The target toolchain and OS packages are only included in direct-download
    mode; in container mode the container image provides them.
    """
    if lock is None:
        lock = ArtifactLock.load(config.artifact_lock_path)

    versions = config.versions
    cache = config.paths.artifacts_cache_path
    host_cpu = versions.host_triple.cpu.linux_convention_name
    target_cpu = versions.target_triple.cpu.linux_convention_name

    def descriptor(role: ArtifactRole, identifier: str, default_url: str) -> ArtifactDescriptor:
        entry = lock.artifacts.get(role, LockEntry())
        return ArtifactDescriptor(
            identifier=identifier,
            role=role,
            remote_url=entry.url or default_url,
            local_path=cache / identifier,
            sha256=entry.sha256.lower() if entry.sha256 else None,
        )

    items = [
        descriptor(
            ArtifactRole.HOST_TOOLCHAIN,
            f"host_swift_{versions.swift_version}_{host_cpu}.tar.gz",
            swift_toolchain_url(versions, versions.host_triple, HOST_DOWNLOAD_PLATFORM),
        ),
    ]

    if not config.use_container:
        items.append(
            descriptor(
                ArtifactRole.TARGET_TOOLCHAIN,
                f"target_swift_{versions.swift_version}_{target_cpu}.tar.gz",
                swift_toolchain_url(versions, versions.target_triple),
            )
        )

    items.append(
        descriptor(
            ArtifactRole.LINKER,
            f"host_lld_{versions.lld_version}_{host_cpu}.tar.xz",
            lld_url(versions),
        )
    )

    if not config.use_container:
        items.extend(_package_descriptors(config, lock))

    return DownloadableArtifactSet(items=tuple(items))


def _package_descriptors(config: GeneratorConfig, lock: ArtifactLock) -> list[ArtifactDescriptor]:
    distribution = config.versions.linux_distribution
    debian_cpu = config.versions.target_triple.cpu.debian_convention_name
    cache = config.paths.artifacts_cache_path

    missing = [name for name in distribution.required_packages if name not in lock.packages]
    if missing:
        raise ConfigurationError(
            f"Artifact lock has no entry for {len(missing)} required {distribution} package(s)",
            context={
                "packages": ", ".join(missing),
                "lock": str(config.artifact_lock_path),
                "template": "sdkforge.lock.example.json",
            },
        )

    descriptors = []
    for name in distribution.required_packages:
        entry = lock.packages[name]
        if not entry.url:
            raise ConfigurationError(
                f"Artifact lock entry for package {name} has no url",
                context={"package": name, "lock": str(config.artifact_lock_path)},
            )
        identifier = f"{distribution.codename}_{name}_{debian_cpu}.deb"
        descriptors.append(
            ArtifactDescriptor(
                identifier=identifier,
                role=ArtifactRole.OS_PACKAGE,
                remote_url=entry.url,
                local_path=cache / identifier,
                sha256=entry.sha256.lower() if entry.sha256 else None,
            )
        )
    return descriptors
