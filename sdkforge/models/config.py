"""Run configuration models: versions, paths, and the generator config.

All three are resolved once at the start of a run and are read-only
afterwards. ``GeneratorConfig`` is passed explicitly to every stage.
"""

from __future__ import annotations

import platform
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, model_validator

from sdkforge.errors import ConfigurationError


class CPU(str, Enum):
    """Supported CPU architectures."""

    ARM64 = "arm64"
    X86_64 = "x86_64"

    @property
    def linux_convention_name(self) -> str:
        """Name used in Linux triples and library directories."""
        return "aarch64" if self is CPU.ARM64 else "x86_64"

    @property
    def debian_convention_name(self) -> str:
        """Name used in Debian package names."""
        return "arm64" if self is CPU.ARM64 else "amd64"

    @classmethod
    def parse(cls, value: str) -> CPU:
        """Accept either naming convention (``aarch64``/``arm64``, ``amd64``/``x86_64``)."""
        normalized = value.strip().lower()
        if normalized in ("arm64", "aarch64"):
            return cls.ARM64
        if normalized in ("x86_64", "amd64"):
            return cls.X86_64
        raise ConfigurationError(
            f"Unsupported CPU architecture {value!r}",
            context={"supported": "arm64, x86_64"},
        )

    @classmethod
    def host(cls) -> CPU:
        return cls.parse(platform.machine())


class Triple(BaseModel):
    """A ``<arch>-unknown-linux-gnu`` target triple."""

    model_config = ConfigDict(frozen=True)

    cpu: CPU
    vendor: str = "unknown"
    os: str = "linux"
    environment: str = "gnu"

    def __str__(self) -> str:
        return f"{self.cpu.linux_convention_name}-{self.vendor}-{self.os}-{self.environment}"


class DistributionName(str, Enum):
    UBUNTU = "ubuntu"
    RHEL = "rhel"


_UBUNTU_CODENAMES: dict[str, str] = {
    "20.04": "focal",
    "22.04": "jammy",
}

_UBUNTU_PACKAGES: dict[str, tuple[str, ...]] = {
    "20.04": (
        "libc6-dev",
        "linux-libc-dev",
        "libicu66",
        "libgcc-9-dev",
        "libicu-dev",
        "libc6",
        "libgcc1",
        "libstdc++-9-dev",
        "libstdc++6",
        "zlib1g",
        "zlib1g-dev",
    ),
    "22.04": (
        "libc6-dev",
        "linux-libc-dev",
        "libicu70",
        "libgcc-12-dev",
        "libicu-dev",
        "libc6",
        "libgcc-s1",
        "libstdc++-12-dev",
        "libstdc++6",
        "zlib1g",
        "zlib1g-dev",
    ),
}

_RHEL_VERSIONS: frozenset[str] = frozenset({"ubi9"})


class LinuxDistribution(BaseModel):
    """A target Linux distribution and release.

    Construction fails with ``ConfigurationError`` for releases the generator
    does not know how to assemble.
    """

    model_config = ConfigDict(frozen=True)

    name: DistributionName
    version: str

    @model_validator(mode="after")
    def _check_supported(self) -> LinuxDistribution:
        if self.name is DistributionName.UBUNTU and self.version not in _UBUNTU_CODENAMES:
            raise ConfigurationError(
                f"Unsupported Ubuntu release {self.version!r}",
                context={"supported": ", ".join(sorted(_UBUNTU_CODENAMES))},
            )
        if self.name is DistributionName.RHEL and self.version not in _RHEL_VERSIONS:
            raise ConfigurationError(
                f"Unsupported RHEL release {self.version!r}",
                context={"supported": ", ".join(sorted(_RHEL_VERSIONS))},
            )
        return self

    @property
    def is_ubuntu(self) -> bool:
        return self.name is DistributionName.UBUNTU

    @property
    def codename(self) -> str:
        if self.is_ubuntu:
            return _UBUNTU_CODENAMES[self.version]
        return self.version

    @property
    def sdk_dir_name(self) -> str:
        """Directory name of the sysroot inside the bundle (``ubuntu-jammy.sdk``)."""
        return f"{self.name.value}-{self.codename}.sdk"

    @property
    def download_platform(self) -> str:
        """Platform component of toolchain download file names (``ubuntu22.04``)."""
        return f"{self.name.value}{self.version}"

    @property
    def required_packages(self) -> tuple[str, ...]:
        """OS packages that make up the sysroot when not using a container."""
        if not self.is_ubuntu:
            return ()
        return _UBUNTU_PACKAGES[self.version]

    def __str__(self) -> str:
        return f"{self.name.value} {self.version}"


class VersionsConfiguration(BaseModel):
    """Resolved version and platform identifiers for one run."""

    model_config = ConfigDict(frozen=True)

    swift_version: str = "5.9.2"
    lld_version: str = "17.0.5"
    linux_distribution: LinuxDistribution = LinuxDistribution(
        name=DistributionName.UBUNTU, version="22.04"
    )
    target_triple: Triple = Triple(cpu=CPU.ARM64)
    host_triple: Triple = Triple(cpu=CPU.X86_64)
    bundle_version: str = "0.0.1"

    @property
    def swift_release(self) -> str:
        """``swift-5.9.2-RELEASE``"""
        return f"swift-{self.swift_version}-RELEASE"

    @property
    def swift_branch(self) -> str:
        """``swift-5.9.2-release``"""
        return f"swift-{self.swift_version}-release"

    @property
    def container_image(self) -> str:
        distribution = self.linux_distribution
        if distribution.is_ubuntu:
            return f"swift:{self.swift_version}-{distribution.codename}"
        return f"swift:{self.swift_version}-rhel-{distribution.version}"

    @property
    def artifact_id(self) -> str:
        """Identifier of the generated SDK, used by ``swift build --experimental-swift-sdk``."""
        distribution = self.linux_distribution
        return (
            f"{self.swift_version}-RELEASE_{distribution.name.value}_{distribution.version}"
            f"_{self.target_triple.cpu.linux_convention_name}"
        )


class PathsConfiguration(BaseModel):
    """Absolute paths the pipeline reads from and writes to."""

    model_config = ConfigDict(frozen=True)

    source_root: Path
    artifacts_cache_path: Path
    artifact_bundle_path: Path
    swift_sdk_root_path: Path
    sdk_dir_path: Path
    toolchain_dir_path: Path

    @property
    def toolchain_bin_dir_path(self) -> Path:
        return self.toolchain_dir_path / "usr" / "bin"

    @classmethod
    def derive(cls, source_root: Path, versions: VersionsConfiguration) -> PathsConfiguration:
        """Compute the standard bundle layout under *source_root*.

        Layout::

            <root>/Artifacts/                                   download cache
            <root>/Bundles/<id>.artifactbundle/                 bundle
                info.json
                <id>/<triple>/                                  swift sdk root
                    toolset.json  swift-sdk.json
                    <distro>-<codename>.sdk/                    sysroot
                    swift.xctoolchain/                          toolchain
        """
        root = Path(source_root).absolute()
        artifact_id = versions.artifact_id
        bundle = root / "Bundles" / f"{artifact_id}.artifactbundle"
        sdk_root = bundle / artifact_id / str(versions.target_triple)
        return cls(
            source_root=root,
            artifacts_cache_path=root / "Artifacts",
            artifact_bundle_path=bundle,
            swift_sdk_root_path=sdk_root,
            sdk_dir_path=sdk_root / versions.linux_distribution.sdk_dir_name,
            toolchain_dir_path=sdk_root / "swift.xctoolchain",
        )


class GeneratorConfig(BaseModel):
    """The immutable run configuration threaded through every stage."""

    model_config = ConfigDict(frozen=True)

    paths: PathsConfiguration
    versions: VersionsConfiguration
    use_container: bool = False
    from_scratch: bool = False
    verbose: bool = False
    artifact_lock_path: Path | None = None

    @model_validator(mode="after")
    def _check_acquisition_mode(self) -> GeneratorConfig:
        distribution = self.versions.linux_distribution
        if not self.use_container and not distribution.is_ubuntu:
            raise ConfigurationError(
                f"Distribution {distribution} is only supported by the container-based generator",
                context={"hint": "pass --with-docker"},
            )
        return self

    @classmethod
    def build(
        cls,
        source_root: Path,
        versions: VersionsConfiguration | None = None,
        *,
        use_container: bool = False,
        from_scratch: bool = False,
        verbose: bool = False,
        artifact_lock_path: Path | None = None,
    ) -> GeneratorConfig:
        """Resolve paths from *versions* and return the frozen run config.

        The lock file defaults to ``<source_root>/sdkforge.lock.json``.
        """
        versions = versions or VersionsConfiguration()
        paths = PathsConfiguration.derive(source_root, versions)
        if artifact_lock_path is None:
            artifact_lock_path = paths.source_root / "sdkforge.lock.json"
        return cls(
            paths=paths,
            versions=versions,
            use_container=use_container,
            from_scratch=from_scratch,
            verbose=verbose,
            artifact_lock_path=artifact_lock_path,
        )
