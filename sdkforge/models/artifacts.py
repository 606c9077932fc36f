"""Downloadable artifact models."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, model_validator

from sdkforge.errors import ConfigurationError


class ArtifactRole(str, Enum):
    """Logical role of an artifact in the bundle."""

    HOST_TOOLCHAIN = "host_toolchain"
    TARGET_TOOLCHAIN = "target_toolchain"
    LINKER = "linker"
    OS_PACKAGE = "os_package"


class ArtifactDescriptor(BaseModel):
    """A single downloadable file.

    ``local_path`` is ``<cache>/<identifier>``. ``sha256`` is the lowercase hex
    digest of the expected content.
    """

    model_config = ConfigDict(frozen=True)

    identifier: str
    role: ArtifactRole
    remote_url: str
    local_path: Path
    sha256: str | None = None


class DownloadableArtifactSet(BaseModel):
    """Ordered, role-partitioned collection of artifacts for one run.

    Construction fails with ``ConfigurationError`` when two artifacts share a
    local path, when a singleton role appears more than once, or when an
    artifact has no expected checksum.
    """

    model_config = ConfigDict(frozen=True)

    items: tuple[ArtifactDescriptor, ...] = ()

    @model_validator(mode="after")
    def _check_invariants(self) -> DownloadableArtifactSet:
        seen: dict[Path, str] = {}
        for item in self.items:
            if item.local_path in seen:
                raise ConfigurationError(
                    "Two artifacts share the same cache path",
                    context={
                        "path": str(item.local_path),
                        "artifacts": f"{seen[item.local_path]}, {item.identifier}",
                    },
                )
            seen[item.local_path] = item.identifier
            if not item.sha256:
                raise ConfigurationError(
                    f"Artifact {item.identifier} has no expected checksum",
                    context={"artifact": item.identifier, "url": item.remote_url},
                )

        for role in (ArtifactRole.HOST_TOOLCHAIN, ArtifactRole.TARGET_TOOLCHAIN, ArtifactRole.LINKER):
            if len(self.by_role(role)) > 1:
                raise ConfigurationError(
                    f"More than one artifact with role {role.value}",
                    context={"role": role.value},
                )
        return self

    @property
    def all_items(self) -> tuple[ArtifactDescriptor, ...]:
        return self.items

    def by_role(self, role: ArtifactRole) -> tuple[ArtifactDescriptor, ...]:
        return tuple(item for item in self.items if item.role is role)

    def _single(self, role: ArtifactRole) -> ArtifactDescriptor | None:
        matches = self.by_role(role)
        return matches[0] if matches else None

    @property
    def host_toolchain(self) -> ArtifactDescriptor | None:
        return self._single(ArtifactRole.HOST_TOOLCHAIN)

    @property
    def target_toolchain(self) -> ArtifactDescriptor | None:
        """Absent when the target toolchain comes from a container image."""
        return self._single(ArtifactRole.TARGET_TOOLCHAIN)

    @property
    def linker(self) -> ArtifactDescriptor | None:
        return self._single(ArtifactRole.LINKER)

    @property
    def os_packages(self) -> tuple[ArtifactDescriptor, ...]:
        return self.by_role(ArtifactRole.OS_PACKAGE)

    def __len__(self) -> int:
        return len(self.items)
