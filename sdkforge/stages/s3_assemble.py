"""Stage 3: Toolchain Assembly.

Populates the working tree in a fixed order; later steps merge into
paths created by earlier ones:

    1. host toolchain   -> toolchain dir (leading archive component stripped)
    2. target toolchain -> sdk dir, via the run's TargetToolchainSource
    3. linker           -> <toolchain>/usr/bin/ld.lld
"""

from __future__ import annotations

import logging
from typing import Any

from sdkforge.assembly.archives import extract_archive, extract_single_file
from sdkforge.assembly.target_sources import ArchiveTargetSource, TargetToolchainSource
from sdkforge.errors import ConfigurationError
from sdkforge.models.artifacts import ArtifactDescriptor, ArtifactRole
from sdkforge.stages.base import BaseStage

logger = logging.getLogger(__name__)

LINKER_NAME = "ld.lld"


def _is_lld_binary(name: str) -> bool:
    return name == "bin/lld" or name.endswith("/bin/lld")


def _require(artifact: ArtifactDescriptor | None, role: ArtifactRole) -> ArtifactDescriptor:
    if artifact is None:
        raise ConfigurationError(
            f"No {role.value} artifact configured",
            context={"role": role.value},
        )
    return artifact


class AssembleStage(BaseStage):
    """Stage 3: Toolchain Assembly."""

    def __init__(self, target_source: TargetToolchainSource | None = None) -> None:
        self._target_source = target_source or ArchiveTargetSource()

    @property
    def stage_id(self) -> str:
        return "s3_assemble"

    @property
    def display_name(self) -> str:
        return "Toolchain Assembly"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        config = self.config(run_context)
        artifacts = self.artifacts(run_context)
        paths = config.paths
        order: list[str] = []

        host = _require(artifacts.host_toolchain, ArtifactRole.HOST_TOOLCHAIN)
        logger.info("Unpacking host Swift toolchain from %s...", host.identifier)
        extract_archive(host.local_path, paths.toolchain_dir_path, strip_components=1)
        order.append(ArtifactRole.HOST_TOOLCHAIN.value)

        target_steps = self._target_source.populate(config, artifacts)
        order.append(ArtifactRole.TARGET_TOOLCHAIN.value)

        linker = _require(artifacts.linker, ArtifactRole.LINKER)
        logger.info("Unpacking LLD linker from %s...", linker.identifier)
        member = extract_single_file(
            linker.local_path,
            _is_lld_binary,
            paths.toolchain_bin_dir_path / LINKER_NAME,
        )
        order.append(ArtifactRole.LINKER.value)

        return {
            "order": order,
            "target_source": self._target_source.kind,
            "target_steps": target_steps,
            "linker_member": member,
        }
