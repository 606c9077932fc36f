"""Manifest emission: the three descriptor files that make a bundle installable.

Paths recorded inside the descriptors are relative to the Swift SDK root
(``<bundle>/<artifact-id>/<triple>``) so the bundle can be moved freely.
"""

from __future__ import annotations

import logging
from pathlib import Path

from sdkforge.errors import FilesystemError
from sdkforge.models.config import GeneratorConfig
from sdkforge.models.manifests import (
    ArtifactBundleManifest,
    BundleArtifact,
    BundleVariant,
    DestinationDescriptor,
    TargetTripleProperties,
    ToolProperties,
    ToolsetDescriptor,
)

logger = logging.getLogger(__name__)

TOOLSET_FILE = "toolset.json"
DESTINATION_FILE = "swift-sdk.json"
BUNDLE_MANIFEST_FILE = "info.json"


def _relative(path: Path, root: Path) -> str:
    return path.relative_to(root).as_posix()


def build_toolset(config: GeneratorConfig) -> ToolsetDescriptor:
    paths = config.paths
    return ToolsetDescriptor(
        root_path=_relative(paths.toolchain_bin_dir_path, paths.swift_sdk_root_path),
        swift_compiler=ToolProperties(
            extra_cli_options=["-use-ld=lld", "-Xlinker", "-R/usr/lib/swift/linux/"],
        ),
        cxx_compiler=ToolProperties(extra_cli_options=["-lstdc++"]),
        linker=ToolProperties(path="ld.lld"),
    )


def build_destination(config: GeneratorConfig, toolset_path: Path) -> DestinationDescriptor:
    paths = config.paths
    sdk_root = paths.swift_sdk_root_path
    sdk_dir = _relative(paths.sdk_dir_path, sdk_root)
    return DestinationDescriptor(
        target_triples={
            str(config.versions.target_triple): TargetTripleProperties(
                sdk_root_path=sdk_dir,
                swift_resources_path=f"{sdk_dir}/usr/lib/swift",
                swift_static_resources_path=f"{sdk_dir}/usr/lib/swift_static",
                toolset_paths=[_relative(toolset_path, sdk_root)],
            )
        }
    )


def build_bundle_manifest(config: GeneratorConfig) -> ArtifactBundleManifest:
    paths = config.paths
    artifact_id = config.versions.artifact_id
    return ArtifactBundleManifest(
        artifacts={
            artifact_id: BundleArtifact(
                version=config.versions.bundle_version,
                variants=[
                    BundleVariant(
                        path=_relative(paths.swift_sdk_root_path, paths.artifact_bundle_path)
                    )
                ],
            )
        }
    )


def _write(path: Path, content: str) -> Path:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise FilesystemError(
            f"Cannot write {path.name}",
            context={"path": str(path)},
        ) from exc
    logger.debug("Wrote %s", path)
    return path


def generate_toolset_json(config: GeneratorConfig) -> Path:
    logger.info("Generating toolset JSON file...")
    path = config.paths.swift_sdk_root_path / TOOLSET_FILE
    return _write(path, build_toolset(config).to_json())


def generate_destination_json(config: GeneratorConfig, toolset_path: Path) -> Path:
    logger.info("Generating destination JSON file...")
    path = config.paths.swift_sdk_root_path / DESTINATION_FILE
    return _write(path, build_destination(config, toolset_path).to_json())


def generate_artifact_bundle_manifest(config: GeneratorConfig) -> Path:
    logger.info("Generating .artifactbundle manifest file...")
    path = config.paths.artifact_bundle_path / BUNDLE_MANIFEST_FILE
    return _write(path, build_bundle_manifest(config).to_json())


def emit_manifests(config: GeneratorConfig) -> list[Path]:
    """Write all three descriptors and return their paths."""
    toolset = generate_toolset_json(config)
    destination = generate_destination_json(config, toolset)
    bundle = generate_artifact_bundle_manifest(config)
    return [toolset, destination, bundle]
