"""sdkforge data models: all Pydantic v2, all frozen (immutable)."""

from sdkforge.models.artifacts import ArtifactDescriptor, ArtifactRole, DownloadableArtifactSet
from sdkforge.models.config import (
    CPU,
    DistributionName,
    GeneratorConfig,
    LinuxDistribution,
    PathsConfiguration,
    Triple,
    VersionsConfiguration,
)
from sdkforge.models.manifests import (
    ArtifactBundleManifest,
    BundleArtifact,
    BundleVariant,
    DestinationDescriptor,
    TargetTripleProperties,
    ToolProperties,
    ToolsetDescriptor,
)
from sdkforge.models.stages import (
    DEFAULT_STAGE_DEFINITIONS,
    SATISFIED_STATES,
    VALID_TRANSITIONS,
    StageDefinition,
    StageState,
    StageTransition,
)

__all__ = [
    # artifacts
    "ArtifactDescriptor",
    "ArtifactRole",
    "DownloadableArtifactSet",
    # config
    "CPU",
    "DistributionName",
    "GeneratorConfig",
    "LinuxDistribution",
    "PathsConfiguration",
    "Triple",
    "VersionsConfiguration",
    # manifests
    "ArtifactBundleManifest",
    "BundleArtifact",
    "BundleVariant",
    "DestinationDescriptor",
    "TargetTripleProperties",
    "ToolProperties",
    "ToolsetDescriptor",
    # stages
    "DEFAULT_STAGE_DEFINITIONS",
    "SATISFIED_STATES",
    "VALID_TRANSITIONS",
    "StageDefinition",
    "StageState",
    "StageTransition",
]
