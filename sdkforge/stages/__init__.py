"""Generator pipeline stages: registry mapping stage_id to stage class.

Usage::

    from sdkforge.stages import STAGE_ORDER, get_stage

    stage = get_stage("s4_patch")
    result = stage.run_stage(run_context)
"""

from __future__ import annotations

from sdkforge.stages.base import BaseStage, StagePrerequisiteError
from sdkforge.stages.s0_prepare import PrepareWorkspaceStage
from sdkforge.stages.s1_cache import CacheValidationStage
from sdkforge.stages.s2_fetch import FetchStage
from sdkforge.stages.s3_assemble import AssembleStage
from sdkforge.stages.s4_patch import PatchStage
from sdkforge.stages.s5_manifest import ManifestStage

STAGE_REGISTRY: dict[str, type[BaseStage]] = {
    "s0_prepare": PrepareWorkspaceStage,
    "s1_cache": CacheValidationStage,
    "s2_fetch": FetchStage,
    "s3_assemble": AssembleStage,
    "s4_patch": PatchStage,
    "s5_manifest": ManifestStage,
}

# Ordered list matching the default pipeline execution order.
STAGE_ORDER: list[str] = list(STAGE_REGISTRY)


def get_stage(stage_id: str) -> BaseStage:
    """Instantiate a stage with default collaborators.

    Raises ``KeyError`` if the stage_id is not registered.
    """
    try:
        cls = STAGE_REGISTRY[stage_id]
    except KeyError:
        raise KeyError(
            f"Unknown stage_id {stage_id!r}. "
            f"Registered stages: {sorted(STAGE_REGISTRY)}"
        ) from None
    return cls()


__all__ = [
    "BaseStage",
    "StagePrerequisiteError",
    "STAGE_REGISTRY",
    "STAGE_ORDER",
    "get_stage",
    "PrepareWorkspaceStage",
    "CacheValidationStage",
    "FetchStage",
    "AssembleStage",
    "PatchStage",
    "ManifestStage",
]
