"""Pipeline orchestrator: runs one SDK bundle generation.

The ``SdkGenerator`` wires the artifact catalog, cache validator, fetcher,
target toolchain source and stage machine together, then walks the stage
graph in topological order. Any stage failure marks the stage FAILED,
blocks its dependents, and propagates unchanged: a run is all-or-nothing.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict

from sdkforge.assembly.packages import CommandRunner
from sdkforge.assembly.target_sources import TargetToolchainSource, select_target_source
from sdkforge.config import GeneratorSettings
from sdkforge.core.cache_validator import CacheValidator
from sdkforge.core.catalog import build_artifact_set
from sdkforge.core.fetcher import Fetcher
from sdkforge.core.prerequisite_graph import PrerequisiteGraph
from sdkforge.core.stage_machine import StageMachine
from sdkforge.models.artifacts import DownloadableArtifactSet
from sdkforge.models.config import GeneratorConfig
from sdkforge.models.stages import DEFAULT_STAGE_DEFINITIONS, StageState
from sdkforge.stages import (
    AssembleStage,
    BaseStage,
    CacheValidationStage,
    FetchStage,
    ManifestStage,
    PatchStage,
    PrepareWorkspaceStage,
)

logger = logging.getLogger(__name__)


class GenerationReport(BaseModel):
    """Summary of a successful run."""

    model_config = ConfigDict(frozen=True)

    artifact_id: str
    bundle_path: Path
    cache_valid: bool
    downloaded: list[str]
    manifests: list[Path]
    stage_states: dict[str, StageState]

    @property
    def install_instructions(self) -> str:
        return (
            "All done! Install the newly generated SDK with this command:\n"
            f"swift experimental-sdk install {self.bundle_path}\n"
            "\n"
            "After that, use the newly installed SDK when building with this command:\n"
            f"swift build --experimental-swift-sdk {self.artifact_id}"
        )


class SdkGenerator:
    """Central pipeline coordinator.

    Parameters
    ----------
    config:
        The frozen run configuration.
    settings:
        Process settings (pool sizes, timeouts). Defaults from the environment.
    artifacts:
        Descriptor set. Built from the artifact lock when omitted, so
        configuration errors surface here, before any network activity.
    transport:
        Optional ``httpx`` transport for the fetcher.
    runner:
        Optional ``subprocess.run`` replacement for ``ar`` and container calls.
    target_source:
        Optional explicit target toolchain source.
    """

    def __init__(
        self,
        config: GeneratorConfig,
        *,
        settings: GeneratorSettings | None = None,
        artifacts: DownloadableArtifactSet | None = None,
        transport: httpx.BaseTransport | None = None,
        runner: CommandRunner = subprocess.run,
        target_source: TargetToolchainSource | None = None,
    ) -> None:
        self.config = config
        self.settings = settings or GeneratorSettings()
        self.artifacts = artifacts if artifacts is not None else build_artifact_set(config)

        self.graph = PrerequisiteGraph(DEFAULT_STAGE_DEFINITIONS)
        self.stage_machine = StageMachine(self.graph)

        self.fetcher = Fetcher(
            max_workers=self.settings.max_concurrent_downloads,
            timeout=self.settings.artifact_timeout_seconds,
            user_agent=self.settings.user_agent,
            transport=transport,
        )
        self.target_source = target_source or select_target_source(
            config,
            container_runtime=self.settings.container_runtime,
            runner=runner,
        )

        stages: list[BaseStage] = [
            PrepareWorkspaceStage(),
            CacheValidationStage(CacheValidator(self.settings.max_concurrent_checksums)),
            FetchStage(self.fetcher),
            AssembleStage(self.target_source),
            PatchStage(),
            ManifestStage(),
        ]
        self._stages: dict[str, BaseStage] = {stage.stage_id: stage for stage in stages}

    @property
    def artifact_id(self) -> str:
        return self.config.versions.artifact_id

    def get_states(self) -> dict[str, StageState]:
        return self.stage_machine.get_all_states()

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def generate_bundle(self) -> GenerationReport:
        """Run every stage in order and return the run summary."""
        logger.info(
            "Generating Swift SDK %s (%s acquisition%s)",
            self.artifact_id,
            self.target_source.kind,
            ", from scratch" if self.config.from_scratch else "",
        )
        run_context: dict[str, Any] = {
            "config": self.config,
            "artifacts": self.artifacts,
            "stage_definitions": {
                stage_id: self.graph.get_prerequisites(stage_id) for stage_id in self.graph.stage_ids
            },
            "stage_results": {},
        }

        for stage_id in self.graph.stage_ids:
            self.execute_stage(stage_id, run_context)

        results = run_context["stage_results"]
        return GenerationReport(
            artifact_id=self.artifact_id,
            bundle_path=self.config.paths.artifact_bundle_path,
            cache_valid=bool(run_context.get("cache_valid")),
            downloaded=list(results["s2_fetch"]["downloaded"]),
            manifests=[Path(p) for p in results["s5_manifest"]["manifests"]],
            stage_states=self.get_states(),
        )

    def execute_stage(self, stage_id: str, run_context: dict[str, Any]) -> dict[str, Any]:
        """Run one stage through the state machine.

        Lifecycle:
        1. Transition to RUNNING (prerequisites checked)
        2. Call the stage
        3. Transition to PASSED/SKIPPED, or FAILED and re-raise
        """
        stage = self._stages[stage_id]
        self.stage_machine.transition(stage_id, StageState.RUNNING)
        run_context["stage_states"] = self.stage_machine.get_all_states()

        try:
            result = stage.run_stage(run_context)
        except Exception as exc:
            self.stage_machine.transition(stage_id, StageState.FAILED, reason=str(exc))
            run_context["stage_states"] = self.stage_machine.get_all_states()
            raise

        final = StageState.SKIPPED if result.get("skipped") else StageState.PASSED
        self.stage_machine.transition(stage_id, final)
        run_context["stage_states"] = self.stage_machine.get_all_states()
        return result
