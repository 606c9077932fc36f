"""Abstract base stage with enforced lifecycle.

Every concrete stage inherits from BaseStage and implements only ``execute()``.
The ``run_stage()`` wrapper is **not overridable**: it enforces the canonical
lifecycle ordering:

    validate_prerequisites -> execute -> compute_output_hash -> record

Errors raised by ``execute()`` are logged and re-raised unchanged; the
orchestrator decides what a failure means for the rest of the run.

Run context keys read by stages:
    ``config``       : the frozen ``GeneratorConfig``.
    ``artifacts``    : the ``DownloadableArtifactSet`` for this run.
    ``stage_states`` : ``stage_id -> StageState`` snapshot.
    ``stage_results``: results of stages that already ran.
"""

from __future__ import annotations

import abc
import logging
import time
from typing import Any, final

from sdkforge.core.hasher import compute_output_hash
from sdkforge.core.prerequisite_graph import PrerequisiteNotMetError
from sdkforge.models.artifacts import DownloadableArtifactSet
from sdkforge.models.config import GeneratorConfig
from sdkforge.models.stages import DEFAULT_STAGE_DEFINITIONS, SATISFIED_STATES, StageState

logger = logging.getLogger(__name__)

_DEFAULT_PREREQUISITES: dict[str, list[str]] = {
    sd.stage_id: list(sd.prerequisites) for sd in DEFAULT_STAGE_DEFINITIONS
}


class StagePrerequisiteError(PrerequisiteNotMetError):
    """Raised when a stage's prerequisites are not satisfied."""


class BaseStage(abc.ABC):
    """Abstract base for all generator pipeline stages.

    Subclasses **must** implement:
        * ``stage_id``  : unique identifier (e.g. ``"s2_fetch"``).
        * ``display_name``: human-readable name for logs and the CLI.
        * ``execute(run_context)``: the stage's core logic. Returning a
          result with ``"skipped": True`` marks the stage SKIPPED instead of
          PASSED.

    Subclasses **must not** override ``run_stage()``.
    """

    @property
    @abc.abstractmethod
    def stage_id(self) -> str:
        ...

    @property
    @abc.abstractmethod
    def display_name(self) -> str:
        ...

    @abc.abstractmethod
    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        """Execute the stage's core logic and return a JSON-friendly result."""
        ...

    # ------------------------------------------------------------------
    # Context accessors
    # ------------------------------------------------------------------

    @staticmethod
    def config(run_context: dict[str, Any]) -> GeneratorConfig:
        return run_context["config"]

    @staticmethod
    def artifacts(run_context: dict[str, Any]) -> DownloadableArtifactSet:
        return run_context["artifacts"]

    # ------------------------------------------------------------------
    # Lifecycle: NOT overridable
    # ------------------------------------------------------------------

    @final
    def run_stage(self, run_context: dict[str, Any]) -> dict[str, Any]:
        """Execute the full stage lifecycle.  **Do not override.**

        Returns the result dict produced by ``execute()``, augmented with
        ``_output_hash`` and ``_duration_seconds``.
        """
        self.validate_prerequisites(run_context)

        logger.info("%s [%s] started", self.display_name, self.stage_id)
        started = time.monotonic()
        try:
            result = self.execute(run_context)
        except Exception as exc:
            logger.error("%s [%s] failed: %s", self.display_name, self.stage_id, exc)
            raise
        duration = time.monotonic() - started

        output_hash = compute_output_hash(
            self.stage_id, {k: v for k, v in result.items() if not k.startswith("_")}
        )
        logger.info(
            "%s [%s] %s in %.2fs",
            self.display_name,
            self.stage_id,
            "skipped" if result.get("skipped") else "finished",
            duration,
        )

        result["_output_hash"] = output_hash
        result["_duration_seconds"] = round(duration, 3)
        run_context.setdefault("stage_results", {})[self.stage_id] = result
        return result

    @final
    def validate_prerequisites(self, run_context: dict[str, Any]) -> None:
        """Ensure all prerequisite stages are PASSED or SKIPPED.

        Prerequisites come from ``run_context["stage_definitions"]`` when
        present, otherwise from the default stage plan.
        """
        stage_states: dict[str, StageState] = run_context.get("stage_states", {})
        definitions = run_context.get("stage_definitions")
        if definitions is not None:
            prerequisites = list(definitions.get(self.stage_id, []))
        else:
            prerequisites = _DEFAULT_PREREQUISITES.get(self.stage_id, [])

        blocking = [
            f"{prereq_id} is {stage_states.get(prereq_id, StageState.NOT_STARTED).value}"
            for prereq_id in prerequisites
            if stage_states.get(prereq_id, StageState.NOT_STARTED) not in SATISFIED_STATES
        ]
        if blocking:
            raise StagePrerequisiteError(
                f"Cannot run {self.stage_id}: prerequisites not met: " +"; ".join(blocking)
            )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} stage_id={self.stage_id!r}>"
