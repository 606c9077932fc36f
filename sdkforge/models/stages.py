"""Stage state machine models: deterministic transitions."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class StageState(str, Enum):
    """Strict state model for each pipeline stage."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    BLOCKED = "blocked"
    FAILED = "failed"
    PASSED = "passed"
    SKIPPED = "skipped"  # preconditions already held, nothing to do


# States that let dependents run.
SATISFIED_STATES: frozenset[StageState] = frozenset({StageState.PASSED, StageState.SKIPPED})

# Valid state transitions: enforced structurally by StageMachine.
# A run is all-or-nothing, so FAILED has no retry edge.
VALID_TRANSITIONS: dict[StageState, set[StageState]] = {
    StageState.NOT_STARTED: {StageState.RUNNING, StageState.BLOCKED},
    StageState.RUNNING: {StageState.PASSED, StageState.SKIPPED, StageState.FAILED},
    StageState.BLOCKED: set(),
    StageState.FAILED: set(),
    StageState.PASSED: set(),
    StageState.SKIPPED: set(),
}


class StageDefinition(BaseModel):
    """Defines a pipeline stage and its prerequisites.

    The prerequisite list encodes the DAG: a stage cannot enter RUNNING
    unless every prerequisite is PASSED or SKIPPED.
    """

    model_config = ConfigDict(frozen=True)

    stage_id: str
    display_name: str
    ordinal: int
    prerequisites: list[str] = []


class StageTransition(BaseModel):
    """Records a single state transition for the run history."""

    model_config = ConfigDict(frozen=True)

    stage_id: str
    from_state: StageState
    to_state: StageState
    reason: str | None = None


DEFAULT_STAGE_DEFINITIONS: list[StageDefinition] = [
    StageDefinition(
        stage_id="s0_prepare",
        display_name="Workspace Preparation",
        ordinal=0,
    ),
    StageDefinition(
        stage_id="s1_cache",
        display_name="Cache Validation",
        ordinal=1,
        prerequisites=["s0_prepare"],
    ),
    StageDefinition(
        stage_id="s2_fetch",
        display_name="Artifact Fetch",
        ordinal=2,
        prerequisites=["s1_cache"],
    ),
    StageDefinition(
        stage_id="s3_assemble",
        display_name="Toolchain Assembly",
        ordinal=3,
        prerequisites=["s2_fetch"],
    ),
    StageDefinition(
        stage_id="s4_patch",
        display_name="Post-Assembly Patching",
        ordinal=4,
        prerequisites=["s3_assemble"],
    ),
    StageDefinition(
        stage_id="s5_manifest",
        display_name="Manifest Emission",
        ordinal=5,
        prerequisites=["s4_patch"],
    ),
]
