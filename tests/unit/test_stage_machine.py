"""Tests for the StageMachine: state transitions, prerequisite enforcement, cascades."""

from __future__ import annotations

import pytest

from sdkforge.core.prerequisite_graph import PrerequisiteNotMetError
from sdkforge.core.stage_machine import InvalidTransitionError, StageMachine
from sdkforge.models.stages import StageState


def _pass(machine: StageMachine, stage_id: str, final: StageState = StageState.PASSED) -> None:
    machine.transition(stage_id, StageState.RUNNING)
    machine.transition(stage_id, final)


class TestStageMachine:
    def test_initial_states(self, stage_machine: StageMachine):
        states = stage_machine.get_all_states()
        assert len(states) == 6
        assert all(s is StageState.NOT_STARTED for s in states.values())

    def test_transition_to_running(self, stage_machine: StageMachine):
        record = stage_machine.transition("s0_prepare", StageState.RUNNING)
        assert record.from_state is StageState.NOT_STARTED
        assert record.to_state is StageState.RUNNING
        assert stage_machine.get_current_state("s0_prepare") is StageState.RUNNING

    def test_invalid_transition_rejected(self, stage_machine: StageMachine):
        with pytest.raises(InvalidTransitionError):
            # Cannot go directly from NOT_STARTED to PASSED
            stage_machine.transition("s0_prepare", StageState.PASSED)

    def test_terminal_states_are_final(self, stage_machine: StageMachine):
        _pass(stage_machine, "s0_prepare")
        with pytest.raises(InvalidTransitionError):
            stage_machine.transition("s0_prepare", StageState.RUNNING)

    def test_prerequisite_enforcement(self, stage_machine: StageMachine):
        with pytest.raises(PrerequisiteNotMetError, match="s1_cache"):
            stage_machine.transition("s1_cache", StageState.RUNNING)

    def test_skipped_unlocks_dependents(self, stage_machine: StageMachine):
        _pass(stage_machine, "s0_prepare")
        _pass(stage_machine, "s1_cache")
        _pass(stage_machine, "s2_fetch", StageState.SKIPPED)
        record = stage_machine.transition("s3_assemble", StageState.RUNNING)
        assert record.to_state is StageState.RUNNING

    def test_cascade_block_on_failure(self, stage_machine: StageMachine):
        _pass(stage_machine, "s0_prepare")
        stage_machine.transition("s1_cache", StageState.RUNNING)
        stage_machine.transition("s1_cache", StageState.FAILED, reason="disk full")

        states = stage_machine.get_all_states()
        assert states["s1_cache"] is StageState.FAILED
        for stage_id in ("s2_fetch", "s3_assemble", "s4_patch", "s5_manifest"):
            assert states[stage_id] is StageState.BLOCKED

    def test_history_records_blocks(self, stage_machine: StageMachine):
        stage_machine.transition("s0_prepare", StageState.RUNNING)
        stage_machine.transition("s0_prepare", StageState.FAILED, reason="boom")

        history = stage_machine.history
        assert history[1].reason == "boom"
        blocked = [t.stage_id for t in history if t.to_state is StageState.BLOCKED]
        assert blocked == ["s1_cache", "s2_fetch", "s3_assemble", "s4_patch", "s5_manifest"]

    def test_can_start(self, stage_machine: StageMachine):
        can, reasons = stage_machine.can_start("s0_prepare")
        assert can is True
        assert reasons == []

        can, reasons = stage_machine.can_start("s1_cache")
        assert can is False
        assert len(reasons) > 0
