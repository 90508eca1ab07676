"""
Tests for Phase State Machine
=============================

Tests for phase ordering, gates, advancing and progress.
"""

import pytest

from codebakers.errors import InvalidRoleError, PreconditionError
from codebakers.phases import (
    DEFAULT_AGENT,
    PHASE_ORDER,
    TOTAL_PHASES,
    AgentRole,
    Gate,
    GateStatus,
    Phase,
    PhaseStateMachine,
    next_phase,
    parse_role,
    phase_config,
)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def machine():
    """A fresh machine at scoping."""
    return PhaseStateMachine()


def walk_to(machine: PhaseStateMachine, target: Phase) -> None:
    """Pass and advance until the machine sits at target."""
    while machine.current_phase != target:
        machine.pass_gate(machine.current_phase, [])
        machine.advance()


# =============================================================================
# Static Phase Table Tests
# =============================================================================

class TestPhaseTable:
    """Tests for the fixed phase order and default agents."""

    def test_eleven_phases_in_order(self):
        assert TOTAL_PHASES == 11
        assert PHASE_ORDER[0] == Phase.SCOPING
        assert PHASE_ORDER[-1] == Phase.LAUNCH
        assert PHASE_ORDER.index(Phase.DESIGN_REVIEW) == 3
        assert PHASE_ORDER.index(Phase.SECURITY_REVIEW) == 7

    def test_default_agents(self):
        assert DEFAULT_AGENT[Phase.SCOPING] == AgentRole.ORCHESTRATOR
        assert DEFAULT_AGENT[Phase.REQUIREMENTS] == AgentRole.PM
        assert DEFAULT_AGENT[Phase.ARCHITECTURE] == AgentRole.ARCHITECT
        assert DEFAULT_AGENT[Phase.DESIGN_REVIEW] == AgentRole.ORCHESTRATOR
        assert DEFAULT_AGENT[Phase.IMPLEMENTATION] == AgentRole.ENGINEER
        assert DEFAULT_AGENT[Phase.CODE_REVIEW] == AgentRole.ENGINEER
        assert DEFAULT_AGENT[Phase.TESTING] == AgentRole.QA
        assert DEFAULT_AGENT[Phase.SECURITY_REVIEW] == AgentRole.SECURITY
        assert DEFAULT_AGENT[Phase.DOCUMENTATION] == AgentRole.DOCUMENTATION
        assert DEFAULT_AGENT[Phase.STAGING] == AgentRole.DEVOPS
        assert DEFAULT_AGENT[Phase.LAUNCH] == AgentRole.DEVOPS

    def test_next_phase(self):
        assert next_phase(Phase.SCOPING) == Phase.REQUIREMENTS
        assert next_phase("staging") == Phase.LAUNCH
        assert next_phase(Phase.LAUNCH) is None

    def test_phase_config(self):
        config = phase_config("requirements")
        assert config.display_name == "Requirements"
        assert config.agent == AgentRole.PM
        assert "prd.md" in config.produces

    def test_parse_role(self):
        assert parse_role("architect") == AgentRole.ARCHITECT
        assert parse_role(AgentRole.QA) == AgentRole.QA

    def test_parse_role_rejects_unknown(self):
        with pytest.raises(InvalidRoleError) as exc:
            parse_role("wizard")
        assert "devops" in exc.value.hint


# =============================================================================
# Gate Tests
# =============================================================================

class TestGates:
    """Tests for passing and failing gates."""

    def test_initial_gates_pending(self, machine):
        assert len(machine.gates) == 11
        assert all(g.status == GateStatus.PENDING for g in machine.gates.values())
        assert machine.progress == 0

    def test_pass_gate_does_not_move_pointer(self, machine):
        gate = machine.pass_gate(Phase.SCOPING, ["scope.json"], approved_by="human")
        assert gate.status == GateStatus.PASSED
        assert gate.artifacts == ["scope.json"]
        assert gate.approved_by == "human"
        assert gate.timestamp is not None
        assert machine.current_phase == Phase.SCOPING

    def test_fail_gate_records_reason(self, machine):
        walk_to(machine, Phase.ARCHITECTURE)
        gate = machine.fail_gate(Phase.ARCHITECTURE, "missing tech spec")
        assert gate.status == GateStatus.FAILED
        assert machine.gate("architecture").failed_reason == "missing tech spec"
        assert machine.current_phase == Phase.ARCHITECTURE

    def test_fail_then_pass_again(self, machine):
        machine.fail_gate(Phase.SCOPING, "incomplete")
        machine.pass_gate(Phase.SCOPING, [])
        assert machine.current_gate.is_passed
        assert machine.current_gate.failed_reason is None

    def test_progress_counts_passed_gates(self, machine):
        machine.pass_gate(Phase.SCOPING)
        assert machine.progress == 9
        machine.pass_gate(Phase.REQUIREMENTS)
        machine.pass_gate(Phase.ARCHITECTURE)
        assert machine.progress == 27

    def test_gate_round_trip(self):
        gate = Gate(status=GateStatus.FAILED, timestamp="t", failed_reason="nope")
        assert Gate.from_dict(gate.to_dict()) == gate


# =============================================================================
# Advance Tests
# =============================================================================

class TestAdvance:
    """Tests for moving between phases."""

    @pytest.mark.parametrize("status", ["pending", "in_progress", "failed", "skipped"])
    def test_advance_requires_passed_gate(self, machine, status):
        machine.gates[Phase.SCOPING] = Gate(status=GateStatus(status))
        with pytest.raises(PreconditionError) as exc:
            machine.advance()
        assert "engineering_gate" in exc.value.hint
        assert machine.current_phase == Phase.SCOPING

    def test_advance_moves_to_next_phase_and_agent(self, machine):
        machine.pass_gate(Phase.SCOPING, ["scope.json"])
        result = machine.advance()
        assert result.moved
        assert result.previous_phase == Phase.SCOPING
        assert result.phase == Phase.REQUIREMENTS
        assert machine.current_agent == AgentRole.PM
        assert machine.current_gate.status == GateStatus.IN_PROGRESS

    def test_advance_merges_artifacts_into_passed_gate(self, machine):
        machine.pass_gate(Phase.SCOPING, ["scope.json"])
        machine.advance(["scope.json", "notes.md"])
        assert machine.gate(Phase.SCOPING).artifacts == ["scope.json", "notes.md"]

    def test_walk_all_phases(self, machine):
        walk_to(machine, Phase.LAUNCH)
        assert machine.current_agent == AgentRole.DEVOPS
        assert machine.progress == round(100 * 10 / 11)

    def test_advance_at_launch_is_completion_no_op(self, machine):
        walk_to(machine, Phase.LAUNCH)
        machine.pass_gate(Phase.LAUNCH, ["launch-report.md"])
        result = machine.advance()
        assert result.completed
        assert not result.moved
        assert machine.current_phase == Phase.LAUNCH
        assert machine.is_complete
        assert machine.progress == 100

        again = machine.advance()
        assert again.completed
        assert machine.current_phase == Phase.LAUNCH

    def test_set_phase_is_unconditional(self, machine):
        machine.set_phase(Phase.TESTING, "qa")
        assert machine.current_phase == Phase.TESTING
        assert machine.current_agent == AgentRole.QA

    def test_set_phase_rejects_unknown_role(self, machine):
        with pytest.raises(InvalidRoleError):
            machine.set_phase(Phase.TESTING, "tester")


# =============================================================================
# Serialization Tests
# =============================================================================

class TestSerialization:
    def test_round_trip(self, machine):
        walk_to(machine, Phase.ARCHITECTURE)
        machine.fail_gate(Phase.ARCHITECTURE, "later")

        restored = PhaseStateMachine.from_dict(machine.to_dict())
        assert restored.current_phase == Phase.ARCHITECTURE
        assert restored.current_agent == AgentRole.ARCHITECT
        assert restored.gate(Phase.ARCHITECTURE).failed_reason == "later"
        assert restored.progress == machine.progress

    def test_from_empty_dict_defaults(self):
        restored = PhaseStateMachine.from_dict({})
        assert restored.current_phase == Phase.SCOPING
        assert len(restored.gates) == 11
