"""
Phase State Machine
===================

Tracks a project through the eleven engineering phases.

Each phase has a gate. The workflow only moves forward when the gate of the
current phase is exactly ``passed``; failing a gate records a reason and
leaves the phase pointer where it is.

Usage:
    from codebakers.phases import PhaseStateMachine

    machine = PhaseStateMachine()
    machine.pass_gate(machine.current_phase, ["scope.json"])
    machine.advance()           # -> requirements / pm
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from codebakers.errors import InvalidRoleError, PreconditionError


class Phase(str, Enum):
    """Engineering phases, in workflow order."""
    SCOPING = "scoping"
    REQUIREMENTS = "requirements"
    ARCHITECTURE = "architecture"
    DESIGN_REVIEW = "design_review"
    IMPLEMENTATION = "implementation"
    CODE_REVIEW = "code_review"
    TESTING = "testing"
    SECURITY_REVIEW = "security_review"
    DOCUMENTATION = "documentation"
    STAGING = "staging"
    LAUNCH = "launch"


class AgentRole(str, Enum):
    """Agent roles that can own a phase or record a decision."""
    ORCHESTRATOR = "orchestrator"
    PM = "pm"
    ARCHITECT = "architect"
    ENGINEER = "engineer"
    QA = "qa"
    SECURITY = "security"
    DOCUMENTATION = "documentation"
    DEVOPS = "devops"


class GateStatus(str, Enum):
    """Status of a phase gate."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class PhaseConfig:
    """Static description of a phase."""
    phase: Phase
    display_name: str
    description: str
    agent: AgentRole
    produces: tuple[str, ...] = ()
    can_skip: bool = False


PHASES: tuple[PhaseConfig, ...] = (
    PhaseConfig(Phase.SCOPING, "Scoping", "Define what you're building",
                AgentRole.ORCHESTRATOR, ("scope.json",)),
    PhaseConfig(Phase.REQUIREMENTS, "Requirements", "PM agent creates detailed PRD",
                AgentRole.PM, ("prd.md",)),
    PhaseConfig(Phase.ARCHITECTURE, "Architecture", "Architect agent designs system structure",
                AgentRole.ARCHITECT, ("tech-spec.md", "dependency-graph.json")),
    PhaseConfig(Phase.DESIGN_REVIEW, "Design Review", "Review architecture with stakeholders",
                AgentRole.ORCHESTRATOR, ("review-notes.md",), can_skip=True),
    PhaseConfig(Phase.IMPLEMENTATION, "Implementation", "Engineer agents build the features",
                AgentRole.ENGINEER, ("source-code",)),
    PhaseConfig(Phase.CODE_REVIEW, "Code Review", "Review code quality and patterns",
                AgentRole.ENGINEER, ("code-review.md",), can_skip=True),
    PhaseConfig(Phase.TESTING, "Testing", "QA agent writes and runs tests",
                AgentRole.QA, ("test-report.md",)),
    PhaseConfig(Phase.SECURITY_REVIEW, "Security Review", "Security agent audits vulnerabilities",
                AgentRole.SECURITY, ("security-audit.md",)),
    PhaseConfig(Phase.DOCUMENTATION, "Documentation", "Generate comprehensive docs",
                AgentRole.DOCUMENTATION, ("api-docs.md", "user-guide.md"), can_skip=True),
    PhaseConfig(Phase.STAGING, "Staging", "Deploy to staging environment",
                AgentRole.DEVOPS, ("deployment-report.md",), can_skip=True),
    PhaseConfig(Phase.LAUNCH, "Launch", "Final production deployment",
                AgentRole.DEVOPS, ("launch-report.md",)),
)

PHASE_ORDER: tuple[Phase, ...] = tuple(p.phase for p in PHASES)
DEFAULT_AGENT: dict[Phase, AgentRole] = {p.phase: p.agent for p in PHASES}
TOTAL_PHASES = len(PHASES)


def phase_config(phase: Phase | str) -> PhaseConfig:
    """Look up the static config for a phase."""
    return PHASES[PHASE_ORDER.index(Phase(phase))]


def next_phase(phase: Phase | str) -> Optional[Phase]:
    """Return the phase after ``phase``, or None at launch."""
    index = PHASE_ORDER.index(Phase(phase))
    if index >= len(PHASE_ORDER) - 1:
        return None
    return PHASE_ORDER[index + 1]


def parse_role(value: AgentRole | str) -> AgentRole:
    """Coerce a string into an AgentRole, raising InvalidRoleError."""
    try:
        return AgentRole(value)
    except ValueError:
        valid = ", ".join(r.value for r in AgentRole)
        raise InvalidRoleError(
            f"Unknown agent role: {value!r}",
            hint=f"Use one of: {valid}",
        ) from None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Gate:
    """Checkpoint for one phase."""
    status: GateStatus = GateStatus.PENDING
    artifacts: list[str] = field(default_factory=list)
    timestamp: Optional[str] = None
    approved_by: Optional[str] = None
    failed_reason: Optional[str] = None

    @property
    def is_passed(self) -> bool:
        return self.status == GateStatus.PASSED

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "artifacts": list(self.artifacts),
            "timestamp": self.timestamp,
            "approved_by": self.approved_by,
            "failed_reason": self.failed_reason,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Gate":
        return cls(
            status=GateStatus(data.get("status", GateStatus.PENDING.value)),
            artifacts=list(data.get("artifacts") or []),
            timestamp=data.get("timestamp"),
            approved_by=data.get("approved_by"),
            failed_reason=data.get("failed_reason"),
        )


@dataclass
class AdvanceResult:
    """Outcome of an advance attempt."""
    previous_phase: Phase
    phase: Phase
    agent: AgentRole
    completed: bool = False

    @property
    def moved(self) -> bool:
        return self.previous_phase != self.phase


class PhaseStateMachine:
    """
    Current phase pointer, current agent and one gate per phase.

    The machine holds state only; it knows nothing about persistence.
    """

    def __init__(
        self,
        current_phase: Phase = Phase.SCOPING,
        current_agent: AgentRole = AgentRole.ORCHESTRATOR,
        gates: Optional[dict[Phase, Gate]] = None,
        last_activity: Optional[str] = None,
    ):
        self.current_phase = Phase(current_phase)
        self.current_agent = AgentRole(current_agent)
        self.gates: dict[Phase, Gate] = {phase: Gate() for phase in PHASE_ORDER}
        if gates:
            self.gates.update({Phase(k): v for k, v in gates.items()})
        self.last_activity = last_activity or _now()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def gate(self, phase: Phase | str) -> Gate:
        return self.gates[Phase(phase)]

    @property
    def current_gate(self) -> Gate:
        return self.gates[self.current_phase]

    @property
    def passed_count(self) -> int:
        return sum(1 for g in self.gates.values() if g.is_passed)

    @property
    def progress(self) -> int:
        """Overall progress percentage, derived from passed gates."""
        return round(100 * self.passed_count / TOTAL_PHASES)

    @property
    def is_complete(self) -> bool:
        return self.gates[Phase.LAUNCH].is_passed

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def touch(self) -> None:
        self.last_activity = _now()

    def set_phase(self, phase: Phase | str, agent: AgentRole | str) -> None:
        """Move the pointer unconditionally and open the new phase's gate."""
        self.current_phase = Phase(phase)
        self.current_agent = parse_role(agent)
        self.gates[self.current_phase] = Gate(status=GateStatus.IN_PROGRESS, timestamp=_now())
        self.touch()

    def pass_gate(
        self,
        phase: Phase | str,
        artifacts: Optional[list[str]] = None,
        approved_by: str = "auto",
    ) -> Gate:
        """Mark a gate passed. Does not move the phase pointer."""
        gate = Gate(
            status=GateStatus.PASSED,
            artifacts=list(artifacts or []),
            timestamp=_now(),
            approved_by=approved_by,
        )
        self.gates[Phase(phase)] = gate
        self.touch()
        return gate

    def fail_gate(self, phase: Phase | str, reason: str) -> Gate:
        """Mark a gate failed with a reason. Does not move the phase pointer."""
        gate = Gate(
            status=GateStatus.FAILED,
            timestamp=_now(),
            failed_reason=reason,
        )
        self.gates[Phase(phase)] = gate
        self.touch()
        return gate

    def advance(self, artifacts: Optional[list[str]] = None) -> AdvanceResult:
        """
        Move to the next phase if the current gate has passed.

        Raises:
            PreconditionError: current gate status is not ``passed``

        At launch with a passed gate this reports completion and does nothing.
        """
        current = self.current_phase
        gate = self.current_gate
        if not gate.is_passed:
            raise PreconditionError(
                f"Current phase gate not passed ({current.value} is {gate.status.value}).",
                hint=f"Use `engineering_gate` to pass the {current.value} gate first.",
            )

        for name in artifacts or []:
            if name not in gate.artifacts:
                gate.artifacts.append(name)

        upcoming = next_phase(current)
        if upcoming is None:
            return AdvanceResult(current, current, self.current_agent, completed=True)

        self.set_phase(upcoming, DEFAULT_AGENT[upcoming])
        return AdvanceResult(current, upcoming, self.current_agent)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "current_phase": self.current_phase.value,
            "current_agent": self.current_agent.value,
            "gates": {phase.value: gate.to_dict() for phase, gate in self.gates.items()},
            "last_activity": self.last_activity,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PhaseStateMachine":
        gates = {
            Phase(name): Gate.from_dict(gate)
            for name, gate in (data.get("gates") or {}).items()
        }
        return cls(
            current_phase=Phase(data.get("current_phase", Phase.SCOPING.value)),
            current_agent=AgentRole(data.get("current_agent", AgentRole.ORCHESTRATOR.value)),
            gates=gates,
            last_activity=data.get("last_activity"),
        )
