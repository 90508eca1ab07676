"""
Scoping Wizard
==============

The fixed nine-question wizard that builds a project's scope before any
engineering work starts.

Answers arrive as strings (or lists, from structured callers) and are parsed
according to the step's kind:

- boolean:  "yes"/"true" (any case) -> True, anything else -> False
- multiple: a JSON array, falling back to a comma-separated string
- single:   passed through as-is (whitespace stripped)

Answering the last step completes scoping: the scoping gate is passed with
``scope.json``, the project moves to requirements under the PM agent and a
single "Project scope defined" decision is recorded.

Steps can be answered in any order and re-answered; a repeated answer simply
overwrites the earlier value.
"""

import json
from dataclasses import dataclass, field, asdict
from typing import Any, Optional

from codebakers.decision import Decision, DecisionLog
from codebakers.errors import PreconditionError, UnknownStepError
from codebakers.phases import AgentRole, Phase, PhaseStateMachine


AUDIENCES = ("consumers", "businesses", "internal", "developers")
PLATFORMS = ("web", "mobile", "api")
COMPLIANCE_FLAGS = ("hipaa", "pci", "gdpr", "soc2", "coppa")
USER_SCALES = ("small", "medium", "large", "enterprise")
TIMELINES = ("asap", "weeks", "months", "flexible")


@dataclass
class ComplianceFlags:
    hipaa: bool = False
    pci: bool = False
    gdpr: bool = False
    soc2: bool = False
    coppa: bool = False

    def enabled(self) -> list[str]:
        return [name for name in COMPLIANCE_FLAGS if getattr(self, name)]


@dataclass
class ProjectScope:
    """High-level requirements profile built by the wizard."""
    target_audience: str = "consumers"
    is_full_business: bool = False
    needs_marketing: bool = False
    needs_analytics: bool = False
    needs_team_features: bool = False
    needs_admin_dashboard: bool = False
    platforms: list[str] = field(default_factory=lambda: ["web"])
    has_auth: bool = True
    has_payments: bool = False
    has_realtime: bool = False
    has_file_uploads: bool = False
    compliance: ComplianceFlags = field(default_factory=ComplianceFlags)
    expected_users: str = "small"
    launch_timeline: str = "flexible"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ProjectScope":
        data = dict(data or {})
        compliance = ComplianceFlags(**(data.pop("compliance", None) or {}))
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(compliance=compliance, **known)


@dataclass(frozen=True)
class ScopingOption:
    value: str
    label: str


@dataclass(frozen=True)
class ScopingStep:
    """One wizard question."""
    id: str
    question: str
    description: str
    kind: str                                   # single | multiple | boolean
    options: tuple[ScopingOption, ...] = ()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "question": self.question,
            "description": self.description,
            "kind": self.kind,
            "options": [{"value": o.value, "label": o.label} for o in self.options],
        }


SCOPING_STEPS: tuple[ScopingStep, ...] = (
    ScopingStep("audience", "Who is this for?", "Your target users", "single", (
        ScopingOption("consumers", "Consumers (B2C)"),
        ScopingOption("businesses", "Businesses (B2B)"),
        ScopingOption("internal", "Internal Team"),
        ScopingOption("developers", "Developers (API)"),
    )),
    ScopingStep("isFullBusiness", "Is this a full business product?",
                "Needs marketing, analytics, team features, etc.", "boolean"),
    ScopingStep("platforms", "Which platforms?", "Where will users access this?", "multiple", (
        ScopingOption("web", "Web App"),
        ScopingOption("mobile", "Mobile App"),
        ScopingOption("api", "API Only"),
    )),
    ScopingStep("hasAuth", "Do users need accounts?", "Login, signup, profiles", "boolean"),
    ScopingStep("hasPayments", "Will you charge money?", "Subscriptions or one-time payments", "boolean"),
    ScopingStep("hasRealtime", "Need real-time features?", "Live updates, chat, notifications", "boolean"),
    ScopingStep("compliance", "Any compliance requirements?", "Skip if none apply", "multiple", (
        ScopingOption("hipaa", "HIPAA (Healthcare)"),
        ScopingOption("pci", "PCI DSS (Payments)"),
        ScopingOption("gdpr", "GDPR (EU Privacy)"),
        ScopingOption("soc2", "SOC 2 (Enterprise)"),
        ScopingOption("coppa", "COPPA (Children)"),
    )),
    ScopingStep("expectedUsers", "Expected scale?", "Helps with architecture decisions", "single", (
        ScopingOption("small", "Small (< 1,000 users)"),
        ScopingOption("medium", "Medium (1K - 100K users)"),
        ScopingOption("large", "Large (100K - 1M users)"),
        ScopingOption("enterprise", "Enterprise (1M+ users)"),
    )),
    ScopingStep("launchTimeline", "When do you want to launch?", "Affects prioritization", "single", (
        ScopingOption("asap", "ASAP (MVP)"),
        ScopingOption("weeks", "Few weeks (Core features)"),
        ScopingOption("months", "Few months (Full feature set)"),
        ScopingOption("flexible", "Flexible (Quality over speed)"),
    )),
)

STEP_IDS: tuple[str, ...] = tuple(s.id for s in SCOPING_STEPS)


def first_step() -> ScopingStep:
    return SCOPING_STEPS[0]


def step_index(step_id: str) -> int:
    """Position of a step in the wizard, raising UnknownStepError."""
    try:
        return STEP_IDS.index(step_id)
    except ValueError:
        raise UnknownStepError(
            f"Unknown step: {step_id}",
            hint=f"Valid steps: {', '.join(STEP_IDS)}",
        ) from None


def get_step(step_id: str) -> ScopingStep:
    return SCOPING_STEPS[step_index(step_id)]


def parse_answer(step: ScopingStep, answer: Any) -> Any:
    """Parse a raw answer according to the step's kind."""
    if step.kind == "boolean":
        if isinstance(answer, bool):
            return answer
        return str(answer).strip().lower() in ("yes", "true")

    if step.kind == "multiple":
        if isinstance(answer, (list, tuple)):
            values = [str(v) for v in answer]
        else:
            text = str(answer)
            try:
                parsed = json.loads(text)
            except ValueError:
                parsed = None
            if isinstance(parsed, list):
                values = [str(v) for v in parsed]
            else:
                values = text.split(",")
        return [v.strip() for v in values if v.strip()]

    return str(answer).strip()


def _known(values: list[str], allowed: tuple[str, ...]) -> list[str]:
    result: list[str] = []
    for value in values:
        value = value.lower()
        if value in allowed and value not in result:
            result.append(value)
    return result


def apply_answer(scope: ProjectScope, step_id: str, value: Any) -> None:
    """Write a parsed answer into the scope."""
    if step_id == "audience":
        scope.target_audience = value
    elif step_id == "isFullBusiness":
        scope.is_full_business = value
        if value:
            scope.needs_marketing = True
            scope.needs_analytics = True
            scope.needs_admin_dashboard = True
    elif step_id == "platforms":
        scope.platforms = _known(value, PLATFORMS)
    elif step_id == "hasAuth":
        scope.has_auth = value
    elif step_id == "hasPayments":
        scope.has_payments = value
    elif step_id == "hasRealtime":
        scope.has_realtime = value
    elif step_id == "compliance":
        selected = _known(value, COMPLIANCE_FLAGS)
        scope.compliance = ComplianceFlags(**{name: name in selected for name in COMPLIANCE_FLAGS})
    elif step_id == "expectedUsers":
        scope.expected_users = value
    elif step_id == "launchTimeline":
        scope.launch_timeline = value
    else:
        step_index(step_id)


def infer_scope_defaults(scope: ProjectScope) -> None:
    """Fill in flags implied by the other answers once scoping is done."""
    if scope.target_audience == "businesses":
        scope.needs_team_features = True

    if scope.expected_users in ("large", "enterprise"):
        scope.needs_analytics = True
        scope.needs_admin_dashboard = True

    if scope.is_full_business:
        scope.needs_marketing = True
        scope.needs_analytics = True
        scope.needs_admin_dashboard = True


@dataclass
class ScopingOutcome:
    """Result of answering one step."""
    step: ScopingStep
    value: Any
    next_step: Optional[ScopingStep] = None
    decision: Optional[Decision] = None

    @property
    def complete(self) -> bool:
        return self.next_step is None


class ScopingWizard:
    """Drives the scope record and, on completion, the phase machine."""

    def __init__(self, scope: ProjectScope, machine: PhaseStateMachine, decisions: DecisionLog):
        self.scope = scope
        self.machine = machine
        self.decisions = decisions

    @property
    def is_complete(self) -> bool:
        return self.machine.gate(Phase.SCOPING).is_passed

    def answer(self, step_id: str, answer: Any) -> ScopingOutcome:
        """
        Record an answer and return the next step or the completion result.

        Raises:
            UnknownStepError: step_id is not one of the nine steps
            PreconditionError: scoping has already been completed
        """
        index = step_index(step_id)
        if self.is_complete:
            raise PreconditionError(
                "Scoping is already complete; the scope can no longer change.",
                hint="Use `engineering_status` to see the current phase.",
            )

        step = SCOPING_STEPS[index]
        value = parse_answer(step, answer)
        apply_answer(self.scope, step.id, value)
        self.machine.touch()

        if index + 1 < len(SCOPING_STEPS):
            return ScopingOutcome(step=step, value=value, next_step=SCOPING_STEPS[index + 1])

        return ScopingOutcome(step=step, value=value, decision=self._complete())

    def _complete(self) -> Decision:
        infer_scope_defaults(self.scope)
        self.machine.pass_gate(Phase.SCOPING, ["scope.json"], approved_by="auto")
        self.machine.set_phase(Phase.REQUIREMENTS, AgentRole.PM)
        return self.decisions.record(
            agent=AgentRole.ORCHESTRATOR,
            phase=Phase.SCOPING,
            decision="Project scope defined",
            reasoning=(
                f"Scope completed: {', '.join(self.scope.platforms) or 'no'} platforms, "
                f"{self.scope.target_audience} audience"
            ),
            alternatives=[],
            confidence=100,
            impact="high",
            reversible=True,
        )
