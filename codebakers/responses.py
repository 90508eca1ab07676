"""
Command Responses
=================

Markdown summaries returned to the agent or operator for each command, and
the ``CommandResult`` envelope that carries them.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from codebakers.decision import Decision
from codebakers.dependency_graph import DependencyGraph, GraphNode
from codebakers.errors import EngineeringError
from codebakers.phases import PHASES, AdvanceResult, GateStatus, Phase, phase_config
from codebakers.project import Project
from codebakers.risk import RISK_ICONS, ImpactAnalysis
from codebakers.scoping import ScopingStep


GATE_ICONS = {
    GateStatus.PASSED: "✅",
    GateStatus.IN_PROGRESS: "\U0001F504",
    GateStatus.FAILED: "❌",
    GateStatus.SKIPPED: "⏭️",
    GateStatus.PENDING: "⬜",
}


@dataclass
class CommandResult:
    """What every orchestrator command returns."""
    command: str
    text: str
    data: dict[str, Any] = field(default_factory=dict)
    is_error: bool = False
    error: Optional[str] = None

    def to_tool_response(self) -> dict[str, Any]:
        """Shape used by MCP tool handlers."""
        response: dict[str, Any] = {"content": [{"type": "text", "text": self.text}]}
        if self.is_error:
            response["is_error"] = True
        return response

    def to_dict(self) -> dict[str, Any]:
        return {
            "command": self.command,
            "text": self.text,
            "data": self.data,
            "is_error": self.is_error,
            "error": self.error,
        }


def _yes_no(value: bool) -> str:
    return "Yes" if value else "No"


def format_error(command: str, error: EngineeringError) -> CommandResult:
    text = f"❌ {error.message}"
    if error.hint:
        text += f"\n\n*{error.hint}*"
    return CommandResult(
        command=command,
        text=text,
        data=error.to_dict(),
        is_error=True,
        error=error.code,
    )


# =============================================================================
# Scoping
# =============================================================================

def format_step(step: ScopingStep) -> str:
    lines = [f"## {step.question}", f"*{step.description}*", ""]
    if step.options:
        for opt in step.options:
            lines.append(f"- **{opt.value}**: {opt.label}")
        if step.kind == "multiple":
            lines.append("")
            lines.append("*Select multiple by providing a JSON array or comma-separated values*")
    elif step.kind == "boolean":
        lines.append("Answer: **yes** or **no**")
    lines.append("")
    lines.append(f'*Use `engineering_scope` with stepId="{step.id}" to answer.*')
    return "\n".join(lines)


def format_start(project: Project, step: ScopingStep, replaced: bool = False) -> str:
    lines = [f"# \U0001F3D7️ Engineering Build Started: {project.name}", ""]
    if replaced:
        lines.append("*The previous engineering project in this directory was replaced.*")
        lines.append("")
    lines += [
        "I'll guide you through a quick scoping wizard to understand what you're building.",
        "This ensures we build with the right architecture from the start.",
        "",
        "---",
        "",
        format_step(step),
    ]
    return "\n".join(lines)


def format_scope_complete(project: Project) -> str:
    scope = project.scope
    stack = project.stack
    compliance = ", ".join(c.upper() for c in scope.compliance.enabled()) or "None"
    lines = [
        "# ✅ Scoping Complete!",
        "",
        f"## Project: {project.name}",
        "",
        "### Scope Summary",
        f"- **Audience:** {scope.target_audience}",
        f"- **Platforms:** {', '.join(scope.platforms) or 'None'}",
        f"- **Auth:** {_yes_no(scope.has_auth)}",
        f"- **Payments:** {_yes_no(scope.has_payments)}",
        f"- **Realtime:** {_yes_no(scope.has_realtime)}",
        f"- **Full Business:** {_yes_no(scope.is_full_business)}",
        f"- **Admin Dashboard:** {_yes_no(scope.needs_admin_dashboard)}",
        f"- **Compliance:** {compliance}",
        f"- **Scale:** {scope.expected_users}",
        f"- **Timeline:** {scope.launch_timeline}",
        "",
        "### Detected Stack",
        f"- **Framework:** {stack.framework}",
        f"- **Database:** {stack.database}",
        f"- **ORM:** {stack.orm}",
        f"- **Auth:** {stack.auth}",
        f"- **UI:** {stack.ui}",
    ]
    if stack.payments:
        lines.append(f"- **Payments:** {stack.payments}")
    lines += [
        "",
        "---",
        "",
        "## \U0001F4CB Next Phase: Requirements",
        "",
        "The PM agent will now create a Product Requirements Document (PRD).",
        "This defines exactly what we're building before any code is written.",
        "",
        "*Save the PRD with `engineering_artifact`, then pass the gate with `engineering_gate`.*",
    ]
    return "\n".join(lines)


# =============================================================================
# Phases
# =============================================================================

def format_status(project: Project) -> str:
    state = project.state
    current = phase_config(state.current_phase)
    lines = [
        f"# \U0001F3D7️ Engineering Status: {project.name}",
        "",
        f"## Progress: {project.progress}%",
        "",
        f"### Current Phase: {current.display_name}",
        f"**Agent:** {state.current_agent.value}",
        "",
        "### Phase Status",
        "| Phase | Status |",
        "|-------|--------|",
    ]
    for config in PHASES:
        gate = state.gate(config.phase)
        marker = " ← Current" if config.phase == state.current_phase else ""
        status = gate.status.value
        if gate.status == GateStatus.FAILED and gate.failed_reason:
            status += f" ({gate.failed_reason})"
        name = f"{config.display_name} (optional)" if config.can_skip else config.display_name
        lines.append(f"| {GATE_ICONS[gate.status]} {name} | {status}{marker} |")

    artifacts = project.artifacts.list()
    lines += [
        "",
        "### Metrics",
        f"- **Dependency Graph:** {len(project.graph.nodes)} nodes, {len(project.graph.edges)} edges",
        f"- **Decisions Recorded:** {len(project.decisions)}",
        f"- **Artifacts:** {', '.join(artifacts) if artifacts else 'None yet'}",
        "",
        "---",
        f"*Last activity: {state.last_activity}*",
    ]
    return "\n".join(lines)


def format_advance(result: AdvanceResult) -> str:
    if result.completed:
        return "\U0001F389 All phases complete! Project is ready for launch."
    config = phase_config(result.phase)
    return "\n".join([
        f"# ✅ Advanced to {config.display_name} Phase",
        "",
        f"**Agent:** {result.agent.value}",
        "",
        f"**Goal:** {config.description}",
        "",
        "Use `engineering_gate` to pass this phase when complete.",
    ])


def format_gate_passed(phase: Phase, artifacts: list[str]) -> str:
    return (
        f"✅ Gate passed for {phase.value} phase!\n\n"
        f"Artifacts: {', '.join(artifacts) if artifacts else 'None'}\n\n"
        f"Use `engineering_advance` to move to the next phase."
    )


def format_gate_failed(phase: Phase, reason: str) -> str:
    return (
        f"❌ Gate failed for {phase.value} phase.\n\n"
        f"Reason: {reason}\n\n"
        f"Resolve the issue and pass the gate again before advancing."
    )


# =============================================================================
# Artifacts and decisions
# =============================================================================

def format_artifact_list(names: list[str]) -> str:
    if not names:
        return "No artifacts saved yet."
    return "## Artifacts\n\n" + "\n".join(f"- {name}" for name in names)


def format_decision(decision: Decision) -> str:
    lines = [
        "# \U0001F4DD Decision Recorded",
        "",
        f"**ID:** {decision.decision_id}",
        f"**Agent:** {decision.agent}",
        f"**Phase:** {decision.phase}",
        f"**Decision:** {decision.decision}",
        "",
        f"**Reasoning:** {decision.reasoning}",
    ]
    if decision.alternatives:
        lines.append("")
        lines.append("**Alternatives Considered:**")
        lines.extend(f"- {alt}" for alt in decision.alternatives)
    lines += [
        "",
        f"**Confidence:** {decision.confidence}%",
        f"**Impact:** {decision.impact}",
    ]
    return "\n".join(lines)


# =============================================================================
# Dependency graph
# =============================================================================

def format_graph_add(node: GraphNode, edges_added: int, skipped: list[str]) -> str:
    lines = [
        "# ✅ Added to Dependency Graph",
        "",
        f"**Node:** {node.name} ({node.type})",
        f"**Path:** {node.file_path}",
        f"**Dependencies:** {edges_added} edges added",
    ]
    if skipped:
        lines.append("")
        lines.append("*Not yet tracked, no edge created:*")
        lines.extend(f"- {path}" for path in skipped)
    return "\n".join(lines)


def format_impact(analysis: ImpactAnalysis, display_limit: int = 10) -> str:
    node = analysis.node
    direct = analysis.affected.direct
    transitive = analysis.affected.transitive
    lines = [
        f"# \U0001F50D Impact Analysis: {node.name}",
        "",
        f"**File:** {node.file_path}",
        f"**Type:** {node.type}",
        f"**Risk Level:** {RISK_ICONS[analysis.risk]} {analysis.risk.label.upper()}",
        "",
    ]

    if direct:
        lines.append(f"## Directly Affected ({len(direct)})")
        lines.append("These files import or directly depend on this file:")
        lines.append("")
        lines.extend(f"- {n.label()}" for n in direct)
        lines.append("")

    if transitive:
        lines.append(f"## Transitively Affected ({len(transitive)})")
        lines.append("These files are indirectly affected through the dependency chain:")
        lines.append("")
        lines.extend(f"- {n.label()}" for n in transitive[:display_limit])
        if len(transitive) > display_limit:
            lines.append(f"... and {len(transitive) - display_limit} more")
        lines.append("")

    if analysis.is_safe:
        lines.append("No other files depend on this one. Changes are safe to make.")
    else:
        lines.append("## Recommendations")
        lines.extend(f"- {r}" for r in analysis.recommendations)
    return "\n".join(lines)


def _node_line(graph: DependencyGraph, node: GraphNode) -> list[str]:
    incoming = sum(1 for e in graph.edges if e.target_id == node.id)
    outgoing = sum(1 for e in graph.edges if e.source_id == node.id)
    return [f"- **{node.name}** - ↓{incoming} ↑{outgoing} deps", f"  {node.file_path}"]


def format_graph_view(graph: DependencyGraph, focus: Optional[GraphNode] = None) -> str:
    if not graph.nodes:
        return "Dependency graph is empty. Use `engineering_graph_add` to add nodes."

    if focus is not None:
        dependencies = graph.dependencies_of(focus.id)
        dependents = graph.dependents_of(focus.id)
        lines = [
            f"# \U0001F578️ Dependencies of {focus.name}",
            "",
            f"**File:** {focus.file_path}",
            f"**Type:** {focus.type}",
            "",
            f"## Depends On ({len(dependencies)})",
        ]
        lines.extend(f"- {n.label()}" for n in dependencies)
        if not dependencies:
            lines.append("- Nothing")
        lines += ["", f"## Used By ({len(dependents)})"]
        lines.extend(f"- {n.label()}" for n in dependents)
        if not dependents:
            lines.append("- Nothing")
        return "\n".join(lines)

    lines = [
        "# \U0001F578️ Dependency Graph",
        "",
        f"**Nodes:** {len(graph.nodes)} | **Edges:** {len(graph.edges)}",
        "",
    ]
    for node_type, nodes in graph.nodes_by_type().items():
        lines.append(f"## {node_type.capitalize()}s ({len(nodes)})")
        for node in nodes:
            lines.extend(_node_line(graph, node))
        lines.append("")
    return "\n".join(lines).rstrip()
