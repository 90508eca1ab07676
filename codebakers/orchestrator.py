"""
Engineering Orchestrator
========================

Entry point for every caller (MCP tools, CLI, HTTP). Each command loads the
project aggregate, applies one logical change, saves it once and returns a
``CommandResult`` with a markdown summary and structured data.

An orchestrator is cheap to build and holds no project state between
commands, so callers create one per request or session:

    orchestrator = EngineeringOrchestrator(repository, project_key(project_dir))
    result = await orchestrator.execute("engineering_status", {})
"""

import inspect
import logging
import re
from pathlib import Path
from typing import Any, Optional

from codebakers import responses
from codebakers.config import CodeBakersConfig
from codebakers.errors import (
    EngineeringError,
    InvalidArgumentError,
    NoProjectError,
    NotFoundError,
)
from codebakers.persistence import ProjectRepository
from codebakers.phases import phase_config
from codebakers.project import Project
from codebakers.responses import CommandResult
from codebakers.risk import analyze_impact
from codebakers.scoping import first_step
from codebakers.stack import detect_stack

logger = logging.getLogger(__name__)

COMMANDS = (
    "start",
    "scope",
    "status",
    "advance",
    "gate",
    "artifact",
    "decision",
    "graph_add",
    "impact",
    "graph_view",
)

GATE_ACTIONS = ("pass", "fail")
ARTIFACT_ACTIONS = ("save", "get", "list")


def _snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _string_list(value: Any, argument: str) -> Optional[list[str]]:
    """Accept a list of strings, or a single string as a one-item list."""
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)) and all(isinstance(item, str) for item in value):
        return list(value)
    raise InvalidArgumentError(
        f"{argument} must be a list of strings, got {value!r}",
        hint=f"Pass {argument} as a JSON array, e.g. [\"a\", \"b\"].",
    )


def normalize_command(command: str) -> str:
    """Strip the ``engineering_`` prefix and MCP qualification from a command name."""
    name = command.rsplit("__", 1)[-1]
    if name.startswith("engineering_"):
        name = name[len("engineering_"):]
    return name


class EngineeringOrchestrator:
    """Runs engineering commands against one project."""

    def __init__(
        self,
        repository: ProjectRepository,
        project_key: str,
        project_dir: Optional[Path] = None,
        config: Optional[CodeBakersConfig] = None,
    ):
        self.repository = repository
        self.project_key = project_key
        self.project_dir = Path(project_dir) if project_dir else None
        self.config = config or CodeBakersConfig()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _require_project(self) -> Project:
        project = await self.repository.load(self.project_key)
        if project is None:
            raise NoProjectError()
        return project

    async def _save(self, project: Project) -> None:
        await self.repository.save(project)
        logger.debug("Saved project %s at version %d", project.key, project.version)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def start(self, project_name: str, description: str = "") -> CommandResult:
        if not project_name or not str(project_name).strip():
            raise InvalidArgumentError("A project name is required.")

        stack = detect_stack(self.project_dir) if self.project_dir else None
        project = Project.create(self.project_key, str(project_name).strip(), description, stack)

        existing = await self.repository.load(self.project_key)
        if existing is not None:
            logger.warning(
                "Replacing engineering project %r (%s) with %r",
                existing.name, self.project_key, project.name,
            )
            project.version = existing.version

        await self._save(project)
        logger.info("Started engineering project %r (%s)", project.name, project.key)

        step = first_step()
        return CommandResult(
            command="start",
            text=responses.format_start(project, step, replaced=existing is not None),
            data={"project": project.summary(), "next_step": step.to_dict()},
        )

    async def scope(self, step_id: str, answer: Any) -> CommandResult:
        project = await self._require_project()
        outcome = project.wizard().answer(step_id, answer)
        await self._save(project)

        if not outcome.complete:
            return CommandResult(
                command="scope",
                text=f"✓ Recorded: {outcome.step.id}\n\n---\n\n" + responses.format_step(outcome.next_step),
                data={"step": outcome.step.id, "value": outcome.value, "next_step": outcome.next_step.to_dict()},
            )

        logger.info("Scoping complete for %s", project.key)
        return CommandResult(
            command="scope",
            text=responses.format_scope_complete(project),
            data={
                "step": outcome.step.id,
                "value": outcome.value,
                "complete": True,
                "scope": project.scope.to_dict(),
                "stack": project.stack.to_dict(),
                "decision": outcome.decision.to_dict(),
                "project": project.summary(),
            },
        )

    async def status(self) -> CommandResult:
        project = await self._require_project()
        gates = {phase.value: gate.to_dict() for phase, gate in project.state.gates.items()}
        return CommandResult(
            command="status",
            text=responses.format_status(project),
            data={"project": project.summary(), "gates": gates, "decision_stats": project.decisions.stats()},
        )

    async def advance(self, artifacts: Optional[list[str]] = None) -> CommandResult:
        artifacts = _string_list(artifacts, "artifacts")
        project = await self._require_project()
        result = project.state.advance(artifacts)
        if result.moved or artifacts:
            await self._save(project)
        if result.moved:
            logger.info(
                "Project %s advanced %s -> %s",
                project.key, result.previous_phase.value, result.phase.value,
            )

        return CommandResult(
            command="advance",
            text=responses.format_advance(result),
            data={
                "previous_phase": result.previous_phase.value,
                "phase": result.phase.value,
                "agent": result.agent.value,
                "completed": result.completed,
                "progress": project.progress,
            },
        )

    async def gate(
        self,
        action: str,
        artifacts: Optional[list[str]] = None,
        reason: Optional[str] = None,
    ) -> CommandResult:
        if action not in GATE_ACTIONS:
            raise InvalidArgumentError(
                f"Unknown gate action: {action!r}",
                hint="Use action \"pass\" or \"fail\".",
            )
        artifacts = _string_list(artifacts, "artifacts")

        project = await self._require_project()
        phase = project.state.current_phase

        if action == "pass":
            gate = project.state.pass_gate(phase, artifacts)
            text = responses.format_gate_passed(phase, gate.artifacts)
        else:
            reason = reason or "No reason provided"
            gate = project.state.fail_gate(phase, reason)
            text = responses.format_gate_failed(phase, reason)

        await self._save(project)
        logger.info("Gate %s for %s: %s", phase.value, project.key, gate.status.value)
        return CommandResult(
            command="gate",
            text=text,
            data={"phase": phase.value, "gate": gate.to_dict(), "progress": project.progress},
        )

    async def artifact(
        self,
        action: str,
        name: Optional[str] = None,
        content: Optional[str] = None,
    ) -> CommandResult:
        if action not in ARTIFACT_ACTIONS:
            raise InvalidArgumentError(
                f"Unknown artifact action: {action!r}",
                hint="Use action \"save\", \"get\" or \"list\".",
            )

        project = await self._require_project()

        if action == "list":
            names = project.artifacts.list()
            return CommandResult(
                command="artifact",
                text=responses.format_artifact_list(names),
                data={"artifacts": names},
            )

        if not name:
            raise InvalidArgumentError(f"An artifact name is required to {action} an artifact.")

        if action == "get":
            stored = project.artifacts.get(name)
            if stored is None:
                raise NotFoundError(
                    f"Artifact not found: {name}",
                    hint="Use `engineering_artifact` with action \"list\" to see saved artifacts.",
                )
            return CommandResult(
                command="artifact",
                text=f"# {name}\n\n{stored}",
                data={"name": name, "content": stored},
            )

        project.artifacts.save(name, content)
        project.state.touch()
        await self._save(project)
        logger.debug("Saved artifact %s for %s", name, project.key)
        return CommandResult(
            command="artifact",
            text=f"✅ Artifact saved: {name}",
            data={"name": name, "size": len(content)},
        )

    async def decision(
        self,
        agent: str,
        decision: str,
        reasoning: str,
        alternatives: Optional[list[str]] = None,
        confidence: Optional[float] = None,
        impact: Optional[str] = None,
        reversible: bool = True,
    ) -> CommandResult:
        alternatives = _string_list(alternatives, "alternatives")
        project = await self._require_project()
        record = project.decisions.record(
            agent=agent,
            phase=project.state.current_phase,
            decision=decision,
            reasoning=reasoning,
            alternatives=alternatives,
            confidence=confidence,
            impact=impact,
            reversible=reversible,
        )
        project.state.touch()
        await self._save(project)
        logger.info("Recorded decision %s for %s", record.decision_id, project.key)
        return CommandResult(
            command="decision",
            text=responses.format_decision(record),
            data={"decision": record.to_dict()},
        )

    async def graph_add(
        self,
        node_type: str,
        name: str,
        file_path: str,
        depends_on: Optional[list[str]] = None,
        dependency_types: Optional[list[str]] = None,
    ) -> CommandResult:
        depends_on = _string_list(depends_on, "dependsOn")
        dependency_types = _string_list(dependency_types, "dependencyTypes")
        project = await self._require_project()
        graph = project.graph
        node = graph.add_node(node_type, name, file_path)

        dependency_types = dependency_types or []
        edges = []
        skipped: list[str] = []
        for i, dep_path in enumerate(depends_on or []):
            target = graph.find_node_by_path(dep_path)
            if target is None or target.id == node.id:
                skipped.append(dep_path)
                continue
            edge_type = dependency_types[i] if i < len(dependency_types) else "import"
            edges.append(graph.add_edge(node.id, target.id, edge_type))

        project.state.touch()
        await self._save(project)
        if skipped:
            logger.debug("Skipped untracked dependencies of %s: %s", file_path, skipped)

        return CommandResult(
            command="graph_add",
            text=responses.format_graph_add(node, len(edges), skipped),
            data={
                "node": node.to_dict(),
                "edges": [e.to_dict() for e in edges],
                "skipped": skipped,
            },
        )

    async def impact(self, file_path: str) -> CommandResult:
        project = await self._require_project()
        node = project.graph.find_node_by_path(file_path)
        if node is None:
            raise NotFoundError(
                f"File not in dependency graph: {file_path}",
                hint="Use `engineering_graph_add` to add it first.",
            )

        analysis = analyze_impact(node, project.graph.find_affected_nodes(node.id))
        return CommandResult(
            command="impact",
            text=responses.format_impact(analysis, self.config.impact_display_limit),
            data=analysis.to_dict(),
        )

    async def graph_view(self, focus_file: Optional[str] = None) -> CommandResult:
        project = await self._require_project()
        graph = project.graph

        focus = None
        if focus_file:
            focus = graph.find_node_by_path(focus_file)
            if focus is None:
                raise NotFoundError(
                    f"File not in dependency graph: {focus_file}",
                    hint="Use `engineering_graph_add` to add it first.",
                )

        data: dict[str, Any] = graph.to_dict()
        if focus is not None:
            data["focus"] = {
                "node": focus.to_dict(),
                "dependencies": [n.to_dict() for n in graph.dependencies_of(focus.id)],
                "dependents": [n.to_dict() for n in graph.dependents_of(focus.id)],
            }
        return CommandResult(
            command="graph_view",
            text=responses.format_graph_view(graph, focus),
            data=data,
        )

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def execute(self, command: str, args: Optional[dict[str, Any]] = None) -> CommandResult:
        """
        Run a command by name with a JSON-shaped argument object.

        Accepts ``engineering_status`` as well as ``status``, and camelCase
        argument names (``projectName``, ``stepId``, ``filePath``...).
        Engineering errors come back as an error result, never raised.
        """
        name = normalize_command(command)
        kwargs = {_snake_case(k): v for k, v in (args or {}).items()}

        try:
            if name not in COMMANDS:
                raise InvalidArgumentError(
                    f"Unknown command: {command}",
                    hint=f"Valid commands: {', '.join(COMMANDS)}",
                )
            handler = getattr(self, name)
            try:
                inspect.signature(handler).bind(**kwargs)
            except TypeError as e:
                raise InvalidArgumentError(f"Invalid arguments for {name}: {e}") from None
            return await handler(**kwargs)
        except EngineeringError as e:
            logger.debug("Command %s failed: %s", name, e.message)
            return responses.format_error(name, e)


def describe_phase(phase: str) -> str:
    """One-line description of a phase for help output."""
    config = phase_config(phase)
    optional = " (optional)" if config.can_skip else ""
    return f"{config.display_name} ({config.agent.value}): {config.description}{optional}"
