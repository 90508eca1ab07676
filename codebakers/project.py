"""
Project Aggregate
=================

One engineering build: identity, scope, detected stack, phase state,
decisions, dependency graph and artifacts.

The whole aggregate is loaded at the start of a command and saved at the end.
Sub-structures stay typed in memory and are flattened to plain dicts only by
``to_dict`` for the persistence layer.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from codebakers.artifact_store import ArtifactStore
from codebakers.decision import DecisionLog
from codebakers.dependency_graph import DependencyGraph
from codebakers.phases import PhaseStateMachine
from codebakers.scoping import ProjectScope, ScopingWizard
from codebakers.stack import StackConfig


@dataclass
class Project:
    """Project aggregate root."""
    id: str
    key: str
    name: str
    description: str = ""
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    scope: ProjectScope = field(default_factory=ProjectScope)
    stack: StackConfig = field(default_factory=StackConfig)
    state: PhaseStateMachine = field(default_factory=PhaseStateMachine)
    decisions: DecisionLog = field(default_factory=DecisionLog)
    graph: DependencyGraph = field(default_factory=DependencyGraph)
    artifacts: ArtifactStore = field(default_factory=ArtifactStore)

    # Optimistic concurrency token: the version this copy was loaded at
    version: int = 0

    @classmethod
    def create(
        cls,
        key: str,
        name: str,
        description: str = "",
        stack: Optional[StackConfig] = None,
    ) -> "Project":
        return cls(
            id=uuid.uuid4().hex[:16],
            key=key,
            name=name,
            description=description or "",
            stack=stack or StackConfig(),
        )

    @property
    def progress(self) -> int:
        return self.state.progress

    @property
    def last_activity(self) -> str:
        return self.state.last_activity

    @property
    def current_phase(self):
        return self.state.current_phase

    @property
    def current_agent(self):
        return self.state.current_agent

    def wizard(self) -> ScopingWizard:
        return ScopingWizard(self.scope, self.state, self.decisions)

    def summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "current_phase": self.state.current_phase.value,
            "current_agent": self.state.current_agent.value,
            "progress": self.progress,
            "graph": {"nodes": len(self.graph.nodes), "edges": len(self.graph.edges)},
            "decisions": len(self.decisions),
            "artifacts": self.artifacts.list(),
            "last_activity": self.last_activity,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "key": self.key,
            "name": self.name,
            "description": self.description,
            "created_at": self.created_at,
            "scope": self.scope.to_dict(),
            "stack": self.stack.to_dict(),
            "state": self.state.to_dict(),
            "decisions": self.decisions.to_list(),
            "graph": self.graph.to_dict(),
            "artifacts": self.artifacts.to_dict(),
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Project":
        return cls(
            id=data["id"],
            key=data["key"],
            name=data["name"],
            description=data.get("description") or "",
            created_at=data.get("created_at") or datetime.now(timezone.utc).isoformat(),
            scope=ProjectScope.from_dict(data.get("scope")),
            stack=StackConfig.from_dict(data.get("stack")),
            state=PhaseStateMachine.from_dict(data.get("state") or {}),
            decisions=DecisionLog.from_list(data.get("decisions")),
            graph=DependencyGraph.from_dict(data.get("graph")),
            artifacts=ArtifactStore.from_dict(data.get("artifacts")),
            version=int(data.get("version") or 0),
        )
