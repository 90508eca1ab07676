"""
Custom MCP Tools for the Engineering Workflow
=============================================

These tools let the agent drive a project through scoping, the eleven
phases and their gates, record decisions, save artifacts and query the
dependency graph.

Each call builds a fresh EngineeringOrchestrator against the shared
repository, so project state is always read from storage.
"""

from pathlib import Path
from typing import Any, Optional

from claude_code_sdk import tool, create_sdk_mcp_server, McpSdkServerConfig

from codebakers.config import CodeBakersConfig
from codebakers.orchestrator import EngineeringOrchestrator
from codebakers.persistence import ProjectRepository, create_repository
from codebakers.stack import project_key

# Global project directory - set when server is created
_project_dir: Path | None = None

# Global config and repository - repository is created on first use if not given
_config: Optional[CodeBakersConfig] = None
_repository: Optional[ProjectRepository] = None


async def _orchestrator() -> EngineeringOrchestrator:
    global _config, _repository
    project_dir = _project_dir or Path.cwd()
    if _config is None:
        _config = CodeBakersConfig.load(project_dir)
    if _repository is None:
        _repository = await create_repository(_config, project_dir)
    key = _config.project_key or project_key(project_dir)
    return EngineeringOrchestrator(_repository, key, project_dir, _config)


async def _run(command: str, args: dict[str, Any]) -> dict[str, Any]:
    orchestrator = await _orchestrator()
    result = await orchestrator.execute(command, args)
    return result.to_tool_response()


@tool(
    "engineering_start",
    "Start a new engineering project. Detects the stack and begins the scoping wizard.",
    {
        "type": "object",
        "properties": {
            "projectName": {"type": "string", "description": "Name of the project"},
            "description": {"type": "string", "description": "Brief description of what you're building"},
        },
        "required": ["projectName"],
    }
)
async def engineering_start(args: dict[str, Any]) -> dict[str, Any]:
    """Start a project and return the first scoping question."""
    return await _run("start", args)


@tool(
    "engineering_scope",
    "Answer a scoping wizard question. Returns the next question, or the scope summary when done.",
    {
        "type": "object",
        "properties": {
            "stepId": {
                "type": "string",
                "description": "Step: audience, isFullBusiness, platforms, hasAuth, hasPayments, "
                               "hasRealtime, compliance, expectedUsers, launchTimeline",
            },
            "answer": {
                "type": "string",
                "description": "Answer value. yes/no for booleans, JSON array or comma list for multi-select",
            },
        },
        "required": ["stepId", "answer"],
    }
)
async def engineering_scope(args: dict[str, Any]) -> dict[str, Any]:
    return await _run("scope", args)


@tool(
    "engineering_status",
    "Show the current phase, gate statuses, progress and project metrics.",
    {}
)
async def engineering_status(args: dict[str, Any]) -> dict[str, Any]:
    return await _run("status", args)


@tool(
    "engineering_advance",
    "Advance to the next phase. The current phase gate must have passed.",
    {
        "type": "object",
        "properties": {
            "artifacts": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Artifact names produced in the current phase",
            },
        },
    }
)
async def engineering_advance(args: dict[str, Any]) -> dict[str, Any]:
    return await _run("advance", args)


@tool(
    "engineering_gate",
    "Pass or fail the gate of the current phase.",
    {
        "type": "object",
        "properties": {
            "action": {"type": "string", "enum": ["pass", "fail"]},
            "artifacts": {"type": "array", "items": {"type": "string"}},
            "reason": {"type": "string", "description": "Why the gate failed"},
        },
        "required": ["action"],
    }
)
async def engineering_gate(args: dict[str, Any]) -> dict[str, Any]:
    return await _run("gate", args)


@tool(
    "engineering_artifact",
    "Save, get or list project artifacts such as prd.md or tech-spec.md.",
    {
        "type": "object",
        "properties": {
            "action": {"type": "string", "enum": ["save", "get", "list"]},
            "name": {"type": "string", "description": "Artifact name, e.g. prd.md"},
            "content": {"type": "string", "description": "Artifact content (save only)"},
        },
        "required": ["action"],
    }
)
async def engineering_artifact(args: dict[str, Any]) -> dict[str, Any]:
    return await _run("artifact", args)


@tool(
    "engineering_decision",
    "Record an engineering decision with reasoning for the audit trail.",
    {
        "type": "object",
        "properties": {
            "agent": {
                "type": "string",
                "description": "orchestrator, pm, architect, engineer, qa, security, documentation or devops",
            },
            "decision": {"type": "string", "description": "What was decided"},
            "reasoning": {"type": "string", "description": "Why this choice was made"},
            "alternatives": {"type": "array", "items": {"type": "string"}},
            "confidence": {"type": "number", "description": "Confidence 0-100, default 80"},
            "impact": {"type": "string", "enum": ["low", "medium", "high", "critical"]},
        },
        "required": ["agent", "decision", "reasoning"],
    }
)
async def engineering_decision(args: dict[str, Any]) -> dict[str, Any]:
    """Append a decision to the project's log."""
    return await _run("decision", args)


@tool(
    "engineering_graph_add",
    "Add a file to the dependency graph along with the files it depends on.",
    {
        "type": "object",
        "properties": {
            "nodeType": {
                "type": "string",
                "enum": ["schema", "api", "component", "service", "page", "util", "config"],
            },
            "name": {"type": "string"},
            "filePath": {"type": "string"},
            "dependsOn": {
                "type": "array",
                "items": {"type": "string"},
                "description": "File paths this file depends on (must already be tracked)",
            },
            "dependencyTypes": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Edge type per dependsOn entry: import, api-call, db-query, event, config",
            },
        },
        "required": ["nodeType", "name", "filePath"],
    }
)
async def engineering_graph_add(args: dict[str, Any]) -> dict[str, Any]:
    return await _run("graph_add", args)


@tool(
    "engineering_impact",
    "Show every file affected by changing the given file, with a risk level.",
    {"filePath": str}
)
async def engineering_impact(args: dict[str, Any]) -> dict[str, Any]:
    return await _run("impact", args)


@tool(
    "engineering_graph_view",
    "Show the dependency graph, or the dependencies and dependents of one file.",
    {
        "type": "object",
        "properties": {
            "focusFile": {"type": "string", "description": "Only show this file's neighbourhood"},
        },
    }
)
async def engineering_graph_view(args: dict[str, Any]) -> dict[str, Any]:
    return await _run("graph_view", args)


ENGINEERING_TOOLS = [
    "mcp__engineering__engineering_start",
    "mcp__engineering__engineering_scope",
    "mcp__engineering__engineering_status",
    "mcp__engineering__engineering_advance",
    "mcp__engineering__engineering_gate",
    "mcp__engineering__engineering_artifact",
    "mcp__engineering__engineering_decision",
    "mcp__engineering__engineering_graph_add",
    "mcp__engineering__engineering_impact",
    "mcp__engineering__engineering_graph_view",
]


def create_engineering_tools_server(
    project_dir: Path,
    config: Optional[CodeBakersConfig] = None,
    repository: Optional[ProjectRepository] = None,
) -> McpSdkServerConfig:
    global _project_dir, _config, _repository
    _project_dir = project_dir
    _config = config
    _repository = repository
    return create_sdk_mcp_server(
        name="engineering",
        version="1.0.0",
        tools=[
            engineering_start,
            engineering_scope,
            engineering_status,
            engineering_advance,
            engineering_gate,
            engineering_artifact,
            engineering_decision,
            engineering_graph_add,
            engineering_impact,
            engineering_graph_view,
        ]
    )
