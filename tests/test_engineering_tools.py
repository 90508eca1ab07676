"""
Tests for engineering_tools.py - MCP tools for the engineering workflow.
"""

import asyncio
import shutil
import tempfile
from pathlib import Path

import pytest

from codebakers import engineering_tools
from codebakers.config import CodeBakersConfig
from codebakers.engineering_tools import (
    ENGINEERING_TOOLS,
    create_engineering_tools_server,
    engineering_advance,
    engineering_artifact,
    engineering_decision,
    engineering_gate,
    engineering_graph_add,
    engineering_graph_view,
    engineering_impact,
    engineering_scope,
    engineering_start,
    engineering_status,
)
from codebakers.persistence import InMemoryProjectRepository


@pytest.fixture
def temp_project_dir():
    """Create a temporary project directory wired into the tools module."""
    tmp_dir = Path(tempfile.mkdtemp())
    create_engineering_tools_server(
        tmp_dir,
        config=CodeBakersConfig(storage="memory", project_key="acme"),
        repository=InMemoryProjectRepository(),
    )
    yield tmp_dir
    engineering_tools._project_dir = None
    engineering_tools._config = None
    engineering_tools._repository = None
    shutil.rmtree(tmp_dir)


def text_of(result):
    return result["content"][0]["text"]


class TestServer:
    def test_tool_names(self):
        assert len(ENGINEERING_TOOLS) == 10
        assert all(name.startswith("mcp__engineering__engineering_") for name in ENGINEERING_TOOLS)

    def test_create_server(self, temp_project_dir):
        server = create_engineering_tools_server(temp_project_dir)
        assert server["name"] == "engineering"
        assert engineering_tools._project_dir == temp_project_dir


class TestToolFlow:
    def test_status_without_project(self, temp_project_dir):
        result = asyncio.run(engineering_status.handler({}))
        assert result["is_error"] is True
        assert "engineering_start" in text_of(result)

    def test_start_and_scope(self, temp_project_dir):
        result = asyncio.run(engineering_start.handler({"projectName": "Acme", "description": "a CRM"}))
        assert "is_error" not in result
        assert "Who is this for?" in text_of(result)

        result = asyncio.run(engineering_scope.handler({"stepId": "audience", "answer": "businesses"}))
        assert "Is this a full business product?" in text_of(result)

        result = asyncio.run(engineering_scope.handler({"stepId": "launchTimeline", "answer": "weeks"}))
        assert "Scoping Complete" in text_of(result)

        status = text_of(asyncio.run(engineering_status.handler({})))
        assert "Progress: 9%" in status
        assert "Requirements" in status

    def test_gate_and_advance(self, temp_project_dir):
        asyncio.run(engineering_start.handler({"projectName": "Acme"}))
        asyncio.run(engineering_scope.handler({"stepId": "launchTimeline", "answer": "asap"}))

        blocked = asyncio.run(engineering_advance.handler({}))
        assert blocked["is_error"] is True

        asyncio.run(engineering_artifact.handler({"action": "save", "name": "prd.md", "content": "# PRD"}))
        passed = asyncio.run(engineering_gate.handler({"action": "pass", "artifacts": ["prd.md"]}))
        assert "Gate passed for requirements" in text_of(passed)

        advanced = asyncio.run(engineering_advance.handler({}))
        assert "Architecture" in text_of(advanced)

        decision = asyncio.run(engineering_decision.handler({
            "agent": "architect",
            "decision": "Use Postgres",
            "reasoning": "Relational data",
            "confidence": 90,
            "impact": "high",
        }))
        assert "D-002" in text_of(decision)

    def test_graph_tools(self, temp_project_dir):
        asyncio.run(engineering_start.handler({"projectName": "Acme"}))
        asyncio.run(engineering_graph_add.handler({
            "nodeType": "schema", "name": "users", "filePath": "src/db/users.ts",
        }))
        added = asyncio.run(engineering_graph_add.handler({
            "nodeType": "api", "name": "users-route", "filePath": "src/api/users.ts",
            "dependsOn": ["src/db/users.ts", "src/db/unknown.ts"],
        }))
        assert "1 edges added" in text_of(added)
        assert "src/db/unknown.ts" in text_of(added)

        impact = text_of(asyncio.run(engineering_impact.handler({"filePath": "src/db/users.ts"})))
        assert "Directly Affected (1)" in impact
        assert "LOW" in impact

        view = text_of(asyncio.run(engineering_graph_view.handler({"focusFile": "src/db/users.ts"})))
        assert "Used By (1)" in view
