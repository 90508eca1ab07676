"""
Tests for the engineering CLI.
"""

import tempfile
from pathlib import Path

import pytest

from codebakers.cli.engineering_cli import build_parser, main
from codebakers.config import ENV_VARS


@pytest.fixture
def temp_project(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def run(project: Path, *argv: str) -> int:
    return main(["--project-dir", str(project), *argv])


class TestParser:
    def test_graph_add_arguments(self):
        args = build_parser().parse_args([
            "graph-add", "api", "users-route", "src/api/users.ts",
            "--depends-on", "src/db/users.ts", "--dependency-type", "db-query",
        ])
        assert args.node_type == "api"
        assert args.depends_on == ["src/db/users.ts"]
        assert args.dependency_type == ["db-query"]

    def test_no_command_prints_help(self, temp_project):
        assert main(["--project-dir", str(temp_project)]) == 0


class TestCommands:
    def test_workflow(self, temp_project):
        assert run(temp_project, "status") == 1
        assert run(temp_project, "start", "Acme", "--description", "a CRM") == 0
        assert run(temp_project, "scope", "platforms", "web,api") == 0
        assert run(temp_project, "scope", "launchTimeline", "weeks") == 0
        assert run(temp_project, "advance") == 1
        assert run(temp_project, "gate", "pass", "--artifact", "prd.md") == 0
        assert run(temp_project, "advance") == 0
        assert run(temp_project, "status") == 0

        state = temp_project / ".codebakers" / "engineering"
        assert len(list(state.glob("*.json"))) == 1

    def test_artifact_from_file(self, temp_project):
        run(temp_project, "start", "Acme")
        source = temp_project / "prd.md"
        source.write_text("# PRD")
        assert run(temp_project, "artifact", "save", "prd.md", "--file", str(source)) == 0
        assert run(temp_project, "artifact", "get", "prd.md") == 0
        assert run(temp_project, "artifact", "get", "missing.md") == 1

    def test_graph_and_impact(self, temp_project):
        run(temp_project, "start", "Acme")
        assert run(temp_project, "graph-add", "schema", "users", "src/db/users.ts") == 0
        assert run(temp_project, "graph-add", "api", "route", "src/api/users.ts",
                   "--depends-on", "src/db/users.ts") == 0
        assert run(temp_project, "impact", "src/db/users.ts") == 0
        assert run(temp_project, "impact", "src/nowhere.ts") == 1
        assert run(temp_project, "graph-view", "--focus", "src/api/users.ts") == 0

    def test_phases(self, temp_project, capsys):
        assert run(temp_project, "phases") == 0
        out = capsys.readouterr().out
        assert "Security Review" in out
        assert "Review code quality and patterns (optional)" in out
