#!/usr/bin/env python
"""
Engineering CLI
===============

Command-line driver for the engineering workflow. Every subcommand maps onto
one orchestrator command and renders its markdown summary in the terminal.

Usage:
    python -m codebakers start "Acme" --description "a CRM"
    python -m codebakers scope audience businesses
    python -m codebakers scope platforms web,api
    python -m codebakers status
    python -m codebakers gate pass --artifact prd.md
    python -m codebakers advance
    python -m codebakers graph-add schema users src/db/schema.ts
    python -m codebakers impact src/db/schema.ts
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from codebakers.config import CodeBakersConfig
from codebakers.orchestrator import EngineeringOrchestrator, describe_phase
from codebakers.output import (
    console,
    print_error,
    print_info,
    print_progress_bar,
    print_result,
    print_warning,
    setup_rich_logging,
)
from codebakers.persistence import create_repository
from codebakers.phases import PHASE_ORDER
from codebakers.stack import project_key

load_dotenv()


async def _run(args: argparse.Namespace, command: str, payload: dict[str, Any]):
    config = CodeBakersConfig.load(args.project_dir)
    repository = await create_repository(config, args.project_dir)
    key = config.project_key or project_key(args.project_dir)
    orchestrator = EngineeringOrchestrator(repository, key, args.project_dir, config)
    return await orchestrator.execute(command, payload)


def _execute(args: argparse.Namespace, command: str, payload: dict[str, Any]) -> int:
    result = asyncio.run(_run(args, command, payload))
    print_result(result)
    if result.is_error and result.data.get("retryable"):
        print_warning("The project changed while this command ran. Run it again.")
    return 1 if result.is_error else 0


def cmd_start(args: argparse.Namespace) -> int:
    """Start a new engineering project."""
    return _execute(args, "start", {"projectName": args.name, "description": args.description})


def cmd_scope(args: argparse.Namespace) -> int:
    """Answer one scoping question."""
    return _execute(args, "scope", {"stepId": args.step_id, "answer": args.answer})


def cmd_status(args: argparse.Namespace) -> int:
    result = asyncio.run(_run(args, "status", {}))
    print_result(result)
    if result.is_error:
        return 1
    print_progress_bar(result.data["project"]["progress"])
    return 0


def cmd_advance(args: argparse.Namespace) -> int:
    return _execute(args, "advance", {"artifacts": args.artifact or None})


def cmd_gate(args: argparse.Namespace) -> int:
    payload = {"action": args.action, "artifacts": args.artifact or None, "reason": args.reason}
    return _execute(args, "gate", payload)


def cmd_artifact(args: argparse.Namespace) -> int:
    """Save, get or list artifacts. Save reads content from --file or --content."""
    content = args.content
    if args.action == "save" and args.file is not None:
        try:
            content = args.file.read_text(encoding="utf-8")
        except OSError as e:
            print_error(f"Could not read {args.file}: {e}")
            return 1
    return _execute(args, "artifact", {"action": args.action, "name": args.name, "content": content})


def cmd_decision(args: argparse.Namespace) -> int:
    payload = {
        "agent": args.agent,
        "decision": args.decision,
        "reasoning": args.reasoning,
        "alternatives": args.alternative or None,
        "confidence": args.confidence,
        "impact": args.impact,
    }
    return _execute(args, "decision", payload)


def cmd_graph_add(args: argparse.Namespace) -> int:
    payload = {
        "nodeType": args.node_type,
        "name": args.name,
        "filePath": args.file_path,
        "dependsOn": args.depends_on or None,
        "dependencyTypes": args.dependency_type or None,
    }
    return _execute(args, "graph_add", payload)


def cmd_impact(args: argparse.Namespace) -> int:
    return _execute(args, "impact", {"filePath": args.file_path})


def cmd_graph_view(args: argparse.Namespace) -> int:
    return _execute(args, "graph_view", {"focusFile": args.focus})


def cmd_phases(args: argparse.Namespace) -> int:
    """List the eleven phases in order."""
    print_info("Each phase gate must pass before the project can advance.")
    for i, phase in enumerate(PHASE_ORDER, start=1):
        console.print(f"[cb.number]{i:2d}.[/] {describe_phase(phase)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codebakers",
        description="CodeBakers Engineering - Drive a project through scoping and phase gates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start a project in the current directory
  codebakers start "Acme" --description "a CRM"

  # Answer scoping questions
  codebakers scope audience businesses
  codebakers scope platforms '["web", "api"]'

  # Pass the current gate and move on
  codebakers gate pass --artifact prd.md
  codebakers advance

  # Track files and check what a change would affect
  codebakers graph-add schema users src/db/schema.ts
  codebakers graph-add api users-route src/app/api/users/route.ts --depends-on src/db/schema.ts
  codebakers impact src/db/schema.ts
        """,
    )
    parser.add_argument(
        "--project-dir", "-p",
        type=Path,
        default=Path.cwd(),
        help="Project directory (default: current directory)",
    )
    parser.add_argument("--log-level", default=None, help="Override CODEBAKERS_LOG_LEVEL")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # start command
    start_parser = subparsers.add_parser("start", help="Start a new engineering project")
    start_parser.add_argument("name", help="Project name")
    start_parser.add_argument("--description", "-d", default="", help="What you're building")
    start_parser.set_defaults(func=cmd_start)

    # scope command
    scope_parser = subparsers.add_parser("scope", help="Answer a scoping question")
    scope_parser.add_argument("step_id", help="Scoping step id, e.g. audience or platforms")
    scope_parser.add_argument("answer", help="Answer value")
    scope_parser.set_defaults(func=cmd_scope)

    # status command
    status_parser = subparsers.add_parser("status", help="Show phase, gates and progress")
    status_parser.set_defaults(func=cmd_status)

    # advance command
    advance_parser = subparsers.add_parser("advance", help="Advance to the next phase")
    advance_parser.add_argument("--artifact", action="append", help="Artifact produced (repeatable)")
    advance_parser.set_defaults(func=cmd_advance)

    # gate command
    gate_parser = subparsers.add_parser("gate", help="Pass or fail the current gate")
    gate_parser.add_argument("action", choices=["pass", "fail"])
    gate_parser.add_argument("--artifact", action="append", help="Artifact name (repeatable)")
    gate_parser.add_argument("--reason", help="Why the gate failed")
    gate_parser.set_defaults(func=cmd_gate)

    # artifact command
    artifact_parser = subparsers.add_parser("artifact", help="Save, get or list artifacts")
    artifact_parser.add_argument("action", choices=["save", "get", "list"])
    artifact_parser.add_argument("name", nargs="?", help="Artifact name, e.g. prd.md")
    artifact_parser.add_argument("--content", help="Artifact content")
    artifact_parser.add_argument("--file", type=Path, help="Read artifact content from a file")
    artifact_parser.set_defaults(func=cmd_artifact)

    # decision command
    decision_parser = subparsers.add_parser("decision", help="Record a decision")
    decision_parser.add_argument("agent", help="Agent role, e.g. architect")
    decision_parser.add_argument("decision", help="What was decided")
    decision_parser.add_argument("reasoning", help="Why")
    decision_parser.add_argument("--alternative", action="append", help="Alternative considered (repeatable)")
    decision_parser.add_argument("--confidence", type=float, help="0-100 (default: 80)")
    decision_parser.add_argument("--impact", choices=["low", "medium", "high", "critical"])
    decision_parser.set_defaults(func=cmd_decision)

    # graph-add command
    graph_add_parser = subparsers.add_parser("graph-add", help="Add a file to the dependency graph")
    graph_add_parser.add_argument(
        "node_type", choices=["schema", "api", "component", "service", "page", "util", "config"],
    )
    graph_add_parser.add_argument("name", help="Display name")
    graph_add_parser.add_argument("file_path", help="File path")
    graph_add_parser.add_argument("--depends-on", action="append", help="Dependency file path (repeatable)")
    graph_add_parser.add_argument(
        "--dependency-type", action="append",
        help="Edge type for the matching --depends-on (default: import)",
    )
    graph_add_parser.set_defaults(func=cmd_graph_add)

    # impact command
    impact_parser = subparsers.add_parser("impact", help="Show what a change to a file affects")
    impact_parser.add_argument("file_path")
    impact_parser.set_defaults(func=cmd_impact)

    # graph-view command
    graph_view_parser = subparsers.add_parser("graph-view", help="Show the dependency graph")
    graph_view_parser.add_argument("--focus", help="Only show this file's dependencies and dependents")
    graph_view_parser.set_defaults(func=cmd_graph_view)

    # phases command
    phases_parser = subparsers.add_parser("phases", help="List the engineering phases")
    phases_parser.set_defaults(func=cmd_phases)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    config = CodeBakersConfig.load(args.project_dir)
    if args.log_level:
        config.log_level = args.log_level
    setup_rich_logging(config.log_level_value)

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
