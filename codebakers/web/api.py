from pathlib import Path
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from codebakers.config import CodeBakersConfig
from codebakers.orchestrator import COMMANDS, EngineeringOrchestrator, normalize_command
from codebakers.persistence import ProjectRepository, create_repository
from codebakers.responses import CommandResult

router = APIRouter()

# Project directory served by this process - stack detection and storage live here
PROJECT_DIR = Path.cwd()

_config: Optional[CodeBakersConfig] = None
_repository: Optional[ProjectRepository] = None

ERROR_STATUS = {
    "no_project": 404,
    "not_found": 404,
    "conflict": 409,
    "precondition_failed": 409,
}


class CommandRequest(BaseModel):
    args: dict[str, Any] = Field(default_factory=dict)


class CommandResponse(BaseModel):
    command: str
    text: str
    data: dict[str, Any]


def get_config() -> CodeBakersConfig:
    global _config
    if _config is None:
        _config = CodeBakersConfig.load(PROJECT_DIR)
    return _config


async def get_repository(config: CodeBakersConfig = Depends(get_config)) -> ProjectRepository:
    global _repository
    if _repository is None:
        _repository = await create_repository(config, PROJECT_DIR)
    return _repository


def _respond(result: CommandResult) -> CommandResponse:
    if result.is_error:
        status = ERROR_STATUS.get(result.error or "", 400)
        raise HTTPException(status_code=status, detail=result.data)
    return CommandResponse(command=result.command, text=result.text, data=result.data)


@router.get("/engineering/commands")
async def list_commands():
    """Names accepted by the command endpoint."""
    return {"commands": list(COMMANDS)}


@router.get("/engineering/{project_key}/status", response_model=CommandResponse)
async def project_status(
    project_key: str,
    repository: ProjectRepository = Depends(get_repository),
    config: CodeBakersConfig = Depends(get_config),
):
    orchestrator = EngineeringOrchestrator(repository, project_key, PROJECT_DIR, config)
    return _respond(await orchestrator.execute("status"))


@router.post("/engineering/{project_key}/{command}", response_model=CommandResponse)
async def run_command(
    project_key: str,
    command: str,
    req: CommandRequest,
    repository: ProjectRepository = Depends(get_repository),
    config: CodeBakersConfig = Depends(get_config),
):
    """Run one engineering command against the project stored under project_key."""
    if normalize_command(command) not in COMMANDS:
        raise HTTPException(
            status_code=404,
            detail=f"Unknown command. Allowed: {', '.join(COMMANDS)}",
        )
    orchestrator = EngineeringOrchestrator(repository, project_key, PROJECT_DIR, config)
    return _respond(await orchestrator.execute(command, req.args))
