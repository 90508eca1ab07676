"""
Project Persistence
===================

Load and save whole Project aggregates.

Every repository implements the same two calls:

    project = await repository.load(key)      # Project or None
    await repository.save(project)            # whole-record write

``save`` is a compare-and-swap on ``Project.version``: it succeeds only if
the stored version still equals the version the project was loaded at, then
increments it. A caller that lost a race gets ``ConflictError`` and must
reload and re-issue its command.
"""

import asyncio
import copy
import fcntl
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Protocol

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from codebakers.config import CodeBakersConfig
from codebakers.db.connection import init_db
from codebakers.db.models import EngineeringProjectModel
from codebakers.errors import ConflictError
from codebakers.project import Project

logger = logging.getLogger(__name__)

_LOCK_SUFFIX = ".lock"


class ProjectRepository(Protocol):
    async def load(self, key: str) -> Optional[Project]: ...

    async def save(self, project: Project) -> None: ...


def _conflict(key: str, expected: int, found: Optional[int]) -> ConflictError:
    logger.warning("Version conflict saving project %s: expected %s, found %s", key, expected, found)
    return ConflictError(
        f"Project {key} was modified by another caller (expected version {expected}, found {found}).",
        hint="Reload the project and re-issue the command.",
    )


# =============================================================================
# In-memory
# =============================================================================

class InMemoryProjectRepository:
    """Keeps serialized snapshots in a dict. Useful for tests and one-shot runs."""

    def __init__(self):
        self._records: dict[str, dict] = {}

    async def load(self, key: str) -> Optional[Project]:
        data = self._records.get(key)
        if data is None:
            return None
        return Project.from_dict(copy.deepcopy(data))

    async def save(self, project: Project) -> None:
        current = self._records.get(project.key)
        found = current["version"] if current else 0
        if found != project.version:
            raise _conflict(project.key, project.version, found)

        data = project.to_dict()
        data["version"] = project.version + 1
        self._records[project.key] = copy.deepcopy(data)
        project.version += 1


# =============================================================================
# JSON file
# =============================================================================

class JsonFileProjectRepository:
    """
    One JSON file per project under ``<project_dir>/<state_dir>/engineering/``.

    Writes go to a temp file that is then atomically renamed over the
    previous version, so a crash never leaves a half-written record. The
    read-compare-replace sequence holds an exclusive ``fcntl`` lock on a
    ``<key>.json.lock`` sidecar, so the CLI, the MCP server and the API can
    share one state directory.
    """

    def __init__(self, project_dir: Path, state_dir: str = ".codebakers"):
        self.root = Path(project_dir) / state_dir / "engineering"

    def _path(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def _lock_path(self, key: str) -> Path:
        return self.root / f"{key}.json{_LOCK_SUFFIX}"

    @contextmanager
    def _locked(self, key: str) -> Iterator[None]:
        lock_path = self._lock_path(key)
        lock_path.parent.mkdir(parents=True, exist_ok=True)
        with lock_path.open("a+", encoding="utf-8") as lock_handle:
            fcntl.flock(lock_handle.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_handle.fileno(), fcntl.LOCK_UN)

    def _read(self, key: str) -> Optional[dict]:
        path = self._path(key)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self, project: Project) -> None:
        with self._locked(project.key):
            current = self._read(project.key)
            found = current.get("version", 0) if current else 0
            if found != project.version:
                raise _conflict(project.key, project.version, found)

            data = project.to_dict()
            data["version"] = project.version + 1

            fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{project.key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp_name, self._path(project.key))
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise

            project.version += 1

    async def load(self, key: str) -> Optional[Project]:
        data = await asyncio.to_thread(self._read, key)
        return Project.from_dict(data) if data is not None else None

    async def save(self, project: Project) -> None:
        await asyncio.to_thread(self._write, project)


# =============================================================================
# SQL (SQLAlchemy async)
# =============================================================================

class SqlProjectRepository:
    """Stores each project as one row in ``engineering_projects``."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def load(self, key: str) -> Optional[Project]:
        async with self.session_maker() as session:
            result = await session.execute(
                select(EngineeringProjectModel).where(EngineeringProjectModel.project_key == key)
            )
            row = result.scalar_one_or_none()
            if row is None:
                return None
            return self._row_to_project(row)

    async def save(self, project: Project) -> None:
        values = self._project_to_values(project)
        values["version"] = project.version + 1

        async with self.session_maker() as session:
            if project.version == 0:
                session.add(EngineeringProjectModel(project_key=project.key, **values))
                try:
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    raise _conflict(project.key, 0, None) from None
            else:
                result = await session.execute(
                    update(EngineeringProjectModel)
                    .where(
                        EngineeringProjectModel.project_key == project.key,
                        EngineeringProjectModel.version == project.version,
                    )
                    .values(**values)
                )
                if result.rowcount != 1:
                    await session.rollback()
                    raise _conflict(project.key, project.version, None)
                await session.commit()

        project.version += 1

    def _project_to_values(self, project: Project) -> dict:
        data = project.to_dict()
        return {
            "project_id": data["id"],
            "name": data["name"],
            "description": data["description"],
            "created_at": data["created_at"],
            "current_phase": project.state.current_phase.value,
            "current_agent": project.state.current_agent.value,
            "progress": project.progress,
            "scope": data["scope"],
            "stack": data["stack"],
            "state": data["state"],
            "decisions": data["decisions"],
            "graph": data["graph"],
            "artifacts": data["artifacts"],
        }

    def _row_to_project(self, row: EngineeringProjectModel) -> Project:
        return Project.from_dict({
            "id": row.project_id,
            "key": row.project_key,
            "name": row.name,
            "description": row.description,
            "created_at": row.created_at,
            "scope": row.scope,
            "stack": row.stack,
            "state": row.state,
            "decisions": row.decisions,
            "graph": row.graph,
            "artifacts": row.artifacts,
            "version": row.version,
        })


async def create_repository(config: CodeBakersConfig, project_dir: Path) -> ProjectRepository:
    """Build the repository selected by ``config.storage``."""
    if config.storage == "memory":
        return InMemoryProjectRepository()
    if config.storage == "sqlite":
        database = await init_db(Path(project_dir), state_dir=config.state_dir)
        return SqlProjectRepository(database.session_maker)
    return JsonFileProjectRepository(Path(project_dir), state_dir=config.state_dir)
