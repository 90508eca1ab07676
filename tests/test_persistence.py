"""
Tests for Project Persistence
=============================

Every repository must round-trip the whole aggregate and reject stale saves.
"""

import asyncio
import fcntl
import json
import tempfile
import threading
from pathlib import Path

import pytest
import pytest_asyncio

from codebakers.config import CodeBakersConfig
from codebakers.db.connection import init_db
from codebakers.errors import ConflictError
from codebakers.persistence import (
    InMemoryProjectRepository,
    JsonFileProjectRepository,
    SqlProjectRepository,
    create_repository,
)
from codebakers.phases import Phase
from codebakers.project import Project


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def temp_project():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest_asyncio.fixture(params=["memory", "json", "sqlite"])
async def repository(request, temp_project):
    if request.param == "memory":
        yield InMemoryProjectRepository()
    elif request.param == "json":
        yield JsonFileProjectRepository(temp_project)
    else:
        database = await init_db(temp_project)
        yield SqlProjectRepository(database.session_maker)
        await database.dispose()


def sample_project(key="acme-key") -> Project:
    project = Project.create(key, "Acme", "a CRM")
    project.wizard().answer("platforms", "web,api")
    project.artifacts.save("prd.md", "# PRD")
    a = project.graph.add_node("schema", "users", "src/db/users.ts")
    b = project.graph.add_node("api", "users-route", "src/api/users.ts")
    project.graph.add_edge(b.id, a.id)
    project.decisions.record("architect", Phase.SCOPING, "Use Postgres", "Relational")
    return project


# =============================================================================
# Shared Repository Behaviour
# =============================================================================

class TestRepository:
    @pytest.mark.asyncio
    async def test_load_missing(self, repository):
        assert await repository.load("nothing-here") is None

    @pytest.mark.asyncio
    async def test_save_and_load_round_trip(self, repository):
        project = sample_project()
        await repository.save(project)
        assert project.version == 1

        loaded = await repository.load("acme-key")
        assert loaded is not None
        assert loaded.version == 1
        assert loaded.id == project.id
        assert loaded.name == "Acme"
        assert loaded.scope.platforms == ["web", "api"]
        assert loaded.artifacts.get("prd.md") == "# PRD"
        assert len(loaded.graph.edges) == 1
        assert loaded.decisions.list_decisions()[0].decision == "Use Postgres"
        assert loaded.state.current_phase == Phase.SCOPING

    @pytest.mark.asyncio
    async def test_successive_saves_bump_version(self, repository):
        project = sample_project()
        await repository.save(project)
        project.artifacts.save("tech-spec.md", "spec")
        await repository.save(project)
        assert project.version == 2

        loaded = await repository.load("acme-key")
        assert loaded.version == 2
        assert loaded.artifacts.list() == ["prd.md", "tech-spec.md"]

    @pytest.mark.asyncio
    async def test_stale_save_conflicts(self, repository):
        await repository.save(sample_project())

        first = await repository.load("acme-key")
        second = await repository.load("acme-key")

        first.artifacts.save("a.md", "from first")
        await repository.save(first)

        second.artifacts.save("b.md", "from second")
        with pytest.raises(ConflictError) as exc:
            await repository.save(second)
        assert exc.value.retryable

        stored = await repository.load("acme-key")
        assert stored.artifacts.get("a.md") == "from first"
        assert stored.artifacts.get("b.md") is None

    @pytest.mark.asyncio
    async def test_duplicate_create_conflicts(self, repository):
        await repository.save(sample_project())
        with pytest.raises(ConflictError):
            await repository.save(sample_project())

    @pytest.mark.asyncio
    async def test_mutation_after_load_is_isolated(self, repository):
        await repository.save(sample_project())
        loaded = await repository.load("acme-key")
        loaded.artifacts.save("unsaved.md", "x")
        again = await repository.load("acme-key")
        assert again.artifacts.get("unsaved.md") is None


# =============================================================================
# Backend Specifics
# =============================================================================

class TestJsonFileRepository:
    @pytest.mark.asyncio
    async def test_file_layout(self, temp_project):
        repository = JsonFileProjectRepository(temp_project)
        await repository.save(sample_project())

        path = temp_project / ".codebakers" / "engineering" / "acme-key.json"
        assert path.exists()
        data = json.loads(path.read_text())
        assert data["version"] == 1
        assert data["name"] == "Acme"
        assert not list(path.parent.glob("*.tmp"))

    def test_save_waits_for_file_lock(self, temp_project):
        repository = JsonFileProjectRepository(temp_project)
        project = sample_project()
        lock_path = temp_project / ".codebakers" / "engineering" / "acme-key.json.lock"
        lock_path.parent.mkdir(parents=True)

        with open(lock_path, "a+") as other_process:
            fcntl.flock(other_process.fileno(), fcntl.LOCK_EX)
            writer = threading.Thread(target=asyncio.run, args=(repository.save(project),))
            writer.start()
            writer.join(timeout=0.3)
            assert writer.is_alive()
            assert project.version == 0
            fcntl.flock(other_process.fileno(), fcntl.LOCK_UN)

        writer.join(timeout=5)
        assert not writer.is_alive()
        assert project.version == 1

    @pytest.mark.asyncio
    async def test_separate_instances_conflict(self, temp_project):
        await JsonFileProjectRepository(temp_project).save(sample_project())

        cli = JsonFileProjectRepository(temp_project)
        server = JsonFileProjectRepository(temp_project)
        from_cli = await cli.load("acme-key")
        from_server = await server.load("acme-key")

        from_cli.artifacts.save("a.md", "cli")
        await cli.save(from_cli)
        from_server.artifacts.save("b.md", "server")
        with pytest.raises(ConflictError):
            await server.save(from_server)

        stored = await JsonFileProjectRepository(temp_project).load("acme-key")
        assert stored.version == 2
        assert stored.artifacts.get("b.md") is None


class TestCreateRepository:
    @pytest.mark.asyncio
    async def test_backend_selection(self, temp_project):
        assert isinstance(
            await create_repository(CodeBakersConfig(storage="memory"), temp_project),
            InMemoryProjectRepository,
        )
        assert isinstance(
            await create_repository(CodeBakersConfig(storage="json"), temp_project),
            JsonFileProjectRepository,
        )

        repository = await create_repository(CodeBakersConfig(storage="sqlite"), temp_project)
        assert isinstance(repository, SqlProjectRepository)
        assert (temp_project / ".codebakers" / "engineering.db").exists()
        await repository.session_maker.kw["bind"].dispose()
