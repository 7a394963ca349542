"""Tests for per-submission workspaces."""

import asyncio

import pytest

from royale.config import Settings
from royale.engine.errors import WorkspaceError
from royale.engine.workspace import WorkspaceManager

from conftest import REFERENCE_CODE, TEST_CODE, settle


@pytest.fixture
def manager(engine_settings) -> WorkspaceManager:
    return WorkspaceManager(engine_settings)


@pytest.mark.asyncio
async def test_acquire_writes_sources(manager):
    """Test that the template is copied and both sources are written."""
    workspace = await manager.acquire(REFERENCE_CODE, TEST_CODE, "p1")

    assert workspace.root.name.startswith("player_p1_")
    assert workspace.reference_file.read_text() == REFERENCE_CODE
    assert workspace.test_file.read_text() == TEST_CODE
    assert (workspace.code_project_dir / "PlayerCode.csproj").is_file()
    assert (workspace.test_project_dir / "PlayerTests.csproj").is_file()


@pytest.mark.asyncio
async def test_concurrent_workspaces_never_share_a_root(manager):
    """Test that simultaneous submissions of one player get distinct roots."""
    workspaces = await asyncio.gather(
        *(manager.acquire(REFERENCE_CODE, TEST_CODE, "p1") for _ in range(10))
    )
    roots = {workspace.root for workspace in workspaces}
    assert len(roots) == 10


@pytest.mark.asyncio
async def test_release_deletes_once(manager):
    """Test that release removes the directory and ignores repeats."""
    workspace = await manager.acquire(REFERENCE_CODE, TEST_CODE, "p1")
    manager.release(workspace)
    manager.release(workspace)
    assert manager.pending_count == 1

    await settle(manager)
    assert not workspace.root.exists()
    assert manager.pending_count == 0


@pytest.mark.asyncio
async def test_scoped_deletes_immediately_on_error(tmp_path):
    """Test that a failing block removes the workspace without waiting."""
    settings = Settings(workspace_root=tmp_path / "ws", workspace_retention_seconds=3600)
    manager = WorkspaceManager(settings)

    with pytest.raises(RuntimeError):
        async with manager.scoped(REFERENCE_CODE, TEST_CODE, "p1") as workspace:
            raise RuntimeError("stage failed")

    await settle(manager)
    assert not workspace.root.exists()


@pytest.mark.asyncio
async def test_scoped_keeps_workspace_for_retention(tmp_path):
    """Test that a successful block keeps the directory until the timer fires."""
    settings = Settings(workspace_root=tmp_path / "ws", workspace_retention_seconds=3600)
    manager = WorkspaceManager(settings)

    async with manager.scoped(REFERENCE_CODE, TEST_CODE, "p1") as workspace:
        pass

    assert workspace.root.exists()
    assert manager.pending_count == 1

    await manager.shutdown()
    assert manager.pending_count == 0


@pytest.mark.asyncio
async def test_missing_template(tmp_path):
    """Test that a missing template is a workspace error."""
    settings = Settings(workspace_root=tmp_path / "ws", template_dir=tmp_path / "nope")
    manager = WorkspaceManager(settings)

    with pytest.raises(WorkspaceError) as exc_info:
        await manager.acquire(REFERENCE_CODE, TEST_CODE, "p1")
    assert exc_info.value.stage == "workspace"


@pytest.mark.asyncio
async def test_sweep_removes_stale_directories(manager):
    """Test that the sweep removes orphans older than the age limit."""
    workspace = await manager.acquire(REFERENCE_CODE, TEST_CODE, "p1")
    unrelated = manager.root_dir / "keep-me"
    unrelated.mkdir()

    assert await manager.sweep(max_age_seconds=3600) == 0
    assert await manager.sweep(max_age_seconds=-1) == 1
    assert not workspace.root.exists()
    assert unrelated.exists()
