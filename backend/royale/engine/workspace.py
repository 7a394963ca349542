"""Isolated per-submission build directories."""

import asyncio
import logging
import shutil
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, Optional

from royale.config import Settings, get_settings
from royale.engine.errors import WorkspaceError

logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = "player_"


@dataclass
class Workspace:
    """Filesystem handle scoped to one submission attempt."""

    root: Path
    player_id: str
    code_project_dir: Path
    test_project_dir: Path
    reference_file: Path
    test_file: Path
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    released: bool = False

    @property
    def test_results_dir(self) -> Path:
        return self.test_project_dir / "TestResults"

    @property
    def coverage_results_dir(self) -> Path:
        return self.test_project_dir / "CoverageResults"


class WorkspaceManager:
    """Creates workspaces from the project template and guarantees their deletion."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.root_dir = Path(self.settings.workspace_root)
        self.template_dir = Path(self.settings.template_dir)
        self._pending: dict[Path, asyncio.Task] = {}

    async def acquire(self, reference_code: str, test_code: str, player_id: str) -> Workspace:
        """
        Materialize a new workspace for one submission.

        Args:
            reference_code: Source of the program under test
            test_code: The player's test source
            player_id: Owner of the submission

        Returns:
            Workspace with both source files written

        Raises:
            WorkspaceError: Template copy or file write failed
        """
        return await asyncio.to_thread(self._create, reference_code, test_code, player_id)

    def _create(self, reference_code: str, test_code: str, player_id: str) -> Workspace:
        if not self.template_dir.is_dir():
            raise WorkspaceError(f"Project template not found: {self.template_dir}")

        try:
            self.root_dir.mkdir(parents=True, exist_ok=True)
            root = self._reserve_directory(player_id)
        except OSError as e:
            raise WorkspaceError(f"Could not create workspace: {e}") from e

        try:
            shutil.copytree(self.template_dir, root, dirs_exist_ok=True)

            code_project_dir = root / self.settings.code_project_name
            test_project_dir = root / self.settings.test_project_name
            reference_file = code_project_dir / self.settings.reference_file_name
            test_file = test_project_dir / self.settings.test_file_name

            reference_file.write_text(reference_code, encoding="utf-8")
            test_file.write_text(test_code, encoding="utf-8")
        except OSError as e:
            self._delete(root)
            raise WorkspaceError(f"Could not prepare workspace: {e}") from e

        logger.info(f"Workspace created for player {player_id}: {root}")
        return Workspace(
            root=root,
            player_id=player_id,
            code_project_dir=code_project_dir,
            test_project_dir=test_project_dir,
            reference_file=reference_file,
            test_file=test_file,
        )

    def _reserve_directory(self, player_id: str) -> Path:
        """Create a directory no other submission can own."""
        while True:
            candidate = self.root_dir / f"{WORKSPACE_PREFIX}{player_id}_{time.time_ns()}"
            try:
                candidate.mkdir()
                return candidate
            except FileExistsError:
                continue

    def release(self, workspace: Workspace, delay_seconds: float = 0) -> None:
        """
        Schedule deletion of a workspace.

        Deletion after ``delay_seconds`` keeps build logs around for late
        inspection; ``0`` deletes right away. Repeated calls are ignored.
        """
        if workspace.released:
            return
        workspace.released = True
        root = workspace.root

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._delete(root)
            return

        self._pending[root] = loop.create_task(self._delete_later(root, delay_seconds))

    async def _delete_later(self, root: Path, delay_seconds: float) -> None:
        try:
            if delay_seconds > 0:
                await asyncio.sleep(delay_seconds)
            await asyncio.to_thread(self._delete, root)
        finally:
            self._pending.pop(root, None)

    def _delete(self, root: Path) -> None:
        """Recursively remove a directory; failures are logged, never raised."""
        try:
            shutil.rmtree(root)
            logger.info(f"Workspace removed: {root}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to clean up {root}: {e}")

    @asynccontextmanager
    async def scoped(
        self, reference_code: str, test_code: str, player_id: str
    ) -> AsyncIterator[Workspace]:
        """Own a workspace for the duration of a block.

        Normal exit keeps the directory for the retention period; an
        exception deletes it immediately.
        """
        workspace = await self.acquire(reference_code, test_code, player_id)
        try:
            yield workspace
        except BaseException:
            self.release(workspace, delay_seconds=0)
            raise
        self.release(workspace, delay_seconds=self.settings.workspace_retention_seconds)

    async def sweep(self, max_age_seconds: Optional[float] = None) -> int:
        """Delete leftover workspaces older than ``max_age_seconds``.

        Returns:
            Number of directories removed
        """
        max_age = max_age_seconds if max_age_seconds is not None else self.settings.workspace_max_age_seconds
        if not self.root_dir.is_dir():
            return 0

        cutoff = time.time() - max_age
        removed = 0
        for path in self.root_dir.glob(f"{WORKSPACE_PREFIX}*"):
            if not path.is_dir() or path in self._pending:
                continue
            try:
                if path.stat().st_mtime > cutoff:
                    continue
            except FileNotFoundError:
                continue
            await asyncio.to_thread(self._delete, path)
            removed += 1

        if removed:
            logger.info(f"Workspace sweep removed {removed} stale directories")
        return removed

    async def run_sweeper(self) -> None:
        """Sweep periodically until cancelled."""
        interval = self.settings.workspace_sweep_interval_seconds
        while True:
            await asyncio.sleep(interval)
            try:
                await self.sweep()
            except OSError as e:
                logger.error(f"Workspace sweep failed: {e}")

    async def shutdown(self) -> None:
        """Cancel pending delayed deletions; the next sweep picks them up."""
        tasks = list(self._pending.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._pending.clear()

    @property
    def pending_count(self) -> int:
        """Number of workspaces waiting for their deletion timer."""
        return len(self._pending)
