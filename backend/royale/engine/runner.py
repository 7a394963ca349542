"""Restore, build and test stages of the submission pipeline."""

import logging
from typing import Optional

from royale.config import Settings, get_settings
from royale.engine.errors import (
    CompileError,
    EngineError,
    RestoreError,
    TestExecutionError,
    TestTimeoutError,
)
from royale.engine.parsers import test_output, trx
from royale.engine.parsers.diagnostics import reduce_compile_errors
from royale.engine.process import ProcessRunner
from royale.engine.results import Failure, Outcome, Success, TestRunResult
from royale.engine.toolchain import TOOL_ENV, Toolchain
from royale.engine.workspace import Workspace

logger = logging.getLogger(__name__)

REFERENCE_PROJECT = "reference"
TESTS_PROJECT = "tests"


class BuildTestRunner:
    """Builds the reference and test projects, then runs the player's tests."""

    def __init__(
        self,
        process_runner: Optional[ProcessRunner] = None,
        toolchain: Optional[Toolchain] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.process = process_runner or ProcessRunner(self.settings.max_output_bytes)
        self.toolchain = toolchain or Toolchain(self.settings)

    async def run(self, workspace: Workspace) -> Outcome[TestRunResult]:
        """
        Run every stage in order, stopping at the first failure.

        Failing tests are a normal outcome; only restore, either build, or
        the test command itself failing to complete is a pipeline failure.

        Returns:
            Success with the test results, or Failure tagged with the stage
        """
        try:
            await self.restore(workspace)
            await self.build(workspace, REFERENCE_PROJECT)
            await self.build(workspace, TESTS_PROJECT)
            result = await self.execute(workspace)
        except EngineError as e:
            logger.warning(f"Pipeline for player {workspace.player_id} stopped at {e.stage}: {e.message}")
            return Failure(e)
        return Success(result)

    async def restore(self, workspace: Workspace) -> None:
        """Restore packages for the test project (pulls in the reference project too)."""
        logger.info(f"Restoring packages for {workspace.test_project_dir.name}...")
        result = await self.process.run(
            self.toolchain.restore(workspace.test_project_dir),
            cwd=workspace.root,
            timeout_seconds=self.settings.restore_timeout_seconds,
            env=TOOL_ENV,
        )
        if not result.succeeded:
            diagnostic = result.stderr or result.stdout or "Package restore failed"
            raise RestoreError(f"Package Restore Error: {diagnostic.strip()}", detail=diagnostic)

    async def build(self, workspace: Workspace, project: str) -> None:
        """Compile one of the two projects."""
        project_dir = (
            workspace.code_project_dir if project == REFERENCE_PROJECT else workspace.test_project_dir
        )
        logger.info(f"Building {project_dir.name}...")
        result = await self.process.run(
            self.toolchain.build(project_dir),
            cwd=workspace.root,
            timeout_seconds=self.settings.build_timeout_seconds,
            env=TOOL_ENV,
        )
        if result.succeeded:
            return

        if result.timed_out:
            detail = f"Build of {project_dir.name} timed out"
        elif result.not_found:
            detail = f"Build tool not available: {self.toolchain.dotnet}"
        else:
            detail = reduce_compile_errors(result.combined_output, project_dir.name)
        raise CompileError(project, detail)

    async def execute(self, workspace: Workspace) -> TestRunResult:
        """Run the built tests and collect counts and console output."""
        logger.info(f"Running tests for player {workspace.player_id}...")
        result = await self.process.run(
            self.toolchain.test(workspace.test_project_dir, workspace.test_results_dir),
            cwd=workspace.test_project_dir,
            timeout_seconds=self.settings.test_timeout_seconds,
            env=TOOL_ENV,
        )

        if result.timed_out:
            raise TestTimeoutError(
                f"Test execution timed out after {self.settings.test_timeout_seconds} seconds"
            )
        if result.not_found:
            raise TestExecutionError(f"Test runner not available: {self.toolchain.dotnet}")
        if result.truncated:
            raise TestExecutionError(
                f"Test output exceeded {self.settings.max_output_bytes} bytes and the run was stopped"
            )

        stdout = result.stdout.strip()
        counts = test_output.parse_counts(stdout)
        if result.exit_code != 0 and counts.total == 0:
            logger.warning(
                f"Test command exited with {result.exit_code} without a summary for player {workspace.player_id}"
            )

        console_output = self._read_console_output(workspace)
        return TestRunResult(
            passed=counts.passed,
            failed=counts.failed,
            total=counts.total,
            execution_time_seconds=round(result.duration_seconds, 2),
            console_output=test_output.summarize(stdout, console_output),
        )

    def _read_console_output(self, workspace: Workspace) -> str:
        trx_path = trx.find_trx_file(workspace.test_results_dir)
        if trx_path is None:
            return ""
        try:
            return trx.extract_console_output(trx_path.read_text(encoding="utf-8", errors="replace"))
        except OSError as e:
            logger.warning(f"Could not read TRX file {trx_path}: {e}")
            return ""
