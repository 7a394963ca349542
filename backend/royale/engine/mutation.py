"""Mutation testing of the reference program against the player's tests."""

import logging
from pathlib import Path
from typing import Optional

from royale.config import Settings, get_settings
from royale.engine.errors import MutationToolError
from royale.engine.parsers.stryker import MutationReportError, find_report, parse_report
from royale.engine.process import CommandResult, ProcessRunner
from royale.engine.results import MutationReport
from royale.engine.toolchain import TOOL_ENV, Toolchain
from royale.engine.workspace import Workspace

logger = logging.getLogger(__name__)

MUTATION_OUTPUT_DIR = "StrykerOutput"


class MutationAnalyzer:
    """Runs the mutation tool and turns its report into a kill rate.

    Requires both projects to have compiled already. Any failure produces a
    zeroed report with ``success=False`` instead of raising.
    """

    def __init__(
        self,
        process_runner: Optional[ProcessRunner] = None,
        toolchain: Optional[Toolchain] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.process = process_runner or ProcessRunner(self.settings.max_output_bytes)
        self.toolchain = toolchain or Toolchain(self.settings)

    def solution_path(self, workspace: Workspace) -> Path:
        return workspace.root / f"{self.settings.solution_name}.sln"

    def project_file(self, project_dir: Path) -> Path:
        return project_dir / f"{project_dir.name}.csproj"

    async def analyze(self, workspace: Workspace) -> MutationReport:
        """Link both projects, run the tool and parse its report."""
        try:
            solution = await self.create_solution(workspace)
            output_dir = workspace.root / MUTATION_OUTPUT_DIR
            await self._run_tool(workspace, solution, output_dir)
            report = self._read_report(output_dir)
        except MutationToolError as e:
            logger.error(f"Mutation testing failed for player {workspace.player_id}: {e.message}")
            return MutationReport.failed(e.message)

        logger.info(
            f"Mutation testing for player {workspace.player_id}: "
            f"{report.killed}/{report.total} killed ({report.mutation_score_percent}%)"
        )
        return report

    async def create_solution(self, workspace: Workspace) -> Path:
        """Recreate the ephemeral solution that links both projects."""
        solution = self.solution_path(workspace)
        solution.unlink(missing_ok=True)

        commands = [
            self.toolchain.new_solution(self.settings.solution_name),
            self.toolchain.add_to_solution(solution, self.project_file(workspace.code_project_dir)),
            self.toolchain.add_to_solution(solution, self.project_file(workspace.test_project_dir)),
        ]
        for argv in commands:
            result = await self.process.run(
                argv,
                cwd=workspace.root,
                timeout_seconds=self.settings.build_timeout_seconds,
                env=TOOL_ENV,
            )
            self._check(result, "Solution setup failed", self.settings.build_timeout_seconds)
        return solution

    async def _run_tool(self, workspace: Workspace, solution: Path, output_dir: Path) -> None:
        logger.info(f"Running mutation testing for player {workspace.player_id}...")
        result = await self.process.run(
            self.toolchain.mutation(
                solution,
                self.project_file(workspace.test_project_dir),
                output_dir,
            ),
            cwd=workspace.root,
            timeout_seconds=self.settings.mutation_timeout_seconds,
            env=TOOL_ENV,
        )
        self._check(result, "Mutation tool failed", self.settings.mutation_timeout_seconds)

    def _check(self, result: CommandResult, message: str, timeout_seconds: float) -> None:
        if result.not_found:
            raise MutationToolError(f"Mutation tool not available: {result.argv[0]}")
        if result.timed_out:
            raise MutationToolError(f"{message}: timed out after {timeout_seconds} seconds")
        if result.exit_code != 0:
            diagnostic = (result.stderr or result.stdout).strip().splitlines()
            tail = diagnostic[-1] if diagnostic else f"exit code {result.exit_code}"
            raise MutationToolError(f"{message}: {tail}")

    def _read_report(self, output_dir: Path) -> MutationReport:
        report_path = find_report(output_dir)
        if report_path is None:
            raise MutationToolError("Report file not found")
        try:
            mutants = parse_report(report_path.read_text(encoding="utf-8"))
        except (OSError, MutationReportError) as e:
            raise MutationToolError(str(e)) from e
        return MutationReport.from_mutants(mutants)
