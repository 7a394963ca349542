"""Instrumented test re-run and coverage extraction for the reference file."""

import logging
from typing import Optional

from royale.config import Settings, get_settings
from royale.engine.errors import ArtifactNotFoundError
from royale.engine.parsers.cobertura import CoverageParseError, find_coverage_file, parse_cobertura
from royale.engine.process import ProcessRunner
from royale.engine.results import CoverageReport
from royale.engine.toolchain import TOOL_ENV, Toolchain
from royale.engine.workspace import Workspace

logger = logging.getLogger(__name__)

COVERAGE_LOG_FILE = "coverage_results.trx"


class CoverageAnalyzer:
    """Measures line and branch coverage of the reference program.

    Coverage never fails the pipeline: a missing or unreadable artifact
    yields an all-zero report with ``success=True``.
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

    async def analyze(self, workspace: Workspace) -> CoverageReport:
        """Re-run the tests with instrumentation and parse the report."""
        logger.info(f"Collecting coverage for player {workspace.player_id}...")
        result = await self.process.run(
            self.toolchain.coverage_test(
                workspace.test_project_dir,
                workspace.coverage_results_dir,
                COVERAGE_LOG_FILE,
            ),
            cwd=workspace.test_project_dir,
            timeout_seconds=self.settings.coverage_timeout_seconds,
            env=TOOL_ENV,
        )
        if not result.succeeded:
            logger.warning(
                f"Coverage run did not complete cleanly (exit {result.exit_code}), "
                "attempting to parse existing results"
            )

        try:
            return self._parse(workspace)
        except ArtifactNotFoundError as e:
            logger.warning(f"{e.message}, returning zero coverage")
        except CoverageParseError as e:
            logger.warning(f"{e}, returning zero coverage")
        except OSError as e:
            logger.warning(f"Failed to read coverage file: {e}, returning zero coverage")
        return CoverageReport()

    def _parse(self, workspace: Workspace) -> CoverageReport:
        coverage_file = find_coverage_file(workspace.coverage_results_dir)
        if coverage_file is None:
            raise ArtifactNotFoundError(
                f"No coverage file found in {workspace.coverage_results_dir.name}"
            )

        reference_source = workspace.reference_file.read_text(encoding="utf-8")
        physical_lines = len(reference_source.split("\n"))

        report = parse_cobertura(
            coverage_file.read_text(encoding="utf-8", errors="replace"),
            reference_file_name=workspace.reference_file.name,
            physical_line_count=physical_lines,
        )
        logger.info(
            f"Coverage for player {workspace.player_id}: line {report.line_rate_percent:.1f}%, "
            f"branch {report.branch_rate_percent:.1f}%"
        )
        return report
