"""End-to-end evaluation of one test-code submission."""

import logging
from typing import Optional

from royale.config import Settings, get_settings
from royale.engine.coverage import CoverageAnalyzer
from royale.engine.errors import EngineError
from royale.engine.mutation import MutationAnalyzer
from royale.engine.process import ProcessRunner
from royale.engine.results import Failure, Outcome, PipelineReport, Success
from royale.engine.runner import BuildTestRunner
from royale.engine.scoring import composite_score, count_test_lines
from royale.engine.throttle import PipelineThrottle
from royale.engine.toolchain import Toolchain
from royale.engine.workspace import WorkspaceManager

logger = logging.getLogger(__name__)


class SubmissionPipeline:
    """Throttle, workspace, build and test, coverage, mutation, score."""

    def __init__(
        self,
        workspaces: WorkspaceManager,
        runner: BuildTestRunner,
        coverage: CoverageAnalyzer,
        mutation: MutationAnalyzer,
        throttle: PipelineThrottle,
    ):
        self.workspaces = workspaces
        self.runner = runner
        self.coverage = coverage
        self.mutation = mutation
        self.throttle = throttle

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        process_runner: Optional[ProcessRunner] = None,
    ) -> "SubmissionPipeline":
        """Wire every stage to one process runner and toolchain."""
        settings = settings or get_settings()
        process_runner = process_runner or ProcessRunner(settings.max_output_bytes)
        toolchain = Toolchain(settings)
        return cls(
            workspaces=WorkspaceManager(settings),
            runner=BuildTestRunner(process_runner, toolchain, settings),
            coverage=CoverageAnalyzer(process_runner, toolchain, settings),
            mutation=MutationAnalyzer(process_runner, toolchain, settings),
            throttle=PipelineThrottle(
                settings.max_concurrent_pipelines,
                settings.pipeline_acquire_timeout_seconds,
            ),
        )

    async def run(self, reference_code: str, test_code: str, player_id: str) -> Outcome[PipelineReport]:
        """
        Evaluate one submission.

        Args:
            reference_code: Program under test
            test_code: The player's tests
            player_id: Owner of the submission

        Returns:
            Success with the full report, or Failure tagged with the stage
            that stopped the pipeline. A failed mutation stage is not a
            pipeline failure; its report carries ``success=False``.
        """
        try:
            async with self.throttle.slot():
                return Success(await self._evaluate(reference_code, test_code, player_id))
        except EngineError as e:
            return Failure(e)

    async def _evaluate(self, reference_code: str, test_code: str, player_id: str) -> PipelineReport:
        async with self.workspaces.scoped(reference_code, test_code, player_id) as workspace:
            outcome = await self.runner.run(workspace)
            if not outcome.ok:
                # Unwinds the workspace scope so the directory goes immediately
                raise outcome.error
            test_run = outcome.value

            coverage = await self.coverage.analyze(workspace)
            mutation = await self.mutation.analyze(workspace)

        test_line_count = count_test_lines(test_code)
        score = composite_score(
            mutation_score_percent=mutation.mutation_score_percent,
            branch_rate_percent=coverage.branch_rate_percent,
            line_coverage_summary_percent=coverage.line_coverage_summary_percent,
            test_line_count=test_line_count,
            execution_time_seconds=test_run.execution_time_seconds,
        )
        logger.info(f"Player {player_id} scored {score:.2f}")

        return PipelineReport(
            test_run=test_run,
            coverage=coverage,
            mutation=mutation,
            test_line_count=test_line_count,
            composite_score=score,
        )


# Singleton instance
_pipeline: Optional[SubmissionPipeline] = None


def get_pipeline() -> SubmissionPipeline:
    """Get singleton submission pipeline."""
    global _pipeline
    if _pipeline is None:
        _pipeline = SubmissionPipeline.from_settings()
    return _pipeline
