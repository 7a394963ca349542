# Engine module
from .errors import (
    ArtifactNotFoundError,
    CompileError,
    EngineError,
    MutationToolError,
    RestoreError,
    TestExecutionError,
    TestTimeoutError,
    ThrottleTimeoutError,
    WorkspaceError,
)
from .pipeline import SubmissionPipeline, get_pipeline
from .results import (
    CoverageReport,
    Failure,
    LineCoverage,
    Mutant,
    MutationReport,
    MutationStatus,
    Outcome,
    PipelineReport,
    Success,
    TestRunResult,
)
from .scoring import composite_score, count_test_lines

__all__ = [
    "ArtifactNotFoundError",
    "CompileError",
    "EngineError",
    "MutationToolError",
    "RestoreError",
    "TestExecutionError",
    "TestTimeoutError",
    "ThrottleTimeoutError",
    "WorkspaceError",
    "SubmissionPipeline",
    "get_pipeline",
    "CoverageReport",
    "Failure",
    "LineCoverage",
    "Mutant",
    "MutationReport",
    "MutationStatus",
    "Outcome",
    "PipelineReport",
    "Success",
    "TestRunResult",
    "composite_score",
    "count_test_lines",
]
