"""Typed failures raised by the submission pipeline stages."""

from typing import Optional


class EngineError(Exception):
    """Base class for pipeline failures.

    Every error carries the ``stage`` it belongs to so callers can tell the
    player which step of the pipeline rejected the submission.
    """

    stage: str = "pipeline"

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        result = {"stage": self.stage, "error": self.message}
        if self.detail:
            result["detail"] = self.detail
        return result


class WorkspaceError(EngineError):
    """Template copy or disk write failed."""

    stage = "workspace"


class RestoreError(EngineError):
    """Dependency restore for the test project failed."""

    stage = "restore"


class CompileError(EngineError):
    """One of the two projects failed to build."""

    stage = "compile"

    def __init__(self, project: str, detail: str):
        super().__init__(f"Build Error in {project}: {detail}", detail=detail)
        self.project = project

    def to_dict(self) -> dict:
        result = super().to_dict()
        result["project"] = self.project
        return result


class TestExecutionError(EngineError):
    """The test command could not be started."""

    __test__ = False
    stage = "test"


class TestTimeoutError(TestExecutionError):
    """Test execution exceeded its wall-clock limit."""

    __test__ = False


class ArtifactNotFoundError(EngineError):
    """An expected tool artifact was not produced."""

    stage = "coverage"


class MutationToolError(EngineError):
    """Mutation tool missing, failed, timed out or wrote an unreadable report."""

    stage = "mutation"


class ThrottleTimeoutError(EngineError):
    """No pipeline slot became free within the configured bound."""

    stage = "throttle"
