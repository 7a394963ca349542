"""
Structured results produced by the submission pipeline.

All results are plain dataclasses with a ``to_dict`` method so they can be
stored on a game entry and serialized as JSON for clients.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Literal, Optional, TypeVar, Union

from royale.engine.errors import EngineError

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    """Stage completed; ``value`` holds its payload."""

    value: T
    ok: Literal[True] = True


@dataclass(frozen=True)
class Failure:
    """Stage failed; ``error`` tells which stage and why."""

    error: EngineError
    ok: Literal[False] = False


Outcome = Union[Success[T], Failure]


@dataclass(frozen=True)
class TestRunResult:
    """Counts and console output of one test execution."""

    __test__ = False

    passed: int
    failed: int
    total: int
    execution_time_seconds: float
    console_output: str
    compile_error_detail: Optional[str] = None

    @property
    def all_tests_passed(self) -> bool:
        return self.failed == 0

    @classmethod
    def empty(cls, compile_error_detail: Optional[str] = None) -> "TestRunResult":
        """Zero counts, used when the tests never ran."""
        return cls(
            passed=0,
            failed=0,
            total=0,
            execution_time_seconds=0.0,
            console_output="",
            compile_error_detail=compile_error_detail,
        )

    def to_dict(self) -> dict:
        result = {
            "passed": self.passed,
            "failed": self.failed,
            "total": self.total,
            "execution_time_seconds": round(self.execution_time_seconds, 2),
            "all_tests_passed": self.all_tests_passed,
            "console_output": self.console_output,
        }
        if self.compile_error_detail:
            result["compile_error_detail"] = self.compile_error_detail
        return result

    @classmethod
    def from_dict(cls, data: dict) -> "TestRunResult":
        return cls(
            passed=data.get("passed", 0),
            failed=data.get("failed", 0),
            total=data.get("total", 0),
            execution_time_seconds=data.get("execution_time_seconds", 0.0),
            console_output=data.get("console_output", ""),
            compile_error_detail=data.get("compile_error_detail"),
        )


@dataclass(frozen=True)
class LineCoverage:
    """Coverage flag for one physical line of the reference file."""

    line_number: int
    covered: bool

    def to_dict(self) -> dict:
        return {"line_number": self.line_number, "covered": self.covered}


@dataclass
class CoverageReport:
    """Global and per-line coverage of the reference program."""

    line_rate_percent: float = 0.0
    branch_rate_percent: float = 0.0
    line_coverage_summary_percent: float = 0.0
    per_line: list[LineCoverage] = field(default_factory=list)
    success: bool = True

    @property
    def measured(self) -> bool:
        """False when no coverage artifact was found (zero means unmeasured)."""
        return bool(self.per_line) or self.line_rate_percent > 0 or self.branch_rate_percent > 0

    def to_dict(self) -> dict:
        return {
            "line_rate_percent": self.line_rate_percent,
            "branch_rate_percent": self.branch_rate_percent,
            "line_coverage_summary_percent": self.line_coverage_summary_percent,
            "per_line": [line.to_dict() for line in self.per_line],
            "success": self.success,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CoverageReport":
        return cls(
            line_rate_percent=data.get("line_rate_percent", 0.0),
            branch_rate_percent=data.get("branch_rate_percent", 0.0),
            line_coverage_summary_percent=data.get("line_coverage_summary_percent", 0.0),
            per_line=[
                LineCoverage(line_number=item["line_number"], covered=item["covered"])
                for item in data.get("per_line", [])
            ],
            success=data.get("success", True),
        )


class MutationStatus(str, Enum):
    """Outcome of one mutant as reported by the mutation tool."""

    KILLED = "Killed"
    SURVIVED = "Survived"
    NO_COVERAGE = "NoCoverage"
    TIMEOUT = "Timeout"
    RUNTIME_ERROR = "RuntimeError"
    COMPILE_ERROR = "CompileError"
    IGNORED = "Ignored"
    PENDING = "Pending"

    @classmethod
    def from_report(cls, value: Optional[str]) -> "MutationStatus":
        """Map a report status string, treating unknown values as pending."""
        try:
            return cls(value)
        except ValueError:
            return cls.PENDING


@dataclass(frozen=True)
class Mutant:
    """A single mutation applied to the reference program."""

    id: str
    mutation_kind: str
    line: Optional[int]
    status: MutationStatus

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "mutation_kind": self.mutation_kind,
            "line": self.line,
            "status": self.status.value,
        }


@dataclass
class MutationReport:
    """Per-mutant results and the aggregate kill rate."""

    mutants: list[Mutant] = field(default_factory=list)
    killed: int = 0
    survived: int = 0
    timed_out: int = 0
    no_coverage: int = 0
    total: int = 0
    mutation_score_percent: float = 0.0
    success: bool = True
    error: Optional[str] = None

    @classmethod
    def from_mutants(cls, mutants: list[Mutant]) -> "MutationReport":
        """Aggregate status counts and the kill-rate score."""
        total = len(mutants)
        killed = sum(1 for m in mutants if m.status is MutationStatus.KILLED)
        score = round(killed / total * 100, 1) if total > 0 else 0.0
        return cls(
            mutants=list(mutants),
            killed=killed,
            survived=sum(1 for m in mutants if m.status is MutationStatus.SURVIVED),
            timed_out=sum(1 for m in mutants if m.status is MutationStatus.TIMEOUT),
            no_coverage=sum(1 for m in mutants if m.status is MutationStatus.NO_COVERAGE),
            total=total,
            mutation_score_percent=score,
        )

    @classmethod
    def failed(cls, error: str) -> "MutationReport":
        """Zeroed report for a mutation stage that could not complete."""
        return cls(success=False, error=error)

    def to_dict(self) -> dict:
        result = {
            "mutants": [m.to_dict() for m in self.mutants],
            "killed": self.killed,
            "survived": self.survived,
            "timed_out": self.timed_out,
            "no_coverage": self.no_coverage,
            "total": self.total,
            "mutation_score_percent": self.mutation_score_percent,
            "success": self.success,
        }
        if self.error:
            result["error"] = self.error
        return result

    @classmethod
    def from_dict(cls, data: dict) -> "MutationReport":
        return cls(
            mutants=[
                Mutant(
                    id=str(item["id"]),
                    mutation_kind=item.get("mutation_kind", ""),
                    line=item.get("line"),
                    status=MutationStatus.from_report(item.get("status")),
                )
                for item in data.get("mutants", [])
            ],
            killed=data.get("killed", 0),
            survived=data.get("survived", 0),
            timed_out=data.get("timed_out", 0),
            no_coverage=data.get("no_coverage", 0),
            total=data.get("total", 0),
            mutation_score_percent=data.get("mutation_score_percent", 0.0),
            success=data.get("success", True),
            error=data.get("error"),
        )


@dataclass
class PipelineReport:
    """Everything one pipeline run measured for a submission."""

    test_run: TestRunResult
    coverage: CoverageReport
    mutation: MutationReport
    test_line_count: int
    composite_score: float

    def to_dict(self) -> dict:
        return {
            "test_run": self.test_run.to_dict(),
            "coverage": self.coverage.to_dict(),
            "mutation": self.mutation.to_dict(),
            "test_line_count": self.test_line_count,
            "composite_score": self.composite_score,
        }
