"""
Composite scoring of a submission.

    composite = mutation_score_percent * 0.4
              + branch_rate_percent * 0.2
              + line_coverage_summary_percent * 0.2
              + test_line_count * 0.1
              - execution_time_seconds * 0.1

The result is not clamped: it can be negative or exceed 100.
"""

import re

MUTATION_WEIGHT = 0.4
BRANCH_WEIGHT = 0.2
LINE_COVERAGE_WEIGHT = 0.2
TEST_LINES_WEIGHT = 0.1
EXECUTION_TIME_WEIGHT = 0.1

_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_LINE_COMMENT = re.compile(r"//.*$", re.MULTILINE)


def composite_score(
    mutation_score_percent: float,
    branch_rate_percent: float,
    line_coverage_summary_percent: float,
    test_line_count: int,
    execution_time_seconds: float,
) -> float:
    return (
        mutation_score_percent * MUTATION_WEIGHT
        + branch_rate_percent * BRANCH_WEIGHT
        + line_coverage_summary_percent * LINE_COVERAGE_WEIGHT
        + test_line_count * TEST_LINES_WEIGHT
        - execution_time_seconds * EXECUTION_TIME_WEIGHT
    )


def count_test_lines(code: str) -> int:
    """Count lines that are not blank, comments, or a lone brace."""
    cleaned = _LINE_COMMENT.sub("", _BLOCK_COMMENT.sub("", code))
    lines = (line.strip() for line in cleaned.split("\n"))
    return sum(1 for line in lines if line and line not in ("{", "}"))
