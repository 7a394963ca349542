"""Reduce compiler output to a few player-readable error messages."""

import re

MAX_DIAGNOSTIC_LINES = 3

# "path/File.cs(3,5): error CS1002: ; expected [path/Project.csproj]"
_ERROR_LINE = re.compile(r"\berror\b", re.IGNORECASE)
_ERROR_PREFIX = re.compile(r"^.*?\berror\s*(?:[A-Z]{2,}\d+)?\s*:\s*", re.IGNORECASE)
_PROJECT_SUFFIX = re.compile(r"\s*\[[^\]]*\]\s*$")
_LOCATION_PREFIX = re.compile(r"^(?:[A-Za-z]:)?[^\s:]*[\\/][^:]*:\s*")


def reduce_compile_errors(output: str, project: str) -> str:
    """
    Extract at most three distinct error messages from build output.

    File paths, error codes and the trailing project reference are stripped,
    leaving only the message text.

    Args:
        output: Combined stdout/stderr of the build
        project: Project label used in the fallback message

    Returns:
        Newline-joined messages, or a generic hint when none were found
    """
    errors: list[str] = []

    for line in output.splitlines():
        if not _ERROR_LINE.search(line):
            continue

        cleaned = _ERROR_PREFIX.sub("", line, count=1)
        cleaned = _PROJECT_SUFFIX.sub("", cleaned)
        cleaned = _LOCATION_PREFIX.sub("", cleaned).strip()

        # Summary lines such as "1 Error(s)" carry no message
        if not cleaned or cleaned == line.strip():
            continue
        if cleaned not in errors:
            errors.append(cleaned)
        if len(errors) == MAX_DIAGNOSTIC_LINES:
            break

    if errors:
        return "\n".join(errors)
    return f"Failed to build {project}. Check your code syntax."
