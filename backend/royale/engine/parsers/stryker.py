"""Stryker.NET mutation report discovery and parsing."""

import json
from pathlib import Path
from typing import Optional

from royale.engine.results import Mutant, MutationStatus

REPORT_NAMES = ("mutation-report.json", "mutation-report.js")


class MutationReportError(ValueError):
    """The mutation report is missing required structure or is not JSON."""


def find_report(output_dir: Path) -> Optional[Path]:
    """
    Locate the JSON report below the mutation tool's output directory.

    The tool writes into a timestamped folder; the newest one is tried first,
    then a flat ``reports`` folder directly under the output directory.
    """
    if not output_dir.is_dir():
        return None

    timestamped = sorted(
        (path for path in output_dir.iterdir() if path.is_dir() and path.name != "reports"),
        reverse=True,
    )
    candidates = [folder / "reports" / name for folder in timestamped[:1] for name in REPORT_NAMES]
    candidates += [output_dir / "reports" / name for name in REPORT_NAMES]

    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def _load_json(text: str) -> dict:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    # The .js flavour wraps the report in an assignment
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        raise MutationReportError("Mutation report is not valid JSON")
    try:
        return json.loads(text[start : end + 1])
    except json.JSONDecodeError as e:
        raise MutationReportError(f"Mutation report is not valid JSON: {e}") from e


def parse_report(text: str) -> list[Mutant]:
    """
    Extract every mutant from every file entry of a report.

    Raises:
        MutationReportError: The text is not a JSON object with a ``files`` map
    """
    data = _load_json(text)
    if not isinstance(data, dict) or not isinstance(data.get("files", {}), dict):
        raise MutationReportError("Mutation report has no 'files' object")

    mutants: list[Mutant] = []
    for file_entry in data.get("files", {}).values():
        if not isinstance(file_entry, dict):
            raise MutationReportError("Mutation report file entry is not an object")
        for raw in file_entry.get("mutants") or []:
            location = raw.get("location") or {}
            start = location.get("start") or {}
            mutants.append(
                Mutant(
                    id=str(raw.get("id", "")),
                    mutation_kind=raw.get("mutatorName") or raw.get("replacement") or "",
                    line=start.get("line"),
                    status=MutationStatus.from_report(raw.get("status")),
                )
            )
    return mutants
