"""
Cobertura coverage report parsing.

The coverage collector writes ``coverage.cobertura.xml`` somewhere below the
results directory (inside a per-run GUID folder). Global rates come from the
root element; per-line hits come from the ``<class>`` blocks whose filename
is the reference source file.
"""

import os
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional

from royale.engine.results import CoverageReport, LineCoverage

PREFERRED_REPORT_NAME = "coverage.cobertura.xml"
REPORT_SUFFIXES = (".xml",)


class CoverageParseError(ValueError):
    """The coverage artifact exists but cannot be read as Cobertura XML."""


def find_coverage_file(results_dir: Path) -> Optional[Path]:
    """
    Search a results directory recursively for a coverage report.

    A file named ``coverage.cobertura.xml`` wins; otherwise the first file
    with a known report suffix in sorted walk order.
    """
    if not results_dir.is_dir():
        return None

    fallback: Optional[Path] = None
    for dirpath, dirnames, filenames in os.walk(results_dir):
        dirnames.sort()
        for filename in sorted(filenames):
            if filename == PREFERRED_REPORT_NAME:
                return Path(dirpath) / filename
            if fallback is None and filename.endswith(REPORT_SUFFIXES):
                fallback = Path(dirpath) / filename
    return fallback


def _rate_percent(element: ET.Element, attribute: str) -> float:
    try:
        return float(element.get(attribute, 0)) * 100
    except ValueError:
        return 0.0


def parse_cobertura(xml_text: str, reference_file_name: str, physical_line_count: int) -> CoverageReport:
    """
    Parse a Cobertura document into a coverage report for one source file.

    Args:
        xml_text: Report contents
        reference_file_name: File name the per-line data is scoped to
        physical_line_count: Lines in the reference file; hits outside
            ``1..physical_line_count`` are ignored

    Returns:
        CoverageReport with global rates and one entry per physical line

    Raises:
        CoverageParseError: The document is not well-formed XML
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise CoverageParseError(f"Malformed coverage report: {e}") from e

    line_rate = _rate_percent(root, "line-rate")
    branch_rate = _rate_percent(root, "branch-rate")

    hits_by_line: dict[int, bool] = {}
    for cls in root.iter("class"):
        filename = cls.get("filename", "").replace("\\", "/")
        if not filename.endswith(reference_file_name):
            continue
        lines = cls.find("lines")
        if lines is None:
            continue
        for line in lines.iter("line"):
            try:
                number = int(line.get("number", ""))
                hits = int(line.get("hits", "0"))
            except ValueError:
                continue
            if 1 <= number <= physical_line_count:
                hits_by_line[number] = hits_by_line.get(number, False) or hits > 0

    if hits_by_line:
        covered = sum(1 for is_covered in hits_by_line.values() if is_covered)
        summary = round(covered / len(hits_by_line) * 100, 1)
    else:
        # No class block for the reference file; fall back to the global rate
        summary = round(line_rate, 1)

    per_line = [
        LineCoverage(line_number=number, covered=hits_by_line.get(number, False))
        for number in range(1, physical_line_count + 1)
    ]

    return CoverageReport(
        line_rate_percent=round(line_rate, 2),
        branch_rate_percent=round(branch_rate, 2),
        line_coverage_summary_percent=summary,
        per_line=per_line,
        success=True,
    )
