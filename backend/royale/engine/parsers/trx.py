"""Console writes captured in a TRX (Visual Studio test results) file."""

import html
import re
from pathlib import Path
from typing import Optional

_STDOUT_BLOCK = re.compile(r"<StdOut>(.*?)</StdOut>", re.DOTALL)


def find_trx_file(results_dir: Path, name: Optional[str] = None) -> Optional[Path]:
    """Return the named TRX file, or the first one in the directory."""
    if not results_dir.is_dir():
        return None
    if name:
        candidate = results_dir / name
        return candidate if candidate.is_file() else None
    trx_files = sorted(results_dir.glob("*.trx"))
    return trx_files[0] if trx_files else None


def extract_console_output(trx_text: str) -> str:
    """Join the non-empty per-test stdout blocks, unescaped."""
    blocks = (html.unescape(match).strip() for match in _STDOUT_BLOCK.findall(trx_text))
    return "\n".join(block for block in blocks if block)
