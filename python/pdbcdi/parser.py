"""Command line splitting for the pdbcdi inspector."""

from __future__ import annotations

import shlex
from typing import List


def split_command(line: str) -> List[str]:
    """Split a command line into argv tokens using shlex rules."""
    if not line:
        return []
    try:
        return shlex.split(line, comments=False, posix=True)
    except ValueError as exc:
        # marker token so callers can report the parse error
        return ["#parse-error", str(exc)]


def parse_number(text: str) -> int:
    """Parse decimal or 0x-prefixed numbers (tokens, offsets, versions)."""
    return int(text, 0)
