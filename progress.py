"""Best-effort percentage extraction from yt-dlp's human-readable output."""
from __future__ import annotations

import re
from typing import Callable, Optional

PERCENT_RE = re.compile(r"(\d+(?:\.\d+)?)%")

# Any callable with this shape can replace parse_percent in JobRunner.
ProgressParser = Callable[[str], Optional[float]]


def parse_percent(line: str) -> Optional[float]:
    """Return the first ``<number>%`` found in ``line``, or None."""
    match = PERCENT_RE.search(line)
    if not match:
        return None
    return float(match.group(1))
