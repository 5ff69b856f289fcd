"""
Report file I/O: save generated reports to disk.
"""

from __future__ import annotations

import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path

__all__ = ["save_report"]

logger = logging.getLogger(__name__)

# Only allow safe characters in filename components.
_SAFE_FILENAME = re.compile(r'[^\w\-.]')


def _sanitize_filename_part(value: str, max_len: int = 40) -> str:
    """Sanitise a value for use in a filename by removing unsafe chars."""
    return _SAFE_FILENAME.sub('_', value)[:max_len]


def save_report(
    content: str,
    project: str,
    output_dir: str,
    fmt: str = "json",
    dry_run: bool = False,
) -> str:
    """Save report to disk and return the absolute file path."""
    Path(output_dir).mkdir(parents=True, exist_ok=True)

    # Use UTC for consistent timestamps everywhere
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    label = _sanitize_filename_part(project) or "project"
    prefix = "dryrun" if dry_run else "migration"
    filename = f"{prefix}_{label}_{timestamp}.{fmt}"
    filepath = os.path.join(output_dir, filename)

    with open(filepath, "w", encoding="utf-8") as f:
        f.write(content)

    filepath = os.path.abspath(filepath)
    logger.debug("Wrote %d bytes to %s", len(content), filepath)
    return filepath
