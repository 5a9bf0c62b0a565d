"""
Usage log discovery and chronological ordering.

Log files are processed oldest-first so that deduplication keeps the
earliest copy of a repeated record.
"""

import json
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from cc_usage.core.dates import parse_timestamp, to_utc
from .models import UNKNOWN_PROJECT

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def find_usage_files(projects_dir: PathLike) -> List[Path]:
    """Recursively list all ``*.jsonl`` files under a projects directory.

    Returns:
        Paths sorted lexicographically, or an empty list if the directory
        does not exist
    """
    root = Path(projects_dir)
    if not root.is_dir():
        logger.debug("Projects directory not found: %s", root)
        return []
    return sorted(p for p in root.rglob("*.jsonl") if p.is_file())


def get_earliest_timestamp(file_path: PathLike) -> Optional[datetime]:
    """Find the earliest valid timestamp in a JSONL file.

    Every line is scanned because lines are not guaranteed to be ordered.
    Malformed lines are skipped and read errors are logged, never raised.

    Args:
        file_path: Path to a JSONL usage log

    Returns:
        Earliest timestamp as an aware UTC datetime, or None if the file
        has no valid timestamp or cannot be read
    """
    earliest: Optional[datetime] = None
    try:
        with open(file_path, 'r', encoding='utf-8', errors='replace') as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    payload = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if not isinstance(payload, dict):
                    continue
                parsed = parse_timestamp(payload.get("timestamp"))
                if parsed is None:
                    continue
                parsed = to_utc(parsed)
                if earliest is None or parsed < earliest:
                    earliest = parsed
    except OSError as e:
        logger.debug("Failed to get earliest timestamp for %s: %s", file_path, e)
        return None
    return earliest


def sort_files_by_timestamp(
    files: Sequence[PathLike],
    max_workers: Optional[int] = None
) -> List[Path]:
    """Order files by their earliest timestamp, oldest first.

    Timestamps are probed concurrently; the probe has no side effects so
    the degree of parallelism does not affect the result. Files without a
    timestamp are placed last, keeping their relative order.

    Args:
        files: Files to order
        max_workers: Thread pool size (executor default when None)

    Returns:
        Files in processing order
    """
    paths = [Path(f) for f in files]
    if not paths:
        return []

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        timestamps = list(executor.map(get_earliest_timestamp, paths))

    def _sort_key(index: int):
        timestamp = timestamps[index]
        if timestamp is None:
            return (1, 0)
        return (0, timestamp)

    order = sorted(range(len(paths)), key=_sort_key)
    return [paths[i] for i in order]


def session_info_from_path(projects_dir: PathLike, file_path: PathLike) -> Tuple[str, str]:
    """Derive (project_path, session_id) from a log file location.

    Layout is ``{projects_dir}/{project segments...}/{session_id}/{name}.jsonl``.

    Returns:
        Tuple of project path (segments joined with the platform separator,
        or a placeholder when empty) and session id
    """
    try:
        parts = Path(file_path).relative_to(Path(projects_dir)).parts
    except ValueError:
        parts = Path(os.path.relpath(file_path, projects_dir)).parts

    session_id = parts[-2] if len(parts) >= 2 else "unknown"
    project_path = os.sep.join(parts[:-2]) or UNKNOWN_PROJECT
    return project_path, session_id
