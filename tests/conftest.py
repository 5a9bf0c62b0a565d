"""
Shared fixtures for cc-usage tests.
"""

import json
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pytest


@pytest.fixture(autouse=True)
def utc_timezone(monkeypatch):
    """Pin local time to UTC so calendar dates are deterministic."""
    monkeypatch.setenv("TZ", "UTC")
    if hasattr(time, "tzset"):
        time.tzset()
    yield
    monkeypatch.undo()
    if hasattr(time, "tzset"):
        time.tzset()


@pytest.fixture
def usage_line():
    """Factory for one usage log line as a dict."""
    def _make(
        timestamp: str,
        input_tokens: int = 0,
        output_tokens: int = 0,
        cost: Optional[float] = None,
        model: Optional[str] = None,
        message_id: Optional[str] = None,
        request_id: Optional[str] = None,
        version: Optional[str] = None,
        cache_creation: Optional[int] = None,
        cache_read: Optional[int] = None
    ) -> Dict[str, Any]:
        usage: Dict[str, Any] = {"input_tokens": input_tokens, "output_tokens": output_tokens}
        if cache_creation is not None:
            usage["cache_creation_input_tokens"] = cache_creation
        if cache_read is not None:
            usage["cache_read_input_tokens"] = cache_read
        message: Dict[str, Any] = {"usage": usage}
        if model is not None:
            message["model"] = model
        if message_id is not None:
            message["id"] = message_id
        line: Dict[str, Any] = {"timestamp": timestamp, "message": message}
        if cost is not None:
            line["costUSD"] = cost
        if request_id is not None:
            line["requestId"] = request_id
        if version is not None:
            line["version"] = version
        return line
    return _make


@pytest.fixture
def usage_root(tmp_path):
    """Write JSONL files under ``{tmp_path}/projects`` and return the data root.

    Keys are paths relative to the projects directory; values are lists of
    dicts (serialized as JSON) or raw strings (written as-is).
    """
    def _write(files: Dict[str, List[Union[Dict[str, Any], str]]]) -> Path:
        projects_dir = tmp_path / "projects"
        projects_dir.mkdir(exist_ok=True)
        for relative_path, lines in files.items():
            file_path = projects_dir / relative_path
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(file_path, 'w', encoding='utf-8') as f:
                for line in lines:
                    f.write(line if isinstance(line, str) else json.dumps(line))
                    f.write("\n")
        return tmp_path
    return _write
