# cc_usage/demo/seed_demo_data.py

import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Union

DEMO_PROJECT = "-home-demo-webapp"

DEMO_SESSIONS: Dict[str, List[Dict[str, Any]]] = {
    "session-a": [
        {
            "timestamp": "2025-06-01T10:00:00.000Z",
            "version": "1.0.17",
            "requestId": "req_demo_1",
            "costUSD": 0.0105,
            "message": {
                "id": "msg_demo_1",
                "model": "claude-sonnet-4-20250514",
                "usage": {"input_tokens": 1200, "output_tokens": 300},
            },
        },
        {
            "timestamp": "2025-06-01T14:59:59.000Z",
            "version": "1.0.17",
            "requestId": "req_demo_2",
            "message": {
                "id": "msg_demo_2",
                "model": "claude-opus-4-20250514",
                "usage": {
                    "input_tokens": 4000,
                    "output_tokens": 1000,
                    "cache_creation_input_tokens": 2000,
                    "cache_read_input_tokens": 8000,
                },
            },
        },
    ],
    "session-b": [
        {
            "timestamp": "2025-06-02T09:30:00.000Z",
            "version": "1.0.18",
            "requestId": "req_demo_3",
            "message": {
                "id": "msg_demo_3",
                "model": "claude-sonnet-4-20250514",
                "usage": {"input_tokens": 500, "output_tokens": 250},
            },
        },
    ],
}


def seed_demo_logs(root: Union[str, Path]) -> Path:
    """Write a small set of usage logs under ``{root}/projects``.

    Returns:
        The data root, usable as ``LoadOptions(root_path=...)``
    """
    root = Path(root)
    for session_id, lines in DEMO_SESSIONS.items():
        session_dir = root / "projects" / DEMO_PROJECT / session_id
        session_dir.mkdir(parents=True, exist_ok=True)
        with open(session_dir / "chat.jsonl", 'w', encoding='utf-8') as f:
            for line in lines:
                f.write(json.dumps(line) + "\n")
    return root


if __name__ == "__main__":
    target = seed_demo_logs(sys.argv[1] if len(sys.argv) > 1 else "demo-data")
    print(f"Demo usage logs written to {target}")
