from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse
import threading


OPS_MARKER = "lch_ops"
OPS_ENV_VAR = "LCH_OPS_JSON"


def ops_env_enabled() -> bool:
    return os.environ.get(OPS_ENV_VAR, "0") == "1"


class OpsLogger:
    """Append-only JSONL logger for operational metrics.

    - Writes one JSON object per line to a file (UTF-8, newline-delimited)
    - Thread-safe (coarse lock)
    - Best-effort: never raises to caller
    """

    def __init__(self, file_path: Path, also_stdout: bool = False) -> None:
        self.file_path = Path(file_path)
        self.also_stdout = bool(also_stdout)
        self._lock = threading.Lock()
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            print(f"Could not create ops log directory {self.file_path.parent}: {e}")

    def emit(self, record: Dict[str, Any]) -> None:
        record = {OPS_MARKER: 1, **record}
        try:
            line = json.dumps(record, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            line = json.dumps({OPS_MARKER: 1, "_serialization_error": True, "record_str": str(record)})
        try:
            with self._lock:
                with self.file_path.open("a", encoding="utf-8") as f:
                    f.write(line)
                    f.write("\n")
        except OSError as e:
            print(f"Could not write ops record to {self.file_path}: {e}")
        if self.also_stdout:
            print(line)


def build_url_record(
    *,
    url: str,
    outcome: str,
    error_kind: Optional[str],
    signals: list,
    attempts: int,
    found_fields: list,
    durations: Dict[str, float],
) -> Dict[str, Any]:
    """Per-URL ops record emitted by the extraction boundary."""
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        host = ""
    return {
        "url": url,
        "host": host,
        "outcome": outcome,
        "error_kind": error_kind,
        "signals": list(signals),
        "attempts": int(attempts),
        "durations": {k: round(v, 4) for k, v in durations.items()},
        "found": list(found_fields),
    }
