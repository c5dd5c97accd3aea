from __future__ import annotations

import json
import os
import sys
import threading
from pathlib import Path
from typing import Any, Dict, Optional


OPS_ENV = "SHOPSCOUT_OPS_JSON"
OPS_MARKER = "shopscout_ops"


def ops_json_enabled(flag: bool = False) -> bool:
    """Ops records are on when asked for explicitly or via SHOPSCOUT_OPS_JSON=1."""
    return bool(flag) or os.environ.get(OPS_ENV, "0") == "1"


class OpsLogger:
    """Append-only JSONL logger for crawl metrics.

    - One JSON object per line (UTF-8), each tagged with "shopscout_ops": 1
    - Shared by worker threads (coarse lock)
    - Best-effort: a failing write is reported once on stderr and never
      propagates to the crawl
    """

    def __init__(self, file_path: Optional[Path], also_stdout: bool = False) -> None:
        self.file_path = Path(file_path) if file_path is not None else None
        self.also_stdout = bool(also_stdout)
        self.emitted = 0
        self._lock = threading.Lock()
        self._write_failed = False
        if self.file_path is not None:
            try:
                self.file_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                self._report(f"cannot create {self.file_path.parent}: {e}")

    def _report(self, message: str) -> None:
        if self._write_failed:
            return
        self._write_failed = True
        print(f"⚠️  ops log disabled: {message}", file=sys.stderr)

    def emit(self, record: Dict[str, Any]) -> None:
        payload = {OPS_MARKER: 1, **record}
        try:
            line = json.dumps(payload, ensure_ascii=False)
        except (TypeError, ValueError):
            line = json.dumps({OPS_MARKER: 1, "_serialization_error": True, "record_str": str(record)})
        with self._lock:
            self.emitted += 1
            if self.file_path is not None and not self._write_failed:
                try:
                    with self.file_path.open("a", encoding="utf-8") as f:
                        f.write(line)
                        f.write("\n")
                except OSError as e:
                    self._report(f"cannot write {self.file_path}: {e}")
            if self.also_stdout:
                print(line)
