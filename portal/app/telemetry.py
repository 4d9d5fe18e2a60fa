# portal/app/telemetry.py
from __future__ import annotations

import json
import logging
import threading
import time
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from portal.app.config import settings

log = logging.getLogger(__name__)

COUNTERS = (
    "ocr_total",
    "ocr_failed",
    "sign_in_total",
    "sign_in_failed",
    "registration_updates_total",
)
ROTATE_KEEP = 2  # portal.jsonl.1, portal.jsonl.2


class Telemetry:
    """
    Process-wide counters plus a JSON-lines event log at <LOG_DIR>/portal.jsonl.

    Nothing in here raises into request handling: write and rotation problems
    are logged and dropped.
    """

    def __init__(self, log_dir: str | Path | None = None, max_log_mb: int | None = None):
        self._lock = threading.Lock()
        self._started = time.time()
        self._counts: Counter = Counter({name: 0 for name in COUNTERS})
        self._last_error: Optional[str] = None

        self._log_file = Path(log_dir or settings.LOG_DIR) / "portal.jsonl"
        self._max_log_bytes = int(max_log_mb or settings.MAX_LOG_MB) * 1024 * 1024
        try:
            self._log_file.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            log.warning(f"[telemetry] cannot create {self._log_file.parent}: {e}")

    @property
    def log_file(self) -> Path:
        return self._log_file

    def increment(self, counter_name: str) -> None:
        """Bump a known counter; unknown names are ignored."""
        if counter_name not in COUNTERS:
            log.debug(f"[telemetry] unknown counter {counter_name}")
            return
        with self._lock:
            self._counts[counter_name] += 1

    def set_error(self, error: str) -> None:
        with self._lock:
            self._last_error = str(error)

    def record_failure(self, counter_name: str, error: str, event: str, **fields: Any) -> None:
        """Count a failure, remember it as the last error and log it as an event."""
        self.increment(counter_name)
        self.set_error(error)
        self.log_json(event, level="error", error=error, **fields)

    def log_json(self, event: str, level: str = "info", **fields: Any) -> None:
        """Append {ts, level, subsystem="portal", event, **fields} as one line."""
        entry = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "subsystem": "portal",
            "event": event,
            **fields,
        }
        try:
            line = json.dumps(entry, ensure_ascii=False, default=str) + "\n"
            with self._lock:
                self._rotate_if_needed()
                with open(self._log_file, "a", encoding="utf-8") as f:
                    f.write(line)
        except Exception as e:
            log.debug(f"[telemetry] dropped {event}: {e}")

    def _generation(self, n: int) -> Path:
        return self._log_file.with_suffix(f".jsonl.{n}")

    def _rotate_if_needed(self) -> None:
        try:
            if not self._log_file.exists() or self._log_file.stat().st_size <= self._max_log_bytes:
                return
            oldest = self._generation(ROTATE_KEEP)
            if oldest.exists():
                oldest.unlink()
            for n in range(ROTATE_KEEP - 1, 0, -1):
                if self._generation(n).exists():
                    self._generation(n).rename(self._generation(n + 1))
            self._log_file.rename(self._generation(1))
        except OSError as e:
            log.warning(f"[telemetry] log rotation failed: {e}")

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "uptime_s": int(time.time() - self._started),
                **{name: self._counts[name] for name in COUNTERS},
                "last_error": self._last_error,
            }


# Singleton instance
telemetry = Telemetry()
