# src/flask_health/events/writer.py
# Sink that writes one human-readable line per emission
# Used as the default sink (stdout) and as the fallback when StatsD is unavailable

import sys
import threading
from datetime import datetime, timezone
from typing import Dict, Optional, TextIO

from .stream import CompletionStatus, Sink


def _format_kvs(kvs: Dict[str, str]) -> str:
    return " ".join(f"{key}:{kvs[key]}" for key in sorted(kvs))


def _format_nanos(nanos: int) -> str:
    # Pick the largest unit that keeps the number readable
    if abs(nanos) >= 1_000_000_000:
        return f"{nanos / 1_000_000_000:.3f}s"
    if abs(nanos) >= 1_000_000:
        return f"{nanos / 1_000_000:.3f}ms"
    if abs(nanos) >= 1_000:
        return f"{nanos / 1_000:.3f}µs"
    return f"{nanos}ns"


class WriterSink(Sink):
    """
    Write emissions as lines of text.

    Line format:
        [2026-10-19T12:00:00.000000]: job:ping event:db_query time:1.250ms kvs:[request:abc]

    Args:
        writer: Text stream to write to (defaults to sys.stdout at write time,
                so pytest's capsys sees the output)
    """

    def __init__(self, writer: Optional[TextIO] = None):
        self.writer = writer
        self._lock = threading.Lock()

    def _write(self, job: str, event: str, detail: str, kvs: Dict[str, str]) -> None:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")
        parts = [f"[{timestamp}]:", f"job:{job}"]
        if event:
            parts.append(f"event:{event}")
        if detail:
            parts.append(detail)
        parts.append(f"kvs:[{_format_kvs(kvs)}]")
        line = " ".join(parts) + "\n"

        writer = self.writer or sys.stdout
        with self._lock:
            writer.write(line)
            writer.flush()

    def emit_event(self, job, event, kvs):
        self._write(job, event, "", kvs)

    def emit_event_err(self, job, event, err, kvs):
        self._write(job, event, f"err:{err}", kvs)

    def emit_timing(self, job, event, nanos, kvs):
        self._write(job, event, f"time:{_format_nanos(nanos)}", kvs)

    def emit_gauge(self, job, event, value, kvs):
        self._write(job, event, f"gauge:{value:g}", kvs)

    def emit_complete(self, job, status: CompletionStatus, nanos, kvs):
        self._write(job, "", f"status:{status.value} time:{_format_nanos(nanos)}", kvs)
