"""Opt-in timing of process launches and reaps.

Set ``LIBPROC_TRACE=1`` and every launch and every reap appends one JSON line
to ``LIBPROC_TRACE_PATH``:

.. code-block:: json

    {"event": "libproc.spawn", "duration_ns": 812345, "command": ["ls"],
     "child_pid": 4242, "pid": 4200}

A launch the OS refused carries ``"error": "FileNotFoundError"`` instead of
a child pid.

Note
----
This is an internal API not covered by versioning policy.
"""

from __future__ import annotations

import contextlib
import json
import os
import pathlib
import threading
import time
import typing as t

TRACE_PATH = os.getenv("LIBPROC_TRACE_PATH", "/tmp/libproc-trace.jsonl")
TRACE_ENABLED = os.getenv("LIBPROC_TRACE", "") not in {"", "0", "false", "no"}

_write_lock = threading.Lock()


def record(event: dict[str, t.Any]) -> None:
    """Append *event* to the trace file, tagged with the calling pid."""
    event["pid"] = os.getpid()
    line = json.dumps(event, default=str)
    with _write_lock, pathlib.Path(TRACE_PATH).open("a", encoding="utf-8") as f:
        f.write(line + "\n")


@contextlib.contextmanager
def span(name: str, **fields: t.Any) -> t.Iterator[dict[str, t.Any]]:
    """Time the body and record it as one event.

    The yielded dict is merged into the event, so the body can attach
    values only known at the end (a child pid, a return code). When
    tracing is off nothing is timed or written.
    """
    extra: dict[str, t.Any] = {}
    if not TRACE_ENABLED:
        yield extra
        return
    start_ns = time.perf_counter_ns()
    try:
        yield extra
    except Exception as e:
        extra["error"] = type(e).__name__
        raise
    finally:
        record(
            {
                "event": name,
                "duration_ns": time.perf_counter_ns() - start_ns,
                **fields,
                **extra,
            },
        )
