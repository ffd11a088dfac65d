"""Application that records when map tasks ran and how many ran at once."""

from __future__ import annotations

import contextlib
import os
import re
import time
from pathlib import Path

from minimr.worker import KeyValue


def _is_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except (OSError, OverflowError):
        return False
    return True


def nparallel(phase: str) -> int:
    """Count the live workers currently in the given phase, this one included.

    Each worker leaves a marker file mr-worker-<phase>-<pid> for a second while
    it looks for the markers of the others.
    """
    marker = Path(f"mr-worker-{phase}-{os.getpid()}")
    marker.write_text("x")
    pattern = re.compile(rf"mr-worker-{re.escape(phase)}-([+-]?\d+)")
    running = 0
    for name in os.listdir("."):
        match = pattern.match(name)
        if match and _is_alive(int(match.group(1))):
            running += 1
    time.sleep(1)
    with contextlib.suppress(FileNotFoundError):
        marker.unlink()
    return running


def map_func(filename: str, contents: str) -> list[KeyValue]:
    """Emit the start time and the number of map tasks running alongside, keyed by pid."""
    started = time.time()
    pid = os.getpid()
    running = nparallel("map")
    return [
        KeyValue(f"times-{pid}", f"{started:.1f}"),
        KeyValue(f"parallel-{pid}", str(running)),
    ]


def reduce_func(key: str, values: list[str]) -> str:
    """Return the values sorted and joined by spaces."""
    return " ".join(sorted(values))