"""Application that counts how many times map tasks were run, to detect needless re-execution."""

from __future__ import annotations

import itertools
import os
import random
import time
from pathlib import Path

from minimr.worker import KeyValue

MARKER_PREFIX = "mr-worker-jobcount"

_invocations = itertools.count()


def map_func(filename: str, contents: str) -> list[KeyValue]:
    """Leave a marker file for this invocation, stall two to five seconds, emit ("a", "x")."""
    marker = Path(f"{MARKER_PREFIX}-{os.getpid()}-{next(_invocations)}")
    marker.write_text("x")
    time.sleep((2000 + random.randrange(3000)) / 1000)
    return [KeyValue("a", "x")]


def reduce_func(key: str, values: list[str]) -> str:
    """Return the number of map marker files in the current directory."""
    return str(sum(1 for name in os.listdir(".") if name.startswith(MARKER_PREFIX)))