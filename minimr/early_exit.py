"""Application that counts files, with some reduce calls stalling to catch workers that exit too early."""

from __future__ import annotations

import time

from minimr.worker import KeyValue

SLOW_KEYS = ("sherlock", "tom")
SLOW_REDUCE_SECONDS = 3


def map_func(filename: str, contents: str) -> list[KeyValue]:
    """Emit (filename, "1") once per input file."""
    return [KeyValue(filename, "1")]


def reduce_func(key: str, values: list[str]) -> str:
    """Return the number of values; stall first for keys naming certain files."""
    if any(word in key for word in SLOW_KEYS):
        time.sleep(SLOW_REDUCE_SECONDS)
    return str(len(values))