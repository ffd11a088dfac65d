"""Application that sometimes crashes the worker and sometimes stalls, to exercise recovery."""

from __future__ import annotations

import os
import secrets
import time

from minimr.worker import KeyValue


def maybe_crash() -> None:
    """Exit the process about a third of the time, and sleep up to ten seconds another third."""
    roll = secrets.randbelow(1000)
    if roll < 330:
        os._exit(1)
    elif roll < 660:
        time.sleep(secrets.randbelow(10 * 1000) / 1000)


def map_func(filename: str, contents: str) -> list[KeyValue]:
    """Emit the file name, its length and the contents' length under fixed keys."""
    maybe_crash()
    return [
        KeyValue("a", filename),
        KeyValue("b", str(len(filename.encode("utf-8")))),
        KeyValue("c", str(len(contents.encode("utf-8")))),
        KeyValue("d", "xyzzy"),
    ]


def reduce_func(key: str, values: list[str]) -> str:
    """Return the values sorted and joined by spaces."""
    maybe_crash()
    return " ".join(sorted(values))