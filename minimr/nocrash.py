"""The crash application's map and reduce, without the crashes."""

from __future__ import annotations

import secrets

from minimr.worker import KeyValue


def maybe_crash() -> None:
    """Draw a roll as the crash application does, but never act on it."""
    secrets.randbelow(1000)


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