"""Inverted index: map emits each distinct word with its document, reduce lists the documents."""

from __future__ import annotations

from itertools import groupby

from minimr.worker import KeyValue


def map_func(document: str, value: str) -> list[KeyValue]:
    """Emit (word, document) once for every distinct word in the text."""
    words = ("".join(run) for is_letter, run in groupby(value, str.isalpha) if is_letter)
    return [KeyValue(word, document) for word in dict.fromkeys(words)]


def reduce_func(key: str, values: list[str]) -> str:
    """Return the document count followed by the sorted, comma-separated documents."""
    return f"{len(values)} {','.join(sorted(values))}"