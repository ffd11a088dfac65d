"""Word count: map emits each word with "1", reduce counts the occurrences."""

from __future__ import annotations

from itertools import groupby

from minimr.worker import KeyValue


def map_func(filename: str, contents: str) -> list[KeyValue]:
    """Emit (word, "1") for every run of letters in the contents."""
    words = ("".join(run) for is_letter, run in groupby(contents, str.isalpha) if is_letter)
    return [KeyValue(word, "1") for word in words]


def reduce_func(key: str, values: list[str]) -> str:
    """Return the number of occurrences of the word."""
    return str(len(values))