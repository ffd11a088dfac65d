"""Run a MapReduce application in one process, writing all output to a single file."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Callable, Iterable
from itertools import groupby
from operator import attrgetter

from minimr.plugins import PluginError, load_plugin
from minimr.worker import KeyValue

MapFunc = Callable[[str, str], Iterable[KeyValue]]
ReduceFunc = Callable[[str, list[str]], str]

DEFAULT_OUTPUT = "mr-out-0"


def run_sequential(
    mapf: MapFunc,
    reducef: ReduceFunc,
    filenames: Iterable[str],
    output: str = DEFAULT_OUTPUT,
) -> str:
    """Map every input file, reduce each distinct key in sorted order and write the results.

    Each output line is "<key> <reduced value>". Returns the output path.
    Raises OSError if an input file cannot be read.
    """
    intermediate: list[KeyValue] = []
    for filename in filenames:
        with open(filename, encoding="utf-8", errors="replace", newline="") as source:
            contents = source.read()
        intermediate.extend(mapf(filename, contents))
    intermediate.sort(key=attrgetter("key"))
    with open(output, "w", encoding="utf-8") as out:
        for key, group in groupby(intermediate, key=attrgetter("key")):
            values = [kv.value for kv in group]
            out.write(f"{key} {reducef(key, values)}\n")
    return output


def main(argv: list[str] | None = None) -> int:
    """Run an application over the input files into mr-out-0; return the exit status."""
    parser = argparse.ArgumentParser(prog="mrsequential", description="Run MapReduce sequentially.")
    parser.add_argument("args", nargs="*", help="application followed by input files")
    opts = parser.parse_args(argv)
    if len(opts.args) < 2:
        print("Usage: mrsequential xxx.so inputfiles...", file=sys.stderr)
        return 1
    plugin, *files = opts.args
    try:
        mapf, reducef = load_plugin(plugin)
    except PluginError as exc:
        print(exc, file=sys.stderr)
        return 1
    try:
        run_sequential(mapf, reducef, files)
    except OSError as exc:
        print(f"cannot open {exc.filename}: {exc.strerror}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())