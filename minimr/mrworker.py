"""Command that runs a worker with one of the built-in applications."""

from __future__ import annotations

import argparse
import logging
import sys

from minimr.plugins import PluginError, load_plugin
from minimr.worker import worker


def main(argv: list[str] | None = None) -> int:
    """Work for the coordinator until the job is done; return the exit status."""
    parser = argparse.ArgumentParser(prog="mrworker", description="Run a MapReduce worker.")
    parser.add_argument("plugin", nargs="*", help="application to run, e.g. wc.so")
    parser.add_argument("--socket", default=None, help="UNIX-domain socket of the coordinator")
    opts = parser.parse_args(argv)
    if len(opts.plugin) != 1:
        print("Usage: mrworker xxx.so", file=sys.stderr)
        return 1
    try:
        mapf, reducef = load_plugin(opts.plugin[0])
    except PluginError as exc:
        print(exc, file=sys.stderr)
        return 1
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    worker(mapf, reducef, opts.socket)
    return 0


if __name__ == "__main__":
    sys.exit(main())