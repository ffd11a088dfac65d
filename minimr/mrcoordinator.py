"""Command that runs a coordinator over the given input files until the job is done."""

from __future__ import annotations

import argparse
import logging
import sys
import time

from minimr.coordinator import make_coordinator

N_REDUCE = 10


def main(argv: list[str] | None = None) -> int:
    """Serve a job over the input files; return the exit status."""
    parser = argparse.ArgumentParser(prog="mrcoordinator", description="Run a MapReduce coordinator.")
    parser.add_argument("files", nargs="*", help="input files, one map task each")
    parser.add_argument("--socket", default=None, help="UNIX-domain socket to listen on")
    opts = parser.parse_args(argv)
    if not opts.files:
        print("Usage: mrcoordinator inputfiles...", file=sys.stderr)
        return 1
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    coordinator = make_coordinator(opts.files, N_REDUCE, opts.socket)
    try:
        while not coordinator.done():
            time.sleep(1)
        time.sleep(1)
    finally:
        coordinator.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())