"""Worker side: fetch tasks from the coordinator and run map or reduce on them."""

from __future__ import annotations

import contextlib
import itertools
import json
import logging
import os
import tempfile
import threading
import time
from collections import defaultdict
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass

from minimr.rpc import (
    ExampleArgs,
    ExampleReply,
    RequestTaskArgs,
    RequestTaskReply,
    RpcError,
    TaskCompletionArgs,
    TaskCompletionReply,
    TaskPhase,
    call,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeyValue:
    """One pair emitted by a map function."""

    key: str
    value: str


MapFunc = Callable[[str, str], Iterable[KeyValue]]
ReduceFunc = Callable[[str, list[str]], str]

_FNV_OFFSET = 0x811C9DC5
_FNV_PRIME = 0x01000193

_worker_ids = itertools.count(1)
_worker_ids_lock = threading.Lock()


def ihash(key: str) -> int:
    """FNV-1a hash of the key, masked to a non-negative 31-bit value."""
    h = _FNV_OFFSET
    for byte in key.encode("utf-8"):
        h = ((h ^ byte) * _FNV_PRIME) & 0xFFFFFFFF
    return h & 0x7FFFFFFF


def generate_worker_id() -> int:
    """Return a fresh worker id, unique within this process."""
    with _worker_ids_lock:
        return next(_worker_ids)


def request_task(worker_id: int, address: str | None = None) -> RequestTaskReply | None:
    """Ask the coordinator for work; None when nothing usable came back."""
    try:
        reply = call("Coordinator.RequestTask", RequestTaskArgs(worker_id=worker_id), address)
    except RpcError as exc:
        log.warning("%s", exc)
        time.sleep(0.5)
        return None
    if not reply.is_task_valid:
        time.sleep(1.0)
        return None
    return reply


def _write_intermediate(path: str, pairs: Iterable[KeyValue]) -> None:
    fd, tmp = tempfile.mkstemp(prefix=f"{os.path.basename(path)}-", dir=os.path.dirname(path) or ".")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as out:
            for kv in pairs:
                out.write(json.dumps({"Key": kv.key, "Value": kv.value}, ensure_ascii=False))
                out.write("\n")
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.remove(tmp)
        raise


def perform_map_task(mapf: MapFunc, task: RequestTaskReply, worker_id: int) -> list[str]:
    """Run mapf over the task's input and write one intermediate file per reduce bucket.

    Returns the names of the files written, mr-<task>-<bucket>.
    """
    with open(task.map_file, encoding="utf-8", errors="replace", newline="") as source:
        contents = source.read()
    buckets: list[list[KeyValue]] = [[] for _ in range(task.n_reduce)]
    for kv in mapf(task.map_file, contents):
        buckets[ihash(kv.key) % task.n_reduce].append(kv)
    written = []
    for bucket, pairs in enumerate(buckets):
        final = f"mr-{task.task_id}-{bucket}"
        _write_intermediate(final, pairs)
        written.append(final)
    return written


def _read_intermediate(path: str) -> Iterator[KeyValue]:
    try:
        stream = open(path, encoding="utf-8")
    except OSError as exc:
        log.warning("Error opening file %s: %s", path, exc)
        return
    with stream:
        for line in stream:
            if not line.strip():
                continue
            try:
                record = json.loads(line)
                if not isinstance(record, dict):
                    raise ValueError("expected a JSON object")
                key, value = record.get("Key", ""), record.get("Value", "")
                if not isinstance(key, str) or not isinstance(value, str):
                    raise ValueError("Key and Value must be strings")
            except ValueError as exc:
                log.warning("cannot decode file %s: %s", path, exc)
                return
            yield KeyValue(key, value)


def perform_reduce_task(reducef: ReduceFunc, task: RequestTaskReply, worker_id: int) -> str:
    """Group the task's intermediate records by key, reduce them and write mr-out-<task>.

    Unreadable input files are skipped; a file is read up to its first bad record.
    Returns the output file name.
    """
    grouped: defaultdict[str, list[str]] = defaultdict(list)
    for path in task.reduce_files:
        for kv in _read_intermediate(path):
            grouped[kv.key].append(kv.value)
    output = f"mr-out-{task.task_id}"
    with open(output, "w", encoding="utf-8") as out:
        for key, values in grouped.items():
            out.write(f"{key} {reducef(key, values)}\n")
    return output


def inform_coordinator(
    worker_id: int, completed_task: RequestTaskReply, address: str | None = None
) -> TaskCompletionReply:
    """Report a finished task; an unrecorded reply if the call fails."""
    args = TaskCompletionArgs(
        task_id=completed_task.task_id,
        task_type=completed_task.task_type,
        worker_id=worker_id,
    )
    try:
        return call("Coordinator.ReportTaskCompletion", args, address)
    except RpcError as exc:
        log.warning("%s", exc)
        return TaskCompletionReply()


def worker(mapf: MapFunc, reducef: ReduceFunc, address: str | None = None) -> None:
    """Fetch and run tasks until the coordinator says the job is done."""
    worker_id = generate_worker_id()
    while True:
        task = request_task(worker_id, address)
        if task is None:
            time.sleep(0.2)
            continue
        if task.task_type == TaskPhase.MAP:
            try:
                perform_map_task(mapf, task, worker_id)
            except OSError as exc:
                log.warning("map task %d failed: %s", task.task_id, exc)
                time.sleep(1.0)
                continue
            inform_coordinator(worker_id, task, address)
        elif task.task_type == TaskPhase.REDUCE:
            try:
                perform_reduce_task(reducef, task, worker_id)
            except OSError as exc:
                log.warning("reduce task %d failed: %s", task.task_id, exc)
                time.sleep(30.0)
                continue
            inform_coordinator(worker_id, task, address)
        elif task.task_type == TaskPhase.DONE:
            log.info("Exiting the worker process %d", worker_id)
            return


def call_example(address: str | None = None) -> ExampleReply | None:
    """Make the example call and print its outcome."""
    try:
        reply = call("Coordinator.Example", ExampleArgs(x=99), address)
    except RpcError as exc:
        print(exc)
        print("call failed!")
        return None
    print(f"reply.Y {reply.y}")
    return reply