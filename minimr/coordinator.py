"""Coordinator: hands out map and reduce tasks and re-issues those whose workers went silent."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from minimr.rpc import (
    ExampleArgs,
    ExampleReply,
    RequestTaskArgs,
    RequestTaskReply,
    RpcServer,
    TaskCompletionArgs,
    TaskCompletionReply,
    TaskPhase,
    TaskStatus,
)

log = logging.getLogger(__name__)

INVALID_WORKER_ID = -1
WAIT_TIME = 10.0
MONITOR_INTERVAL = 2.0


@dataclass
class TaskInfo:
    """State the coordinator keeps for one map or reduce task."""

    task_id: int
    task_type: TaskPhase
    status: TaskStatus = TaskStatus.IDLE
    file: str = ""
    start_time: float | None = None
    worker_id: int = INVALID_WORKER_ID
    input_files: list[str] = field(default_factory=list)
    output_file: str = ""


def check_dead_workers(info: Mapping[int, TaskInfo]) -> list[int]:
    """Return the workers holding an in-progress task for longer than WAIT_TIME seconds."""
    now = time.monotonic()
    return [
        task.worker_id
        for task in info.values()
        if task.status == TaskStatus.IN_PROGRESS
        and task.start_time is not None
        and now - task.start_time > WAIT_TIME
    ]


class Coordinator:
    """Tracks the tasks of one job and answers worker requests."""

    def __init__(self, files: Iterable[str], n_reduce: int) -> None:
        self.files = list(files)
        self.n_reduce = n_reduce
        self.phase = TaskPhase.MAP
        self.map_tasks: dict[int, TaskInfo] = {
            i: TaskInfo(task_id=i, task_type=TaskPhase.MAP, file=name)
            for i, name in enumerate(self.files)
        }
        self.reduce_tasks: dict[int, TaskInfo] = {}
        self.map_tasks_completed = 0
        self.reduce_tasks_completed = 0
        self._queue: deque[int] = deque(self.map_tasks)
        self._lock = threading.RLock()
        self._server: RpcServer | None = None
        self._stop = threading.Event()
        self._monitor: threading.Thread | None = None

    def _phase_tasks(self) -> dict[int, TaskInfo]:
        if self.phase == TaskPhase.MAP:
            return self.map_tasks
        if self.phase == TaskPhase.REDUCE:
            return self.reduce_tasks
        return {}

    def _collect_reduce_files(self, task_id: int) -> list[str]:
        return [f"mr-{i}-{task_id}" for i in range(len(self.files))]

    def _advance_phase(self) -> None:
        if self.phase == TaskPhase.MAP:
            self.phase = TaskPhase.REDUCE
        elif self.phase == TaskPhase.REDUCE:
            self.phase = TaskPhase.DONE

    def _fill_reduce_tasks(self) -> None:
        self.reduce_tasks = {
            i: TaskInfo(task_id=i, task_type=TaskPhase.REDUCE) for i in range(self.n_reduce)
        }
        self._queue.extend(self.reduce_tasks)

    def all_tasks_completed(self) -> bool:
        """Whether every task of the current phase is completed."""
        with self._lock:
            return all(t.status == TaskStatus.COMPLETED for t in self._phase_tasks().values())

    def request_task(self, args: RequestTaskArgs) -> RequestTaskReply:
        """Assign the next idle task to the asking worker, or tell it to exit when all is done."""
        with self._lock:
            reply = RequestTaskReply()
            try:
                task_id = self._queue.popleft()
            except IndexError:
                if self.all_tasks_completed():
                    reply.do_exit = True
                    reply.task_type = TaskPhase.DONE
                    reply.is_task_valid = True
                return reply
            task = self._phase_tasks().get(task_id)
            if task is None or task.status != TaskStatus.IDLE:
                return reply
            task.worker_id = args.worker_id
            task.start_time = time.monotonic()
            task.status = TaskStatus.IN_PROGRESS
            reply.task_id = task.task_id
            reply.task_type = task.task_type
            reply.n_reduce = self.n_reduce
            reply.is_task_valid = True
            if task.task_type == TaskPhase.MAP:
                reply.map_file = task.file
            else:
                reply.reduce_files = self._collect_reduce_files(task.task_id)
            return reply

    def report_task_completion(self, args: TaskCompletionArgs) -> TaskCompletionReply:
        """Record a finished task; moves the job on once a phase is complete."""
        with self._lock:
            if args.task_type == TaskPhase.MAP:
                tasks = self.map_tasks
            elif args.task_type == TaskPhase.REDUCE:
                tasks = self.reduce_tasks
            else:
                return TaskCompletionReply()
            task = tasks.get(args.task_id)
            if task is None:
                log.warning("Invalid TaskId %d reported by worker %d", args.task_id, args.worker_id)
                return TaskCompletionReply(recorded=False)
            if task.status == TaskStatus.COMPLETED:
                return TaskCompletionReply(recorded=False)
            task.status = TaskStatus.COMPLETED
            if task.start_time is not None:
                log.info("Time taken: %.3fs", time.monotonic() - task.start_time)
            if args.task_type == TaskPhase.MAP:
                self.map_tasks_completed += 1
                if self.map_tasks_completed == len(self.files):
                    log.info("Finished map tasks")
                    self._advance_phase()
                    self._queue.clear()
                    self._fill_reduce_tasks()
            else:
                self.reduce_tasks_completed += 1
                if self.reduce_tasks_completed == self.n_reduce:
                    log.info("Finished reduce tasks")
                    self._advance_phase()
            return TaskCompletionReply(recorded=True)

    def example(self, args: ExampleArgs) -> ExampleReply:
        """Answer the example call with x + 1."""
        return ExampleReply(y=args.x + 1)

    def handle_dead_workers(self, dead_workers: Iterable[int]) -> None:
        """Return the in-progress tasks of the given workers to the queue."""
        with self._lock:
            tasks = self._phase_tasks()
            for worker_id in dead_workers:
                for task_id, task in tasks.items():
                    if task.worker_id == worker_id and task.status == TaskStatus.IN_PROGRESS:
                        task.status = TaskStatus.IDLE
                        task.worker_id = INVALID_WORKER_ID
                        self._queue.append(task_id)

    def check_workers(self) -> list[int]:
        """Find workers that timed out in the current phase, requeue their tasks and return them."""
        with self._lock:
            if self.phase not in (TaskPhase.MAP, TaskPhase.REDUCE):
                return []
            dead = check_dead_workers(self._phase_tasks())
            self.handle_dead_workers(dead)
            return dead

    def done(self) -> bool:
        """Whether every map and every reduce task is completed."""
        with self._lock:
            return all(
                t.status == TaskStatus.COMPLETED
                for t in (*self.map_tasks.values(), *self.reduce_tasks.values())
            )

    def _watch(self) -> None:
        while not self._stop.wait(MONITOR_INTERVAL):
            self.check_workers()

    def serve(self, address: str | None = None) -> Coordinator:
        """Start answering calls on the socket and watching for dead workers."""
        self._server = RpcServer(self, address).start()
        self._stop.clear()
        self._monitor = threading.Thread(target=self._watch, daemon=True)
        self._monitor.start()
        return self

    def close(self) -> None:
        """Stop the watcher and the server."""
        self._stop.set()
        if self._monitor is not None:
            self._monitor.join()
            self._monitor = None
        if self._server is not None:
            self._server.close()
            self._server = None

    def __enter__(self) -> Coordinator:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def make_coordinator(files: Iterable[str], n_reduce: int, address: str | None = None) -> Coordinator:
    """Create a coordinator for the files and start serving it."""
    return Coordinator(files, n_reduce).serve(address)