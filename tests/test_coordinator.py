import time

import pytest

from minimr.coordinator import (
    INVALID_WORKER_ID,
    WAIT_TIME,
    Coordinator,
    check_dead_workers,
    make_coordinator,
)
from minimr.rpc import (
    ExampleArgs,
    RequestTaskArgs,
    TaskCompletionArgs,
    TaskPhase,
    TaskStatus,
    call,
)


def _finish_maps(c):
    for worker_id in range(len(c.files)):
        reply = c.request_task(RequestTaskArgs(worker_id=worker_id))
        c.report_task_completion(TaskCompletionArgs(reply.task_id, TaskPhase.MAP, worker_id))


def test_initial_state():
    c = Coordinator(["f0", "f1", "f2"], 4)
    assert sorted(c.map_tasks) == [0, 1, 2]
    assert all(t.status == TaskStatus.IDLE for t in c.map_tasks.values())
    assert c.phase == TaskPhase.MAP
    assert c.done() is False


def test_request_assigns_map_task():
    c = Coordinator(["f0", "f1"], 3)
    reply = c.request_task(RequestTaskArgs(worker_id=9))
    assert reply.is_task_valid
    assert reply.task_type == TaskPhase.MAP
    assert reply.task_id == 0
    assert reply.map_file == "f0"
    assert reply.n_reduce == 3
    task = c.map_tasks[0]
    assert task.status == TaskStatus.IN_PROGRESS
    assert task.worker_id == 9


def test_request_with_empty_queue_is_invalid_until_done():
    c = Coordinator(["f0"], 1)
    c.request_task(RequestTaskArgs(worker_id=1))
    reply = c.request_task(RequestTaskArgs(worker_id=2))
    assert reply.is_task_valid is False
    assert reply.do_exit is False


def test_report_is_recorded_once():
    c = Coordinator(["f0", "f1"], 2)
    c.request_task(RequestTaskArgs(worker_id=1))
    first = c.report_task_completion(TaskCompletionArgs(0, TaskPhase.MAP, 1))
    second = c.report_task_completion(TaskCompletionArgs(0, TaskPhase.MAP, 1))
    assert first.recorded is True
    assert second.recorded is False
    assert c.map_tasks_completed == 1


def test_report_unknown_task_is_not_recorded():
    c = Coordinator(["f0"], 2)
    assert c.report_task_completion(TaskCompletionArgs(42, TaskPhase.MAP, 1)).recorded is False
    assert c.report_task_completion(TaskCompletionArgs(0, TaskPhase.REDUCE, 1)).recorded is False


def test_map_completion_moves_to_reduce():
    c = Coordinator(["f0", "f1"], 3)
    _finish_maps(c)
    assert c.phase == TaskPhase.REDUCE
    assert sorted(c.reduce_tasks) == [0, 1, 2]
    reply = c.request_task(RequestTaskArgs(worker_id=5))
    assert reply.is_task_valid
    assert reply.task_type == TaskPhase.REDUCE
    assert reply.task_id == 0
    assert reply.reduce_files == ["mr-0-0", "mr-1-0"]


def test_full_job_reaches_done():
    c = Coordinator(["f0"], 2)
    _finish_maps(c)
    for worker_id in range(2):
        reply = c.request_task(RequestTaskArgs(worker_id=worker_id))
        recorded = c.report_task_completion(
            TaskCompletionArgs(reply.task_id, TaskPhase.REDUCE, worker_id)
        )
        assert recorded.recorded
    assert c.phase == TaskPhase.DONE
    assert c.done() is True
    assert c.all_tasks_completed() is True
    final = c.request_task(RequestTaskArgs(worker_id=3))
    assert final.task_type == TaskPhase.DONE
    assert final.do_exit is True
    assert final.is_task_valid is True


def test_no_files_is_done_immediately():
    c = Coordinator([], 3)
    assert c.done() is True
    reply = c.request_task(RequestTaskArgs(worker_id=1))
    assert reply.task_type == TaskPhase.DONE


def test_fresh_task_is_not_dead():
    c = Coordinator(["f0"], 1)
    c.request_task(RequestTaskArgs(worker_id=5))
    assert check_dead_workers(c.map_tasks) == []
    assert c.check_workers() == []


def test_dead_worker_task_is_reassigned():
    c = Coordinator(["f0"], 1)
    c.request_task(RequestTaskArgs(worker_id=5))
    c.map_tasks[0].start_time = time.monotonic() - (WAIT_TIME + 1)
    assert check_dead_workers(c.map_tasks) == [5]
    assert c.check_workers() == [5]
    assert c.map_tasks[0].status == TaskStatus.IDLE
    assert c.map_tasks[0].worker_id == INVALID_WORKER_ID
    reply = c.request_task(RequestTaskArgs(worker_id=6))
    assert reply.is_task_valid
    assert reply.task_id == 0
    assert c.map_tasks[0].worker_id == 6


def test_handle_dead_workers_ignores_other_workers():
    c = Coordinator(["f0", "f1"], 1)
    c.request_task(RequestTaskArgs(worker_id=1))
    c.request_task(RequestTaskArgs(worker_id=2))
    c.handle_dead_workers([1])
    assert c.map_tasks[0].status == TaskStatus.IDLE
    assert c.map_tasks[1].status == TaskStatus.IN_PROGRESS


def test_example_adds_one():
    assert Coordinator([], 1).example(ExampleArgs(x=99)).y == 100


def test_serve_answers_calls(tmp_path):
    address = str(tmp_path / "c.sock")
    coordinator = make_coordinator(["input"], 2, address)
    try:
        assert call("Coordinator.Example", ExampleArgs(x=99), address).y == 100
        reply = call("Coordinator.RequestTask", RequestTaskArgs(worker_id=7), address)
        assert reply.task_type == TaskPhase.MAP
        assert reply.map_file == "input"
        assert coordinator.map_tasks[0].worker_id == 7
    finally:
        coordinator.close()
    with pytest.raises(OSError):
        call("Coordinator.Example", ExampleArgs(x=1), address)