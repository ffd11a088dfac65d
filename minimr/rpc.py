"""Messages exchanged between coordinator and workers, and the socket transport that carries them."""

from __future__ import annotations

import contextlib
import json
import os
import socket
import socketserver
import threading
from dataclasses import asdict, dataclass, field
from enum import IntEnum
from typing import Any, NamedTuple


class TaskPhase(IntEnum):
    """Kind of task, and the phase the job is in."""

    MAP = 0
    REDUCE = 1
    DONE = 2


class TaskStatus(IntEnum):
    """Progress of a single task."""

    IDLE = 0
    IN_PROGRESS = 1
    COMPLETED = 2


@dataclass
class ExampleArgs:
    x: int = 0


@dataclass
class ExampleReply:
    y: int = 0


@dataclass
class RequestTaskArgs:
    worker_id: int = 0


@dataclass
class RequestTaskReply:
    task_id: int = 0
    task_type: TaskPhase = TaskPhase.MAP
    map_file: str = ""
    reduce_files: list[str] = field(default_factory=list)
    reduce_id: int = 0
    is_task_valid: bool = False
    n_reduce: int = 0
    do_exit: bool = False

    def __post_init__(self) -> None:
        self.task_type = TaskPhase(self.task_type)


@dataclass
class TaskCompletionArgs:
    task_id: int = 0
    task_type: TaskPhase = TaskPhase.MAP
    worker_id: int = 0

    def __post_init__(self) -> None:
        self.task_type = TaskPhase(self.task_type)


@dataclass
class TaskCompletionReply:
    recorded: bool = False


class RpcError(Exception):
    """A remote call failed: unknown method, bad message or an error in the handler."""


class _Method(NamedTuple):
    attribute: str
    args_type: type
    reply_type: type


_METHODS: dict[str, _Method] = {
    "Coordinator.Example": _Method("example", ExampleArgs, ExampleReply),
    "Coordinator.RequestTask": _Method("request_task", RequestTaskArgs, RequestTaskReply),
    "Coordinator.ReportTaskCompletion": _Method(
        "report_task_completion", TaskCompletionArgs, TaskCompletionReply
    ),
}


def _lookup(rpcname: str) -> _Method:
    try:
        return _METHODS[rpcname]
    except KeyError:
        raise RpcError(f"rpc: can't find method {rpcname}") from None


def coordinator_sock() -> str:
    """Return a per-user UNIX-domain socket path for the coordinator."""
    return f"/var/tmp/5840-mr-{os.getuid()}"


class _Connection(socketserver.StreamRequestHandler):
    def handle(self) -> None:
        for line in self.rfile:
            self.wfile.write(self.server.rpc._dispatch(line))
            self.wfile.flush()


class _UnixServer(socketserver.ThreadingUnixStreamServer):
    daemon_threads = True
    rpc: RpcServer


class RpcServer:
    """Serves the methods of a handler object over a UNIX-domain socket.

    Each request is one JSON line naming the method and its arguments; each
    response is one JSON line holding either the reply or an error.
    """

    def __init__(self, handler: Any, address: str | None = None) -> None:
        self.handler = handler
        self.address = address or coordinator_sock()
        self._server: _UnixServer | None = None
        self._thread: threading.Thread | None = None

    def start(self) -> RpcServer:
        """Bind the socket, replacing any stale file, and serve in a background thread."""
        with contextlib.suppress(FileNotFoundError):
            os.remove(self.address)
        server = _UnixServer(self.address, _Connection)
        server.rpc = self
        self._server = server
        self._thread = threading.Thread(target=server.serve_forever, daemon=True)
        self._thread.start()
        return self

    def close(self) -> None:
        """Stop serving and remove the socket file."""
        if self._server is None:
            return
        self._server.shutdown()
        self._server.server_close()
        if self._thread is not None:
            self._thread.join()
        self._server = None
        self._thread = None
        with contextlib.suppress(FileNotFoundError):
            os.remove(self.address)

    def __enter__(self) -> RpcServer:
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _dispatch(self, raw: bytes) -> bytes:
        try:
            request = json.loads(raw)
            method = _lookup(request["method"])
            args = method.args_type(**request.get("args", {}))
            reply = getattr(self.handler, method.attribute)(args)
            response: dict[str, Any] = {"reply": asdict(reply)}
        except Exception as exc:  # reported back to the caller
            response = {"error": f"{type(exc).__name__}: {exc}"}
        return json.dumps(response).encode("utf-8") + b"\n"


def call(rpcname: str, args: Any, address: str | None = None) -> Any:
    """Send one request to the coordinator and return its decoded reply.

    Raises OSError if the coordinator cannot be reached and RpcError if the
    call itself fails.
    """
    method = _lookup(rpcname)
    request = json.dumps({"method": rpcname, "args": asdict(args)}).encode("utf-8") + b"\n"
    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
        sock.connect(address or coordinator_sock())
        with sock.makefile("rwb") as stream:
            stream.write(request)
            stream.flush()
            line = stream.readline()
    if not line:
        raise RpcError(f"{rpcname}: connection closed without a reply")
    try:
        response = json.loads(line)
    except ValueError as exc:
        raise RpcError(f"{rpcname}: malformed reply: {exc}") from exc
    if "error" in response:
        raise RpcError(response["error"])
    try:
        return method.reply_type(**response["reply"])
    except (KeyError, TypeError, ValueError) as exc:
        raise RpcError(f"{rpcname}: malformed reply: {exc}") from exc