# minimr

A small MapReduce framework for one machine. A coordinator hands out map
and reduce tasks to any number of worker processes, which talk to it over
a Unix-domain socket. A task held by a worker for more than ten seconds
is taken back and handed out again. A sequential runner does the same job
in one process, so a distributed run can be checked against it.

Python 3.10 or later on a POSIX system; no third-party dependencies.

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Running a job

Start the coordinator with the input files. It makes one map task per
file and ten reduce tasks, and exits once every task is done:

```
minimr-coordinator pg-*.txt
```

In other terminals, in the same directory, start one or more workers,
naming the application to run (a bare name such as `wc`, or a name ending
in `.so` or `.py`, of which only the base name is used):

```
minimr-worker wc
```

By default both sides use the socket `/var/tmp/5840-mr-<uid>`; pass
`--socket PATH` to either command to use another.

Each map task writes its intermediate pairs as JSON lines
(`{"Key": ..., "Value": ...}`) to `mr-<map>-<reduce>` in the current
directory, writing to a temporary file first and renaming it into place.
Each reduce task writes `mr-out-<reduce>`, one `key value` line per key,
in the order the keys were first read rather than sorted. A worker exits
when the coordinator tells it the job is finished.

To run the same job in one process, writing everything to `mr-out-0` with
the keys in sorted order:

```
minimr-sequential wc pg-*.txt
```

## Applications

Applications are looked up by name with `minimr.plugins.load_plugin`,
which returns the pair `(map_func, reduce_func)` or raises
`minimr.plugins.PluginError`; `minimr.plugins.available_plugins()` lists
the names.

| name         | what it does                                                              |
|--------------|---------------------------------------------------------------------------|
| `wc`         | word count: the number of times each word occurs                          |
| `indexer`    | inverted index: for each word, the number and sorted list of documents    |
| `crash`      | fixed output, but sometimes exits the worker or stalls, to test recovery  |
| `nocrash`    | the same output as `crash`, without crashing or stalling                  |
| `early_exit` | one key per file; reduces of keys containing `sherlock` or `tom` take 3 s |
| `jobcount`   | counts how many times map tasks were run, via marker files                |
| `mtiming`    | records when each map task started and how many ran at once               |
| `rtiming`    | records how many reduce tasks ran at once                                 |

Words, for `wc` and `indexer`, are runs of letters; everything else
separates them.

## Using it from Python

- `minimr.coordinator.make_coordinator(files, n_reduce, address)` creates
  a `Coordinator`, starts serving it on the socket and starts a thread that
  requeues timed-out tasks; `Coordinator.done()` tells whether every task
  is complete and `Coordinator.close()` stops it. A `Coordinator` can also
  be driven directly through `request_task`, `report_task_completion` and
  `check_workers`, without a socket.
- `minimr.worker.worker(mapf, reducef, address)` runs a worker loop
  against a coordinator until the job is done.
- `minimr.sequential.run_sequential(mapf, reducef, filenames, output)` runs
  a map and reduce pair over a list of files in one process.

Map functions take a file name and its contents and return
`minimr.worker.KeyValue` pairs; reduce functions take a key and the list
of its values and return a string. Intermediate pairs go to reduce task
`ihash(key) % n_reduce`, where `minimr.worker.ihash` is 32-bit FNV-1a
masked to 31 bits.

The message types and the transport live in `minimr.rpc`: `RpcServer`
serves a handler object, and `call(rpcname, args, address)` sends one
request, raising `RpcError` if the call fails and `OSError` if the
coordinator cannot be reached.

## What it does not do

- Applications are only the built-in ones listed above; there is no way
  to load map and reduce functions from a file given on the command line.
- Coordinator and workers talk over a Unix-domain socket only, so all of
  them must run on the same machine and share a working directory.
- The coordinator keeps its state in memory; a job does not survive a
  restart of the coordinator.