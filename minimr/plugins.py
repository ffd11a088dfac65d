"""Lookup of the built-in MapReduce applications by name."""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable

from minimr import crash, early_exit, indexer, jobcount, mtiming, nocrash, rtiming, wc
from minimr.worker import KeyValue

MapFunc = Callable[[str, str], Iterable[KeyValue]]
ReduceFunc = Callable[[str, list[str]], str]

_APPLICATIONS = {
    "crash": crash,
    "early_exit": early_exit,
    "indexer": indexer,
    "jobcount": jobcount,
    "mtiming": mtiming,
    "nocrash": nocrash,
    "rtiming": rtiming,
    "wc": wc,
}

_SUFFIXES = (".so", ".py")


class PluginError(LookupError):
    """No application with the requested name."""


def available_plugins() -> list[str]:
    """Names of the applications that can be loaded, sorted."""
    return sorted(_APPLICATIONS)


def load_plugin(name: str) -> tuple[MapFunc, ReduceFunc]:
    """Return the map and reduce functions of an application.

    The name may be given bare ("wc") or as a plugin path ("../mrapps/wc.so").
    """
    base = os.path.basename(name)
    for suffix in _SUFFIXES:
        if base.endswith(suffix):
            base = base[: -len(suffix)]
            break
    try:
        app = _APPLICATIONS[base]
    except KeyError:
        raise PluginError(f"cannot load plugin {name}") from None
    return app.map_func, app.reduce_func