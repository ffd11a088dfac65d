import pytest

from minimr import crash
from minimr.worker import KeyValue


class _Exited(Exception):
    pass


def _fake_exit(code):
    raise _Exited(code)


def _rolls(monkeypatch, *values):
    seq = iter(values)
    calls = []

    def fake(limit):
        calls.append(limit)
        return next(seq)

    monkeypatch.setattr(crash.secrets, "randbelow", fake)
    return calls


def test_map_emits_fixed_keys(monkeypatch):
    _rolls(monkeypatch, 999)
    result = crash.map_func("abc", "hello")
    assert result == [
        KeyValue("a", "abc"),
        KeyValue("b", "3"),
        KeyValue("c", "5"),
        KeyValue("d", "xyzzy"),
    ]


def test_reduce_sorts_and_joins(monkeypatch):
    _rolls(monkeypatch, 999)
    assert crash.reduce_func("a", ["z", "m", "b"]) == "b m z"


def test_low_roll_exits(monkeypatch):
    _rolls(monkeypatch, 0)
    monkeypatch.setattr(crash.os, "_exit", _fake_exit)
    with pytest.raises(_Exited) as info:
        crash.maybe_crash()
    assert info.value.args == (1,)


def test_middle_roll_sleeps(monkeypatch):
    calls = _rolls(monkeypatch, 500, 2500)
    slept = []
    monkeypatch.setattr(crash.time, "sleep", slept.append)
    result = crash.map_func("abc", "hello")
    assert result == [
        KeyValue("a", "abc"),
        KeyValue("b", "3"),
        KeyValue("c", "5"),
        KeyValue("d", "xyzzy"),
    ]
    assert slept == [2.5]
    assert calls == [1000, 10000]