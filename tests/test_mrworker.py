import os
import uuid

import pytest

from minimr.coordinator import Coordinator
from minimr.mrworker import main


@pytest.fixture
def socket_path():
    base = "/tmp" if os.path.isdir("/tmp") else None
    path = os.path.join(base or ".", f"minimr-{uuid.uuid4().hex[:10]}.sock")
    yield path
    if os.path.exists(path):
        os.remove(path)


def test_usage_without_plugin(capsys):
    assert main([]) == 1
    assert "Usage: mrworker" in capsys.readouterr().err


def test_usage_with_two_plugins(capsys):
    assert main(["wc.so", "indexer.so"]) == 1
    assert "Usage: mrworker" in capsys.readouterr().err


def test_unknown_plugin(capsys):
    assert main(["nosuch.so"]) == 1
    assert "cannot load plugin" in capsys.readouterr().err


def test_worker_runs_job_to_completion(tmp_path, monkeypatch, socket_path):
    monkeypatch.chdir(tmp_path)
    source = tmp_path / "in.txt"
    source.write_text("the cat the dog")
    coordinator = Coordinator([str(source)], 2).serve(socket_path)
    try:
        assert main(["wc.so", "--socket", socket_path]) == 0
        assert coordinator.done()
    finally:
        coordinator.close()
    lines = []
    for bucket in range(2):
        lines.extend((tmp_path / f"mr-out-{bucket}").read_text().splitlines())
    assert sorted(lines) == ["cat 1", "dog 1", "the 2"]
    assert (tmp_path / "mr-0-0").exists() and (tmp_path / "mr-0-1").exists()