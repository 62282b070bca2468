import logging
import threading

import pytest

from chatlogkit.filegroup import EventOp, FileEvent, FileGroup


@pytest.fixture
def tree(tmp_path):
    (tmp_path / "a.db").write_bytes(b"a")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "b.db").write_bytes(b"b")
    (tmp_path / "sub" / "c.txt").write_bytes(b"c")
    (tmp_path / "skip").mkdir()
    (tmp_path / "skip" / "d.db").write_bytes(b"d")
    return tmp_path


def test_bad_pattern_raises():
    with pytest.raises(ValueError):
        FileGroup("g", "/tmp", "(", None)


def test_root_dir_is_normalised(tmp_path):
    group = FileGroup("g", str(tmp_path) + "/sub/..", r"\.db$", None)
    assert group.root_dir == str(tmp_path)


def test_match_rules(tmp_path):
    group = FileGroup("g", str(tmp_path), r"\.db$", ["skip"])
    assert group.match(str(tmp_path / "a.db")) is True
    assert group.match(str(tmp_path / "x" / "y.db")) is True
    assert group.match(str(tmp_path / "a.txt")) is False
    assert group.match(str(tmp_path / "skip" / "a.db")) is False
    assert group.match(str(tmp_path.parent / "a.db")) is False
    assert group.match("a.db") is False


def test_list_files_in_lexical_order(tree):
    group = FileGroup("g", str(tree), r"\.db$", ["skip"])
    assert group.list_files() == [str(tree / "a.db"), str(tree / "sub" / "b.db")]


def test_list_files_missing_root(tmp_path):
    group = FileGroup("g", str(tmp_path / "missing"), r"\.db$", None)
    assert group.list_files() == []


def test_list_matching_directories(tree):
    group = FileGroup("g", str(tree), r"\.db$", ["skip"])
    assert group.list_matching_directories() == {str(tree), str(tree / "sub")}


def test_remove_callback(tmp_path):
    group = FileGroup("g", str(tmp_path), r"\.db$", None)

    def callback(event):
        return None

    group.add_callback(callback)
    assert group.callbacks == [callback]
    assert group.remove_callback(callback) is True
    assert group.remove_callback(callback) is False
    assert group.callbacks == []


def test_handle_event_runs_callbacks(tmp_path):
    group = FileGroup("g", str(tmp_path), r"\.db$", None)
    received = []
    lock = threading.Lock()

    def callback(event):
        with lock:
            received.append(event)

    group.add_callback(callback)
    group.add_callback(callback)
    event = FileEvent(str(tmp_path / "a.db"), EventOp.WRITE)
    threads = group.handle_event(event)
    for thread in threads:
        thread.join(5)
    assert len(threads) == 2
    assert received == [event, event]


def test_handle_event_ignores_other_files(tmp_path):
    group = FileGroup("g", str(tmp_path), r"\.db$", None)
    received = []
    group.add_callback(received.append)
    threads = group.handle_event(FileEvent(str(tmp_path / "a.txt"), EventOp.CREATE))
    assert threads == []
    assert received == []


def test_callback_error_is_logged(tmp_path, caplog):
    caplog.set_level(logging.ERROR)
    group = FileGroup("g", str(tmp_path), r"\.db$", None)

    def failing(event):
        raise RuntimeError("boom")

    group.add_callback(failing)
    for thread in group.handle_event(FileEvent(str(tmp_path / "a.db"), EventOp.CREATE)):
        thread.join(5)
    assert any("Callback error" in record.getMessage() for record in caplog.records)