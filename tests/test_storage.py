import json
import os
import time

from quota_library.lock import RefreshLock, pid_is_alive
from quota_library.storage import QuotaCacheStore


def test_read_missing_file_returns_none(tmp_path):
    store = QuotaCacheStore(tmp_path / "quota-data.json")
    assert store.read() is None
    assert store.exists() is False
    assert store.age_seconds() is None


def test_write_creates_parent_and_overwrites(tmp_path):
    store = QuotaCacheStore(tmp_path / "nested" / "dir" / "quota-data.json")

    store.write({"valid": True, "quota_used_pct": 10})
    store.write({"valid": False})

    assert store.read() == {"valid": False}
    assert json.loads(store.path.read_text(encoding="utf-8")) == {"valid": False}
    assert list(store.path.parent.iterdir()) == [store.path]


def test_corrupt_cache_reads_as_absent(tmp_path):
    path = tmp_path / "quota-data.json"
    path.write_text("{not json", encoding="utf-8")
    assert QuotaCacheStore(path).read() is None

    path.write_text("[1, 2, 3]", encoding="utf-8")
    assert QuotaCacheStore(path).read() is None


def test_age_seconds_uses_mtime(tmp_path):
    store = QuotaCacheStore(tmp_path / "quota-data.json")
    store.write({})
    old = time.time() - 600
    os.utime(store.path, (old, old))

    age = store.age_seconds()
    assert 599 <= age <= 660


def test_lock_roundtrip(tmp_path):
    lock = RefreshLock(tmp_path / ".quota-fetch.lock")
    assert lock.holder_pid() is None
    assert lock.is_held() is False

    lock.claim(os.getpid())
    assert lock.holder_pid() == os.getpid()
    assert lock.is_held() is True

    assert lock.release(os.getpid()) is True
    assert lock.path.exists() is False
    assert lock.release() is False


def test_lock_with_dead_pid_is_not_held(tmp_path, monkeypatch):
    lock = RefreshLock(tmp_path / ".quota-fetch.lock")
    lock.claim(424242)
    monkeypatch.setattr("quota_library.lock.pid_is_alive", lambda pid: False)
    assert lock.is_held() is False


def test_lock_with_garbage_content_is_not_held(tmp_path):
    path = tmp_path / ".quota-fetch.lock"
    path.write_text("not-a-pid\n", encoding="utf-8")
    lock = RefreshLock(path)
    assert lock.holder_pid() is None
    assert lock.is_held() is False


def test_release_leaves_marker_owned_by_another_pid(tmp_path):
    lock = RefreshLock(tmp_path / ".quota-fetch.lock")
    lock.claim(os.getpid())
    assert lock.release(os.getpid() + 1) is False
    assert lock.holder_pid() == os.getpid()


def test_pid_is_alive():
    assert pid_is_alive(os.getpid()) is True
    assert pid_is_alive(0) is False
    assert pid_is_alive(-1) is False
