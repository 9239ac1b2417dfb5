import threading
import time

from forgesite import utils
from forgesite.html_utils import escape_html, inject_reload_script, not_found_body


def test_build_info_starts_at_epoch_ms_and_bumps_monotonically(monkeypatch):
    before = int(time.time() * 1000)
    info = utils.BuildInfo()
    assert info.version >= before

    monkeypatch.setattr(utils, "_now_ms", lambda: 5)
    pinned = utils.BuildInfo(100)
    assert pinned.bump() == 101
    assert pinned.bump() == 102

    monkeypatch.setattr(utils, "_now_ms", lambda: 10_000)
    assert pinned.bump() == 10_000
    assert pinned.version == 10_000


def test_ensure_clean_dir(tmp_path):
    target = tmp_path / "build"
    (target / "nested").mkdir(parents=True)
    (target / "nested" / "old.txt").write_text("old", encoding="utf-8")
    utils.ensure_clean_dir(target)
    assert target.exists() and list(target.iterdir()) == []

    missing = tmp_path / "missing-dir"
    utils.ensure_clean_dir(missing)
    assert missing.is_dir()


def test_format_size_and_timestamp():
    assert utils.format_size(0) == "0.0 B"
    assert utils.format_size(1536) == "1.5 KB"
    assert utils.format_size(5 * 1024 * 1024) == "5.0 MB"
    stamp = utils.timestamp()
    assert len(stamp) == 8 and stamp.count(":") == 2


def test_read_write_lock_allows_concurrent_readers():
    lock = utils.ReadWriteLock()
    inside = threading.Barrier(3, timeout=5)
    release = threading.Event()

    def reader():
        with lock.read_locked():
            inside.wait()
            release.wait(5)

    threads = [threading.Thread(target=reader) for _ in range(2)]
    for t in threads:
        t.start()
    inside.wait()
    assert lock.readers == 2
    release.set()
    for t in threads:
        t.join()
    assert lock.readers == 0


def test_read_write_lock_writer_excludes_readers():
    lock = utils.ReadWriteLock()
    events = []
    reader_in = threading.Event()
    release_reader = threading.Event()

    def reader():
        with lock.read_locked():
            reader_in.set()
            release_reader.wait(5)
            events.append("reader done")

    def writer():
        with lock.write_locked():
            events.append("writer")

    r = threading.Thread(target=reader)
    r.start()
    reader_in.wait(5)
    w = threading.Thread(target=writer)
    w.start()
    time.sleep(0.05)
    assert events == []
    release_reader.set()
    r.join()
    w.join()
    assert events == ["reader done", "writer"]


def test_waiting_writer_blocks_new_readers():
    lock = utils.ReadWriteLock()
    order = []
    first_in = threading.Event()
    release_first = threading.Event()

    def first_reader():
        with lock.read_locked():
            first_in.set()
            release_first.wait(5)

    def writer():
        with lock.write_locked():
            order.append("writer")

    def late_reader():
        with lock.read_locked():
            order.append("late reader")

    t1 = threading.Thread(target=first_reader)
    t1.start()
    first_in.wait(5)
    tw = threading.Thread(target=writer)
    tw.start()
    time.sleep(0.05)
    t2 = threading.Thread(target=late_reader)
    t2.start()
    time.sleep(0.05)
    assert order == []
    release_first.set()
    for t in (t1, tw, t2):
        t.join()
    assert order == ["writer", "late reader"]


def test_html_helpers():
    assert escape_html('<a href="x">&</a>') == "&lt;a href=&quot;x&quot;&gt;&amp;&lt;/a&gt;"
    assert inject_reload_script("<html><head></head></html>", "<s>") == (
        "<html><head><s></head></html>"
    )
    assert inject_reload_script("<p>x</p>", "<s>") == "<p>x</p><s>"
    assert not_found_body("/missing<>") == (
        "<h1>404 - Page Not Found</h1><p>URL: /missing&lt;&gt;</p>"
    )
    assert "doesn't exist" in not_found_body()
