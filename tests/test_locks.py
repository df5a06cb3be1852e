from __future__ import annotations

import threading
import time

from jabractl.core.locks import ReadWriteLock


def _wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            return False
        time.sleep(0.005)
    return True


def test_readers_share_the_lock() -> None:
    lock = ReadWriteLock()
    lock.acquire_read()
    acquired = threading.Event()

    def reader() -> None:
        with lock.read_locked():
            acquired.set()

    thread = threading.Thread(target=reader)
    thread.start()
    assert acquired.wait(timeout=2.0)
    thread.join(timeout=2.0)
    lock.release_read()


def test_writer_waits_for_readers() -> None:
    lock = ReadWriteLock()
    lock.acquire_read()
    written = threading.Event()

    def writer() -> None:
        with lock.write_locked():
            written.set()

    thread = threading.Thread(target=writer)
    thread.start()
    assert not written.wait(timeout=0.1)
    lock.release_read()
    assert written.wait(timeout=2.0)
    thread.join(timeout=2.0)


def test_waiting_writer_blocks_new_readers() -> None:
    lock = ReadWriteLock()
    lock.acquire_read()
    order: list[str] = []
    writer_done = threading.Event()
    reader_done = threading.Event()

    def writer() -> None:
        with lock.write_locked():
            order.append("writer")
        writer_done.set()

    def late_reader() -> None:
        with lock.read_locked():
            order.append("reader")
        reader_done.set()

    writer_thread = threading.Thread(target=writer)
    writer_thread.start()
    assert _wait_for(lambda: lock._writers_waiting == 1)

    reader_thread = threading.Thread(target=late_reader)
    reader_thread.start()
    assert not reader_done.wait(timeout=0.1)

    lock.release_read()
    assert writer_done.wait(timeout=2.0)
    assert reader_done.wait(timeout=2.0)
    writer_thread.join(timeout=2.0)
    reader_thread.join(timeout=2.0)
    assert order == ["writer", "reader"]


def test_writers_are_exclusive() -> None:
    lock = ReadWriteLock()
    lock.acquire_write()
    acquired = threading.Event()

    def other_writer() -> None:
        with lock.write_locked():
            acquired.set()

    thread = threading.Thread(target=other_writer)
    thread.start()
    assert not acquired.wait(timeout=0.1)
    lock.release_write()
    assert acquired.wait(timeout=2.0)
    thread.join(timeout=2.0)
