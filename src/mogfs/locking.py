"""
Read-write lock guarding a single file handle.

Readers share the lock; a writer excludes readers and other writers. The lock
prefers writers: once a writer is waiting, newly arriving readers queue behind
it, unless they already hold the lock. Holds are counted per acquiring thread,
but a hold may be released by another thread (a stream returned to a caller
can be closed anywhere).
"""
from __future__ import annotations

import threading
from typing import Dict, Optional

__all__ = ["ReadWriteLock", "LockGuard"]


class _LockView:
    """One side (read or write) of a ReadWriteLock, usable as a context manager."""

    def __init__(self, owner: "ReadWriteLock", exclusive: bool) -> None:
        self._owner = owner
        self.exclusive = exclusive

    def acquire(self) -> None:
        if self.exclusive:
            self._owner._acquire_write(threading.get_ident())
        else:
            self._owner._acquire_read(threading.get_ident())

    def release(self, holder: Optional[int] = None) -> None:
        """
        Release one hold.

        ``holder`` is the ident of the thread that acquired the hold; it
        defaults to the calling thread.
        """
        if holder is None:
            holder = threading.get_ident()
        if self.exclusive:
            self._owner._release_write()
        else:
            self._owner._release_read(holder)

    def __enter__(self) -> "_LockView":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()

    def __repr__(self) -> str:
        mode = "write" if self.exclusive else "read"
        return f"<{mode} lock of {self._owner!r}>"


class ReadWriteLock:
    """
    Reentrant, writer-preferring read-write lock.

    Holds are counted per acquiring thread. A thread that already holds the
    read lock may take it again even while a writer waits, and the thread
    holding the write lock may take the write lock again or take read holds.
    Upgrading a read hold to a write hold is not supported and blocks.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._read_holds: Dict[int, int] = {}
        self._writer: Optional[int] = None
        self._write_holds = 0
        self._waiting_writers = 0
        self.read_lock = _LockView(self, exclusive=False)
        self.write_lock = _LockView(self, exclusive=True)

    def _acquire_read(self, thread_id: int) -> None:
        with self._cond:
            if self._writer != thread_id and not self._read_holds.get(thread_id):
                while self._writer is not None or self._waiting_writers:
                    self._cond.wait()
            self._readers += 1
            self._read_holds[thread_id] = self._read_holds.get(thread_id, 0) + 1

    def _release_read(self, thread_id: int) -> None:
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release of an unheld read lock")
            if thread_id not in self._read_holds:
                # released on behalf of an unknown thread: charge any holder
                thread_id = next(iter(self._read_holds))
            self._readers -= 1
            self._read_holds[thread_id] -= 1
            if not self._read_holds[thread_id]:
                del self._read_holds[thread_id]
            if self._readers == 0:
                self._cond.notify_all()

    def _acquire_write(self, thread_id: int) -> None:
        with self._cond:
            if self._writer == thread_id:
                self._write_holds += 1
                return
            self._waiting_writers += 1
            try:
                while self._writer is not None or self._readers:
                    self._cond.wait()
            except BaseException:
                self._waiting_writers -= 1
                self._cond.notify_all()
                raise
            self._waiting_writers -= 1
            self._writer = thread_id
            self._write_holds = 1

    def _release_write(self) -> None:
        with self._cond:
            if self._writer is None:
                raise RuntimeError("release of an unheld write lock")
            self._write_holds -= 1
            if self._write_holds == 0:
                self._writer = None
                self._cond.notify_all()

    @property
    def readers(self) -> int:
        """Number of read holds currently outstanding."""
        with self._cond:
            return self._readers

    @property
    def write_locked(self) -> bool:
        with self._cond:
            return self._writer is not None

    def __repr__(self) -> str:
        return f"ReadWriteLock(readers={self._readers}, writer={self._writer is not None})"


class LockGuard:
    """
    Ownership of one acquired read or write hold.

    A guard is created right after the lock is acquired and is handed to
    whoever is responsible for releasing it: the handle on failure paths, or
    the returned stream on success. ``release()`` releases the hold exactly
    once; later calls do nothing, so both parties may call it safely. The
    hold stays charged to the acquiring thread even when another thread
    releases it.
    """

    def __init__(self, lock: _LockView) -> None:
        self._lock: Optional[_LockView] = lock
        self._holder = threading.get_ident()
        self._mutex = threading.Lock()

    @classmethod
    def acquire(cls, lock: _LockView) -> "LockGuard":
        """Block until ``lock`` is acquired and return a guard owning it."""
        lock.acquire()
        return cls(lock)

    @property
    def held(self) -> bool:
        return self._lock is not None

    def release(self) -> bool:
        """Release the hold. Returns False if it was already released."""
        with self._mutex:
            lock, self._lock = self._lock, None
        if lock is None:
            return False
        lock.release(self._holder)
        return True

    def __repr__(self) -> str:
        state = "held" if self.held else "released"
        return f"LockGuard({state})"
