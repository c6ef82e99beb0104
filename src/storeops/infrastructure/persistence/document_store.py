"""Whole-document stores backing the unit of work.

The store holds one JSON-compatible document with a ``products`` and an
``orders`` list.  Writers replace the whole document while holding the
store lock; readers only ever see a fully written document.

For the JSON file the lock is a thread lock plus an exclusive ``flock``
on a ``<store>.lock`` file next to it, so separate processes (one per CLI
command) also commit one at a time.
"""

from __future__ import annotations

import fcntl
import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path

SCHEMA_VERSION = 1


def empty_document() -> dict:
    return {"schema_version": SCHEMA_VERSION, "products": [], "orders": []}


class DocumentStore(ABC):

    def __init__(self) -> None:
        self.lock = threading.RLock()

    @abstractmethod
    def read(self) -> dict:
        """Return a private copy of the latest committed document."""

    @abstractmethod
    def write(self, document: dict) -> None:
        """Replace the committed document.  Caller holds ``lock``."""


class FileLock:
    """Re-entrant lock held across threads and processes.

    The thread lock admits one thread of this process; the outermost
    acquisition then takes ``flock`` on the lock file, which excludes
    every other process using the same store.
    """

    def __init__(self, lock_path: Path) -> None:
        self.lock_path = lock_path
        self._thread_lock = threading.RLock()
        self._depth = 0
        self._lock_file = None

    def __enter__(self) -> FileLock:
        self._thread_lock.acquire()
        try:
            if self._depth == 0:
                self.lock_path.parent.mkdir(parents=True, exist_ok=True)
                lock_file = open(self.lock_path, "a")
                try:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
                except BaseException:
                    lock_file.close()
                    raise
                self._lock_file = lock_file
            self._depth += 1
        except BaseException:
            self._thread_lock.release()
            raise
        return self

    def __exit__(self, *args) -> None:
        try:
            self._depth -= 1
            if self._depth == 0:
                lock_file, self._lock_file = self._lock_file, None
                try:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
                finally:
                    lock_file.close()
        finally:
            self._thread_lock.release()


# One lock per file, shared by every store instance pointing at it.
_FILE_LOCKS: dict[Path, FileLock] = {}
_FILE_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> FileLock:
    with _FILE_LOCKS_GUARD:
        if path not in _FILE_LOCKS:
            _FILE_LOCKS[path] = FileLock(path.with_name(path.name + ".lock"))
        return _FILE_LOCKS[path]


class JsonFileStore(DocumentStore):
    """JSON file with write-to-temp-then-rename commits."""

    def __init__(self, file_path: Path) -> None:
        super().__init__()
        self._file_path = file_path.resolve()
        self.lock = _lock_for(self._file_path)
        self._ensure_file()

    @property
    def file_path(self) -> Path:
        return self._file_path

    def read(self) -> dict:
        with self.lock:
            document = json.loads(self._file_path.read_text(encoding="utf-8"))
        document.setdefault("products", [])
        document.setdefault("orders", [])
        return document

    def write(self, document: dict) -> None:
        # Write to temp file then rename (atomic on POSIX)
        fd, temp_path = tempfile.mkstemp(
            dir=self._file_path.parent, prefix=".store_", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self._file_path)
        except BaseException:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def _ensure_file(self) -> None:
        with self.lock:
            if not self._file_path.exists():
                self._file_path.parent.mkdir(parents=True, exist_ok=True)
                self.write(empty_document())
