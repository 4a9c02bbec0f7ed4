"""Process-level exclusive lock on a fingerprint store."""

import fcntl
import os
from pathlib import Path
from typing import Optional, TextIO

from watchbot.core.errors import StoreLockedError


class StoreLock:
    """
    Holds a non-blocking flock on ``<store>.lock`` for the process lifetime.

    Only one watcher process may own a given store. The lock file is never
    deleted; removing it would let two processes hold "exclusive" locks on
    different inodes with the same path.
    """

    def __init__(self, store_path: Path):
        self.lock_path = Path(f"{store_path}.lock")
        self._fd: Optional[TextIO] = None

    def acquire(self) -> None:
        """
        Take the lock.
        
        Raises:
            StoreLockedError: If another process already holds it
        """
        if self._fd is not None:
            return

        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        fd = open(self.lock_path, "a+")
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            fd.seek(0)
            holder = fd.read().strip() or "unknown"
            fd.close()
            raise StoreLockedError(
                f"Fingerprint store is in use by another watcher (pid {holder}). "
                f"Lock file: {self.lock_path}"
            )

        fd.seek(0)
        fd.truncate()
        fd.write(str(os.getpid()))
        fd.flush()
        self._fd = fd

    def release(self) -> None:
        if self._fd is None:
            return
        try:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
        finally:
            self._fd.close()
            self._fd = None

    def __enter__(self) -> "StoreLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
