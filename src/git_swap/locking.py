"""Cross-process lock around the config document's load-mutate-save cycle."""

from __future__ import annotations

import os
import sys
import time
from pathlib import Path
from typing import IO

# Platform-specific imports for file locking
if sys.platform == "win32":
    import msvcrt
else:
    import fcntl

from git_swap.exceptions import LockError

DEFAULT_TIMEOUT = 10.0


class FileLock:
    """Exclusive lock on a file, held for the duration of one command."""

    def __init__(self, lock_path: Path, timeout: float = DEFAULT_TIMEOUT):
        self.lock_path = lock_path
        self.timeout = timeout
        self._lock_file: IO | None = None
        self._locked = False

    @property
    def locked(self) -> bool:
        return self._locked

    def _try_lock(self) -> None:
        if sys.platform == "win32":
            # msvcrt locks from the current position; "a+" opens at end of file
            self._lock_file.seek(0)
            msvcrt.locking(self._lock_file.fileno(), msvcrt.LK_NBLCK, 1)
        else:
            fcntl.flock(self._lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)

    def acquire(self, timeout: float | None = None) -> bool:
        """Acquire the lock, polling until timeout.

        Returns:
            True if lock acquired, False if timeout.
        """
        timeout = self.timeout if timeout is None else timeout
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock_file = open(self.lock_path, "a+")

        deadline = time.monotonic() + timeout
        while True:
            try:
                self._try_lock()
            except OSError:
                if time.monotonic() > deadline:
                    self._lock_file.close()
                    self._lock_file = None
                    return False
                time.sleep(0.1)
                continue
            self._locked = True
            # Holder's pid, for diagnosing a stuck lock
            self._lock_file.seek(0)
            self._lock_file.truncate()
            self._lock_file.write(str(os.getpid()))
            self._lock_file.flush()
            return True

    def release(self) -> None:
        """Release the lock. Safe to call when not held."""
        if not (self._lock_file and self._locked):
            return
        if sys.platform == "win32":
            try:
                self._lock_file.seek(0)
                msvcrt.locking(self._lock_file.fileno(), msvcrt.LK_UNLCK, 1)
            except OSError:
                pass  # File may already be unlocked
        else:
            fcntl.flock(self._lock_file.fileno(), fcntl.LOCK_UN)
        self._lock_file.close()
        self._lock_file = None
        self._locked = False

    def __enter__(self) -> FileLock:
        if not self.acquire():
            raise LockError(
                f"Failed to acquire lock {self.lock_path} - another gswap command may be running"
            )
        return self

    def __exit__(self, *args) -> None:
        self.release()
