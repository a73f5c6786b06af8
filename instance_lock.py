"""
Single-writer lock for ChillTap Buddy progress.

Saved progress assumes one writer at a time. This lock makes that true
across processes using OS-level file locking:
- Unix (macOS/Linux): fcntl.flock()
- Windows: msvcrt.locking()

The OS drops the lock when the process exits, even on a crash, so a
leftover lock file never blocks the next start.
"""

import atexit
import logging
import os
import sys
from pathlib import Path
from typing import IO, Optional

import config

logger = logging.getLogger(__name__)

LOCK_FILE = config.USER_DATA_DIR / ".chilltapbuddy.lock"

# Bytes locked on Windows (msvcrt locks a byte range, not the whole file)
_WIN_LOCK_BYTES = 32


class InstanceLock:
    """
    Exclusive, non-blocking process lock.

    Usage:
        with InstanceLock() as lock:
            if not lock.is_acquired():
                ...  # another instance owns the progress file
    """

    def __init__(self, lock_file: Optional[Path] = None):
        self.lock_file = Path(lock_file) if lock_file else LOCK_FILE
        self._handle: Optional[IO] = None

    def acquire(self) -> bool:
        """
        Try to take the lock without waiting.

        Returns:
            True if this process now holds the lock.
        """
        if self._handle is not None:
            return True

        try:
            self.lock_file.parent.mkdir(parents=True, exist_ok=True)
            handle = open(self.lock_file, 'a+b')
        except OSError as e:
            logger.error(f"Cannot open lock file {self.lock_file}: {e}")
            return False

        try:
            if sys.platform == 'win32':
                import msvcrt
                handle.seek(0)
                msvcrt.locking(handle.fileno(), msvcrt.LK_NBLCK, _WIN_LOCK_BYTES)
            else:
                import fcntl
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            handle.close()
            logger.debug("Lock held by another instance")
            return False

        handle.seek(0)
        handle.truncate()
        handle.write(str(os.getpid()).encode('utf-8'))
        handle.flush()
        self._handle = handle
        logger.debug(f"Instance lock acquired (PID: {os.getpid()})")
        return True

    def release(self) -> None:
        if self._handle is None:
            return

        try:
            if sys.platform == 'win32':
                import msvcrt
                self._handle.seek(0)
                msvcrt.locking(self._handle.fileno(), msvcrt.LK_UNLCK, _WIN_LOCK_BYTES)
            # On Unix, closing the file releases flock automatically
        except OSError as e:
            logger.debug(f"Error unlocking: {e}")
        finally:
            self._handle.close()
            self._handle = None

        try:
            self.lock_file.unlink()
        except OSError:
            pass
        logger.debug("Instance lock released")

    def is_acquired(self) -> bool:
        return self._handle is not None

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False


_instance_lock: Optional[InstanceLock] = None


def check_single_instance(lock_file: Optional[Path] = None) -> bool:
    """
    Take the process-wide lock at startup.

    Returns:
        True if this is the only instance (safe to write progress).
    """
    global _instance_lock

    if _instance_lock is not None:
        return _instance_lock.is_acquired()

    _instance_lock = InstanceLock(lock_file)
    acquired = _instance_lock.acquire()
    if acquired:
        atexit.register(release_instance_lock)
    return acquired


def release_instance_lock() -> None:
    global _instance_lock
    if _instance_lock is not None:
        _instance_lock.release()
        _instance_lock = None


def get_existing_pid(lock_file: Optional[Path] = None) -> Optional[int]:
    """Read the PID written by the running instance, if readable."""
    path = Path(lock_file) if lock_file else LOCK_FILE
    try:
        content = path.read_text().strip()
    except OSError:
        return None
    return int(content) if content.isdigit() else None
