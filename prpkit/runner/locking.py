"""
File locking for the test cache.

Uses flock so parallel test runners (threads or separate processes)
never interleave writes to the same cache directory.
"""

import fcntl
import os
import threading
import time
from contextlib import contextmanager
from pathlib import Path


class LockTimeout(Exception):
    """Lock acquisition timed out."""
    pass


@contextmanager
def file_lock(lock_file: Path, timeout: float = 30, poll_interval: float = 0.05):
    """
    Hold an exclusive flock on lock_file for the duration of the block.

    The lock file is never deleted: removing it would let two processes
    hold "exclusive" locks on different inodes with the same path.

    Raises:
        LockTimeout: if the lock is not acquired within timeout seconds
    """
    lock_file.parent.mkdir(parents=True, exist_ok=True)

    fd = open(lock_file, 'a')
    start = time.monotonic()
    try:
        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() - start > timeout:
                    raise LockTimeout(f"Could not acquire {lock_file} within {timeout}s")
                time.sleep(poll_interval)

        try:
            yield
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        fd.close()


def atomic_write_text(path: Path, content: str) -> None:
    """Write via a sibling temp file and rename, so readers never see partial content."""
    tmp = path.with_name(f".{path.name}.{os.getpid()}.{threading.get_ident()}.tmp")
    tmp.write_text(content)
    os.replace(tmp, path)
