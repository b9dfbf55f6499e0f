"""
Concurrent access control for RuntimeKit.

Three primitives live here:
- ``LockManager``: cross-process file locks (via ``filelock``) so two
  RuntimeKit processes never unpack the same runtime at once
- ``ReadWriteLock``: in-process shared/exclusive lock for the installed
  runtime index
- ``SingleFlight``: at most one in-flight operation per key; concurrent
  callers for the same key wait for and share its result

Usage:
    from runtimekit.core.locking import LockManager, SingleFlight

    lock_manager = LockManager(base_dir / "lock")
    with lock_manager.runtime_lock("python-3.11.6"):
        install()

    flights = SingleFlight()
    info = flights.do("python", lambda: install_runtime("python"))
"""

import logging
import threading
from concurrent.futures import Future
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, TypeVar

from filelock import FileLock, Timeout as LockTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LockManager:
    """
    Manages cross-process locks for RuntimeKit resources.

    Attributes:
        lock_dir: Directory where lock files are stored
    """

    def __init__(self, lock_dir: Path):
        self.lock_dir = Path(lock_dir)
        self.lock_dir.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def runtime_lock(self, runtime_id: str, timeout: int = 600):
        """
        Acquire the install lock for one runtime.

        Args:
            runtime_id: Runtime identifier (e.g., 'node-20.10.0')
            timeout: Maximum wait time in seconds (downloads can be long)

        Raises:
            LockTimeout: If lock can't be acquired within timeout
        """
        safe_id = runtime_id.replace("/", "-").replace("\\", "-").replace(":", "-")
        lock_path = self.lock_dir / f"runtime-{safe_id}.lock"
        lock = FileLock(lock_path, timeout=timeout)

        try:
            with lock:
                logger.debug(f"Acquired runtime lock: {lock_path}")
                yield
                logger.debug(f"Released runtime lock: {lock_path}")
        except LockTimeout as e:
            logger.error(
                f"Could not acquire runtime lock for {runtime_id} after {timeout}s. "
                "Another process may be installing this runtime."
            )
            raise LockTimeout(str(lock_path)) from e


class ReadWriteLock:
    """
    Writer-preferring reader/writer lock.

    Any number of readers may hold the lock together; a writer holds it
    alone. Waiting writers block new readers so installs are not starved
    by a steady stream of lookups.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_lock(self):
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_lock(self):
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class SingleFlight:
    """
    Deduplicate concurrent calls by key.

    The first caller for a key runs the function and publishes a Future;
    callers arriving while it runs block on that Future and receive the same
    result or exception. The key is released once the call settles, so a
    failed operation can be retried by a later call.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._inflight: Dict[str, Future] = {}

    def do(self, key: str, fn: Callable[[], T]) -> T:
        with self._lock:
            future = self._inflight.get(key)
            leader = future is None
            if leader:
                future = Future()
                self._inflight[key] = future

        if not leader:
            logger.debug(f"Waiting for in-flight operation: {key}")
            return future.result()

        try:
            result = fn()
        except BaseException as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(result)
            return result
        finally:
            with self._lock:
                self._inflight.pop(key, None)

    def in_flight(self, key: str) -> bool:
        with self._lock:
            return key in self._inflight


__all__ = [
    "LockManager",
    "LockTimeout",
    "ReadWriteLock",
    "SingleFlight",
]
