from __future__ import annotations

import importlib
import logging
import threading
from concurrent.futures import Future
from types import ModuleType
from typing import Callable, Optional

from flashy.errors import PackageGenerationError

logger = logging.getLogger(__name__)


def load_sqlite_runtime() -> ModuleType:
    """Import sqlite3 and check it can serialize an in-memory database."""
    sqlite3 = importlib.import_module("sqlite3")
    conn = sqlite3.connect(":memory:")
    try:
        if not hasattr(conn, "serialize"):
            raise RuntimeError(
                f"sqlite3 {sqlite3.sqlite_version} cannot serialize databases (Python 3.11+ required)"
            )
        conn.execute("CREATE TABLE t (id integer PRIMARY KEY)")
        conn.serialize()
    finally:
        conn.close()
    return sqlite3


class SqliteEngine:
    """Handle to the embedded SQLite runtime used to build collections.

    Initialisation runs once per handle. Concurrent callers wait on the same
    pending future and see the same result; a failed attempt is forgotten so
    the next call starts over.
    """

    _instance: Optional["SqliteEngine"] = None
    _instance_lock = threading.Lock()

    def __init__(self, loader: Callable[[], ModuleType] = load_sqlite_runtime) -> None:
        self._loader = loader
        self._lock = threading.Lock()
        self._future: Optional[Future] = None

    @classmethod
    def default(cls) -> "SqliteEngine":
        """Process-wide handle (thread-safe)."""
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @property
    def ready(self) -> bool:
        future = self._future
        return future is not None and future.done() and future.exception() is None

    def acquire(self) -> ModuleType:
        with self._lock:
            future = self._future
            owner = future is None
            if owner:
                future = Future()
                self._future = future

        if owner:
            logger.info("Initializing SQLite engine...")
            try:
                runtime = self._loader()
            except BaseException as e:
                logger.error(f"SQLite engine init failed: {e!r}")
                with self._lock:
                    self._future = None
                # Waiters must always be released, even on KeyboardInterrupt.
                future.set_exception(PackageGenerationError(f"Failed to initialize SQLite engine: {e!r}"))
                if not isinstance(e, Exception):
                    raise
            else:
                logger.info("SQLite engine ready", extra={"sqlite_version": runtime.sqlite_version})
                future.set_result(runtime)

        return future.result()

    def connect(self):
        """Open a fresh, exclusively owned in-memory database."""
        runtime = self.acquire()
        try:
            return runtime.connect(":memory:")
        except Exception as e:
            raise PackageGenerationError(f"Failed to open in-memory database: {e}") from e


def default_engine() -> SqliteEngine:
    return SqliteEngine.default()
