"""Process-wide DuckDB connection pool."""

import queue
import threading
import time
import logging
from typing import Optional, Union, Tuple

import duckdb

from ..exceptions import PoolExhaustedError, ConnectionError

logger = logging.getLogger(__name__)


class ConnectionPool:
    """Thread-safe pool of DuckDB cursors over a single database.

    Cursors are independent connections to the same database, so every
    pooled connection sees the same tables, including for ``:memory:``.
    Connections are created lazily up to ``max_connections``.
    """

    def __init__(self,
                 database: Union[str, duckdb.DuckDBPyConnection] = ":memory:",
                 max_connections: int = 20,
                 idle_timeout: float = 30.0,
                 connect_timeout: float = 2.0):
        """
        Args:
            database: Database path, or an open connection to share
            max_connections: Upper bound on checked-out connections
            idle_timeout: Seconds after which an idle connection is recycled
            connect_timeout: Seconds to wait for a free connection
        """
        if isinstance(database, duckdb.DuckDBPyConnection):
            self._root = database
            self._owns_root = False
            self.database_path = None
        else:
            try:
                self._root = duckdb.connect(database)
            except duckdb.Error as e:
                raise ConnectionError(f"Unable to open database: {e}", database_path=database)
            self._owns_root = True
            self.database_path = database

        self.max_connections = max_connections
        self.idle_timeout = idle_timeout
        self.connect_timeout = connect_timeout

        self._idle: "queue.LifoQueue[Tuple[duckdb.DuckDBPyConnection, float]]" = queue.LifoQueue()
        self._slots = threading.BoundedSemaphore(max_connections)
        self._lock = threading.Lock()
        self._created = 0
        self._closed = False

    @property
    def root(self) -> duckdb.DuckDBPyConnection:
        """The connection every pooled cursor derives from."""
        return self._root

    @property
    def size(self) -> int:
        """Number of live pooled connections."""
        with self._lock:
            return self._created

    def acquire(self, timeout: Optional[float] = None) -> duckdb.DuckDBPyConnection:
        """Check out a connection, waiting at most ``timeout`` (default: connect_timeout)."""
        if self._closed:
            raise ConnectionError("Connection pool is closed")

        wait = self.connect_timeout if timeout is None else timeout
        if not self._slots.acquire(timeout=wait):
            raise PoolExhaustedError(max_connections=self.max_connections, timeout=wait)

        try:
            return self._checkout()
        except Exception:
            self._slots.release()
            raise

    def release(self, conn: duckdb.DuckDBPyConnection) -> None:
        """Return a connection to the pool."""
        if self._closed:
            self._close_quietly(conn)
        else:
            self._idle.put((conn, time.monotonic()))
        self._slots.release()

    def close(self) -> None:
        """Close every idle connection and, if owned, the root connection."""
        self._closed = True
        while True:
            try:
                conn, _ = self._idle.get(block=False)
            except queue.Empty:
                break
            self._close_quietly(conn)

        if self._owns_root:
            self._close_quietly(self._root)
        logger.info("Connection pool closed")

    def _checkout(self) -> duckdb.DuckDBPyConnection:
        now = time.monotonic()
        while True:
            try:
                conn, last_used = self._idle.get(block=False)
            except queue.Empty:
                return self._create()

            if now - last_used <= self.idle_timeout:
                return conn

            logger.debug("Recycling connection idle for %.1fs", now - last_used)
            self._close_quietly(conn)

    def _create(self) -> duckdb.DuckDBPyConnection:
        try:
            conn = self._root.cursor()
        except duckdb.Error as e:
            raise ConnectionError(f"Unable to open pooled connection: {e}",
                                  database_path=self.database_path)
        with self._lock:
            self._created += 1
        return conn

    def _close_quietly(self, conn: duckdb.DuckDBPyConnection) -> None:
        try:
            conn.close()
        except duckdb.Error as e:
            logger.warning(f"Error closing pooled connection: {e}")
        if conn is not self._root:
            with self._lock:
                self._created -= 1
