"""
PostgreSQL client with connection pooling and deadline-bounded transactions.

Uses psycopg2 with ThreadedConnectionPool. The pool is the only shared
mutable resource in the process; each request borrows a connection for the
duration of one statement or one transaction and always returns it.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Tuple
from uuid import UUID

import psycopg2
import psycopg2.extras
import psycopg2.pool

logger = logging.getLogger(__name__)

# Global UUID adapter registration flag
_uuid_registered = False


def _timeout_ms(timeout: float | None) -> int | None:
    """Remaining request time in milliseconds, or None when unbounded."""
    if timeout is None:
        return None
    timeout_ms = int(timeout * 1000)
    if timeout_ms <= 0:
        raise TimeoutError("Request deadline exceeded before query start")
    return timeout_ms


def _apply_timeout(cur, timeout_ms: int | None) -> None:
    """Bound the current transaction by statement_timeout and lock_timeout."""
    if timeout_ms is None:
        return
    cur.execute("SET LOCAL statement_timeout = %s", (timeout_ms,))
    cur.execute("SET LOCAL lock_timeout = %s", (timeout_ms,))


class PostgresClient:
    """
    PostgreSQL client.

    Usage:
        db = PostgresClient(database_url)

        # Single statement, autocommitted
        rows = db.execute("SELECT * FROM todos WHERE user_id = %s", (user_id,))

        # Several statements, all-or-nothing, bounded by the request deadline
        with db.transaction(timeout=scope.remaining()) as cur:
            cur.execute("SELECT ... FOR UPDATE", (todo_id,))
            ...
    """

    # Class-level connection pools shared across instances
    _connection_pools: Dict[str, psycopg2.pool.ThreadedConnectionPool] = {}
    _pools_lock = threading.RLock()

    def __init__(self, database_url: str, minconn: int = 2, maxconn: int = 40):
        self._database_url = database_url
        self._minconn = minconn
        self._maxconn = maxconn
        self._ensure_connection_pool()

    def _ensure_connection_pool(self) -> None:
        """Create connection pool if it doesn't exist."""
        with self._pools_lock:
            if self._database_url not in self._connection_pools:
                pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=self._minconn,
                    maxconn=self._maxconn,
                    dsn=self._database_url,
                    connect_timeout=30,
                )

                global _uuid_registered
                if not _uuid_registered:
                    psycopg2.extras.register_uuid()
                    _uuid_registered = True

                self._connection_pools[self._database_url] = pool
                logger.info("Connection pool created")

    @contextmanager
    def get_connection(self) -> Iterator[Any]:
        """Borrow a pooled connection. Any open transaction is rolled back on error."""
        if self._database_url not in self._connection_pools:
            self._ensure_connection_pool()

        pool = self._connection_pools[self._database_url]
        conn = None

        try:
            conn = pool.getconn()
            if conn is None:
                raise RuntimeError("Could not get connection from pool")
            yield conn
        except BaseException:
            if conn is not None and not conn.closed:
                conn.rollback()
            raise
        finally:
            if conn is not None:
                pool.putconn(conn)

    @contextmanager
    def transaction(self, timeout: float | None = None) -> Iterator[Any]:
        """
        Run statements in one transaction and yield a dict-row cursor.

        Commits when the block exits normally and rolls back on any exception,
        so a failed or cancelled request never leaves a partial write behind.

        Args:
            timeout: Seconds left for the whole request. Applied as both
                statement_timeout and lock_timeout so that neither a slow
                query nor waiting on a row lock can outlive the request.

        Raises:
            TimeoutError: If the timeout has already elapsed.
        """
        timeout_ms = _timeout_ms(timeout)

        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                _apply_timeout(cur, timeout_ms)
                yield cur
            conn.commit()

    def _convert_params(self, params: Tuple | Dict | None) -> Tuple | Dict | None:
        """Convert UUID objects to strings."""
        if params is None:
            return None

        def convert(value: Any) -> Any:
            if isinstance(value, UUID):
                return str(value)
            if isinstance(value, list):
                return [convert(v) for v in value]
            if isinstance(value, tuple):
                return tuple(convert(v) for v in value)
            if isinstance(value, dict):
                return {k: convert(v) for k, v in value.items()}
            return value

        return convert(params)

    def execute(
        self, query: str, params: Tuple | Dict | None = None, timeout: float | None = None
    ) -> List[Dict[str, Any]]:
        """
        Execute query and commit, return list of row dicts. Empty list if no results.

        Args:
            timeout: Seconds left for the request, applied like in transaction()

        Raises:
            TimeoutError: If the timeout has already elapsed. No connection is taken.
        """
        timeout_ms = _timeout_ms(timeout)
        params = self._convert_params(params)
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                _apply_timeout(cur, timeout_ms)
                cur.execute(query, params)
                rows = [dict(row) for row in cur.fetchall()] if cur.description else []
            conn.commit()
            return rows

    def execute_single(
        self, query: str, params: Tuple | Dict | None = None, timeout: float | None = None
    ) -> Dict[str, Any] | None:
        """Execute query, return first row or None."""
        results = self.execute(query, params, timeout=timeout)
        return results[0] if results else None

    def execute_scalar(
        self, query: str, params: Tuple | Dict | None = None, timeout: float | None = None
    ) -> Any:
        """Execute query, return first value of first row or None."""
        timeout_ms = _timeout_ms(timeout)
        params = self._convert_params(params)
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                _apply_timeout(cur, timeout_ms)
                cur.execute(query, params)
                result = cur.fetchone()
            conn.commit()
            return result[0] if result else None

    def close(self) -> None:
        """Close connection pool."""
        with self._pools_lock:
            if self._database_url in self._connection_pools:
                self._connection_pools[self._database_url].closeall()
                del self._connection_pools[self._database_url]

    @classmethod
    def close_all_pools(cls) -> None:
        """Close all connection pools."""
        with cls._pools_lock:
            for pool in cls._connection_pools.values():
                pool.closeall()
            cls._connection_pools.clear()
