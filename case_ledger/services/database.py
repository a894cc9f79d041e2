"""
PostgreSQL connection handling for the Case Ledger.

Provides a ThreadedConnectionPool wrapper and a small query helper used by the
PostgreSQL-backed collection store. Failures are logged and re-raised; the
store turns them into PersistenceUnavailable.
"""

import threading
from contextlib import contextmanager
from typing import Any, Dict, Optional, Union

import psycopg2
from psycopg2 import pool
from psycopg2.extras import RealDictCursor

from case_ledger.utils.logging_config import get_logger


class ConnectionPoolManager:
    """
    Manages a lazily created ThreadedConnectionPool.
    """

    def __init__(
        self,
        connection_params: Dict[str, Any],
        min_connections: int = 1,
        max_connections: int = 5,
        connection_timeout: int = 10,
    ):
        """
        Initialize the connection pool manager.

        Args:
            connection_params: Database connection parameters
            min_connections: Minimum number of connections to maintain
            max_connections: Maximum number of connections in pool
            connection_timeout: Connection timeout in seconds
        """
        self.connection_params = connection_params.copy()
        self.connection_params["connect_timeout"] = connection_timeout
        self.min_connections = min_connections
        self.max_connections = max_connections
        self._pool: Optional[pool.ThreadedConnectionPool] = None
        self._pool_lock = threading.Lock()
        self._total_connections = 0
        self._failed_connections = 0
        self.logger = get_logger("database.pool")

    def _ensure_pool(self) -> pool.ThreadedConnectionPool:
        if self._pool is None:
            try:
                self._pool = pool.ThreadedConnectionPool(
                    minconn=self.min_connections, maxconn=self.max_connections, **self.connection_params
                )
            except psycopg2.Error as e:
                self.logger.error(
                    "Failed to initialize connection pool",
                    extra={"event": "pool_init_failed", "error": str(e), "error_type": type(e).__name__},
                )
                raise
            self.logger.info(
                "Connection pool initialized successfully",
                extra={
                    "event": "pool_initialized",
                    "min_connections": self.min_connections,
                    "max_connections": self.max_connections,
                },
            )
        return self._pool

    def get_connection(self):
        """Take a connection from the pool, creating the pool on first use."""
        with self._pool_lock:
            try:
                conn = self._ensure_pool().getconn()
            except psycopg2.Error:
                self._failed_connections += 1
                raise
            self._total_connections += 1
            return conn

    def return_connection(self, conn, discard: bool = False):
        """Return a connection to the pool."""
        with self._pool_lock:
            if self._pool is not None and conn is not None:
                self._pool.putconn(conn, close=discard)

    def close_all_connections(self):
        """Close all connections in the pool."""
        with self._pool_lock:
            if self._pool is not None:
                self._pool.closeall()
                self._pool = None
                self.logger.info("All connections closed", extra={"event": "all_connections_closed"})

    def get_pool_stats(self) -> Dict[str, Any]:
        """Get connection pool statistics."""
        return {
            "min_connections": self.min_connections,
            "max_connections": self.max_connections,
            "total_connections_created": self._total_connections,
            "failed_connections": self._failed_connections,
            "pool_initialized": self._pool is not None,
        }


class DatabaseConnection:
    """
    Database access through a pooled psycopg2 connection.
    """

    def __init__(
        self,
        host="localhost",
        port=5432,
        database="case_ledger",
        user="postgres",
        password="postgres",
        min_connections=1,
        max_connections=5,
        connection_timeout=10,
    ):
        self.connection_params = {"host": host, "port": port, "database": database, "user": user, "password": password}
        self.pool_manager = ConnectionPoolManager(
            connection_params=self.connection_params,
            min_connections=min_connections,
            max_connections=max_connections,
            connection_timeout=connection_timeout,
        )
        self.logger = get_logger("database.connection")

    @contextmanager
    def get_connection(self):
        """
        Context manager yielding a pooled connection.

        The transaction is rolled back if the body raises, and a connection
        that failed at the protocol level is discarded instead of reused.
        """
        conn = self.pool_manager.get_connection()
        broken = False
        try:
            yield conn
        except psycopg2.Error:
            broken = bool(getattr(conn, "closed", False))
            if not broken:
                conn.rollback()
            raise
        finally:
            self.pool_manager.return_connection(conn, discard=broken)

    def execute_query(
        self, query: str, params: Optional[Union[tuple, dict]] = None, fetch_one: bool = False, fetch_all: bool = True
    ) -> Any:
        """
        Execute a query in its own transaction.

        Args:
            query: SQL query to execute
            params: Query parameters
            fetch_one: Return single row
            fetch_all: Return all rows

        Returns:
            Query results based on fetch parameters
        """
        with self.get_connection() as conn:
            try:
                with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                    cursor.execute(query, params)

                    if fetch_one:
                        result = cursor.fetchone()
                    elif fetch_all:
                        result = cursor.fetchall()
                    else:
                        result = None

                conn.commit()
                return result

            except psycopg2.Error as e:
                self.logger.error(
                    "Database query error",
                    extra={
                        "event": "query_error",
                        "error": str(e),
                        "error_type": type(e).__name__,
                        "query": query[:200] + "..." if len(query) > 200 else query,
                    },
                )
                raise

    def test_connection(self) -> bool:
        """Run a trivial query; errors propagate to the caller."""
        result = self.execute_query("SELECT 1 AS ok", fetch_one=True)
        return result is not None

    def get_connection_stats(self) -> Dict[str, Any]:
        """Get connection pool statistics."""
        return self.pool_manager.get_pool_stats()

    def close_all_connections(self):
        """Close all connections in the pool."""
        self.pool_manager.close_all_connections()


def create_database_connection(config_class=None, **kwargs) -> DatabaseConnection:
    """
    Factory function to create a DatabaseConnection.

    Args:
        config_class: Configuration class with database settings
        **kwargs: Override configuration parameters

    Returns:
        Configured DatabaseConnection instance
    """
    if config_class is not None:
        params = config_class.get_database_config()
    else:
        params = {}
    params.update(kwargs)
    return DatabaseConnection(**params)
