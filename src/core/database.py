"""
Read-only query execution against a relational source.

The converter only needs two things from the source database: run a query
and get back column names plus rows. ``QueryExecutor`` is that contract;
``DBAPIQueryExecutor`` implements it for any DB-API 2.0 driver.

Thread model:
    Each worker thread gets its own connection from the connection factory,
    so drivers whose connections are not thread-safe are only ever used from
    one thread. A semaphore bounds the number of queries running at once
    across all threads.

Usage:
    import sqlite3
    from core.database import DBAPIQueryExecutor

    with DBAPIQueryExecutor(lambda: sqlite3.connect("source.db")) as executor:
        result = executor.execute("SELECT * FROM Department")
        for row in result.rows:
            ...
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, List, Optional, Protocol, Sequence, Tuple, Type

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from constants import DatabaseDefaults, ProcessingLimits
from core.config import ConversionConfig
from core.errors import ConnectivityError

logger = logging.getLogger(__name__)

Row = Tuple[Any, ...]


@dataclass
class QueryResult:
    """
    Column names and rows of one query.

    ``rows`` may be a lazily fetched iterator (``stream``) or a list
    (``execute``); consume it once.
    """
    columns: Tuple[str, ...]
    rows: Iterable[Row]

    @property
    def column_count(self) -> int:
        return len(self.columns)


class QueryExecutor(Protocol):
    """Protocol for anything that can run read-only SQL."""

    def execute(self, sql: str) -> QueryResult:
        """Run a query and fetch all of its rows."""
        ...

    def stream(self, sql: str) -> QueryResult:
        """Run a query and fetch its rows lazily."""
        ...


class DBAPIQueryExecutor:
    """
    ``QueryExecutor`` over DB-API 2.0 connections.

    Attributes:
        max_in_flight_queries: Queries allowed to run concurrently.
        fetch_batch_size: Rows per ``fetchmany`` call when streaming.
    """

    def __init__(
        self,
        connect: Callable[[], Any],
        max_in_flight_queries: int = ProcessingLimits.DEFAULT_MAX_IN_FLIGHT_QUERIES,
        fetch_batch_size: int = ProcessingLimits.DEFAULT_FETCH_BATCH_SIZE,
        connect_retries: int = DatabaseDefaults.CONNECT_RETRIES,
        retry_wait_seconds: float = DatabaseDefaults.RETRY_WAIT_SECONDS,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    ) -> None:
        """
        Initialize the executor.

        Args:
            connect: Zero-argument factory returning a new DB-API connection.
            max_in_flight_queries: Bound on concurrently executing queries.
            fetch_batch_size: Rows fetched per round trip when streaming.
            connect_retries: Attempts made to open each connection.
            retry_wait_seconds: Initial backoff between connection attempts.
            retry_on: Exception types that make a connection attempt retryable.
        """
        if max_in_flight_queries < 1:
            raise ValueError("max_in_flight_queries must be positive")
        if fetch_batch_size < 1:
            raise ValueError("fetch_batch_size must be positive")

        self._connect = connect
        self.max_in_flight_queries = max_in_flight_queries
        self.fetch_batch_size = fetch_batch_size
        self.connect_retries = connect_retries
        self.retry_wait_seconds = retry_wait_seconds
        self._semaphore = threading.BoundedSemaphore(max_in_flight_queries)
        self._local = threading.local()
        self._connections: List[Any] = []
        self._connections_lock = threading.Lock()
        self._retrying = Retrying(
            stop=stop_after_attempt(max(connect_retries, 1)),
            wait=wait_exponential(
                multiplier=retry_wait_seconds,
                min=retry_wait_seconds,
                max=DatabaseDefaults.MAX_RETRY_WAIT_SECONDS,
            ),
            retry=retry_if_exception_type(retry_on),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    @classmethod
    def from_config(
        cls,
        connect: Callable[[], Any],
        config: ConversionConfig,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    ) -> "DBAPIQueryExecutor":
        """Build an executor from the query and ``database`` settings of a ``ConversionConfig``."""
        return cls(
            connect,
            max_in_flight_queries=config.max_in_flight_queries,
            fetch_batch_size=config.fetch_batch_size,
            connect_retries=config.database.connect_retries,
            retry_wait_seconds=config.database.retry_wait_seconds,
            retry_on=retry_on,
        )

    def __enter__(self) -> "DBAPIQueryExecutor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def connection_count(self) -> int:
        """Number of connections opened so far."""
        with self._connections_lock:
            return len(self._connections)

    def _get_connection(self) -> Any:
        """Get this thread's connection, opening it on first use."""
        connection = getattr(self._local, "connection", None)
        if connection is None:
            try:
                connection = self._retrying(self._connect)
            except Exception as e:
                raise ConnectivityError(f"Could not connect to source database: {e}") from e
            self._local.connection = connection
            with self._connections_lock:
                self._connections.append(connection)
            logger.debug(f"Opened source connection for thread {threading.current_thread().name}")
        return connection

    @staticmethod
    def _column_names(description: Optional[Sequence[Sequence[Any]]]) -> Tuple[str, ...]:
        if not description:
            return ()
        return tuple(str(column[0]) for column in description)

    def execute(self, sql: str) -> QueryResult:
        connection = self._get_connection()
        with self._semaphore:
            cursor = connection.cursor()
            try:
                cursor.execute(sql)
                columns = self._column_names(cursor.description)
                rows = [tuple(row) for row in cursor.fetchall()] if columns else []
            except Exception as e:
                raise ConnectivityError(f"Query failed: {e}", sql=sql) from e
            finally:
                cursor.close()
        return QueryResult(columns=columns, rows=rows)

    def stream(self, sql: str) -> QueryResult:
        connection = self._get_connection()
        with self._semaphore:
            cursor = connection.cursor()
            try:
                cursor.execute(sql)
                columns = self._column_names(cursor.description)
            except Exception as e:
                cursor.close()
                raise ConnectivityError(f"Query failed: {e}", sql=sql) from e
        return QueryResult(columns=columns, rows=self._iter_rows(cursor, sql))

    def _iter_rows(self, cursor: Any, sql: str) -> Iterator[Row]:
        try:
            while True:
                with self._semaphore:
                    try:
                        batch = cursor.fetchmany(self.fetch_batch_size)
                    except Exception as e:
                        raise ConnectivityError(f"Fetching rows failed: {e}", sql=sql) from e
                if not batch:
                    return
                for row in batch:
                    yield tuple(row)
        finally:
            cursor.close()

    def close(self) -> None:
        """Close every connection this executor opened."""
        with self._connections_lock:
            connections, self._connections = self._connections, []
        for connection in connections:
            try:
                connection.close()
            except Exception as e:
                logger.warning(f"Error closing source connection: {e}")
        self._local = threading.local()
