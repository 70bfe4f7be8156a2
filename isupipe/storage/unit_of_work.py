"""
isupipe - Unit of Work

One transaction per request. Every reaction read, reaction write and
reference lookup of a request runs on the same Transaction handle, which is
passed explicitly to each store, resolver and hydrator call.

State machine:
    NEW -> ACTIVE -> (COMMITTED | ROLLED_BACK) -> CLOSED

Usage:
    with database.unit_of_work(cancellation) as uow:
        reactions = store.list_for_livestream(uow.transaction, 42)
        ...
        uow.commit()

Leaving the block without commit() rolls back, whatever the exit path.
"""

import threading
import time
from contextlib import ExitStack
from enum import Enum
from typing import Any, Callable, ContextManager, Dict, List, Optional, Sequence
import logging

import psycopg
from psycopg.rows import dict_row

from isupipe.errors import StoreError, UnitOfWorkCancelled

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[], ContextManager[Any]]


class UnitOfWorkState(str, Enum):
    NEW = "new"
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    CLOSED = "closed"


class Cancellation:
    """
    Thread-safe cancellation flag with an optional deadline.

    Set from the request side (client went away, handler cancelled) and
    observed by the worker thread before every statement and before commit.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout else None

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def reason(self) -> str:
        return "request cancelled" if self._event.is_set() else "request deadline exceeded"


class Transaction:
    """
    Parameterized access to one open transaction.

    Driver errors are re-raised as StoreError with the original chained.
    """

    def __init__(self, connection: Any, cancellation: Optional[Cancellation] = None):
        self.connection = connection
        self._cancellation = cancellation
        self.active = True

    def check_cancelled(self) -> None:
        if self._cancellation is not None and self._cancellation.is_cancelled():
            raise UnitOfWorkCancelled(self._cancellation.reason())

    def _ensure_usable(self) -> None:
        if not self.active:
            raise StoreError("transaction is no longer active")
        self.check_cancelled()

    def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """
        Run a read and return every row as a dict.

        Args:
            sql: Statement with %s placeholders
            params: Bound parameters

        Returns:
            List of rows (column name -> value)
        """
        self._ensure_usable()
        try:
            with self.connection.cursor(row_factory=dict_row) as cur:
                cur.execute(sql, params)
                return cur.fetchall()
        except psycopg.Error as e:
            raise StoreError(f"query failed: {e}") from e

    def query_one(self, sql: str, params: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        rows = self.query(sql, params)
        return rows[0] if rows else None

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        """
        Run a write. Returns the first RETURNING row, if the statement has one.
        """
        self._ensure_usable()
        try:
            with self.connection.cursor(row_factory=dict_row) as cur:
                cur.execute(sql, params)
                if cur.description is None:
                    return None
                return cur.fetchone()
        except psycopg.Error as e:
            raise StoreError(f"statement failed: {e}") from e

    def close(self) -> None:
        self.active = False


class UnitOfWork:
    """
    Transaction boundary for one request.

    The rollback is armed as soon as the transaction begins and runs on every
    exit unless commit() succeeded first.
    """

    def __init__(
        self,
        connection_factory: ConnectionFactory,
        statement_timeout_ms: Optional[int] = None,
        cancellation: Optional[Cancellation] = None
    ):
        self._connection_factory = connection_factory
        self._statement_timeout_ms = statement_timeout_ms
        self._cancellation = cancellation
        self._stack = ExitStack()
        self.state = UnitOfWorkState.NEW
        self.outcome: Optional[UnitOfWorkState] = None
        self.transaction: Optional[Transaction] = None

    @property
    def committed(self) -> bool:
        return self.outcome is UnitOfWorkState.COMMITTED

    def __enter__(self) -> 'UnitOfWork':
        if self.state is not UnitOfWorkState.NEW:
            raise StoreError(f"unit of work cannot begin from state {self.state.value}")

        try:
            connection = self._stack.enter_context(self._connection_factory())
        except psycopg.Error as e:
            self._stack.close()
            self.state = UnitOfWorkState.CLOSED
            raise StoreError(f"failed to begin transaction: {e}") from e

        self.transaction = Transaction(connection, self._cancellation)
        self.state = UnitOfWorkState.ACTIVE
        logger.debug("unit of work begin")

        if self._statement_timeout_ms:
            try:
                self.transaction.query(
                    "SELECT set_config('statement_timeout', %s, true)",
                    (str(self._statement_timeout_ms),)
                )
            except BaseException as e:
                self._close(type(e), e, e.__traceback__)
                raise

        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc is not None and self.state is UnitOfWorkState.ACTIVE:
            logger.warning(f"unit of work failed, rolling back: {exc!r}")
        self._close(exc_type, exc, tb)

    def commit(self) -> None:
        """
        Commit the transaction.

        Raises:
            UnitOfWorkCancelled: The request was cancelled before commit
            StoreError: Not active, or the commit itself failed
        """
        if self.state is not UnitOfWorkState.ACTIVE:
            raise StoreError(f"cannot commit a unit of work in state {self.state.value}")

        self.transaction.check_cancelled()

        try:
            self.transaction.connection.commit()
        except psycopg.Error as e:
            raise StoreError(f"failed to commit: {e}") from e

        self.state = UnitOfWorkState.COMMITTED
        self.outcome = UnitOfWorkState.COMMITTED
        self.transaction.close()
        logger.debug("unit of work committed")

    def rollback(self) -> None:
        """Roll back if still active. No-op after commit or rollback."""
        if self.state is not UnitOfWorkState.ACTIVE:
            return

        try:
            self.transaction.connection.rollback()
        except psycopg.Error as e:
            # Never mask the error that caused the rollback.
            logger.error(f"rollback failed: {e}")
        finally:
            self.state = UnitOfWorkState.ROLLED_BACK
            self.outcome = UnitOfWorkState.ROLLED_BACK
            self.transaction.close()
            logger.debug("unit of work rolled back")

    def _close(self, exc_type=None, exc=None, tb=None) -> None:
        try:
            self.rollback()
        finally:
            self.state = UnitOfWorkState.CLOSED
            try:
                # Pooled connections commit on a clean exit.
                self._stack.__exit__(exc_type, exc, tb)
            except psycopg.Error as e:
                logger.error(f"releasing connection failed: {e}")
