"""
isupipe - Database access

Connection pool lifecycle and the Database handle that hands out units of
work. The pool is created once at application startup and injected into
Database; nothing below the API layer looks it up globally.
"""

from typing import Optional
import logging

from psycopg_pool import ConnectionPool

from isupipe.config import DatabaseConfig
from isupipe.storage.unit_of_work import Cancellation, ConnectionFactory, UnitOfWork

logger = logging.getLogger(__name__)


class Database:
    """
    Source of units of work.

    Args:
        connection_factory: Zero-argument callable returning a context manager
            that yields a psycopg connection (ConnectionPool.connection in
            production)
        statement_timeout_ms: statement_timeout applied to every unit of work
    """

    def __init__(
        self,
        connection_factory: ConnectionFactory,
        statement_timeout_ms: Optional[int] = None
    ):
        self._connection_factory = connection_factory
        self.statement_timeout_ms = statement_timeout_ms

    def unit_of_work(self, cancellation: Optional[Cancellation] = None) -> UnitOfWork:
        return UnitOfWork(
            self._connection_factory,
            statement_timeout_ms=self.statement_timeout_ms,
            cancellation=cancellation
        )

    def ping(self) -> bool:
        """Run SELECT 1 in a throwaway unit of work."""
        with self.unit_of_work() as uow:
            uow.transaction.query("SELECT 1")
            uow.commit()
        return True


def init_connection_pool(config: DatabaseConfig) -> ConnectionPool:
    """
    Open the connection pool.

    Args:
        config: Database settings (URL and pool sizing)

    Returns:
        Open ConnectionPool
    """
    logger.info(
        f"Opening connection pool (min={config.pool_min_size}, "
        f"max={config.pool_max_size}, timeout={config.pool_timeout})"
    )

    return ConnectionPool(
        conninfo=config.database_url,
        min_size=config.pool_min_size,
        max_size=config.pool_max_size,
        timeout=config.pool_timeout,
        open=True
    )


def close_connection_pool(pool: Optional[ConnectionPool]) -> None:
    if pool is not None:
        logger.info("Closing connection pool")
        pool.close()


def create_database(pool: ConnectionPool, config: DatabaseConfig) -> Database:
    return Database(pool.connection, statement_timeout_ms=config.statement_timeout())
