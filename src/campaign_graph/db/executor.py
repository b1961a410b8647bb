"""Query executor backed by the Neo4j driver.

Repositories never touch driver sessions. They hand a unit of work to
``read_transaction`` / ``write_transaction``; the executor opens a session,
runs the work inside one managed transaction and always releases the session.
An exception raised by the work function rolls the transaction back.
"""
from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

from neo4j import GraphDatabase

from campaign_graph.logging import get_logger

if TYPE_CHECKING:
    from neo4j import Driver, ManagedTransaction

    from campaign_graph.config import Neo4jSettings

logger = get_logger(__name__)

T = TypeVar("T")
Record = dict[str, Any]


class Transaction(Protocol):
    """Handle passed to a unit of work."""

    def run(self, query: str, parameters: dict[str, Any] | None = None) -> list[Record]: ...


class QueryExecutor(Protocol):
    """Runs units of work inside read or write transactions."""

    def read_transaction(self, work: Callable[[Transaction], T]) -> T: ...

    def write_transaction(self, work: Callable[[Transaction], T]) -> T: ...


class _DriverTransaction:
    """Adapts a managed driver transaction to plain dict records."""

    def __init__(self, tx: ManagedTransaction) -> None:
        self._tx = tx

    def run(self, query: str, parameters: dict[str, Any] | None = None) -> list[Record]:
        result = self._tx.run(query, parameters or {})
        return [record.data() for record in result]


class Neo4jExecutor:
    """Neo4j-backed query executor.

    Example:
        >>> executor = Neo4jExecutor.from_settings(Neo4jSettings.from_env())
        >>> executor.read_transaction(lambda tx: tx.run("RETURN 1 AS one"))
        [{'one': 1}]
    """

    def __init__(self, driver: Driver, database: str = "neo4j") -> None:
        self.driver = driver
        self.database = database

    @classmethod
    def from_settings(cls, settings: Neo4jSettings) -> Neo4jExecutor:
        driver = GraphDatabase.driver(
            settings.uri,
            auth=(settings.username, settings.password),
            max_connection_pool_size=settings.max_connection_pool_size,
            connection_timeout=settings.connection_timeout,
        )
        logger.info("executor.connect", uri=settings.uri, database=settings.database)
        return cls(driver, database=settings.database)

    def read_transaction(self, work: Callable[[Transaction], T]) -> T:
        with self.driver.session(database=self.database) as session:
            return session.execute_read(lambda tx: work(_DriverTransaction(tx)))

    def write_transaction(self, work: Callable[[Transaction], T]) -> T:
        with self.driver.session(database=self.database) as session:
            return session.execute_write(lambda tx: work(_DriverTransaction(tx)))

    def verify_connectivity(self) -> None:
        self.driver.verify_connectivity()

    def close(self) -> None:
        """Close the driver and its connection pool."""
        self.driver.close()

    def __enter__(self) -> Neo4jExecutor:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
