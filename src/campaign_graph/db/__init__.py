"""Transactional access to the Neo4j store."""
from campaign_graph.db.executor import Neo4jExecutor, QueryExecutor, Record, Transaction
from campaign_graph.db.schema import SCHEMA_STATEMENTS, init_schema

__all__ = [
    "Neo4jExecutor",
    "QueryExecutor",
    "Record",
    "SCHEMA_STATEMENTS",
    "Transaction",
    "init_schema",
]
