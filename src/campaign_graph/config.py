"""Connection settings for the Neo4j store."""
from __future__ import annotations

import os
from dataclasses import dataclass


def _f(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except ValueError:
        return default


def _i(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except ValueError:
        return default


@dataclass(frozen=True)
class Neo4jSettings:
    uri: str = "bolt://localhost:7687"
    username: str = "neo4j"
    password: str = "password"
    database: str = "neo4j"

    # Driver pool
    max_connection_pool_size: int = 50
    connection_timeout: float = 30.0

    @classmethod
    def from_env(cls, dotenv: bool = True) -> Neo4jSettings:
        """Load settings from the environment, reading a local .env first."""
        if dotenv:
            from dotenv import load_dotenv

            load_dotenv()

        return cls(
            uri=os.getenv("NEO4J_URI", cls.uri),
            username=os.getenv("NEO4J_USERNAME", cls.username),
            password=os.getenv("NEO4J_PASSWORD", cls.password),
            database=os.getenv("NEO4J_DATABASE", cls.database),
            max_connection_pool_size=_i("NEO4J_MAX_POOL_SIZE", cls.max_connection_pool_size),
            connection_timeout=_f("NEO4J_CONNECTION_TIMEOUT", cls.connection_timeout),
        )
