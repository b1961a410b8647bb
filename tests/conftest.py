"""Shared fixtures: an in-memory executor that records every query."""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest

Rows = list[dict[str, Any]]
Responder = Rows | Callable[[str, dict[str, Any]], Rows]

CREATED_AT = "2024-03-01T12:00:00+00:00"


def normalize(query: str) -> str:
    return " ".join(query.split())


@dataclass
class Call:
    query: str
    params: dict[str, Any]
    mode: str


class FakeTransaction:
    def __init__(self, executor: FakeExecutor, mode: str) -> None:
        self.executor = executor
        self.mode = mode

    def run(self, query: str, parameters: dict[str, Any] | None = None) -> Rows:
        query = normalize(query)
        params = dict(parameters or {})
        self.executor.calls.append(Call(query, params, self.mode))
        # Most recently registered matching responder wins
        for needle, response in reversed(self.executor.responders):
            if needle in query:
                rows = response(query, params) if callable(response) else response
                return [dict(row) for row in rows]
        return []


@dataclass
class FakeExecutor:
    """Answers queries by substring match and keeps a log of what ran.

    Unmatched queries return no rows, which the repositories read as
    "nothing matched".
    """

    responders: list[tuple[str, Responder]] = field(default_factory=list)
    calls: list[Call] = field(default_factory=list)
    transactions: list[str] = field(default_factory=list)
    rollbacks: int = 0
    closed: bool = False

    def on(self, needle: str, response: Responder) -> FakeExecutor:
        self.responders.append((normalize(needle), response))
        return self

    def read_transaction(self, work):
        return self._run("read", work)

    def write_transaction(self, work):
        return self._run("write", work)

    def _run(self, mode: str, work):
        self.transactions.append(mode)
        try:
            return work(FakeTransaction(self, mode))
        except Exception:
            self.rollbacks += 1
            raise

    def close(self) -> None:
        self.closed = True

    def queries(self, needle: str) -> list[Call]:
        needle = normalize(needle)
        return [call for call in self.calls if needle in call.query]

    def index(self, needle: str) -> int:
        """Position of the first query containing ``needle``."""
        needle = normalize(needle)
        for position, call in enumerate(self.calls):
            if needle in call.query:
                return position
        raise AssertionError(f"no query containing {needle!r}")


@pytest.fixture()
def executor() -> FakeExecutor:
    return FakeExecutor()


def entity(**props: Any) -> Rows:
    """A single hydrated-entity row as ``_fetch`` and listings return it."""
    return [{"entity": {"created_at": CREATED_AT, **props}}]


def exists(id_field: str, value: str = "x") -> tuple[str, Rows]:
    """Responder for the existence check of ``update``/``delete``."""
    return f"RETURN n.{id_field} AS id", [{"id": value}]
