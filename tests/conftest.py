"""Shared test fixtures for testdb tests."""

from __future__ import annotations

import asyncio

import pytest

from testdb.fixture import CATALOG_QUERY, TestDatabaseFixture
from testdb.models import DatabaseConfig

pytest_plugins = ["testdb.pytest_plugin"]

SCHEMA = """\
CREATE TABLE IF NOT EXISTS voter (
  voterId INT UNSIGNED NOT NULL AUTO_INCREMENT,
  voterName VARCHAR(255) NOT NULL,
  PRIMARY KEY (voterId)
);
CREATE TABLE IF NOT EXISTS bot (
  botId INT UNSIGNED NOT NULL AUTO_INCREMENT,
  botName VARCHAR(255) NOT NULL,
  PRIMARY KEY (botId)
);
CREATE TABLE IF NOT EXISTS vote (
  voteId INT UNSIGNED NOT NULL AUTO_INCREMENT,
  voterId INT UNSIGNED NOT NULL,
  botId INT UNSIGNED NOT NULL,
  PRIMARY KEY (voteId),
  FOREIGN KEY (voterId) REFERENCES voter (voterId),
  FOREIGN KEY (botId) REFERENCES bot (botId)
);
"""


class FakeServer:
    """In-memory stand-in for a MySQL server reached through mysql.connector.aio."""

    def __init__(self, tables: list[str] | None = None) -> None:
        self.tables: dict[str, list[dict]] = {name: [] for name in (tables or [])}
        self.statements: list[tuple[str, tuple | None]] = []
        self.results: dict[str, list[dict]] = {}
        self.failures: dict[str, Exception] = {}
        self.connect_error: Exception | None = None
        self.connect_calls: list[dict] = []
        self.connections: list[FakeConnection] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def connect(self, **kwargs) -> FakeConnection:
        self.connect_calls.append(kwargs)
        if self.connect_error is not None:
            raise self.connect_error
        con = FakeConnection(self)
        self.connections.append(con)
        return con

    def run(self, statement: str, params: tuple | None) -> list[dict] | None:
        self.statements.append((statement, params))
        for fragment, err in self.failures.items():
            if fragment in statement:
                raise err
        if statement == CATALOG_QUERY:
            return [{"table_name": name} for name in sorted(self.tables)]
        if statement.startswith("TRUNCATE TABLE "):
            self.tables[statement[len("TRUNCATE TABLE "):].strip("`")].clear()
            return None
        return self.results.get(statement)

    def executed(self) -> list[str]:
        return [statement for statement, _ in self.statements]


class FakeCursor:
    def __init__(self, server: FakeServer) -> None:
        self._server = server
        self._rows: list[dict] | None = None
        self.closed = False

    async def execute(self, statement: str, params: tuple | None = None) -> None:
        self._server.in_flight += 1
        self._server.max_in_flight = max(self._server.max_in_flight, self._server.in_flight)
        try:
            # Give other coroutines a chance to overlap with this statement.
            await asyncio.sleep(0)
            self._rows = self._server.run(statement, params)
        finally:
            self._server.in_flight -= 1

    @property
    def with_rows(self) -> bool:
        return self._rows is not None

    async def fetchall(self) -> list[dict]:
        return list(self._rows or [])

    async def nextset(self) -> bool | None:
        return None

    async def close(self) -> None:
        self.closed = True


class FakeConnection:
    def __init__(self, server: FakeServer) -> None:
        self.server = server
        self.closed = False

    async def cursor(self, dictionary: bool = False) -> FakeCursor:
        assert dictionary
        return FakeCursor(self.server)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def schema_file(tmp_path):
    path = tmp_path / "setup.sql"
    path.write_text(SCHEMA)
    return path


@pytest.fixture
def server():
    return FakeServer(tables=["voter", "bot", "vote"])


@pytest.fixture
def db(server, schema_file):
    """A fixture wired to the fake server instead of a real MySQL connection."""
    return TestDatabaseFixture(DatabaseConfig(), schema_path=schema_file, connect_fn=server.connect)
