"""Test Database Fixture.

Owns the single connection to the test database: creates the database,
loads the schema script, caches the table list and truncates every table
between test cases.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable, Sequence

import mysql.connector
from mysql.connector.aio import connect as mysql_connect
from mysql.connector.constants import ClientFlag

from testdb.config import DEFAULT_SCHEMA_PATH
from testdb.errors import FixtureStateError, QueryError
from testdb.logger import logger
from testdb.models import DatabaseConfig, FixtureState
from testdb.schema import declared_tables, quote_identifier, read_schema

DISABLE_FOREIGN_KEY_CHECKS = "SET foreign_key_checks = 0;"
ENABLE_FOREIGN_KEY_CHECKS = "SET foreign_key_checks = 1;"

CATALOG_QUERY = (
    "SELECT TABLE_NAME AS table_name FROM information_schema.TABLES "
    "WHERE TABLE_SCHEMA = %s AND TABLE_TYPE = 'BASE TABLE' "
    "ORDER BY TABLE_NAME"
)

ConnectFn = Callable[..., Awaitable[Any]]


class TestDatabaseFixture:
    """Setup and teardown of the test database for one test session."""

    __test__ = False

    def __init__(
        self,
        config: DatabaseConfig | None = None,
        schema_path: Path | None = None,
        connect_fn: ConnectFn | None = None,
    ) -> None:
        self._config = config or DatabaseConfig()
        self._connect_fn = connect_fn or mysql_connect
        self._connect_kwargs: dict[str, Any] | None = None
        self._con: Any = None
        self._lock = asyncio.Lock()
        self._state = FixtureState.UNCONNECTED
        self._tables: tuple[str, ...] = ()
        self._foreign_key_checks_disabled = False

        self._schema_path = schema_path or DEFAULT_SCHEMA_PATH
        # Foreign key checks stay off from schema load until destroy().
        self._sql = read_schema(self._schema_path) + "\n" + DISABLE_FOREIGN_KEY_CHECKS

    @property
    def config(self) -> DatabaseConfig:
        return self._config

    @property
    def state(self) -> FixtureState:
        return self._state

    @property
    def tables(self) -> tuple[str, ...]:
        return self._tables

    @property
    def schema_sql(self) -> str:
        return self._sql

    @property
    def foreign_key_checks_disabled(self) -> bool:
        return self._foreign_key_checks_disabled

    def _require_open(self, operation: str) -> None:
        if self._state is FixtureState.UNCONNECTED:
            raise FixtureStateError(f"Cannot {operation}: call connect() first")
        if self._state is FixtureState.CLOSED:
            raise FixtureStateError(f"Cannot {operation}: fixture has been destroyed")

    # --- Connection ---

    def connect(self) -> None:
        """Record connection parameters; the handshake happens on the first query.

        Multi-statement execution is enabled so the schema script can be
        loaded in one round trip. Bad host or credentials therefore
        surface as a QueryError from the first query.
        """
        if self._state is not FixtureState.UNCONNECTED:
            raise FixtureStateError(f"connect() called in state {self._state.value}")

        flags = ClientFlag.get_default() | ClientFlag.MULTI_RESULTS
        if self._config.multi_statements:
            flags |= ClientFlag.MULTI_STATEMENTS
        else:
            flags &= ~ClientFlag.MULTI_STATEMENTS

        # No default schema: the test database may not exist yet.
        self._connect_kwargs = {
            "host": self._config.host,
            "port": self._config.port,
            "user": self._config.user,
            "password": self._config.password,
            "client_flags": flags,
            "autocommit": True,
        }
        self._state = FixtureState.CONNECTED
        logger.debug("Test database connection configured", host=self._config.host, port=self._config.port, user=self._config.user)

    async def _ensure_connection(self) -> Any:
        if self._con is None:
            self._con = await self._connect_fn(**self._connect_kwargs)
            logger.debug("Connected to MySQL server", host=self._config.host)
        return self._con

    async def query(self, statement: str, parameters: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Execute a statement with %s placeholders bound by the driver.

        Returns the rows of the last result set as dicts, or an empty list
        when the statement produces no rows. Any driver error, including a
        failure to connect, is raised as QueryError.
        """
        self._require_open("query")

        async with self._lock:
            try:
                con = await self._ensure_connection()
                cursor = await con.cursor(dictionary=True)
                try:
                    await cursor.execute(statement, tuple(parameters) or None)
                    rows: list[dict[str, Any]] = []
                    # Drain every result set so the connection is free for the next statement.
                    while True:
                        if cursor.with_rows:
                            rows = list(await cursor.fetchall())
                        if not await cursor.nextset():
                            break
                finally:
                    await cursor.close()
            except mysql.connector.Error as err:
                raise QueryError(statement, f"Query failed: {err}") from err
            except OSError as err:
                raise QueryError(statement, f"Connection failed: {err}") from err

        return rows

    # --- Setup ---

    async def create_database(self) -> None:
        name = quote_identifier(self._config.database)
        await self.query(f"CREATE DATABASE IF NOT EXISTS {name}")
        logger.debug("Test database created", database=self._config.database)
        await self.use_database()

    async def use_database(self) -> None:
        await self.query(f"USE {quote_identifier(self._config.database)}")

    async def load_database(self) -> None:
        """Run the schema script, which also turns foreign key checks off."""
        self._require_open("load the schema")
        if not self._config.multi_statements:
            raise FixtureStateError("Loading the schema requires multi_statements to be enabled")

        await self.query(self._sql)
        self._foreign_key_checks_disabled = True
        self._state = FixtureState.SCHEMA_LOADED
        logger.debug("Schema loaded", schema_path=str(self._schema_path))

    async def disable_foreign_key_checks(self) -> None:
        await self.query(DISABLE_FOREIGN_KEY_CHECKS)
        self._foreign_key_checks_disabled = True

    async def restore_foreign_key_checks(self) -> None:
        if not self._foreign_key_checks_disabled:
            return
        await self.query(ENABLE_FOREIGN_KEY_CHECKS)
        self._foreign_key_checks_disabled = False
        logger.debug("Foreign key checks restored")

    async def cache_tables(self) -> None:
        """Remember the test database's tables so each refresh skips the catalog lookup."""
        rows = await self.query(CATALOG_QUERY, [self._config.database])
        self._tables = tuple(row["table_name"] for row in rows)
        self._state = FixtureState.READY

        expected = declared_tables(self._sql)
        if len(expected) != len(self._tables):
            logger.warning(
                "Table catalog does not match schema script",
                declared=len(expected),
                found=len(self._tables),
                missing=sorted(set(expected) - set(self._tables)),
            )

    async def setup_database(self) -> None:
        """Create the database, load the schema, then cache table names, in that order."""
        await self.create_database()
        await self.load_database()
        await self.cache_tables()
        logger.info("Test database ready", database=self._config.database, table_count=len(self._tables))

    # --- Per test ---

    async def refresh_tables(self) -> None:
        """Truncate every cached table.

        The truncates are submitted together and joined; order does not
        matter while foreign key checks are off. The first failure is
        raised once every statement has settled.
        """
        self._require_open("refresh tables")

        results = await asyncio.gather(
            *(self.query(f"TRUNCATE TABLE {quote_identifier(table)}") for table in self._tables),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result

        self._state = FixtureState.REFRESHED
        logger.debug("Tables truncated", table_count=len(self._tables))

    # --- Teardown ---

    async def destroy(self) -> None:
        """Turn foreign key checks back on and close the connection.

        The fixture is unusable afterwards; destroying it twice raises
        FixtureStateError.
        """
        if self._state is FixtureState.CLOSED:
            raise FixtureStateError("destroy() called on a fixture that is already closed")

        try:
            if self._state is not FixtureState.UNCONNECTED:
                await self.restore_foreign_key_checks()
        finally:
            self._state = FixtureState.CLOSED
            con, self._con = self._con, None
            if con is not None:
                await con.close()
            logger.debug("Test database connection closed")
