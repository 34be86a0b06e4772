from __future__ import annotations


class TestDatabaseError(Exception):
    """Base class for errors raised by the test database harness."""

    __test__ = False


class QueryError(TestDatabaseError):
    """The server (or the connection to it) rejected a statement."""

    def __init__(self, statement: str, message: str) -> None:
        super().__init__(message)
        self.statement = statement


class FixtureStateError(TestDatabaseError):
    """The operation is not valid in the fixture's current state."""


class ConfigError(TestDatabaseError):
    """A configuration value is missing or malformed."""
