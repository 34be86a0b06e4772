"""pytest fixtures for the test database.

Enable from a conftest.py with::

    pytest_plugins = ["testdb.pytest_plugin"]

Tests that use these fixtures must run on the session event loop,
e.g. ``@pytest.mark.asyncio(loop_scope="session")``.
"""

from __future__ import annotations

import pytest
import pytest_asyncio

from testdb.config import load_harness_config
from testdb.fixture import TestDatabaseFixture
from testdb.hooks import per_test_setup, suite_setup, suite_teardown
from testdb.logger import setup_logging
from testdb.models import HarnessConfig


@pytest.fixture(scope="session")
def testdb_config() -> HarnessConfig:
    config = load_harness_config()
    setup_logging(config.log_level)
    return config


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def testdb(testdb_config: HarnessConfig):
    """One provisioned test database shared by the whole session."""
    fixture = TestDatabaseFixture(testdb_config.database, schema_path=testdb_config.schema_path)
    await suite_setup(fixture, testdb_config.hook_errors)
    yield fixture
    await suite_teardown(fixture, testdb_config.hook_errors)


@pytest_asyncio.fixture(loop_scope="session")
async def clean_testdb(testdb: TestDatabaseFixture, testdb_config: HarnessConfig) -> TestDatabaseFixture:
    """The session database with every table truncated."""
    await per_test_setup(testdb, testdb_config.hook_errors)
    return testdb
