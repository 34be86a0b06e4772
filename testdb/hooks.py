"""Test runner lifecycle hooks.

Each hook returns True on success. Under HookErrorPolicy.LOG a failure is
logged and the hook returns False so the run carries on; under
HookErrorPolicy.RAISE the error propagates to the test runner.
"""

from __future__ import annotations

from testdb.fixture import TestDatabaseFixture
from testdb.logger import logger
from testdb.models import HookErrorPolicy


def _log_failure(hook: str, err: Exception) -> bool:
    logger.error("Test database hook failed", hook=hook, error=str(err), error_type=type(err).__name__)
    return False


async def suite_setup(fixture: TestDatabaseFixture, policy: HookErrorPolicy = HookErrorPolicy.LOG) -> bool:
    """Connect and provision the test database once per run."""
    try:
        fixture.connect()
        await fixture.setup_database()
    except Exception as err:
        if policy is HookErrorPolicy.RAISE:
            raise
        return _log_failure("suite_setup", err)
    return True


async def per_test_setup(fixture: TestDatabaseFixture, policy: HookErrorPolicy = HookErrorPolicy.LOG) -> bool:
    """Empty every table so data from one test does not leak into the next."""
    try:
        await fixture.refresh_tables()
    except Exception as err:
        if policy is HookErrorPolicy.RAISE:
            raise
        return _log_failure("per_test_setup", err)
    return True


async def suite_teardown(fixture: TestDatabaseFixture, policy: HookErrorPolicy = HookErrorPolicy.LOG) -> bool:
    """Restore foreign key checks and close the connection."""
    try:
        await fixture.destroy()
    except Exception as err:
        if policy is HookErrorPolicy.RAISE:
            raise
        return _log_failure("suite_teardown", err)
    return True
