"""testdb command line.

Provisions or empties the configured test database outside of a test run,
e.g. from a CI step.
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from testdb.config import load_harness_config
from testdb.fixture import TestDatabaseFixture
from testdb.logger import logger, setup_logging
from testdb.models import HarnessConfig


async def _setup(config: HarnessConfig) -> tuple[str, ...]:
    fixture = TestDatabaseFixture(config.database, schema_path=config.schema_path)
    fixture.connect()
    try:
        await fixture.setup_database()
        return fixture.tables
    finally:
        await fixture.destroy()


async def _truncate(config: HarnessConfig) -> tuple[str, ...]:
    fixture = TestDatabaseFixture(config.database, schema_path=config.schema_path)
    fixture.connect()
    try:
        await fixture.use_database()
        await fixture.disable_foreign_key_checks()
        await fixture.cache_tables()
        await fixture.refresh_tables()
        return fixture.tables
    finally:
        await fixture.destroy()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="testdb", description="Manage the MySQL test database")
    parser.add_argument("--log-level", default=None, help="Log level (default: LOG_LEVEL or INFO)")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("setup", help="Create the test database, load the schema and list its tables")
    sub.add_parser("truncate", help="Empty every table of an existing test database")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Entry point for the testdb command."""
    args = _build_parser().parse_args(argv)

    try:
        config = load_harness_config()
        setup_logging(args.log_level or config.log_level)
        if args.command == "setup":
            tables = asyncio.run(_setup(config))
        else:
            tables = asyncio.run(_truncate(config))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(130)
    except Exception as err:
        logger.error("testdb command failed", command=args.command, error=str(err))
        sys.exit(1)

    for table in tables:
        print(table)


if __name__ == "__main__":
    main()
