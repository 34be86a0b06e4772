from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict


class HookErrorPolicy(str, Enum):
    LOG = "log"  # Log the error and let the test run continue
    RAISE = "raise"  # Propagate the error and fail the hook


class FixtureState(str, Enum):
    UNCONNECTED = "unconnected"
    CONNECTED = "connected"
    SCHEMA_LOADED = "schema_loaded"
    READY = "ready"
    REFRESHED = "refreshed"
    CLOSED = "closed"


class DatabaseConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = "localhost"
    port: int = 3306
    user: str = "gbbb_test"
    password: str = ""
    database: str = "good_bot_bad_bot_test"
    multi_statements: bool = True  # Needed to load the schema script in one round trip


class HarnessConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    schema_path: Path
    hook_errors: HookErrorPolicy = HookErrorPolicy.LOG
    log_level: str = "INFO"
