import os
from pathlib import Path

from testdb.env import read_env_file
from testdb.errors import ConfigError
from testdb.models import DatabaseConfig, HarnessConfig, HookErrorPolicy

# Values come from the process environment first, then from .env in the
# working directory, then from the defaults on DatabaseConfig.
ENV_KEYS: list[str] = [
    "TESTDB_HOST",
    "TESTDB_PORT",
    "TESTDB_USER",
    "TESTDB_PASSWORD",
    "TESTDB_NAME",
    "TESTDB_MULTI_STATEMENTS",
    "TESTDB_SCHEMA_PATH",
    "TESTDB_HOOK_ERRORS",
    "LOG_LEVEL",
]

PROJECT_ROOT: Path = Path.cwd()
DEFAULT_SCHEMA_PATH: Path = PROJECT_ROOT / "schema" / "setup.sql"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(key: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"{key} must be a boolean, got {value!r}")


def _parse_port(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise ConfigError(f"TESTDB_PORT must be an integer, got {value!r}") from None
    if not 0 < port < 65536:
        raise ConfigError(f"TESTDB_PORT out of range: {port}")
    return port


def load_harness_config(env_path: Path | None = None) -> HarnessConfig:
    """Build the harness configuration from the environment and .env."""
    file_values = read_env_file(ENV_KEYS, env_path)
    values = {key: os.environ[key] for key in ENV_KEYS if key in os.environ}
    values = {**file_values, **values}

    db_fields: dict = {}
    if "TESTDB_HOST" in values:
        db_fields["host"] = values["TESTDB_HOST"]
    if "TESTDB_PORT" in values:
        db_fields["port"] = _parse_port(values["TESTDB_PORT"])
    if "TESTDB_USER" in values:
        db_fields["user"] = values["TESTDB_USER"]
    if "TESTDB_PASSWORD" in values:
        db_fields["password"] = values["TESTDB_PASSWORD"]
    if "TESTDB_NAME" in values:
        if not values["TESTDB_NAME"]:
            raise ConfigError("TESTDB_NAME must not be empty")
        db_fields["database"] = values["TESTDB_NAME"]
    if "TESTDB_MULTI_STATEMENTS" in values:
        db_fields["multi_statements"] = _parse_bool(
            "TESTDB_MULTI_STATEMENTS", values["TESTDB_MULTI_STATEMENTS"]
        )

    schema_path = DEFAULT_SCHEMA_PATH
    if values.get("TESTDB_SCHEMA_PATH"):
        schema_path = Path(values["TESTDB_SCHEMA_PATH"]).expanduser()
        if not schema_path.is_absolute():
            schema_path = (PROJECT_ROOT / schema_path).resolve()

    hook_errors = HookErrorPolicy.LOG
    if values.get("TESTDB_HOOK_ERRORS"):
        try:
            hook_errors = HookErrorPolicy(values["TESTDB_HOOK_ERRORS"].strip().lower())
        except ValueError:
            raise ConfigError(
                f"TESTDB_HOOK_ERRORS must be 'log' or 'raise', got {values['TESTDB_HOOK_ERRORS']!r}"
            ) from None

    return HarnessConfig(
        database=DatabaseConfig(**db_fields),
        schema_path=schema_path,
        hook_errors=hook_errors,
        log_level=values.get("LOG_LEVEL") or "INFO",
    )
