"""Schema script helpers.

The schema script is treated as opaque text when it is executed; the
parsing here is only used to cross-check the table catalog after load.
"""

from __future__ import annotations

import re
from pathlib import Path

from testdb.errors import ConfigError

_COMMENT_RE = re.compile(r"/\*.*?\*/|(?:--\s|#)[^\n]*", re.DOTALL)
_IDENT = r"(?:`(?:[^`]|``)+`|[\w$]+)"
_CREATE_TABLE_RE = re.compile(
    rf"\bCREATE\s+(TEMPORARY\s+)?TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?((?:{_IDENT}\.)?{_IDENT})",
    re.IGNORECASE,
)


def read_schema(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Schema file not found: {path}") from None


def _unquote(identifier: str) -> str:
    if identifier.startswith("`") and identifier.endswith("`"):
        return identifier[1:-1].replace("``", "`")
    return identifier


def declared_tables(script: str) -> list[str]:
    """Return the base tables a schema script creates, in declaration order.

    Temporary tables are skipped and a table created twice (for example
    after a DROP TABLE) is listed once.
    """
    stripped = _COMMENT_RE.sub("", script)
    names: list[str] = []
    for match in _CREATE_TABLE_RE.finditer(stripped):
        if match.group(1):
            continue
        qualified = match.group(2)
        name = _unquote(re.split(rf"\.(?={_IDENT}$)", qualified)[-1])
        if name not in names:
            names.append(name)
    return names


def quote_identifier(name: str) -> str:
    """Quote a table or database name for interpolation into SQL text.

    Identifiers cannot be bound as statement parameters, so they are
    backtick-quoted with embedded backticks doubled.
    """
    if not name:
        raise ValueError("Identifier must not be empty")
    if "\x00" in name:
        raise ValueError("Identifier must not contain NUL")
    return "`" + name.replace("`", "``") + "`"
