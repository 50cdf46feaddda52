"""Request-scoped values carried alongside a client command."""

from __future__ import annotations

import enum
from typing import Any

from dbpack.proto import Stmt

__all__ = [
    "Context",
    "with_master",
    "with_slave",
    "is_master",
    "is_slave",
    "with_connection_id",
    "connection_id",
    "with_schema",
    "schema",
    "with_command_type",
    "command_type",
    "with_query_stmt",
    "query_stmt",
    "with_prepare_stmt",
    "prepare_stmt",
    "with_variable_map",
    "with_variable",
    "variable",
]

_MAX_CONNECTION_ID = 2**32 - 1
_MAX_COMMAND_TYPE = 0xFF


class _Flag(enum.IntFlag):
    MASTER = 1
    SLAVE = 2


class _Key:
    """A private context key that compares by identity."""

    __slots__ = ("_name",)

    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return f"<context key {self._name}>"


_KEY_FLAG = _Key("flag")
_KEY_CONNECTION_ID = _Key("connection_id")
_KEY_SCHEMA = _Key("schema")
_KEY_COMMAND_TYPE = _Key("command_type")
_KEY_QUERY_STMT = _Key("query_stmt")
_KEY_PREPARE_STMT = _Key("prepare_stmt")
_KEY_VARIABLE_MAP = _Key("variable_map")

_NO_KEY = object()


class Context:
    """An immutable chain of key/value bindings.

    Deriving a context with :meth:`with_value` never changes the parent;
    lookups walk from the newest binding back to the root.
    """

    __slots__ = ("_parent", "_key", "_value")

    def __init__(self, parent: Context | None = None, key: Any = _NO_KEY, value: Any = None) -> None:
        self._parent = parent
        self._key = key
        self._value = value

    @staticmethod
    def background() -> Context:
        """Return an empty root context."""
        return Context()

    def with_value(self, key: Any, value: Any) -> Context:
        """Return a child context in which ``key`` is bound to ``value``."""
        if key is None:
            raise TypeError("context key must not be None")
        return Context(self, key, value)

    def value(self, key: Any) -> Any:
        """Return the value most recently bound to ``key``, or None."""
        ctx: Context | None = self
        while ctx is not None:
            if ctx._key is not _NO_KEY and ctx._key == key:
                return ctx._value
            ctx = ctx._parent
        return None


def _get_flag(ctx: Context) -> _Flag:
    flag = ctx.value(_KEY_FLAG)
    return flag if isinstance(flag, _Flag) else _Flag(0)


def _has_flag(ctx: Context, flag: _Flag) -> bool:
    return bool(_get_flag(ctx) & flag)


def with_master(ctx: Context) -> Context:
    """Force the master data source."""
    return ctx.with_value(_KEY_FLAG, _Flag.MASTER | _get_flag(ctx))


def with_slave(ctx: Context) -> Context:
    """Force a slave data source."""
    return ctx.with_value(_KEY_FLAG, _Flag.SLAVE | _get_flag(ctx))


def is_master(ctx: Context) -> bool:
    """Return True if the master data source is forced."""
    return _has_flag(ctx, _Flag.MASTER)


def is_slave(ctx: Context) -> bool:
    """Return True if a slave data source is forced."""
    return _has_flag(ctx, _Flag.SLAVE)


def with_connection_id(ctx: Context, connection_id: int) -> Context:
    """Bind a client connection id (an unsigned 32-bit integer)."""
    if not 0 <= connection_id <= _MAX_CONNECTION_ID:
        raise ValueError(f"connection id out of range: {connection_id}")
    return ctx.with_value(_KEY_CONNECTION_ID, connection_id)


def connection_id(ctx: Context) -> int:
    """Return the bound connection id, or 0."""
    value = ctx.value(_KEY_CONNECTION_ID)
    return value if isinstance(value, int) else 0


def with_schema(ctx: Context, schema: str) -> Context:
    """Bind the current schema name."""
    return ctx.with_value(_KEY_SCHEMA, schema)


def schema(ctx: Context) -> str:
    """Return the bound schema name, or an empty string."""
    value = ctx.value(_KEY_SCHEMA)
    return value if isinstance(value, str) else ""


def with_command_type(ctx: Context, command_type: int) -> Context:
    """Bind the protocol command type (a single byte)."""
    if not 0 <= command_type <= _MAX_COMMAND_TYPE:
        raise ValueError(f"command type out of range: {command_type}")
    return ctx.with_value(_KEY_COMMAND_TYPE, command_type)


def command_type(ctx: Context) -> int:
    """Return the bound command type, or 0."""
    value = ctx.value(_KEY_COMMAND_TYPE)
    return value if isinstance(value, int) else 0


def with_query_stmt(ctx: Context, stmt: Any) -> Context:
    """Bind the parsed statement of a text query."""
    return ctx.with_value(_KEY_QUERY_STMT, stmt)


def query_stmt(ctx: Context) -> Any:
    """Return the bound query statement, or None."""
    return ctx.value(_KEY_QUERY_STMT)


def with_prepare_stmt(ctx: Context, stmt: Stmt) -> Context:
    """Bind a prepared statement."""
    return ctx.with_value(_KEY_PREPARE_STMT, stmt)


def prepare_stmt(ctx: Context) -> Stmt | None:
    """Return the bound prepared statement, or None."""
    value = ctx.value(_KEY_PREPARE_STMT)
    return value if isinstance(value, Stmt) else None


def with_variable_map(ctx: Context) -> Context:
    """Bind a fresh mapping for temporary variables."""
    return ctx.with_value(_KEY_VARIABLE_MAP, {})


def with_variable(ctx: Context, key: str, value: Any) -> bool:
    """Store a variable; return False if no variable map is bound."""
    variables = ctx.value(_KEY_VARIABLE_MAP)
    if isinstance(variables, dict):
        variables[key] = value
        return True
    return False


def variable(ctx: Context, key: str) -> Any:
    """Return a stored variable, or None."""
    variables = ctx.value(_KEY_VARIABLE_MAP)
    if isinstance(variables, dict):
        return variables.get(key)
    return None