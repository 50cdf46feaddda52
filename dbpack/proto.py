"""Core data types and interfaces shared by the proxy components."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

__all__ = [
    "DBStatus",
    "Value",
    "Stmt",
    "Field",
    "Row",
    "Result",
    "Listener",
    "Connection",
    "Filter",
    "DBPreFilter",
    "DBPostFilter",
    "DBConnectionPreFilter",
    "DBConnectionPostFilter",
    "FilterFactory",
    "DBManager",
    "is_connection_pre_filter",
    "is_connection_post_filter",
]


class DBStatus(enum.IntEnum):
    """Health status of a backend database."""

    UNKNOWN = 0
    RUNNING = 1


@dataclass
class Value:
    """A single decoded column value."""

    field_type: int = 0
    flags: int = 0
    length: int = 0
    val: Any = None
    raw: bytes = b""


@dataclass
class Stmt:
    """Metadata kept for a prepared statement."""

    statement_id: int = 0
    prepare_stmt: str = ""
    params_count: int = 0
    param_data: bytes = b""
    params_type: list[int] = field(default_factory=list)
    column_names: list[str] = field(default_factory=list)
    bind_vars: dict[str, Any] = field(default_factory=dict)
    stmt_node: Any = None


class Field(ABC):
    """Column metadata of a result set."""

    @abstractmethod
    def field_name(self) -> str: ...

    @abstractmethod
    def table_name(self) -> str: ...

    @abstractmethod
    def database_name(self) -> str: ...

    @abstractmethod
    def type_database_name(self) -> str: ...


class Row(ABC):
    """One row of an executed query's results."""

    @abstractmethod
    def columns(self) -> list[str]:
        """Column names; unknown names are empty strings."""

    @abstractmethod
    def fields(self) -> Sequence[Field]: ...

    @abstractmethod
    def data(self) -> bytes: ...

    @abstractmethod
    def decode(self) -> list[Value]: ...


class Result(ABC):
    """The outcome of a query execution."""

    @abstractmethod
    def last_insert_id(self) -> int:
        """Auto-generated id of the last inserted row."""

    @abstractmethod
    def rows_affected(self) -> int:
        """Number of rows the query affected."""


class Listener(ABC):
    """Accepts client connections."""

    @abstractmethod
    def listen(self) -> None: ...

    @abstractmethod
    def close(self) -> None: ...


class Connection(ABC):
    """A connection to a backend database."""

    @abstractmethod
    def data_source_name(self) -> str: ...

    @abstractmethod
    def connect(self, ctx: Any) -> None: ...

    @abstractmethod
    def close(self) -> None: ...


class Filter(ABC):
    """A named hook in request processing."""

    @abstractmethod
    def get_name(self) -> str: ...


class DBPreFilter(Filter):
    """Runs before a command is executed."""

    @abstractmethod
    def pre_handle(self, ctx: Any) -> None: ...


class DBPostFilter(Filter):
    """Runs after a command is executed."""

    @abstractmethod
    def post_handle(self, ctx: Any, result: Result | None) -> None: ...


class DBConnectionPreFilter(Filter):
    """Runs before a statement is sent on a backend connection."""

    @abstractmethod
    def pre_handle(self, ctx: Any, conn: Connection) -> None: ...


class DBConnectionPostFilter(Filter):
    """Runs after a statement has been executed on a backend connection."""

    @abstractmethod
    def post_handle(self, ctx: Any, result: Result | None, conn: Connection) -> None: ...


class FilterFactory(ABC):
    """Builds filters from configuration."""

    @abstractmethod
    def new_filter(self, config: Mapping[str, Any]) -> Filter: ...


class DBManager(ABC):
    """Looks up backend databases by name."""

    @abstractmethod
    def get_db(self, name: str) -> Any: ...


def is_connection_pre_filter(obj: Any) -> bool:
    """Return True if ``obj`` is a connection pre-filter."""
    return isinstance(obj, DBConnectionPreFilter)


def is_connection_post_filter(obj: Any) -> bool:
    """Return True if ``obj`` is a connection post-filter."""
    return isinstance(obj, DBConnectionPostFilter)