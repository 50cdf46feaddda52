"""Registry of configured backend databases."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from dbpack import proto
from dbpack.database import DB

__all__ = ["DataSource", "DBManager", "init_db_manager", "get_db_manager", "set_db_manager"]


@dataclass
class DataSource:
    """Configuration of one backend data source."""

    name: str
    dsn: str = ""
    capacity: int = 0
    max_capacity: int = 0
    idle_timeout: float = 0.0
    ping_interval: float = 0.0
    ping_times_for_change_status: int = 1
    filters: list[str] = field(default_factory=list)


class DBManager(proto.DBManager):
    """Maps data source names to their databases."""

    def __init__(self, data_sources: Sequence[DataSource], dbs: dict[str, Any]) -> None:
        self.data_sources = list(data_sources)
        self._dbs = dict(dbs)

    def get_db(self, name: str) -> Any:
        """Return the database named ``name``, or None."""
        return self._dbs.get(name)


_db_manager: proto.DBManager | None = None


def init_db_manager(
    data_sources: Sequence[DataSource],
    pool_factory: Callable[[DataSource], Any],
    get_filter: Callable[[str], Any] | None = None,
) -> DBManager:
    """Build a database for each data source and install the manager.

    ``pool_factory`` makes the connection pool for a data source;
    ``get_filter`` looks up a registered filter by name. Health checks
    start for data sources with a positive ping interval.
    """
    dbs: dict[str, DB] = {}
    for source in data_sources:
        db = DB(
            source.name,
            source.ping_interval,
            source.ping_times_for_change_status,
            pool_factory(source),
        )
        found = [get_filter(name) for name in source.filters] if get_filter else []
        found = [f for f in found if f is not None]
        db.set_connection_pre_filters([f for f in found if proto.is_connection_pre_filter(f)])
        db.set_connection_post_filters([f for f in found if proto.is_connection_post_filter(f)])
        if source.ping_interval > 0:
            db.start_pinger()
        dbs[source.name] = db
    manager = DBManager(data_sources, dbs)
    set_db_manager(manager)
    return manager


def get_db_manager() -> proto.DBManager | None:
    """Return the installed manager, or None."""
    return _db_manager


def set_db_manager(manager: proto.DBManager | None) -> None:
    """Install ``manager`` as the process-wide manager."""
    global _db_manager
    _db_manager = manager