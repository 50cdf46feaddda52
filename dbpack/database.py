"""Backend database handle and transactions over a connection pool."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Sequence

from dbpack.context import Context
from dbpack.proto import (
    DBConnectionPostFilter,
    DBConnectionPreFilter,
    DBStatus,
    Field,
    Result,
    Stmt,
)

__all__ = ["InvalidConnectionError", "DB", "Tx"]

_log = logging.getLogger(__name__)


class InvalidConnectionError(Exception):
    """Raised when a transaction's database is gone or closed."""

    def __init__(self, message: str = "invalid connection") -> None:
        super().__init__(message)


class DB:
    """A named backend database served by a pool of connections.

    The pool must provide ``get(ctx)``, ``put(conn)``, ``close()``,
    ``is_closed()`` and the capacity and statistics accessors. Pooled
    connections must provide the backend command methods used here.
    """

    def __init__(
        self,
        name: str,
        ping_interval: float,
        ping_times_for_change_status: int,
        pool: Any,
    ) -> None:
        if ping_times_for_change_status <= 0:
            raise ValueError("ping_times_for_change_status must be positive")
        self._name = name
        self._ping_interval = ping_interval
        self._ping_times_for_change_status = ping_times_for_change_status
        self._status = DBStatus.RUNNING
        self._pool = pool
        self._pre_filters: list[DBConnectionPreFilter] = []
        self._post_filters: list[DBConnectionPostFilter] = []
        self._inflight = 0
        self._idle = threading.Condition()
        self._ping_count = 0
        self._ping_lock = threading.Lock()

    # -- internal helpers -------------------------------------------------

    @contextmanager
    def _tracking(self) -> Iterator[None]:
        with self._idle:
            self._inflight += 1
        try:
            yield
        finally:
            with self._idle:
                self._inflight -= 1
                if self._inflight == 0:
                    self._idle.notify_all()

    @contextmanager
    def _borrow(self, ctx: Any) -> Iterator[Any]:
        conn = self._pool.get(ctx)
        try:
            yield conn
        finally:
            self._pool.put(conn)

    def _run_pre_filters(self, ctx: Any, conn: Any) -> None:
        for f in self._pre_filters:
            f.pre_handle(ctx, conn)

    def _run_post_filters(self, ctx: Any, result: Result | None, conn: Any) -> None:
        for f in self._post_filters:
            f.post_handle(ctx, result, conn)

    def _filtered(
        self, ctx: Any, conn: Any, run: Callable[[], tuple[Any, int]]
    ) -> tuple[Any, int]:
        self._run_pre_filters(ctx, conn)
        result, warnings = run()
        self._run_post_filters(ctx, result, conn)
        return result, warnings

    # -- commands ---------------------------------------------------------

    def use_db(self, ctx: Any, schema: str) -> None:
        """Switch the default schema on a pooled connection."""
        with self._tracking(), self._borrow(ctx) as conn:
            conn.write_com_init_db(schema)

    def execute_field_list(self, ctx: Any, table: str, wildcard: str) -> list[Field]:
        """Return the column definitions of ``table`` matching ``wildcard``."""
        with self._tracking(), self._borrow(ctx) as conn:
            conn.write_com_field_list(table, wildcard)
            return list(conn.read_column_definitions())

    def query(self, ctx: Any, query: str) -> tuple[Any, int]:
        """Run a text query; return the result and its warning count."""
        with self._tracking(), self._borrow(ctx) as conn:
            return self._filtered(
                ctx, conn, lambda: conn.execute_with_warning_count(query, True)
            )

    def execute_stmt(self, ctx: Any, stmt: Stmt) -> tuple[Any, int]:
        """Run a prepared statement with its bound parameter data."""
        with self._tracking(), self._borrow(ctx) as conn:
            text = stmt.stmt_node.text()
            return self._filtered(
                ctx, conn, lambda: conn.prepare_query(text, stmt.param_data)
            )

    def execute_sql(self, ctx: Any, sql: str, *args: Any) -> tuple[Any, int]:
        """Run ``sql`` as a prepared statement with ``args`` as parameters."""
        with self._tracking(), self._borrow(ctx) as conn:
            return self._filtered(
                ctx, conn, lambda: conn.prepare_query_args(sql, list(args))
            )

    def begin(self, ctx: Any) -> tuple[Tx, Any]:
        """Start a transaction on a dedicated connection."""
        conn = self._pool.get(ctx)
        try:
            result = conn.execute("START TRANSACTION", False)
        except BaseException:
            self._pool.put(conn)
            raise
        return Tx(self, conn), result

    def set_connection_pre_filters(self, filters: Sequence[DBConnectionPreFilter]) -> None:
        self._pre_filters = list(filters)

    def set_connection_post_filters(self, filters: Sequence[DBConnectionPostFilter]) -> None:
        self._post_filters = list(filters)

    # -- attributes and pool statistics -----------------------------------

    def name(self) -> str:
        return self._name

    def status(self) -> DBStatus:
        return self._status

    def set_capacity(self, capacity: int) -> None:
        self._pool.set_capacity(capacity)

    def set_idle_timeout(self, idle_timeout: float) -> None:
        self._pool.set_idle_timeout(idle_timeout)

    def capacity(self) -> int:
        return self._pool.capacity()

    def available(self) -> int:
        """Number of unused, available connections."""
        return self._pool.available()

    def active(self) -> int:
        """Number of open connections, pooled or in use."""
        return self._pool.active()

    def in_use(self) -> int:
        """Number of connections claimed from the pool."""
        return self._pool.in_use()

    def max_cap(self) -> int:
        return self._pool.max_cap()

    def wait_count(self) -> int:
        return self._pool.wait_count()

    def wait_time(self) -> float:
        return self._pool.wait_time()

    def idle_timeout(self) -> float:
        return self._pool.idle_timeout()

    def idle_closed(self) -> int:
        """Connections closed because they sat idle too long."""
        return self._pool.idle_closed()

    def exhausted(self) -> int:
        """Times the pool ran out of available connections."""
        return self._pool.exhausted()

    def stats_json(self) -> str:
        return self._pool.stats_json()

    # -- health checks ----------------------------------------------------

    def _record_ping(self, ok: bool) -> None:
        with self._ping_lock:
            if self._status is DBStatus.RUNNING:
                increment = not ok
            else:
                increment = ok
            self._ping_count += 1 if increment else -1
            if self._ping_count % self._ping_times_for_change_status == 0:
                self._ping_count = 0

    def ping_once(self) -> None:
        """Ping the backend once; raise the failure after recording it."""
        ok = False
        try:
            background = Context.background()
            conn = self._pool.get(background)
            try:
                conn.ping(background)
            finally:
                self._pool.put(conn)
            ok = True
        finally:
            self._record_ping(ok)

    def run_pinger(self, stop_event: threading.Event) -> None:
        """Ping every ``ping_interval`` seconds until ``stop_event`` is set."""
        while not stop_event.wait(self._ping_interval):
            try:
                self.ping_once()
            except Exception:
                _log.error("db %s ping failed", self._name)

    def start_pinger(self) -> threading.Event:
        """Run health checks in a daemon thread; return the event that stops it."""
        if self._ping_interval <= 0:
            raise ValueError("ping interval must be positive")
        stop_event = threading.Event()
        thread = threading.Thread(
            target=self.run_pinger,
            args=(stop_event,),
            name=f"ping-{self._name}",
            daemon=True,
        )
        thread.start()
        return stop_event

    def close(self) -> None:
        """Wait for in-flight requests to finish, then close the pool."""
        with self._idle:
            self._idle.wait_for(lambda: self._inflight == 0)
        self._pool.close()

    def is_closed(self) -> bool:
        return self._pool.is_closed()


class Tx:
    """A transaction holding one connection until commit or rollback."""

    def __init__(self, db: DB, conn: Any) -> None:
        self._db: DB | None = db
        self._conn: Any = conn
        self._closed = False

    def _bound(self) -> tuple[DB, Any]:
        if self._closed or self._db is None:
            raise InvalidConnectionError()
        return self._db, self._conn

    def query(self, ctx: Any, query: str) -> tuple[Any, int]:
        db, conn = self._bound()
        with db._tracking():
            return db._filtered(
                ctx, conn, lambda: conn.execute_with_warning_count(query, True)
            )

    def execute_stmt(self, ctx: Any, stmt: Stmt) -> tuple[Any, int]:
        db, conn = self._bound()
        with db._tracking():
            text = stmt.stmt_node.text()
            return db._filtered(
                ctx, conn, lambda: conn.prepare_query(text, stmt.param_data)
            )

    def execute_sql(self, ctx: Any, sql: str, *args: Any) -> tuple[Any, int]:
        db, conn = self._bound()
        with db._tracking():
            return db._filtered(
                ctx, conn, lambda: conn.prepare_query_args(sql, list(args))
            )

    def _finish(self, statement: str) -> Any:
        if self._closed:
            return None
        db = self._db
        if db is None or db.is_closed():
            raise InvalidConnectionError()
        conn = self._conn
        try:
            return conn.execute(statement, False)
        finally:
            db._pool.put(conn)
            self.close()

    def commit(self, ctx: Any) -> Any:
        """Commit and release the connection; a no-op once closed."""
        return self._finish("COMMIT")

    def rollback(self, ctx: Any) -> Any:
        """Roll back and release the connection; a no-op once closed."""
        return self._finish("ROLLBACK")

    def close(self) -> None:
        self._closed = True
        self._db = None
        self._conn = None

    def closed(self) -> bool:
        return self._closed