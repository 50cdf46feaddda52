# dbpack

Building blocks for a database proxy that sits between applications and their
backend databases. The package has no third-party dependencies.

## Modules

### `dbpack.context`

`Context` is an immutable chain of key/value bindings. `Context.background()`
returns an empty root; `with_value(key, value)` returns a child context and
`value(key)` returns the newest binding for a key, or `None`.

Helpers bind and read request-scoped values:

- routing flags: `with_master`, `with_slave`, `is_master`, `is_slave`
  (the flags accumulate, so a context can carry both);
- `with_connection_id` / `connection_id` (an unsigned 32-bit id; values out of
  range raise `ValueError`; reads default to `0`);
- `with_schema` / `schema` (default `""`);
- `with_command_type` / `command_type` (a single byte; out of range raises
  `ValueError`; default `0`);
- `with_query_stmt` / `query_stmt` and `with_prepare_stmt` / `prepare_stmt`
  (default `None`);
- `with_variable_map`, `with_variable`, `variable`: a mutable per-request
  mapping. `with_variable` returns `False` when no map has been bound.

### `dbpack.proto`

Shared data types and interfaces:

- `DBStatus` (`UNKNOWN`, `RUNNING`), and the dataclasses `Value` and `Stmt`
  (prepared statement metadata: id, text, parameter count and data, parameter
  types, column names, bound variables and the parsed statement node);
- abstract base classes `Field`, `Row`, `Result`, `Listener`, `Connection`,
  `Filter`, `DBPreFilter`, `DBPostFilter`, `DBConnectionPreFilter`,
  `DBConnectionPostFilter`, `FilterFactory` and `DBManager`;
- `is_connection_pre_filter(obj)` and `is_connection_post_filter(obj)`.

### `dbpack.database`

`DB(name, ping_interval, ping_times_for_change_status, pool)` is a named
backend database over a connection pool you supply. Each command borrows a
connection, runs the connection pre-filters, executes, runs the post-filters
and returns the connection to the pool:

- `use_db(ctx, schema)`, `execute_field_list(ctx, table, wildcard)`;
- `query(ctx, query)`, `execute_stmt(ctx, stmt)`, `execute_sql(ctx, sql, *args)`,
  each returning `(result, warning_count)`;
- `begin(ctx)` sends `START TRANSACTION` and returns `(Tx, result)`.

Pool statistics are passed through: `capacity`, `available`, `active`,
`in_use`, `max_cap`, `wait_count`, `wait_time`, `idle_timeout`, `idle_closed`,
`exhausted`, `stats_json`, plus `set_capacity` and `set_idle_timeout`.

`ping_once()` pings the backend on a pooled connection and records the outcome;
`start_pinger()` runs `run_pinger` in a daemon thread every `ping_interval`
seconds and returns the `threading.Event` that stops it. `close()` waits until
no request is in flight and then closes the pool.

`Tx` keeps one connection until `commit(ctx)` or `rollback(ctx)`, which send
`COMMIT` / `ROLLBACK`, return the connection to the pool and close the
transaction. Once closed, `commit` and `rollback` return `None`, while
`query`, `execute_stmt` and `execute_sql` raise `InvalidConnectionError`;
finishing a transaction whose database is closed raises it too.

The pool must provide `get(ctx)`, `put(conn)`, `close()`, `is_closed()` and the
statistics methods above. Pooled connections must provide `write_com_init_db`,
`write_com_field_list`, `read_column_definitions`,
`execute_with_warning_count`, `prepare_query`, `prepare_query_args`,
`execute` and `ping`.

### `dbpack.resource`

`DataSource` holds one data source's configuration (`name`, `dsn`,
`capacity`, `max_capacity`, `idle_timeout`, `ping_interval`,
`ping_times_for_change_status`, `filters`). `init_db_manager` builds a `DB`
for each data source, attaches the named filters that are connection pre- or
post-filters, starts the pinger when `ping_interval` is positive, installs the
resulting `DBManager` and returns it. `get_db_manager` and `set_db_manager`
read and replace the installed manager; `DBManager.get_db(name)` returns
`None` for an unknown name.

### `dbpack.server`

`Server` collects listeners with `add_listener`; `start()` runs each
listener's `listen` in a daemon thread and returns the threads, and
`listeners()` returns them as a tuple.

## Example

```python
from dbpack.context import Context, with_master, is_master, with_schema, schema

ctx = with_schema(with_master(Context.background()), "employees")
assert is_master(ctx)
assert schema(ctx) == "employees"
```

Wiring data sources:

```python
from dbpack.resource import DataSource, init_db_manager

manager = init_db_manager(
    [DataSource(name="employees", dsn="user:password@tcp(localhost:3306)/employees")],
    pool_factory,   # called with each DataSource, returns its connection pool
    get_filter,     # looks up a filter object by name, or returns None
)
db = manager.get_db("employees")
```

## What it does not do

The package contains no wire-protocol implementation: no concrete listener,
backend connection, connection pool or filter is included, and there is no
command-line program. These are supplied by the caller through the interfaces
above. The health check records ping results but never changes a database's
`status()`, which stays `RUNNING`.

## Installing and testing

```
pip install .
pip install ".[test]"
pytest
```