import pytest

from dbpack.context import Context
from dbpack.database import DB
from dbpack.proto import DBConnectionPostFilter, DBConnectionPreFilter
from dbpack.resource import DataSource, DBManager, get_db_manager, init_db_manager, set_db_manager


class FakeConn:
    def execute_with_warning_count(self, query, want_rows):
        return query, 0


class FakePool:
    def __init__(self, source):
        self.source = source
        self.conn = FakeConn()

    def get(self, ctx):
        return self.conn

    def put(self, conn):
        pass

    def capacity(self):
        return self.source.capacity


class Pre(DBConnectionPreFilter):
    def __init__(self, log):
        self.log = log

    def get_name(self):
        return "pre"

    def pre_handle(self, ctx, conn):
        self.log.append("pre")


class Both(DBConnectionPreFilter, DBConnectionPostFilter):
    def __init__(self, log):
        self.log = log

    def get_name(self):
        return "both"

    def pre_handle(self, ctx, conn):
        self.log.append("both-pre")

    def post_handle(self, ctx, result, conn):
        self.log.append("both-post")


@pytest.fixture(autouse=True)
def reset_manager():
    set_db_manager(None)
    yield
    set_db_manager(None)


def test_init_builds_databases_by_name():
    sources = [
        DataSource(name="employees", dsn="user:password@tcp(localhost:3306)/employees", capacity=10),
        DataSource(name="meta", capacity=5),
    ]
    manager = init_db_manager(sources, FakePool)
    db = manager.get_db("employees")
    assert isinstance(db, DB)
    assert db.name() == "employees"
    assert db.capacity() == 10
    assert manager.get_db("meta").capacity() == 5
    assert manager.get_db("missing") is None
    assert get_db_manager() is manager


def test_filters_are_assigned_by_kind():
    log = []
    registry = {"pre": Pre(log), "both": Both(log)}
    sources = [DataSource(name="db", filters=["pre", "unknown", "both"])]
    manager = init_db_manager(sources, FakePool, registry.get)
    result = manager.get_db("db").query(Context.background(), "SELECT 1")
    assert result == ("SELECT 1", 0)
    assert log == ["pre", "both-pre", "both-post"]


def test_no_filter_lookup_means_no_filters():
    sources = [DataSource(name="db", filters=["pre"])]
    manager = init_db_manager(sources, FakePool)
    assert manager.get_db("db").query(Context.background(), "SELECT 1") == ("SELECT 1", 0)


def test_set_and_get_manager():
    manager = DBManager([], {"x": "db-x"})
    set_db_manager(manager)
    assert get_db_manager() is manager
    assert get_db_manager().get_db("x") == "db-x"