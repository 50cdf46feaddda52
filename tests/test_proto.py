import pytest

from dbpack import proto


class _PreConn(proto.DBConnectionPreFilter):
    def __init__(self):
        self.calls = []

    def get_name(self):
        return "pre"

    def pre_handle(self, ctx, conn):
        self.calls.append((ctx, conn))


class _Both(proto.DBConnectionPreFilter, proto.DBConnectionPostFilter):
    def get_name(self):
        return "both"

    def pre_handle(self, ctx, conn):
        return None

    def post_handle(self, ctx, result, conn):
        return None


class _CommandPre(proto.DBPreFilter):
    def get_name(self):
        return "cmd"

    def pre_handle(self, ctx):
        return None


class _Factory(proto.FilterFactory):
    def new_filter(self, config):
        f = _PreConn()
        f.config = dict(config)
        return f


class _Manager(proto.DBManager):
    def __init__(self, dbs):
        self._dbs = dbs

    def get_db(self, name):
        return self._dbs.get(name)


class _IncompleteManager(proto.DBManager):
    pass


def test_db_status_from_int():
    assert proto.DBStatus(0) is proto.DBStatus.UNKNOWN
    assert proto.DBStatus(1) is proto.DBStatus.RUNNING


def test_stmt_defaults_are_independent():
    a = proto.Stmt()
    b = proto.Stmt()
    a.bind_vars["x"] = 1
    a.column_names.append("c")
    assert b.bind_vars == {}
    assert b.column_names == []


def test_stmt_holds_values():
    stmt = proto.Stmt(statement_id=3, prepare_stmt="SELECT ?", params_count=1, param_data=b"\x01")
    assert (stmt.statement_id, stmt.prepare_stmt, stmt.params_count, stmt.param_data) == (
        3,
        "SELECT ?",
        1,
        b"\x01",
    )


def test_value_equality():
    assert proto.Value(field_type=3, val=5, raw=b"5") == proto.Value(field_type=3, val=5, raw=b"5")
    assert proto.Value().raw == b""


@pytest.mark.parametrize(
    "cls",
    [proto.Field, proto.Row, proto.Result, proto.Listener, proto.Connection, proto.Filter,
     proto.DBConnectionPreFilter, proto.DBConnectionPostFilter, proto.FilterFactory, proto.DBManager],
)
def test_interfaces_are_abstract(cls):
    with pytest.raises(TypeError):
        cls()


def test_connection_filter_detection():
    pre = _PreConn()
    both = _Both()
    cmd = _CommandPre()
    assert proto.is_connection_pre_filter(pre) is True
    assert proto.is_connection_post_filter(pre) is False
    assert proto.is_connection_pre_filter(both) is True
    assert proto.is_connection_post_filter(both) is True
    assert proto.is_connection_pre_filter(cmd) is False
    assert proto.is_connection_post_filter(object()) is False


def test_filter_factory_builds_filter():
    f = _Factory().new_filter({"k": "v"})
    assert f.get_name() == "pre"
    assert f.config == {"k": "v"}
    assert proto.is_connection_pre_filter(f) is True
    assert proto.is_connection_post_filter(f) is False


def test_manager_lookup():
    with pytest.raises(TypeError):
        _IncompleteManager()
    with pytest.raises(TypeError):
        proto.DBManager()
    db = object()
    manager = _Manager({"employees": db})
    assert manager.get_db("employees") is db
    assert manager.get_db("missing") is None
    assert proto.is_connection_pre_filter(manager) is False
    assert proto.is_connection_post_filter(manager) is False