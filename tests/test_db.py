import sqlite3

import pytest

from decodefi.db import (
    BLOCK_TAG,
    Block,
    BlockRange,
    Database,
    DbCreds,
    Direction,
    Limit,
)
from decodefi.evm_inspect import Trace


@pytest.fixture
def conn():
    connection = sqlite3.connect(":memory:")
    connection.execute("CREATE TABLE blocks (block_number INTEGER PRIMARY KEY, tag INTEGER)")
    connection.execute(
        "CREATE TABLE traces (trace_id TEXT PRIMARY KEY, tx_hash TEXT, block_number INTEGER, "
        "from_addr TEXT, to_addr TEXT, storage_addr TEXT, value TEXT, action TEXT, calldata TEXT)"
    )
    yield connection
    connection.close()


@pytest.fixture
def db(conn):
    return Database(conn, "qmark")


class _RecordingCursor:
    def __init__(self, log):
        self.log = log

    def execute(self, query, args):
        self.log.append((query, args))

    def fetchall(self):
        return []

    def close(self):
        pass


class _RecordingConnection:
    def __init__(self):
        self.log = []
        self.commits = 0

    def cursor(self):
        return _RecordingCursor(self.log)

    def commit(self):
        self.commits += 1

    def close(self):
        pass


def _t(tx, frm, to, action="call", storage=""):
    return Trace(tx_hash=tx, from_addr=frm, to_addr=to, storage_addr=storage, value="0",
                 action=action, calldata="0x")


def test_dsn():
    password = "password"
    creds = DbCreds(user="alice", password=password, db_name="chain")
    assert creds.dsn() == "user=alice password=password dbname=chain sslmode=disable"


def test_unknown_paramstyle_raises():
    with pytest.raises(ValueError):
        Database(_RecordingConnection(), "pyformat")


def test_block_default_tag():
    block = Block(10)
    assert block.tag == BLOCK_TAG
    assert block.block_number == 10


def test_insert_block_upserts(db, conn):
    db.insert_block(Block(10, 5))
    db.insert_block(Block(10))
    assert conn.execute("SELECT block_number, tag FROM blocks").fetchall() == [(10, BLOCK_TAG)]
    assert db.get_block_traces("10") == []


def test_insert_and_get_block_traces(db):
    traces = [_t("0xaa", "0x1", "0x2"), _t("0xbb", "0x2", "0x3", "create")]
    db.insert_traces("12", traces)
    got = db.get_block_traces("12")
    assert [t.trace_id for t in got] == ["000000000xaa", "000000010xbb"]
    assert all(t.block_number == "12" for t in got)
    assert [(t.from_addr, t.to_addr, t.action) for t in got] == [
        ("0x1", "0x2", "call"),
        ("0x2", "0x3", "create"),
    ]
    assert db.get_block_traces("13") == []


def test_insert_traces_is_idempotent(db):
    traces = [_t("0xaa", "0x1", "0x2")]
    db.insert_traces("1", traces)
    db.insert_traces("1", traces)
    assert len(db.get_block_traces("1")) == 1


def test_insert_empty_traces_raises(db):
    with pytest.raises(ValueError):
        db.insert_traces("1", [])


def test_dollar_placeholders_numbered_across_rows():
    conn = _RecordingConnection()
    Database(conn).insert_traces("5", [_t("0xaa", "0x1", "0x2"), _t("0xbb", "0x1", "0x2")])
    query, args = conn.log[0]
    assert "$1" in query and "$18" in query and "$19" not in query
    assert len(args) == 18
    assert args[2] == "5"
    assert conn.commits == 1


def test_address_traces_from_ordered_by_count(db):
    db.insert_traces("1", [
        _t("0xa1", "0xA", "0xB"),
        _t("0xa2", "0xA", "0xB"),
        _t("0xa3", "0xA", "0xC"),
        _t("0xa4", "0xA", "0xD", "create"),
    ])
    got = db.get_address_traces("0xA", "call", Direction.FROM)
    assert [(t.from_addr, t.to_addr, t.action) for t in got] == [
        ("0xA", "0xB", "call"),
        ("0xA", "0xC", "call"),
    ]


def test_address_traces_to_direction(db):
    db.insert_traces("1", [_t("0xa1", "0xA", "0xB"), _t("0xa2", "0xC", "0xB")])
    got = db.get_address_traces("0xB", "call", Direction.TO)
    assert sorted(t.from_addr for t in got) == ["0xA", "0xC"]
    assert all(t.to_addr == "0xB" for t in got)


def test_address_traces_delegate_call_uses_storage(db):
    db.insert_traces("1", [_t("0xa1", "0xX", "0xImpl", "delegate_call", storage="0xProxy")])
    out = db.get_address_traces("0xProxy", "delegate_call", Direction.FROM)
    assert [(t.storage_addr, t.to_addr, t.from_addr) for t in out] == [("0xProxy", "0xImpl", "")]
    back = db.get_address_traces("0xImpl", "delegate_call", Direction.TO)
    assert [(t.storage_addr, t.to_addr) for t in back] == [("0xProxy", "0xImpl")]


def test_address_traces_limit_and_range(db):
    db.insert_traces("1", [_t("0xa1", "0xA", "0xB"), _t("0xa2", "0xA", "0xB")])
    db.insert_traces("50", [_t("0xb1", "0xA", "0xC")])
    limited = db.get_address_traces("0xA", "call", Direction.FROM, Limit(top=1, offset=0))
    assert [t.to_addr for t in limited] == ["0xB"]
    ranged = db.get_address_traces("0xA", "call", Direction.FROM, None, BlockRange(10, 100))
    assert [t.to_addr for t in ranged] == ["0xC"]


def test_context_manager_closes(conn):
    with Database(conn, "qmark") as db:
        db.insert_block(Block(1))
    with pytest.raises(sqlite3.ProgrammingError):
        conn.execute("SELECT 1")