import pytest
from datetime import datetime, timezone

import psycopg.errors
import psycopg.rows

from minify.errors import StorageError, UniqueConstraintViolation
from minify.models import Account, Link
from minify.storage.db_storage import SCHEMA_SQL, DBStorage

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)

LINK_ROW = {
    "id": "id-1",
    "slug": "team",
    "original_url": "https://x.com",
    "owner_id": "alice",
    "created_at": T0,
    "expires_at": T0,
    "is_active": True,
}


class DummyCursor:
    def __init__(self, results=None, rowcount=1, raises=None):
        # results is a list of dicts or tuples
        self._results = results or []
        self.rowcount = rowcount
        self._index = 0
        self.raises = raises
        self.executed = []

    def execute(self, query, params=None):
        self.executed.append((query, params))
        if self.raises is not None:
            raise self.raises
        return True

    def fetchone(self):
        if self._results and self._index < len(self._results):
            row = self._results[self._index]
            self._index += 1
            return row
        return None

    def fetchall(self):
        return list(self._results)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class DummyConnection:
    def __init__(self, results=None, rowcount=1, raises=None):
        self.cursor_obj = DummyCursor(results=results, rowcount=rowcount, raises=raises)
        self.autocommit = False
        self.closed = False
        self.row_factories = []

    def cursor(self, row_factory=None):
        self.row_factories.append(row_factory)
        return self.cursor_obj

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


@pytest.fixture
def connect(monkeypatch):
    """Install a DummyConnection factory; returns a setter for the next connection."""
    state = {}

    def install(**kwargs):
        state["conn"] = DummyConnection(**kwargs)
        monkeypatch.setattr("psycopg.connect", lambda dsn: state["conn"])
        return state["conn"]

    return install


# ---------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------

def test_find_link_by_slug(connect):
    conn = connect(results=[LINK_ROW])
    link = DBStorage("fake").find_link_by_slug("team")
    assert isinstance(link, Link)
    assert link.slug == "team" and link.owner_id == "alice"
    assert conn.row_factories == [psycopg.rows.dict_row]
    assert conn.autocommit is True and conn.closed is True


def test_find_link_missing(connect):
    connect(results=[])
    assert DBStorage("fake").find_link("nope") is None


def test_slug_exists(connect):
    connect(results=[(True,)])
    assert DBStorage("fake").slug_exists("team") is True
    connect(results=[(False,)])
    assert DBStorage("fake").slug_exists("team") is False


def test_list_links_by_owner(connect):
    connect(results=[LINK_ROW, {**LINK_ROW, "id": "id-2", "slug": "team-2"}])
    links = DBStorage("fake").list_links_by_owner("alice")
    assert [l.slug for l in links] == ["team", "team-2"]


def test_insert_link(connect):
    conn = connect(rowcount=1)
    link = Link.new("team", "https://x.com", "alice", now=T0)
    assert DBStorage("fake").insert_link(link) == link
    _, params = conn.cursor_obj.executed[0]
    assert params[1] == "team"


def test_insert_link_unique_violation(connect):
    conn = connect(raises=psycopg.errors.UniqueViolation("duplicate key value violates unique constraint"))
    with pytest.raises(UniqueConstraintViolation):
        DBStorage("fake").insert_link(Link.new("team", "https://x.com", "alice", now=T0))
    assert conn.closed is True


def test_other_driver_errors_become_storage_error(connect):
    connect(raises=psycopg.OperationalError("connection lost"))
    with pytest.raises(StorageError):
        DBStorage("fake").update_links_by_owner("alice", {"is_active": False})


def test_connect_failure_becomes_storage_error(monkeypatch):
    def boom(dsn):
        raise psycopg.OperationalError("no server")

    monkeypatch.setattr("psycopg.connect", boom)
    with pytest.raises(StorageError, match="Could not connect"):
        DBStorage("fake").find_account("alice")


def test_update_link_returns_row(connect):
    conn = connect(results=[{**LINK_ROW, "is_active": False}])
    link = DBStorage("fake").update_link("id-1", {"is_active": False})
    assert link.is_active is False
    _, params = conn.cursor_obj.executed[0]
    assert params == {"is_active": False, "_id": "id-1"}


def test_update_link_rejects_unknown_fields(connect):
    connect()
    with pytest.raises(ValueError):
        DBStorage("fake").update_link("id-1", {"owner_id": "bob"})


def test_update_links_by_owner_returns_rowcount(connect):
    conn = connect(rowcount=4)
    assert DBStorage("fake").update_links_by_owner("alice", {"is_active": True}) == 4
    _, params = conn.cursor_obj.executed[0]
    assert params == {"is_active": True, "_owner": "alice"}


def test_delete_link(connect):
    connect(rowcount=1)
    assert DBStorage("fake").delete_link("id-1") is True
    connect(rowcount=0)
    assert DBStorage("fake").delete_link("id-1") is False


def test_accounts(connect):
    connect(results=[{"id": "alice", "is_deleted": True, "deleted_at": T0}])
    assert DBStorage("fake").find_account("alice") == Account(id="alice", is_deleted=True, deleted_at=T0)

    connect(rowcount=1)
    assert DBStorage("fake").insert_account(Account(id="bob")) == Account(id="bob")

    connect(results=[{"id": "alice", "is_deleted": False, "deleted_at": None}])
    updated = DBStorage("fake").update_account("alice", {"is_deleted": False, "deleted_at": None})
    assert updated == Account(id="alice")

    connect(results=[])
    assert DBStorage("fake").update_account("ghost", {"is_deleted": False, "deleted_at": None}) is None


def test_ensure_schema(connect):
    conn = connect()
    DBStorage("fake").ensure_schema()
    query, _ = conn.cursor_obj.executed[0]
    assert query == SCHEMA_SQL
    assert "UNIQUE" in SCHEMA_SQL


def test_insert_account_writes_password_hash(connect):
    conn = connect(rowcount=1)
    DBStorage("fake").insert_account(Account(id="bob"), password_hash="aa$bb")
    query, params = conn.cursor_obj.executed[0]
    assert "password_hash" in query
    assert params == ("bob", False, None, "aa$bb")


def test_find_password_hash(connect):
    connect(results=[("aa$bb",)])
    assert DBStorage("fake").find_password_hash("bob") == "aa$bb"
    connect(results=[(None,)])
    assert DBStorage("fake").find_password_hash("legacy") is None
    connect(results=[])
    assert DBStorage("fake").find_password_hash("ghost") is None


def test_update_password_hash(connect):
    conn = connect(rowcount=1)
    assert DBStorage("fake").update_password_hash("bob", "cc$dd") is True
    _, params = conn.cursor_obj.executed[0]
    assert params == ("cc$dd", "bob")
    connect(rowcount=0)
    assert DBStorage("fake").update_password_hash("ghost", "cc$dd") is False


def test_schema_has_password_column():
    assert "password_hash TEXT NULL" in SCHEMA_SQL
    assert "ADD COLUMN IF NOT EXISTS password_hash" in SCHEMA_SQL
