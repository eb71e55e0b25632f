import pytest

pytest.importorskip("sqlmodel")

from giftbudget.exceptions import StorageUnavailableError
from giftbudget.storage import MemoryStore, Storage, StorageScope, WriteResult
from giftbudget.webapp.persistence import SQLModelStore, build_engine, create_db_and_tables


@pytest.fixture(params=["memory", "sqlite"])
def backend(request, tmp_path):
    if request.param == "memory":
        return MemoryStore()
    engine = build_engine(str(tmp_path / "store.db"))
    create_db_and_tables(engine)
    return SQLModelStore(engine)


def test_get_missing_key_returns_none(backend) -> None:
    storage = Storage(backend)

    assert storage.get("nope") is None
    assert storage.get_versioned("nope", StorageScope.SHARED) == (None, 0)


def test_json_round_trip_and_versions(backend) -> None:
    storage = Storage(backend)

    assert storage.set("k", {"a": [1, "two"]}) is True
    assert storage.set("k", {"a": [3]}) is True

    assert storage.get_versioned("k") == ({"a": [3]}, 2)


def test_scopes_are_separate(backend) -> None:
    storage = Storage(backend)
    storage.set("k", "shared", StorageScope.SHARED)
    storage.set("k", "private", StorageScope.PRIVATE)

    assert storage.get("k", StorageScope.SHARED) == "shared"
    assert storage.get("k", StorageScope.PRIVATE) == "private"
    assert backend.keys(StorageScope.SHARED) == ("k",)


def test_compare_and_set(backend) -> None:
    storage = Storage(backend)

    assert storage.compare_and_set("list", [1], 0, StorageScope.SHARED) is WriteResult.OK
    assert storage.compare_and_set("list", [2], 0, StorageScope.SHARED) is WriteResult.CONFLICT
    assert storage.compare_and_set("list", [3], 1, StorageScope.SHARED) is WriteResult.OK
    assert storage.compare_and_set("list", [4], 1, StorageScope.SHARED) is WriteResult.CONFLICT

    assert storage.get_versioned("list", StorageScope.SHARED) == ([3], 2)


def test_failed_read_cannot_be_written_back() -> None:
    storage = Storage(MemoryStore())

    assert storage.compare_and_set("k", [1], -1) is WriteResult.UNAVAILABLE
    assert storage.get("k") is None


class ExplodingStore:
    def get_versioned(self, key, scope):
        raise StorageUnavailableError("read failed")

    def set(self, key, value, scope):
        raise StorageUnavailableError("write failed")

    def compare_and_set(self, key, value, expected_version, scope):
        raise StorageUnavailableError("write failed")


def test_backend_failures_are_absorbed_and_logged() -> None:
    storage = Storage(ExplodingStore())

    assert storage.get("k") is None
    assert storage.get_versioned("k") == (None, -1)
    assert storage.set("k", 1) is False
    assert storage.compare_and_set("k", 1, 0) is WriteResult.UNAVAILABLE

    events = storage.logger.tail(event="storage_unavailable")
    assert [event["operation"] for event in events] == ["get", "get", "set", "compare_and_set"]
    assert events[0]["error"] == "read failed"


def test_sqlite_failures_surface_as_unavailable(tmp_path) -> None:
    engine = build_engine(str(tmp_path / "missing-tables.db"))
    store = SQLModelStore(engine)

    with pytest.raises(StorageUnavailableError):
        store.get_versioned("k", StorageScope.SHARED)
    assert Storage(store).get("k", StorageScope.SHARED) is None
