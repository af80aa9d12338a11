"""Shared fixtures: orders, stores, and an application wired to an in-memory store."""

import pytest
from fastapi.testclient import TestClient

from order_service.cache import OrderCache
from order_service.config import Settings
from order_service.errors import PersistenceError
from order_service.main import create_app
from order_service.store import InMemoryOrderStore, SQLiteOrderStore

SAMPLE_ORDER = b'{"order_uid":"A1","delivery":{},"payment":{},"items":[{"x":1}]}'

TEMPLATE_ORDER = (
    b'{"order_uid":"tmpl-1","track_number":"WBILMTESTTRACK",'
    b'"delivery":{"name":"Test Testov"},"payment":{"amount":1817},'
    b'"items":[{"chrt_id":9934930,"price":453}]}'
)


class FailingStore(InMemoryOrderStore):
    """Every write fails like an unreachable database; reads fail too with fail_reads."""

    def __init__(self, fail_reads: bool = False):
        super().__init__()
        self.fail_reads = fail_reads
        self.put_attempts = 0

    def put(self, key, payload):
        self.put_attempts += 1
        raise PersistenceError(f"save order {key}: connection refused", order_uid=key)

    def get(self, key):
        if self.fail_reads:
            raise PersistenceError(f"select order {key}: connection refused", order_uid=key)
        return super().get(key)


@pytest.fixture
def sample_order():
    return SAMPLE_ORDER


@pytest.fixture
def cache():
    return OrderCache()


@pytest.fixture
def memory_store():
    return InMemoryOrderStore()


@pytest.fixture
def sqlite_store(tmp_path):
    store = SQLiteOrderStore(str(tmp_path / "db" / "orders.db"))
    yield store
    store.close()


@pytest.fixture
def template_file(tmp_path):
    path = tmp_path / "model.json"
    path.write_bytes(TEMPLATE_ORDER)
    return path


@pytest.fixture
def settings(template_file):
    return Settings(
        store_backend="memory",
        template_path=str(template_file),
        nats_client="svc-test",
        web_dir=str(template_file.parent / "no-web"),
    )


@pytest.fixture
def client(settings, memory_store):
    with TestClient(create_app(settings, store=memory_store)) as test_client:
        yield test_client
