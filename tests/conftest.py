from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
from azure.core import MatchConditions
from azure.core.exceptions import (
    ResourceExistsError,
    ResourceModifiedError,
    ResourceNotFoundError,
)

# Ensure the repo root is on sys.path so `import tablestore` works without installing.
ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))

from tablestore import TableRecord  # noqa: E402
from tablestore.storage import aio_table, table  # noqa: E402


class Customer(TableRecord):
    email: str = ""
    visits: int = 0


class FakeEntity(dict):
    """Mimics the SDK's TableEntity: a dict plus service metadata."""

    def __init__(self, data: dict[str, Any], etag: str):
        super().__init__(data)
        self.metadata = {"etag": etag, "timestamp": datetime(2024, 1, 1, tzinfo=timezone.utc)}


class FakePageIterator:
    def __init__(self, table_client: FakeTableClient, rows: list[dict[str, Any]], page_size: int, token):
        self._table = table_client
        self._rows = rows
        self._size = max(1, min(page_size, table_client.server_page_limit))
        self.continuation_token = token
        self._pos: int | None = self._index_of(token)

    def _index_of(self, token) -> int:
        if not token:
            return 0
        key = (token["PartitionKey"], token["RowKey"])
        for i, row in enumerate(self._rows):
            if (row["PartitionKey"], row["RowKey"]) >= key:
                return i
        return len(self._rows)

    def __iter__(self):
        return self

    def __next__(self):
        if self._pos is None:
            raise StopIteration
        self._table.page_requests.append(self.continuation_token)
        start = self._pos
        chunk = self._rows[start : start + self._size]
        nxt = start + self._size
        if nxt < len(self._rows):
            row = self._rows[nxt]
            self.continuation_token = {"PartitionKey": row["PartitionKey"], "RowKey": row["RowKey"]}
            self._pos = nxt
        else:
            self.continuation_token = None
            self._pos = None
        return iter(chunk)


class FakePager:
    def __init__(self, table_client: FakeTableClient, rows: list[dict[str, Any]], page_size: int):
        self._table = table_client
        self._rows = rows
        self._page_size = page_size

    def by_page(self, continuation_token=None):
        return FakePageIterator(self._table, self._rows, self._page_size, continuation_token)


class FakeTableClient:
    """In-memory stand-in for `azure.data.tables.TableClient`."""

    def __init__(self, table_name: str, service: FakeTableService):
        self.table_name = table_name
        self._service = service
        self.rows: dict[tuple[str, str], dict[str, Any]] = {}
        self.etags: dict[tuple[str, str], str] = {}
        self.transactions: list[list[tuple[str, dict]]] = []
        self.page_requests: list[Any] = []
        self.queries: list[dict[str, Any]] = []
        self.calls: list[str] = []
        self.server_page_limit = 1000
        self.fail_transaction_at: int | None = None
        self.closed = False
        self._version = 0

    # --- table ---

    def create_table(self):
        self.calls.append("create_table")
        if self.table_name in self._service.tables:
            raise ResourceExistsError("TableAlreadyExists")
        self._service.tables.add(self.table_name)

    def delete_table(self):
        self.calls.append("delete_table")
        self._service.tables.discard(self.table_name)

    def close(self):
        self.closed = True

    # --- entities ---

    def _bump(self, key) -> str:
        self._version += 1
        etag = f'W/"datetime\'{self._version}\'"'
        self.etags[key] = etag
        return etag

    def _put(self, entity: dict[str, Any]) -> dict[str, Any]:
        key = (entity["PartitionKey"], entity["RowKey"])
        if key in self.rows:
            raise ResourceExistsError("EntityAlreadyExists")
        self.rows[key] = dict(entity)
        return {"etag": self._bump(key)}

    def create_entity(self, entity):
        self.calls.append("create_entity")
        return self._put(entity)

    def submit_transaction(self, operations):
        ops = list(operations)
        self.calls.append("submit_transaction")
        assert 0 < len(ops) <= 100
        assert len({e["PartitionKey"] for _, e in ops}) == 1
        if self.fail_transaction_at is not None and len(self.transactions) == self.fail_transaction_at:
            raise ResourceExistsError("batch failed")
        self.transactions.append(ops)
        return [self._put(e) for _, e in ops]

    def _check_etag(self, key, etag, match_condition):
        if key not in self.rows:
            raise ResourceNotFoundError("ResourceNotFound")
        if match_condition == MatchConditions.IfNotModified and self.etags[key] != etag:
            raise ResourceModifiedError("UpdateConditionNotSatisfied")

    def update_entity(self, entity, mode=None, etag=None, match_condition=None):
        self.calls.append("update_entity")
        key = (entity["PartitionKey"], entity["RowKey"])
        self._check_etag(key, etag, match_condition)
        self.rows[key].update(entity)
        return {"etag": self._bump(key)}

    def delete_entity(self, partition_key, row_key, etag=None, match_condition=None):
        self.calls.append("delete_entity")
        key = (partition_key, row_key)
        if key not in self.rows:
            return
        self._check_etag(key, etag, match_condition)
        del self.rows[key]
        del self.etags[key]

    def get_entity(self, partition_key, row_key):
        self.calls.append("get_entity")
        key = (partition_key, row_key)
        if key not in self.rows:
            raise ResourceNotFoundError("ResourceNotFound")
        return FakeEntity(self.rows[key], self.etags[key])

    # --- queries ---

    def _rows_for(self, parameters: dict[str, Any] | None, select: list[str] | None) -> list[dict[str, Any]]:
        params = parameters or {}
        out = []
        for key in sorted(self.rows):
            row = self.rows[key]
            if "pk" in params and row["PartitionKey"] != params["pk"]:
                continue
            if "rk" in params and row["RowKey"] != params["rk"]:
                continue
            data = {k: row[k] for k in select} if select else row
            out.append(FakeEntity({**data, "PartitionKey": row["PartitionKey"], "RowKey": row["RowKey"]}, self.etags[key]))
        return out

    def list_entities(self, results_per_page=None, select=None):
        self.queries.append({"filter": None, "parameters": None, "select": select, "results_per_page": results_per_page})
        return FakePager(self, self._rows_for(None, select), results_per_page or 1000)

    def query_entities(self, query_filter, parameters=None, results_per_page=None, select=None):
        self.queries.append(
            {"filter": query_filter, "parameters": parameters, "select": select, "results_per_page": results_per_page}
        )
        return FakePager(self, self._rows_for(parameters, select), results_per_page or 1000)


class FakeTableService:
    def __init__(self):
        self.tables: set[str] = set()
        self.clients: dict[str, FakeTableClient] = {}
        self.closed = False

    def get_table_client(self, table_name):
        if table_name not in self.clients:
            self.clients[table_name] = FakeTableClient(table_name, self)
        return self.clients[table_name]

    def query_tables(self, query_filter, parameters=None):
        name = (parameters or {}).get("name")
        return iter([{"name": t} for t in sorted(self.tables) if t == name])

    def close(self):
        self.closed = True


# --- async wrappers ---


async def _agen(items):
    for item in items:
        yield item


class FakeAsyncPageIterator:
    def __init__(self, inner: FakePageIterator):
        self._inner = inner

    @property
    def continuation_token(self):
        return self._inner.continuation_token

    def __aiter__(self):
        return self

    async def __anext__(self):
        try:
            page = next(self._inner)
        except StopIteration:
            raise StopAsyncIteration
        return _agen(list(page))


class FakeAsyncPager:
    def __init__(self, inner: FakePager):
        self._inner = inner

    def by_page(self, continuation_token=None):
        return FakeAsyncPageIterator(self._inner.by_page(continuation_token=continuation_token))


class FakeAsyncTableClient:
    """Coroutine facade over `FakeTableClient` sharing its state."""

    def __init__(self, inner: FakeTableClient):
        self.inner = inner

    async def create_table(self):
        return self.inner.create_table()

    async def delete_table(self):
        return self.inner.delete_table()

    async def close(self):
        self.inner.close()

    async def create_entity(self, entity):
        return self.inner.create_entity(entity)

    async def submit_transaction(self, operations):
        return self.inner.submit_transaction(operations)

    async def update_entity(self, entity, **kwargs):
        return self.inner.update_entity(entity, **kwargs)

    async def delete_entity(self, partition_key, row_key, **kwargs):
        return self.inner.delete_entity(partition_key, row_key, **kwargs)

    async def get_entity(self, partition_key, row_key):
        return self.inner.get_entity(partition_key, row_key)

    def list_entities(self, **kwargs):
        return FakeAsyncPager(self.inner.list_entities(**kwargs))

    def query_entities(self, query_filter, **kwargs):
        return FakeAsyncPager(self.inner.query_entities(query_filter, **kwargs))


class FakeAsyncTableService:
    def __init__(self, inner: FakeTableService):
        self.inner = inner
        self.closed = False

    def get_table_client(self, table_name):
        return FakeAsyncTableClient(self.inner.get_table_client(table_name))

    def query_tables(self, query_filter, parameters=None):
        return _agen(list(self.inner.query_tables(query_filter, parameters=parameters)))

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_service(monkeypatch) -> FakeTableService:
    svc = FakeTableService()
    monkeypatch.setattr(table, "table_service_client", lambda conn, options: svc)
    return svc


@pytest.fixture
def fake_async_service(monkeypatch, fake_service) -> FakeAsyncTableService:
    svc = FakeAsyncTableService(fake_service)
    monkeypatch.setattr(aio_table, "async_table_service_client", lambda conn, options: svc)
    return svc


@pytest.fixture
def customer_model():
    return Customer


def make_customers(partition_key: str, count: int, *, start: int = 0) -> list[Customer]:
    return [
        Customer(PartitionKey=partition_key, RowKey=f"{i:05d}", email=f"{partition_key}-{i}@example.com")
        for i in range(start, start + count)
    ]


@pytest.fixture
def customers():
    return make_customers
