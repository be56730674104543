from __future__ import annotations

from typing import Any, Generic, Iterable, TypeVar

from azure.core import MatchConditions
from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError
from azure.data.tables import UpdateMode

from ..observability.logging import get_logger
from .batching import chunk_by_partition, create_operations
from .client import async_table_service_client
from .models import TableRecord
from .pagination import (
    MAX_PAGE_SIZE,
    PagedResult,
    clamp_page_size,
    decode_continuation_token,
    encode_continuation_token,
)
from .query import TableQuery
from .retry import TableStoreOptions
from .validation import require_etag, require_record, require_text


T = TypeVar("T", bound=TableRecord)

log = get_logger("table_store.aio")


class AsyncTableStore(Generic[T]):
    """Coroutine twin of `TableStore`.

    Awaits happen only around service calls, and multi-request operations
    (paged scans, batch inserts) issue their requests strictly one after
    another. Construction does not touch the network; the factory awaits
    `create_table()` when the options ask for it.
    """

    def __init__(
        self,
        model: type[T],
        table_name: str,
        connection_string: str,
        *,
        options: TableStoreOptions | None = None,
    ):
        self.table_name = require_text(table_name, "table_name", operation="CreateStore")
        conn = require_text(connection_string, "connection_string", operation="CreateStore", table_name=self.table_name)

        self.model = model
        self.options = options or TableStoreOptions()
        self._service = async_table_service_client(conn, self.options)
        self._table = self._service.get_table_client(table_name=self.table_name)

    async def __aenter__(self) -> AsyncTableStore[T]:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def close(self) -> None:
        await self._table.close()
        await self._service.close()

    # --- table lifecycle ---

    async def create_table(self) -> bool:
        try:
            await self._table.create_table()
        except ResourceExistsError:
            return False
        log.info("table_created", table=self.table_name)
        return True

    async def table_exists(self) -> bool:
        tables = self._service.query_tables("TableName eq @name", parameters={"name": self.table_name})
        async for _ in tables:
            return True
        return False

    async def delete_table(self) -> None:
        await self._table.delete_table()
        log.info("table_deleted", table=self.table_name)

    # --- writes ---

    async def insert(self, record: T) -> None:
        require_record(record, operation="Insert", table_name=self.table_name)
        await self._table.create_entity(entity=record.to_entity())

    async def insert_many(self, records: Iterable[T]) -> int:
        """Same chunking and failure semantics as `TableStore.insert_many`."""
        require_record(records, operation="InsertBatch", table_name=self.table_name, name="records")

        chunks = chunk_by_partition(records)
        for chunk in chunks:
            await self._table.submit_transaction(create_operations(chunk))

        log.info(
            "table_batch_inserted",
            table=self.table_name,
            chunks=len(chunks),
            records=sum(len(c) for c in chunks),
        )
        return len(chunks)

    async def update(self, record: T, *, force: bool = False) -> dict[str, Any]:
        require_record(record, operation="Update", table_name=self.table_name)
        if force:
            return await self._table.update_entity(
                entity=record.to_entity(),
                mode=UpdateMode.MERGE,
                match_condition=MatchConditions.Unconditionally,
            )
        etag = require_etag(record, operation="Update", table_name=self.table_name)
        return await self._table.update_entity(
            entity=record.to_entity(),
            mode=UpdateMode.MERGE,
            etag=etag,
            match_condition=MatchConditions.IfNotModified,
        )

    async def update_using_wildcard_etag(self, record: T) -> dict[str, Any]:
        return await self.update(record, force=True)

    async def delete(self, record: T, *, force: bool = False) -> None:
        require_record(record, operation="Delete", table_name=self.table_name)
        if force:
            await self._table.delete_entity(
                partition_key=record.partition_key,
                row_key=record.row_key,
                match_condition=MatchConditions.Unconditionally,
            )
            return
        etag = require_etag(record, operation="Delete", table_name=self.table_name)
        await self._table.delete_entity(
            partition_key=record.partition_key,
            row_key=record.row_key,
            etag=etag,
            match_condition=MatchConditions.IfNotModified,
        )

    async def delete_using_wildcard_etag(self, record: T) -> None:
        await self.delete(record, force=True)

    # --- reads ---

    async def get_record(self, partition_key: str, row_key: str) -> T | None:
        pk = require_text(partition_key, "partition_key", operation="GetRecord", table_name=self.table_name)
        rk = require_text(row_key, "row_key", operation="GetRecord", table_name=self.table_name)
        try:
            entity = await self._table.get_entity(partition_key=pk, row_key=rk)
        except ResourceNotFoundError:
            return None
        return self.model.from_entity(entity)

    async def get_by_partition_key(self, partition_key: str) -> list[T]:
        pk = require_text(partition_key, "partition_key", operation="GetByPartitionKey", table_name=self.table_name)
        return await self._fetch_all(TableQuery.partition(pk))

    async def get_by_partition_key_paged(
        self,
        partition_key: str,
        page_size: int = 100,
        continuation_token: str | None = None,
    ) -> PagedResult[T]:
        pk = require_text(partition_key, "partition_key", operation="GetByPartitionKeyPaged", table_name=self.table_name)
        return await self._fetch_paged(TableQuery.partition(pk), page_size, continuation_token)

    async def get_by_row_key(self, row_key: str) -> list[T]:
        rk = require_text(row_key, "row_key", operation="GetByRowKey", table_name=self.table_name)
        return await self._fetch_all(TableQuery.row(rk))

    async def get_by_row_key_paged(
        self,
        row_key: str,
        page_size: int = 100,
        continuation_token: str | None = None,
    ) -> PagedResult[T]:
        rk = require_text(row_key, "row_key", operation="GetByRowKeyPaged", table_name=self.table_name)
        return await self._fetch_paged(TableQuery.row(rk), page_size, continuation_token)

    async def get_all_records(self) -> list[T]:
        return await self._fetch_all(TableQuery())

    async def get_all_records_paged(
        self,
        page_size: int = 100,
        continuation_token: str | None = None,
    ) -> PagedResult[T]:
        return await self._fetch_paged(TableQuery(), page_size, continuation_token)

    async def get_record_count(self) -> int:
        query = TableQuery.keys_only()
        count = 0
        token: dict[str, Any] | None = None
        while True:
            entities, token = await self._read_page(query, MAX_PAGE_SIZE, token)
            count += len(entities)
            if token is None:
                return count

    # --- paging ---

    async def _read_page(self, query: TableQuery, page_size: int, token: dict[str, Any] | None):
        pages = query.pager(self._table, page_size).by_page(continuation_token=token)
        page = await anext(pages, None)
        entities = [e async for e in page] if page is not None else []
        next_token = pages.continuation_token or None
        log.debug(
            "table_page_read",
            table=self.table_name,
            query_filter=query.query_filter,
            count=len(entities),
            has_more=next_token is not None,
        )
        return entities, next_token

    async def _fetch_all(self, query: TableQuery) -> list[T]:
        items: list[T] = []
        token: dict[str, Any] | None = None
        while True:
            entities, token = await self._read_page(query, MAX_PAGE_SIZE, token)
            items.extend(self.model.from_entity(e) for e in entities)
            if token is None:
                return items

    async def _fetch_paged(
        self,
        query: TableQuery,
        page_size: int,
        continuation_token: str | None,
    ) -> PagedResult[T]:
        token = decode_continuation_token(continuation_token)
        entities, next_token = await self._read_page(query, clamp_page_size(page_size), token)
        return PagedResult(
            items=[self.model.from_entity(e) for e in entities],
            continuation_token=encode_continuation_token(next_token),
        )
