from __future__ import annotations

from typing import Any, Generic, Iterable, TypeVar

from azure.core import MatchConditions
from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError
from azure.data.tables import UpdateMode

from ..observability.logging import get_logger
from .batching import chunk_by_partition, create_operations
from .client import table_service_client
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

log = get_logger("table_store")


class TableStore(Generic[T]):
    """Repository over one table, typed by a `TableRecord` subclass."""

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
        self._service = table_service_client(conn, self.options)
        self._table = self._service.get_table_client(table_name=self.table_name)

        if self.options.create_table_if_not_exists:
            self.create_table()

    def __enter__(self) -> TableStore[T]:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        # The service client is shared through the client cache; only release the table handle.
        self._table.close()

    # --- table lifecycle ---

    def create_table(self) -> bool:
        try:
            self._table.create_table()
        except ResourceExistsError:
            return False
        log.info("table_created", table=self.table_name)
        return True

    def table_exists(self) -> bool:
        tables = self._service.query_tables("TableName eq @name", parameters={"name": self.table_name})
        return any(True for _ in tables)

    def delete_table(self) -> None:
        self._table.delete_table()
        log.info("table_deleted", table=self.table_name)

    # --- writes ---

    def insert(self, record: T) -> None:
        require_record(record, operation="Insert", table_name=self.table_name)
        self._table.create_entity(entity=record.to_entity())

    def insert_many(self, records: Iterable[T]) -> int:
        """
        Insert records as one batch transaction per (partition key, <=100 records) chunk.

        Chunks are submitted in partition key order, one at a time. Each chunk is
        atomic, the call as a whole is not: if a chunk fails, earlier chunks stay
        committed and the service error propagates without submitting the rest.

        Returns the number of chunks submitted.
        """
        require_record(records, operation="InsertBatch", table_name=self.table_name, name="records")

        chunks = chunk_by_partition(records)
        for chunk in chunks:
            self._table.submit_transaction(create_operations(chunk))

        log.info(
            "table_batch_inserted",
            table=self.table_name,
            chunks=len(chunks),
            records=sum(len(c) for c in chunks),
        )
        return len(chunks)

    def update(self, record: T, *, force: bool = False) -> dict[str, Any]:
        """Merge `record` into the stored entity.

        Without `force`, the record's etag must still match the stored one.
        Returns the service metadata (including the new etag).
        """
        require_record(record, operation="Update", table_name=self.table_name)
        if force:
            return self._table.update_entity(
                entity=record.to_entity(),
                mode=UpdateMode.MERGE,
                match_condition=MatchConditions.Unconditionally,
            )
        etag = require_etag(record, operation="Update", table_name=self.table_name)
        return self._table.update_entity(
            entity=record.to_entity(),
            mode=UpdateMode.MERGE,
            etag=etag,
            match_condition=MatchConditions.IfNotModified,
        )

    def update_using_wildcard_etag(self, record: T) -> dict[str, Any]:
        return self.update(record, force=True)

    def delete(self, record: T, *, force: bool = False) -> None:
        require_record(record, operation="Delete", table_name=self.table_name)
        if force:
            self._table.delete_entity(
                partition_key=record.partition_key,
                row_key=record.row_key,
                match_condition=MatchConditions.Unconditionally,
            )
            return
        etag = require_etag(record, operation="Delete", table_name=self.table_name)
        self._table.delete_entity(
            partition_key=record.partition_key,
            row_key=record.row_key,
            etag=etag,
            match_condition=MatchConditions.IfNotModified,
        )

    def delete_using_wildcard_etag(self, record: T) -> None:
        self.delete(record, force=True)

    # --- reads ---

    def get_record(self, partition_key: str, row_key: str) -> T | None:
        pk = require_text(partition_key, "partition_key", operation="GetRecord", table_name=self.table_name)
        rk = require_text(row_key, "row_key", operation="GetRecord", table_name=self.table_name)
        try:
            entity = self._table.get_entity(partition_key=pk, row_key=rk)
        except ResourceNotFoundError:
            return None
        return self.model.from_entity(entity)

    def get_by_partition_key(self, partition_key: str) -> list[T]:
        pk = require_text(partition_key, "partition_key", operation="GetByPartitionKey", table_name=self.table_name)
        return self._fetch_all(TableQuery.partition(pk))

    def get_by_partition_key_paged(
        self,
        partition_key: str,
        page_size: int = 100,
        continuation_token: str | None = None,
    ) -> PagedResult[T]:
        pk = require_text(partition_key, "partition_key", operation="GetByPartitionKeyPaged", table_name=self.table_name)
        return self._fetch_paged(TableQuery.partition(pk), page_size, continuation_token)

    def get_by_row_key(self, row_key: str) -> list[T]:
        rk = require_text(row_key, "row_key", operation="GetByRowKey", table_name=self.table_name)
        return self._fetch_all(TableQuery.row(rk))

    def get_by_row_key_paged(
        self,
        row_key: str,
        page_size: int = 100,
        continuation_token: str | None = None,
    ) -> PagedResult[T]:
        rk = require_text(row_key, "row_key", operation="GetByRowKeyPaged", table_name=self.table_name)
        return self._fetch_paged(TableQuery.row(rk), page_size, continuation_token)

    def get_all_records(self) -> list[T]:
        return self._fetch_all(TableQuery())

    def get_all_records_paged(self, page_size: int = 100, continuation_token: str | None = None) -> PagedResult[T]:
        return self._fetch_paged(TableQuery(), page_size, continuation_token)

    def get_record_count(self) -> int:
        query = TableQuery.keys_only()
        count = 0
        token: dict[str, Any] | None = None
        while True:
            entities, token = self._read_page(query, MAX_PAGE_SIZE, token)
            count += len(entities)
            if token is None:
                return count

    # --- paging ---

    def _read_page(self, query: TableQuery, page_size: int, token: dict[str, Any] | None):
        pages = query.pager(self._table, page_size).by_page(continuation_token=token)
        entities = list(next(pages, []))
        next_token = pages.continuation_token or None
        log.debug(
            "table_page_read",
            table=self.table_name,
            query_filter=query.query_filter,
            count=len(entities),
            has_more=next_token is not None,
        )
        return entities, next_token

    def _fetch_all(self, query: TableQuery) -> list[T]:
        items: list[T] = []
        token: dict[str, Any] | None = None
        while True:
            entities, token = self._read_page(query, MAX_PAGE_SIZE, token)
            items.extend(self.model.from_entity(e) for e in entities)
            if token is None:
                return items

    def _fetch_paged(self, query: TableQuery, page_size: int, continuation_token: str | None) -> PagedResult[T]:
        token = decode_continuation_token(continuation_token)
        entities, next_token = self._read_page(query, clamp_page_size(page_size), token)
        return PagedResult(
            items=[self.model.from_entity(e) for e in entities],
            continuation_token=encode_continuation_token(next_token),
        )
