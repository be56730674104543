from __future__ import annotations

from typing import TypeVar

from ..settings import Settings, get_settings
from .aio_table import AsyncTableStore
from .models import TableRecord
from .retry import RetryPolicy, TableStoreOptions
from .table import TableStore
from .validation import require_text


T = TypeVar("T", bound=TableRecord)


class TableStoreFactory:
    """Builds stores bound to a table name and storage connection string.

    `connection_string`, `retries` and `retry_wait_seconds` fall back to
    `Settings` (``TABLESTORE_*`` environment variables) when omitted. An
    explicit `options` object wins over the retry arguments.
    """

    def __init__(self, settings: Settings | None = None):
        self._settings = settings

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    def _resolve(
        self,
        table_name: str,
        connection_string: str | None,
        retries: int | None,
        retry_wait_seconds: float | None,
        options: TableStoreOptions | None,
    ) -> tuple[str, str, TableStoreOptions]:
        name = require_text(table_name, "table_name", operation="CreateStore")
        conn = require_text(
            connection_string if connection_string is not None else self.settings.connection_string,
            "connection_string",
            operation="CreateStore",
            table_name=name,
        )
        if options is None:
            options = TableStoreOptions(
                retry_policy=RetryPolicy(
                    retries=self.settings.retries if retries is None else retries,
                    backoff_seconds=self.settings.retry_wait_seconds if retry_wait_seconds is None else retry_wait_seconds,
                )
            )
        return name, conn, options

    def create_table_store(
        self,
        model: type[T],
        table_name: str,
        connection_string: str | None = None,
        retries: int | None = None,
        retry_wait_seconds: float | None = None,
        *,
        options: TableStoreOptions | None = None,
    ) -> TableStore[T]:
        name, conn, opts = self._resolve(table_name, connection_string, retries, retry_wait_seconds, options)
        return TableStore(model, name, conn, options=opts)

    async def create_async_table_store(
        self,
        model: type[T],
        table_name: str,
        connection_string: str | None = None,
        retries: int | None = None,
        retry_wait_seconds: float | None = None,
        *,
        options: TableStoreOptions | None = None,
    ) -> AsyncTableStore[T]:
        name, conn, opts = self._resolve(table_name, connection_string, retries, retry_wait_seconds, options)
        store = AsyncTableStore(model, name, conn, options=opts)
        if opts.create_table_if_not_exists:
            try:
                await store.create_table()
            except BaseException:
                await store.close()
                raise
        return store
