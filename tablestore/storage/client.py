from __future__ import annotations

from functools import lru_cache

from azure.data.tables import TableServiceClient
from azure.data.tables.aio import TableServiceClient as AsyncTableServiceClient

from .retry import TableStoreOptions


@lru_cache(maxsize=32)
def table_service_client(connection_string: str, options: TableStoreOptions) -> TableServiceClient:
    # One pooled HTTP session per (account, options); stores for different tables share it.
    return TableServiceClient.from_connection_string(
        conn_str=connection_string,
        **options.client_kwargs(),
    )


def async_table_service_client(connection_string: str, options: TableStoreOptions) -> AsyncTableServiceClient:
    # aiohttp sessions are bound to the running loop, so async clients are never cached.
    return AsyncTableServiceClient.from_connection_string(
        conn_str=connection_string,
        **options.client_kwargs(),
    )
