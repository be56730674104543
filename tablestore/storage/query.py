from __future__ import annotations

from typing import Any


class TableQuery:
    """Filter + projection for one table scan; `None` filter means the whole table."""

    __slots__ = ("query_filter", "parameters", "select")

    def __init__(
        self,
        query_filter: str | None = None,
        parameters: dict[str, Any] | None = None,
        select: list[str] | None = None,
    ):
        self.query_filter = query_filter
        self.parameters = parameters
        self.select = select

    @classmethod
    def partition(cls, partition_key: str) -> TableQuery:
        return cls("PartitionKey eq @pk", {"pk": partition_key})

    @classmethod
    def row(cls, row_key: str) -> TableQuery:
        return cls("RowKey eq @rk", {"rk": row_key})

    @classmethod
    def keys_only(cls) -> TableQuery:
        return cls(select=["PartitionKey"])

    def pager(self, table_client, page_size: int):
        """Build the SDK pager; no request is sent until a page is read."""
        kwargs: dict[str, Any] = {"results_per_page": page_size}
        if self.select:
            kwargs["select"] = self.select
        if self.query_filter is None:
            return table_client.list_entities(**kwargs)
        return table_client.query_entities(self.query_filter, parameters=self.parameters, **kwargs)
