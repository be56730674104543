"""Azure Table Storage repository.

This package centralizes:
- table service client configuration (retry/backoff, timeouts)
- typed stores over one table, sync and async
- continuation token encoding/decoding for paged queries
- partition-aware chunking of batch inserts
- typed errors for invalid arguments

"""

from .aio_table import AsyncTableStore
from .errors import InvalidContinuationToken, TableStoreError, TableStoreValidation
from .factory import TableStoreFactory
from .models import TableRecord
from .pagination import PagedResult
from .retry import RetryPolicy, TableStoreOptions
from .table import TableStore

__all__ = [
    "AsyncTableStore",
    "InvalidContinuationToken",
    "PagedResult",
    "RetryPolicy",
    "TableRecord",
    "TableStore",
    "TableStoreError",
    "TableStoreFactory",
    "TableStoreOptions",
    "TableStoreValidation",
]
