from .storage import (
    AsyncTableStore,
    InvalidContinuationToken,
    PagedResult,
    RetryPolicy,
    TableRecord,
    TableStore,
    TableStoreError,
    TableStoreFactory,
    TableStoreOptions,
    TableStoreValidation,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
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
