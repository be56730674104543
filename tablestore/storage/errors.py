from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True)
class TableStoreError(Exception):
    """Base error for table store operations.

    Only argument/token problems detected before a request is sent are raised
    as `TableStoreError`. Failures reported by the service surface as the
    SDK's own `azure.core.exceptions` types once its retries are exhausted.
    """

    message: str
    operation: str | None = None
    table_name: str | None = None
    key: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class TableStoreValidation(TableStoreError, ValueError):
    pass


@dataclass(slots=True)
class InvalidContinuationToken(TableStoreValidation):
    pass
